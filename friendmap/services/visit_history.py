"""
Visit history recording: consecutive location samples at the same place are
folded into one visit whose duration grows.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from friendmap.config import settings
from friendmap.schemas.location import PlaceVisitRecord
from friendmap.utils.clock import as_utc
from friendmap.utils.geohash import are_close


def merge_visit_sample(
    last_visit: Optional[PlaceVisitRecord],
    geohash: str,
    now: Optional[datetime] = None,
    still_at_location_seconds: Optional[float] = None,
    dup_resolution: Optional[int] = None,
    initial_duration_seconds: Optional[float] = None
) -> Tuple[PlaceVisitRecord, bool]:
    """Record that the user is at ``geohash``.

    Returns the visit to persist and whether it is a new record. The most
    recent visit is extended when the sample is at the same place and the
    gap since that visit ended is short enough; otherwise a new visit starts.
    """
    now = as_utc(now)
    still_at_location = (
        still_at_location_seconds if still_at_location_seconds is not None
        else settings.time_still_at_location_seconds
    )
    resolution = dup_resolution if dup_resolution is not None else settings.geohash_dup_res
    initial_duration = (
        initial_duration_seconds if initial_duration_seconds is not None
        else settings.initial_visit_duration_seconds
    )

    if last_visit is not None:
        visit_end = as_utc(last_visit.timestamp) + timedelta(seconds=last_visit.duration_seconds)
        gap = (now - visit_end).total_seconds()

        if gap <= still_at_location and are_close(last_visit.geohash, geohash, resolution):
            extended = last_visit.model_copy(
                update={"duration_seconds": last_visit.duration_seconds + max(0.0, gap)}
            )
            return extended, False

    return PlaceVisitRecord(geohash=geohash, timestamp=now, duration_seconds=initial_duration), True
