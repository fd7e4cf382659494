"""
Location Clustering
Groups active users who are at the same place for map display.
"""

from typing import List, Optional, Sequence

from friendmap.schemas.location import UserGeohash, LocationCluster
from friendmap.utils.geohash import are_close


def find_clusters(
    locations: Sequence[UserGeohash],
    resolution: Optional[int] = None
) -> List[LocationCluster]:
    """Partition user locations into clusters of users at the same place.

    Each location joins the first existing cluster whose representative
    geohash is close to it, otherwise it starts a new cluster and becomes its
    representative. Representatives never change and clusters are never
    merged, so users straddling a cell boundary can end up in neighboring
    clusters.
    """
    clusters: List[LocationCluster] = []

    for location in locations:
        for cluster in clusters:
            if are_close(cluster.geohash, location.geohash, resolution):
                cluster.user_ids.append(location.user_id)
                break
        else:
            clusters.append(
                LocationCluster(geohash=location.geohash, user_ids=[location.user_id])
            )

    return clusters
