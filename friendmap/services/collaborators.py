"""
Interfaces of the external collaborators the engines consume.

Implementations live with the request/response layer; the engines only
depend on these protocols.
"""

from typing import List, Optional, Protocol, Sequence

from friendmap.schemas.location import UserGeohash, PlaceVisitRecord
from friendmap.schemas.people import UserRecord
from friendmap.schemas.recommendations import PlaceCandidate, WeightConfig, WeightAdjustments


class UserDirectory(Protocol):
    async def fetch_user_record(self, user_id: int) -> Optional[UserRecord]:
        """Return the user's record, or None if the id no longer resolves."""
        ...


class ClosenessProvider(Protocol):
    async def fetch_pair_closeness(self, user_a: int, user_b: int) -> float:
        """Finite, non-negative additive cost between two connected users."""
        ...


class LocationProvider(Protocol):
    async def fetch_active_locations(self) -> List[UserGeohash]:
        ...

    async def fetch_visit_history(self, user_id: int) -> List[PlaceVisitRecord]:
        ...


class PlaceSearchProvider(Protocol):
    async def search_nearby_places(
        self,
        center: str,
        radius_meters: float,
        included_types: Optional[Sequence[str]] = None
    ) -> List[PlaceCandidate]:
        ...


class WeightsStore(Protocol):
    async def get_weights(self, user_id: int) -> Optional[WeightConfig]:
        """Stored weights, or None for a user who has never given feedback."""
        ...

    async def persist_weight_adjustment(self, user_id: int, adjustments: WeightAdjustments) -> None:
        ...

    async def persist_liked_type(self, user_id: int, place_type: str) -> bool:
        """Add a liked place type; False if it was already liked."""
        ...
