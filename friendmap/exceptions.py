"""Engine-level exceptions for discovery and place recommendation."""

from typing import Optional


class FriendMapError(Exception):
    """Base class for engine errors."""

    reason: str = "unknown"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class UserNotFoundError(FriendMapError):
    """The querying user's record could not be resolved."""

    reason = "user_not_found"

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class InvalidWeightAdjustmentError(FriendMapError, ValueError):
    reason = "invalid_weight_adjustment"


class PlaceSearchError(FriendMapError):
    """The nearby place provider failed or returned an unusable payload."""

    reason = "place_search_failed"
