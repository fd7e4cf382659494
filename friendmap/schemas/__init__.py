from .location import Location, UserGeohash, LocationCluster, PlaceVisitRecord
from .people import UserRecord, FriendPathNode, SuggestedProfile, CachedSuggestedProfile
from .recommendations import (
    FeedbackKind, PlaceCandidate, WeightConfig, WeightAdjustments,
    PlaceRecUserData, PlaceUserStats, PlaceRecommendation, PlaceRecStats,
    RecommendationResult
)

__all__ = [
    "Location", "UserGeohash", "LocationCluster", "PlaceVisitRecord",
    "UserRecord", "FriendPathNode", "SuggestedProfile", "CachedSuggestedProfile",
    "FeedbackKind", "PlaceCandidate", "WeightConfig", "WeightAdjustments",
    "PlaceRecUserData", "PlaceUserStats", "PlaceRecommendation", "PlaceRecStats",
    "RecommendationResult",
]
