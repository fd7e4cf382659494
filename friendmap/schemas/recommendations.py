"""
Place Recommendation Schemas
Candidate places, per-user weights and feedback, and scored recommendations.
"""

import math
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field, ValidationError, field_validator

from friendmap.exceptions import InvalidWeightAdjustmentError
from friendmap.schemas.location import Location


class FeedbackKind(str, Enum):
    """Coarse preferences a user can report about the recommendation list."""
    CLOSER = "closer"
    FARTHER = "farther"
    MORE_POPULAR = "more_popular"
    IN_MY_HISTORY = "in_my_history"
    MORE_FRIENDS = "more_friends"
    MORE_SIMILAR = "more_similar"


class PlaceCandidate(BaseModel):
    """A point of interest returned by the place search provider."""
    id: Optional[str] = Field(None, description="Provider place identifier")
    display_name: str
    address: Optional[str] = Field(None)
    location: Location
    primary_type: Optional[str] = Field(None, description="Primary place category")


class WeightConfig(BaseModel):
    """A user's personalized recommendation weights."""
    friend_weight: float = 1
    past_visit_weight: float = 1
    count_weight: float = 1
    similarity_weight: float = 1
    distance_weight: float = 1
    type_weight: float = 1
    liked_types: List[str] = Field(default_factory=list)

    def apply(self, adjustments: "WeightAdjustments") -> "WeightConfig":
        """Return a copy with the adjustments added to each weight."""
        return self.model_copy(update={
            "friend_weight": self.friend_weight + adjustments.friend_adjustment,
            "past_visit_weight": self.past_visit_weight + adjustments.past_visit_adjustment,
            "count_weight": self.count_weight + adjustments.count_adjustment,
            "similarity_weight": self.similarity_weight + adjustments.similarity_adjustment,
            "distance_weight": self.distance_weight + adjustments.distance_adjustment,
            "type_weight": self.type_weight + adjustments.type_adjustment,
            "liked_types": list(self.liked_types),
        })


class WeightAdjustments(BaseModel):
    """Signed deltas for all six weight dimensions; absent dimensions are zero."""
    friend_adjustment: float = 0.0
    past_visit_adjustment: float = 0.0
    count_adjustment: float = 0.0
    similarity_adjustment: float = 0.0
    distance_adjustment: float = 0.0
    type_adjustment: float = 0.0

    @field_validator("*")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("adjustment must be a finite number")
        return v

    @classmethod
    def from_partial(cls, **deltas: float) -> "WeightAdjustments":
        """Build adjustments from any subset of dimensions, rejecting non-finite values."""
        try:
            return cls(**deltas)
        except ValidationError as e:
            raise InvalidWeightAdjustmentError(str(e)) from e

    def __add__(self, other: "WeightAdjustments") -> "WeightAdjustments":
        return WeightAdjustments(**{
            name: getattr(self, name) + getattr(other, name)
            for name in WeightAdjustments.model_fields
        })


class PlaceRecUserData(BaseModel):
    """An active user as seen from the querying user."""
    user_id: int
    geohash: str
    friend: bool = False
    similarity: float = Field(..., ge=0, description="Interest angle in radians")


class PlaceUserStats(BaseModel):
    """Aggregates over the active users present at a place."""
    count: int = Field(0, ge=0)
    avg_similarity: float = Field(math.pi / 2, ge=0)
    friend_count: int = Field(0, ge=0)


class PlaceRecommendation(BaseModel):
    """A scored candidate place."""
    place: PlaceCandidate
    geohash: str
    geohash_distance: int = Field(..., ge=0, description="Common prefix length with the user's geohash")
    num_visits: int = Field(0, ge=0)
    visit_score: float = Field(0, ge=0)
    is_liked_type: bool = False
    user_data: PlaceUserStats
    score: float = 0


class PlaceRecStats(BaseModel):
    """Averages across a candidate set, used by like feedback."""
    avg_friend_count: float = 0
    avg_visit_score: float = 0
    avg_count: float = 0
    avg_user_similarity: float = 0
    avg_distance: float = 0


class RecommendationResult(BaseModel):
    """Ranked recommendations together with the candidate-set statistics."""
    stats: PlaceRecStats
    recommendations: List[PlaceRecommendation] = Field(default_factory=list)
