"""
Place Recommendation Service
Scores nearby points of interest by social presence, interest similarity,
visit history, distance and liked categories, and turns user feedback into
weight adjustments.
"""

import math
import time
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from friendmap.config import settings
from friendmap.exceptions import UserNotFoundError
from friendmap.schemas.location import UserGeohash, PlaceVisitRecord
from friendmap.schemas.recommendations import (
    FeedbackKind, PlaceCandidate, WeightConfig, WeightAdjustments,
    PlaceRecUserData, PlaceUserStats, PlaceRecommendation, PlaceRecStats,
    RecommendationResult
)
from friendmap.services.collaborators import (
    UserDirectory, LocationProvider, PlaceSearchProvider, WeightsStore
)
from friendmap.utils.clock import as_utc
from friendmap.utils.geohash import are_close, common_prefix_length, encode
from friendmap.utils.logging import engine_logger, log_operation, user_id_context

MAX_DISSIMILARITY = math.pi / 2
SECONDS_IN_MINUTE = 60
SECONDS_IN_DAY = 24 * 60 * 60

# Feedback kind -> (adjustment field, direction)
FEEDBACK_DIMENSIONS: Dict[FeedbackKind, Tuple[str, int]] = {
    FeedbackKind.CLOSER: ("distance_adjustment", 1),
    FeedbackKind.FARTHER: ("distance_adjustment", -1),
    FeedbackKind.MORE_POPULAR: ("count_adjustment", 1),
    FeedbackKind.IN_MY_HISTORY: ("past_visit_adjustment", 1),
    FeedbackKind.MORE_FRIENDS: ("friend_adjustment", 1),
    FeedbackKind.MORE_SIMILAR: ("similarity_adjustment", 1),
}


def default_weights() -> WeightConfig:
    """Weights for a user who has not given any feedback yet."""
    return WeightConfig(
        friend_weight=settings.friend_weight,
        past_visit_weight=settings.past_visit_weight,
        count_weight=settings.count_weight,
        similarity_weight=settings.similarity_weight,
        distance_weight=settings.distance_weight,
        type_weight=settings.type_weight,
    )


def interest_angle(v1: Sequence[int], v2: Sequence[int]) -> float:
    """Angle in radians between two interest vectors.

    0 means identical interests and pi/2 no shared interests. A user with no
    interests selected is maximally dissimilar to everyone.
    """
    size = max(len(v1), len(v2))
    a = np.zeros(size)
    b = np.zeros(size)
    a[:len(v1)] = v1
    b[:len(v2)] = v2

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return MAX_DISSIMILARITY

    cosine = np.clip(np.dot(a, b) / denominator, -1.0, 1.0)
    return float(np.arccos(cosine))


def get_users_stats(users: Sequence[PlaceRecUserData]) -> PlaceUserStats:
    """Count, friend count and average interest angle of the users at a place."""
    if not users:
        return PlaceUserStats(count=0, avg_similarity=MAX_DISSIMILARITY, friend_count=0)

    return PlaceUserStats(
        count=len(users),
        avg_similarity=float(np.mean([u.similarity for u in users])),
        friend_count=sum(1 for u in users if u.friend)
    )


def get_past_visits_stats(
    place_geohash: str,
    history: Sequence[PlaceVisitRecord],
    now: Optional[datetime] = None,
    resolution: Optional[int] = None
) -> Tuple[int, float]:
    """Number of past visits to a place and their recency/duration weighted score.

    Each visit contributes its duration in minutes divided by one plus the
    days elapsed since it.
    """
    now = as_utc(now)
    num_visits = 0
    visit_score = 0.0

    for visit in history:
        if not are_close(place_geohash, visit.geohash, resolution):
            continue
        days_since = max(0.0, (now - as_utc(visit.timestamp)).total_seconds() / SECONDS_IN_DAY)
        visit_score += (visit.duration_seconds / SECONDS_IN_MINUTE) / (days_since + 1)
        num_visits += 1

    return num_visits, visit_score


def calculate_score(
    recommendation: PlaceRecommendation,
    weights: WeightConfig,
    adjustments: Optional[WeightAdjustments] = None
) -> float:
    """Weighted blend of a place's signals.

    The interest angle is subtracted since a smaller angle means more
    similar users. Session adjustments are added to all six weights,
    including the friend weight, which the base formula
    ``friend_count * friend_weight`` leaves unadjusted.
    """
    effective = weights.apply(adjustments or WeightAdjustments())
    user_data = recommendation.user_data

    friend_score = user_data.friend_count * effective.friend_weight
    visit_score = recommendation.visit_score * effective.past_visit_weight
    count_score = user_data.count * effective.count_weight
    similarity_score = user_data.avg_similarity * effective.similarity_weight
    distance_score = recommendation.geohash_distance * effective.distance_weight
    type_score = effective.type_weight if recommendation.is_liked_type else 0

    return (
        friend_score +
        visit_score +
        count_score -
        similarity_score +
        distance_score +
        type_score
    )


def feedback_adjustments(kind: FeedbackKind, step: Optional[float] = None) -> WeightAdjustments:
    """Adjustments for one coarse preference; the other dimensions stay zero."""
    field, direction = FEEDBACK_DIMENSIONS[kind]
    step = step if step is not None else settings.feedback_step
    return WeightAdjustments.from_partial(**{field: direction * step})


def like_adjustments(
    recommendation: PlaceRecommendation,
    stats: PlaceRecStats,
    increase: Optional[float] = None,
    delta: Optional[float] = None
) -> WeightAdjustments:
    """Reinforce what made a liked place stand out from the candidate set.

    Only the dimension furthest above its average (beyond ``delta``) is
    increased; a lower interest angle counts as above average. A place of an
    already liked type also increases the type weight.
    """
    increase = increase if increase is not None else settings.liked_weight_increase
    delta = delta if delta is not None else settings.adjustment_delta

    margins = {
        "friend_adjustment": recommendation.user_data.friend_count - stats.avg_friend_count,
        "past_visit_adjustment": recommendation.visit_score - stats.avg_visit_score,
        "count_adjustment": recommendation.user_data.count - stats.avg_count,
        "similarity_adjustment": stats.avg_user_similarity - recommendation.user_data.avg_similarity,
        "distance_adjustment": recommendation.geohash_distance - stats.avg_distance,
    }

    deltas: Dict[str, float] = {}
    best_field, best_margin = max(margins.items(), key=lambda item: item[1])
    if best_margin >= delta:
        deltas[best_field] = increase
    if recommendation.is_liked_type:
        deltas["type_adjustment"] = increase

    return WeightAdjustments.from_partial(**deltas)


class RecommendationService:
    """Service for scoring candidate places for one user."""

    def __init__(self, users: UserDirectory, resolution: Optional[int] = None):
        self.users = users
        self.resolution = resolution

    @log_operation("recommend_places")
    async def recommend_places(
        self,
        places: Sequence[PlaceCandidate],
        user_id: int,
        current_geohash: str,
        active_users: Sequence[UserGeohash],
        visit_history: Sequence[PlaceVisitRecord],
        weights: WeightConfig,
        adjustments: Optional[WeightAdjustments] = None,
        now: Optional[datetime] = None
    ) -> RecommendationResult:
        """Score every candidate and return them best first with set-wide averages."""
        user_id_context.set(str(user_id))
        start_time = time.time()
        now = as_utc(now)

        users_data = await self.get_place_rec_user_data(user_id, active_users)

        recommendations: List[PlaceRecommendation] = []
        totals = np.zeros(5)

        for place in places:
            place_geohash = encode(place.location.latitude, place.location.longitude)

            users_at_place = [
                u for u in users_data if are_close(u.geohash, place_geohash, self.resolution)
            ]
            user_stats = get_users_stats(users_at_place)
            num_visits, visit_score = get_past_visits_stats(
                place_geohash, visit_history, now, self.resolution
            )

            recommendation = PlaceRecommendation(
                place=place,
                geohash=place_geohash,
                geohash_distance=common_prefix_length(place_geohash, current_geohash),
                num_visits=num_visits,
                visit_score=visit_score,
                is_liked_type=place.primary_type is not None and place.primary_type in weights.liked_types,
                user_data=user_stats
            )
            recommendation.score = calculate_score(recommendation, weights, adjustments)
            recommendations.append(recommendation)

            totals += (
                user_stats.friend_count,
                visit_score,
                user_stats.count,
                user_stats.avg_similarity,
                recommendation.geohash_distance,
            )

        averages = totals / len(places) if places else totals
        stats = PlaceRecStats(
            avg_friend_count=float(averages[0]),
            avg_visit_score=float(averages[1]),
            avg_count=float(averages[2]),
            avg_user_similarity=float(averages[3]),
            avg_distance=float(averages[4]),
        )

        # sorted() is stable, so ties keep candidate order
        recommendations = sorted(recommendations, key=lambda r: r.score, reverse=True)

        engine_logger.log_recommendations(
            user_id,
            current_geohash,
            len(places),
            len(active_users),
            (time.time() - start_time) * 1000
        )
        return RecommendationResult(stats=stats, recommendations=recommendations)

    async def get_place_rec_user_data(
        self,
        user_id: int,
        active_users: Sequence[UserGeohash]
    ) -> List[PlaceRecUserData]:
        """Friend status and interest angle of every other active user."""
        current = await self.users.fetch_user_record(user_id)
        if current is None:
            raise UserNotFoundError(user_id)
        friends = set(current.friends)

        result = []
        for active in active_users:
            if active.user_id == user_id:
                continue
            other = await self.users.fetch_user_record(active.user_id)
            if other is None:
                continue
            result.append(PlaceRecUserData(
                user_id=active.user_id,
                geohash=active.geohash,
                friend=active.user_id in friends,
                similarity=interest_angle(current.interests, other.interests)
            ))
        return result


class PlaceRecommendationSession:
    """Recommendation list state for one logged-in user.

    Holds the weights snapshot, the feedback given since it was taken and the
    last candidate set, which is reused while the user stays in place.
    """

    def __init__(
        self,
        user_id: int,
        service: RecommendationService,
        places: PlaceSearchProvider,
        locations: LocationProvider,
        weights_store: WeightsStore,
        radius_meters: Optional[float] = None,
        included_types: Optional[Sequence[str]] = None
    ):
        self.user_id = user_id
        self.service = service
        self.places = places
        self.locations = locations
        self.weights_store = weights_store
        self.radius_meters = (
            radius_meters if radius_meters is not None else settings.nearby_places_radius_meters
        )
        self.included_types = included_types

        self.weights: Optional[WeightConfig] = None
        self.adjustments = WeightAdjustments()
        self.last_geohash: Optional[str] = None
        self.candidates: List[PlaceCandidate] = []
        self.result: Optional[RecommendationResult] = None

    async def load_places(self, current_geohash: str, now: Optional[datetime] = None) -> RecommendationResult:
        """Search (or reuse) nearby places and rank them."""
        if self.last_geohash is None or not are_close(current_geohash, self.last_geohash):
            self.candidates = await self.places.search_nearby_places(
                current_geohash, self.radius_meters, self.included_types
            )
            self.last_geohash = current_geohash

        if self.weights is None:
            stored = await self.weights_store.get_weights(self.user_id)
            self.weights = stored if stored is not None else default_weights()

        active_users = await self.locations.fetch_active_locations()
        history = await self.locations.fetch_visit_history(self.user_id)

        self.result = await self.service.recommend_places(
            self.candidates,
            self.user_id,
            current_geohash,
            active_users,
            history,
            self.weights,
            self.adjustments,
            now
        )
        return self.result

    async def give_feedback(self, kind: FeedbackKind) -> WeightAdjustments:
        """Apply and persist a coarse preference such as "closer"."""
        adjustments = feedback_adjustments(kind)
        await self._apply(adjustments, kind.value)
        return adjustments

    async def like(self, recommendation: PlaceRecommendation) -> WeightAdjustments:
        """Reinforce a liked place and remember its category."""
        stats = self.result.stats if self.result else PlaceRecStats()
        adjustments = like_adjustments(recommendation, stats)
        await self._apply(adjustments, "like")

        place_type = recommendation.place.primary_type
        if place_type and (self.weights is None or place_type not in self.weights.liked_types):
            await self.weights_store.persist_liked_type(self.user_id, place_type)
            if self.weights is not None:
                self.weights.liked_types.append(place_type)

        return adjustments

    async def _apply(self, adjustments: WeightAdjustments, feedback: str):
        await self.weights_store.persist_weight_adjustment(self.user_id, adjustments)
        self.adjustments = self.adjustments + adjustments
        engine_logger.log_feedback(self.user_id, feedback, adjustments.model_dump())
