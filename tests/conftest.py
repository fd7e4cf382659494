"""
Test configuration and shared fixtures for the engine test suite.
"""

import pytest
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from unittest.mock import AsyncMock

from friendmap.schemas.people import UserRecord
from friendmap.schemas.recommendations import WeightConfig
from friendmap.services.discovery_service import DiscoveryService


class FakeUserDirectory:
    """In-memory identity collaborator."""

    def __init__(self, records: Iterable[UserRecord] = ()):
        self.records: Dict[int, UserRecord] = {r.id: r for r in records}
        self.fetches: List[int] = []

    async def fetch_user_record(self, user_id: int) -> Optional[UserRecord]:
        self.fetches.append(user_id)
        return self.records.get(user_id)

    def put(self, record: UserRecord):
        self.records[record.id] = record

    def update(self, user_id: int, **changes):
        self.records[user_id] = self.records[user_id].model_copy(update=changes)


class FakeCloseness:
    """Symmetric pairwise costs, 1.0 unless configured."""

    def __init__(self, weights: Optional[Dict[tuple, float]] = None, default: float = 1.0):
        self.weights = {frozenset(pair): w for pair, w in (weights or {}).items()}
        self.default = default

    async def fetch_pair_closeness(self, user_a: int, user_b: int) -> float:
        return self.cost(user_a, user_b)

    def cost(self, user_a: int, user_b: int) -> float:
        return self.weights.get(frozenset((user_a, user_b)), self.default)


def make_user(user_id: int, friends=(), blocked=(), interests=(), first_name=None, last_name="User"):
    return UserRecord(
        id=user_id,
        first_name=first_name or f"U{user_id}",
        last_name=last_name,
        interests=list(interests),
        friends=list(friends),
        blocked_users=list(blocked),
    )


@pytest.fixture
def user_factory():
    """Build user records with sensible defaults."""
    return make_user


@pytest.fixture
def simple_graph():
    """Querying user 1 with direct friend 2, who is friends with 3."""
    directory = FakeUserDirectory([
        make_user(1, friends=[2]),
        make_user(2, friends=[1, 3], first_name="Fiona", last_name="Friend"),
        make_user(3, friends=[2]),
    ])
    closeness = FakeCloseness({(1, 2): 1.5, (2, 3): 2.0})
    return directory, closeness


@pytest.fixture
def diamond_graph():
    """User 3 is reachable through an expensive friend (2) and a cheap chain (4 -> 5)."""
    directory = FakeUserDirectory([
        make_user(1, friends=[2, 4]),
        make_user(2, friends=[1, 3]),
        make_user(3, friends=[2, 5]),
        make_user(4, friends=[1, 5]),
        make_user(5, friends=[4, 3]),
    ])
    closeness = FakeCloseness({
        (1, 2): 5.0, (2, 3): 5.0,
        (1, 4): 1.0, (4, 5): 1.0, (5, 3): 1.0,
    })
    return directory, closeness


@pytest.fixture
def discovery_factory():
    def factory(directory, closeness):
        return DiscoveryService(directory, closeness, default_closeness=1.0)
    return factory


@pytest.fixture
def fixed_now():
    return datetime(2025, 7, 16, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_weights_store():
    """Weights persistence collaborator."""
    store = AsyncMock()
    store.get_weights.return_value = WeightConfig(
        friend_weight=4, past_visit_weight=5, count_weight=3,
        similarity_weight=2, distance_weight=1, type_weight=1,
        liked_types=["park"]
    )
    store.persist_weight_adjustment.return_value = None
    store.persist_liked_type.return_value = True
    return store


@pytest.fixture
def berlin():
    """Coordinates around Berlin centre."""
    return {
        "center": (52.520008, 13.404954),
        "brandenburg_gate": (52.516275, 13.377704),
        "alexanderplatz": (52.521918, 13.413215),
    }


@pytest.fixture
def directory_cls():
    return FakeUserDirectory


@pytest.fixture
def closeness_cls():
    return FakeCloseness
