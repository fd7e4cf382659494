"""
Unit tests for the people suggestion session.
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, call

from friendmap.exceptions import UserNotFoundError
from friendmap.services.people_service import PeopleSuggestionSession


@pytest.fixture
def chain_graph(directory_cls, closeness_cls, user_factory):
    """User 1 is friends with 2; 2 knows 3 and 5, and 3 knows 4."""
    directory = directory_cls([
        user_factory(1, friends=[2]),
        user_factory(2, friends=[1, 3, 5]),
        user_factory(3, friends=[2, 4]),
        user_factory(4, friends=[3]),
        user_factory(5, friends=[2]),
    ])
    closeness = closeness_cls({(1, 2): 1.5, (2, 3): 2.0, (1, 3): 1.0, (2, 5): 0.5})
    return directory, closeness


@pytest.fixture
def session_factory(discovery_factory):
    def factory(directory, closeness):
        discovery = discovery_factory(directory, closeness)
        discovery.get_suggested_people = AsyncMock(wraps=discovery.get_suggested_people)
        return PeopleSuggestionSession(1, directory, discovery)
    return factory


class TestPeopleSuggestionSession:
    """Test cases for PeopleSuggestionSession."""

    async def test_first_load_runs_full_traversal(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        session = session_factory(directory, closeness)

        profiles = await session.load(now=fixed_now)

        session.discovery.get_suggested_people.assert_awaited_once_with(1)
        assert [p.data.id for p in profiles] == [5, 3, 4]
        assert [p.degree for p in profiles] == pytest.approx([2.0, 3.5, 4.5])
        assert [n.user_id for n in profiles[2].friend_path] == [2, 3]

    async def test_new_friend_extends_cache(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        session = session_factory(directory, closeness)
        await session.load(now=fixed_now)

        directory.update(1, friends=[2, 3])
        profiles = await session.load(now=fixed_now + timedelta(minutes=1))

        assert session.discovery.get_suggested_people.await_args_list == [
            call(1), call(1, restrict_to_friend_id=3)
        ]
        by_id = {p.data.id: p for p in profiles}
        assert 3 not in by_id
        assert by_id[4].degree == pytest.approx(2.0)
        assert [n.user_id for n in by_id[4].friend_path] == [3]
        assert session.friends == {2, 3}

    async def test_removed_friend_prunes_without_traversal(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        directory.update(1, friends=[2, 3])
        session = session_factory(directory, closeness)
        await session.load(now=fixed_now)

        directory.update(1, friends=[2])
        profiles = await session.load(now=fixed_now + timedelta(minutes=1))

        session.discovery.get_suggested_people.assert_awaited_once_with(1)
        assert [p.data.id for p in profiles] == [5]

    async def test_blocking_prunes(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        session = session_factory(directory, closeness)
        await session.load(now=fixed_now)

        directory.update(1, blocked_users=[3])
        profiles = await session.load(now=fixed_now + timedelta(minutes=1))

        assert session.discovery.get_suggested_people.await_count == 1
        assert [p.data.id for p in profiles] == [5]

    async def test_unblocking_forces_rebuild(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        directory.update(1, blocked_users=[3])
        session = session_factory(directory, closeness)
        assert [p.data.id for p in await session.load(now=fixed_now)] == [5]

        directory.update(1, blocked_users=[])
        profiles = await session.load(now=fixed_now + timedelta(minutes=1))

        assert session.discovery.get_suggested_people.await_args_list == [call(1), call(1)]
        assert {p.data.id for p in profiles} == {3, 4, 5}

    async def test_expired_cache_is_rebuilt(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        session = session_factory(directory, closeness)
        await session.load(now=fixed_now)

        await session.load(now=fixed_now + timedelta(minutes=5))
        assert session.discovery.get_suggested_people.await_count == 1

        await session.load(now=fixed_now + timedelta(minutes=11))
        assert session.discovery.get_suggested_people.await_count == 2

    async def test_invalidate_forces_rebuild(self, chain_graph, session_factory, fixed_now):
        directory, closeness = chain_graph
        session = session_factory(directory, closeness)
        await session.load(now=fixed_now)

        await session.invalidate()
        await session.load(now=fixed_now + timedelta(minutes=1))

        assert session.discovery.get_suggested_people.await_count == 2

    async def test_unknown_user_raises(self, directory_cls, closeness_cls, session_factory):
        session = session_factory(directory_cls(), closeness_cls())

        with pytest.raises(UserNotFoundError):
            await session.load()
