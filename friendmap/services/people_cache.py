"""
People Cache
Keeps "people you may know" results valid across small changes to the
querying user's friend and block lists without re-running a full traversal.

Entries are keyed by suggested user id and only remember their immediate
parent; full friend paths are rebuilt by following parent ids through the
cache until reaching a parent that is not cached (a direct friend).
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from friendmap.config import settings
from friendmap.schemas.people import CachedSuggestedProfile, FriendPathNode, SuggestedProfile
from friendmap.services.discovery_service import DiscoveryService
from friendmap.utils.clock import as_utc
from friendmap.utils.logging import engine_logger

logger = logging.getLogger(__name__)


class PeopleCache:
    """Process-lifetime cache of suggestions for a single querying user."""

    def __init__(self, user_id: int, ttl_minutes: Optional[int] = None):
        self.user_id = user_id
        self.ttl = timedelta(
            minutes=ttl_minutes if ttl_minutes is not None else settings.people_cache_ttl_minutes
        )
        self.entries: Dict[int, CachedSuggestedProfile] = {}
        self.last_rebuild: Optional[datetime] = None
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self.entries

    def get(self, user_id: int) -> Optional[CachedSuggestedProfile]:
        return self.entries.get(user_id)

    def is_invalid(self, unblocked_since_rebuild: bool = False, now: Optional[datetime] = None) -> bool:
        """Whether the cache must be discarded and rebuilt from scratch.

        Unblocking can make new users reachable, which incremental patches
        cannot discover; the time window bounds drift from changes in other
        users' friendships.
        """
        if not self.entries or self.last_rebuild is None:
            return True
        if unblocked_since_rebuild:
            return True
        now = as_utc(now)
        return now - as_utc(self.last_rebuild) > self.ttl

    def rebuild(self, profiles: Iterable[SuggestedProfile], now: Optional[datetime] = None):
        """Replace the whole cache with the result of a full traversal."""
        entries: Dict[int, CachedSuggestedProfile] = {}
        self._store(entries, profiles)
        self.entries = entries
        self.last_rebuild = as_utc(now)
        engine_logger.log_cache_update(self.user_id, "rebuild", len(entries), len(entries))

    async def add_connections(
        self,
        discovery: DiscoveryService,
        new_friend_ids: Iterable[int]
    ) -> int:
        """Patch the cache after the querying user gained friends.

        Each new friend leaves the cache (it is now a direct friend) and a
        traversal restricted to that friend is merged in, keeping the closer
        entry on conflicts. The patch is committed only once every traversal
        has completed.
        """
        entries = dict(self.entries)
        changed = 0

        for friend_id in new_friend_ids:
            if entries.pop(friend_id, None) is not None:
                changed += 1
            found = await discovery.get_suggested_people(self.user_id, restrict_to_friend_id=friend_id)
            changed += self._merge(entries, found.values())

        self.entries = entries
        engine_logger.log_cache_update(self.user_id, "extend", changed, len(entries))
        return changed

    def remove_connections(self, removed_ids: Iterable[int]) -> int:
        """Drop removed users and every entry whose path runs through one of them."""
        removed: Set[int] = set(removed_ids)
        entries = {uid: entry for uid, entry in self.entries.items() if uid not in removed}

        stale = [
            uid for uid in entries
            if removed.intersection(self._ancestor_ids(entries, uid))
        ]
        for uid in stale:
            del entries[uid]

        dropped = len(self.entries) - len(entries)
        self.entries = entries
        engine_logger.log_cache_update(self.user_id, "prune", dropped, len(entries))
        return dropped

    def reconstruct_path(
        self,
        user_id: int,
        direct_friends: Optional[Set[int]] = None
    ) -> List[FriendPathNode]:
        """Friend path of a cached user, direct friend first.

        Stops at the first parent that is not cached. When ``direct_friends``
        is given and that parent is not one of them, the chain is broken and
        the partial path is returned as is.
        """
        entry = self.entries.get(user_id)
        if entry is None:
            return []

        path: List[FriendPathNode] = []
        visited = {user_id}
        parent = entry.parent

        while parent is not None:
            if parent.user_id in visited:
                logger.warning(f"Cycle in people cache at user {parent.user_id}")
                break
            visited.add(parent.user_id)
            path.append(parent)

            parent_entry = self.entries.get(parent.user_id)
            if parent_entry is None:
                if direct_friends is not None and parent.user_id not in direct_friends:
                    logger.warning(
                        f"People cache parent {parent.user_id} of user {user_id} is missing"
                    )
                break
            parent = parent_entry.parent

        path.reverse()
        return path

    def to_suggested_profiles(
        self,
        direct_friends: Optional[Set[int]] = None
    ) -> List[SuggestedProfile]:
        """All cached entries with their paths reconstructed."""
        return [
            SuggestedProfile(
                data=entry.data,
                degree=entry.degree,
                friend_path=self.reconstruct_path(uid, direct_friends)
            )
            for uid, entry in self.entries.items()
        ]

    def _store(self, entries: Dict[int, CachedSuggestedProfile], profiles: Iterable[SuggestedProfile]):
        for profile in profiles:
            entries[profile.data.id] = self._to_cached(profile)

    def _merge(self, entries: Dict[int, CachedSuggestedProfile], profiles: Iterable[SuggestedProfile]) -> int:
        """Insert profiles that are new or strictly closer than the cached entry."""
        merged = 0
        for profile in profiles:
            existing = entries.get(profile.data.id)
            if existing is None or profile.degree < existing.degree:
                entries[profile.data.id] = self._to_cached(profile)
                merged += 1
        return merged

    @staticmethod
    def _to_cached(profile: SuggestedProfile) -> CachedSuggestedProfile:
        return CachedSuggestedProfile(
            data=profile.data,
            degree=profile.degree,
            parent=profile.friend_path[-1] if profile.friend_path else None
        )

    @staticmethod
    def _ancestor_ids(entries: Dict[int, CachedSuggestedProfile], user_id: int) -> Set[int]:
        """Ids on the parent chain of ``user_id``, including the uncached direct friend."""
        ancestors: Set[int] = set()
        entry = entries.get(user_id)
        parent = entry.parent if entry else None
        while parent is not None and parent.user_id not in ancestors and parent.user_id != user_id:
            ancestors.add(parent.user_id)
            parent_entry = entries.get(parent.user_id)
            parent = parent_entry.parent if parent_entry else None
        return ancestors
