"""
People Suggestion Session
Serves ranked "people you may know" for one logged-in user, deciding between
a full rebuild of the people cache and incremental patches.
"""

from datetime import datetime
from typing import List, Optional, Set

from friendmap.exceptions import UserNotFoundError
from friendmap.schemas.people import SuggestedProfile
from friendmap.services.collaborators import UserDirectory
from friendmap.services.discovery_service import DiscoveryService, rank_suggestions
from friendmap.services.people_cache import PeopleCache


class PeopleSuggestionSession:
    """Owns the people cache and the friend/block lists it was computed from."""

    def __init__(
        self,
        user_id: int,
        users: UserDirectory,
        discovery: DiscoveryService,
        cache: Optional[PeopleCache] = None
    ):
        self.user_id = user_id
        self.users = users
        self.discovery = discovery
        self.cache = cache or PeopleCache(user_id)
        self.friends: Set[int] = set()
        self.blocked_users: Set[int] = set()

    async def load(self, now: Optional[datetime] = None) -> List[SuggestedProfile]:
        """Bring the cache up to date and return suggestions, closest first."""
        async with self.cache.lock:
            current = await self.users.fetch_user_record(self.user_id)
            if current is None:
                raise UserNotFoundError(self.user_id)

            friends = set(current.friends)
            blocked = set(current.blocked_users)
            unblocked = bool(self.blocked_users - blocked)

            if self.cache.is_invalid(unblocked_since_rebuild=unblocked, now=now):
                found = await self.discovery.get_suggested_people(self.user_id)
                self.cache.rebuild(found.values(), now=now)
            else:
                removed = (self.friends - friends) | (blocked - self.blocked_users)
                if removed:
                    self.cache.remove_connections(removed)

                new_friends = [f for f in current.friends if f not in self.friends]
                if new_friends:
                    await self.cache.add_connections(self.discovery, new_friends)

            self.friends = friends
            self.blocked_users = blocked

            return rank_suggestions(self.cache.to_suggested_profiles(friends))

    async def invalidate(self):
        """Discard the cache so the next load performs a full traversal."""
        async with self.cache.lock:
            self.cache.entries = {}
            self.cache.last_rebuild = None
