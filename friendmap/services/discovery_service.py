"""
Social Graph Discovery
Finds "people you may know" by a weighted breadth-first traversal of the
friendship graph, starting from the querying user's direct friends.
"""

import logging
import math
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from friendmap.config import settings
from friendmap.exceptions import UserNotFoundError
from friendmap.schemas.people import UserRecord, FriendPathNode, SuggestedProfile
from friendmap.services.collaborators import UserDirectory, ClosenessProvider
from friendmap.utils.logging import engine_logger, log_operation, user_id_context

logger = logging.getLogger(__name__)

# (user id, accumulated degree, path of nodes leading to the user)
QueueEntry = Tuple[int, float, Tuple[FriendPathNode, ...]]


class DiscoveryService:
    """Service for finding friends of friends and beyond."""

    def __init__(
        self,
        users: UserDirectory,
        closeness: ClosenessProvider,
        default_closeness: Optional[float] = None
    ):
        self.users = users
        self.closeness = closeness
        self.default_closeness = (
            default_closeness if default_closeness is not None else settings.default_closeness
        )

    @log_operation("discovery")
    async def get_suggested_people(
        self,
        user_id: int,
        restrict_to_friend_id: Optional[int] = None
    ) -> Dict[int, SuggestedProfile]:
        """Suggested profiles keyed by user id.

        With ``restrict_to_friend_id`` only descendants of that one direct
        friend are explored. Ordering of the mapping is insertion order and
        carries no ranking.
        """
        user_id_context.set(str(user_id))
        start_time = time.time()

        current = await self.users.fetch_user_record(user_id)
        if current is None:
            raise UserNotFoundError(user_id)

        direct_friends: Set[int] = set(current.friends)
        blocked: Set[int] = set(current.blocked_users)
        seeds = list(current.friends) if restrict_to_friend_id is None else [restrict_to_friend_id]
        direct_friends.update(seeds)

        records: Dict[int, Optional[UserRecord]] = {}
        weights: Dict[Tuple[int, int], float] = {}
        result: Dict[int, SuggestedProfile] = {}
        processed_friends: Set[int] = set()
        nodes_expanded = 0

        queue: Deque[QueueEntry] = deque()
        for friend_id in seeds:
            queue.append((friend_id, await self._closeness(user_id, friend_id, weights), ()))

        while queue:
            candidate_id, degree, path = queue.popleft()

            if candidate_id in direct_friends:
                # Direct friends are only expanded from their own seed entry, once
                if path or candidate_id in processed_friends:
                    continue
                processed_friends.add(candidate_id)
                record = await self._fetch(candidate_id, records)
                if record is None:
                    continue
                await self._enqueue_friends(queue, record, degree, path, user_id, blocked, weights)
                nodes_expanded += 1
                continue

            if candidate_id == user_id or candidate_id in blocked:
                continue

            existing = result.get(candidate_id)
            if existing is not None and existing.degree <= degree:
                continue

            record = await self._fetch(candidate_id, records)
            if record is None or user_id in record.blocked_users:
                continue

            result[candidate_id] = SuggestedProfile(
                data=record,
                degree=degree,
                friend_path=list(path)
            )
            await self._enqueue_friends(queue, record, degree, path, user_id, blocked, weights)
            nodes_expanded += 1

        engine_logger.log_discovery(
            user_id,
            len(result),
            nodes_expanded,
            (time.time() - start_time) * 1000,
            restricted_to=restrict_to_friend_id
        )
        return result

    async def _enqueue_friends(
        self,
        queue: Deque[QueueEntry],
        record: UserRecord,
        degree: float,
        path: Tuple[FriendPathNode, ...],
        user_id: int,
        blocked: Set[int],
        weights: Dict[Tuple[int, int], float]
    ):
        """Queue every friend of ``record`` one hop further along the path."""
        next_path = path + (FriendPathNode(user_id=record.id, user_name=record.full_name),)
        for friend_id in record.friends:
            if friend_id == user_id or friend_id in blocked:
                continue
            weight = await self._closeness(record.id, friend_id, weights)
            queue.append((friend_id, degree + weight, next_path))

    async def _fetch(
        self,
        user_id: int,
        records: Dict[int, Optional[UserRecord]]
    ) -> Optional[UserRecord]:
        """Fetch a record once per traversal; missing records are dead ends."""
        if user_id not in records:
            record = await self.users.fetch_user_record(user_id)
            if record is None:
                logger.warning(f"User {user_id} referenced in friend graph could not be resolved")
            records[user_id] = record
        return records[user_id]

    async def _closeness(
        self,
        user_a: int,
        user_b: int,
        weights: Dict[Tuple[int, int], float]
    ) -> float:
        key = (min(user_a, user_b), max(user_a, user_b))
        if key not in weights:
            value = await self.closeness.fetch_pair_closeness(user_a, user_b)
            if value is None or not math.isfinite(value) or value < 0:
                logger.warning(
                    f"Invalid closeness {value!r} between {user_a} and {user_b}, "
                    f"using {self.default_closeness}"
                )
                value = self.default_closeness
            weights[key] = value
        return weights[key]


def rank_suggestions(profiles: List[SuggestedProfile]) -> List[SuggestedProfile]:
    """Closest suggestions first; ties keep their original order."""
    return sorted(profiles, key=lambda p: p.degree)
