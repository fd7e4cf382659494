"""
Pairwise closeness cost between connected users, derived from how much they
message each other and how long they have been friends.
"""

import math
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from friendmap.config import settings

MessageCountFn = Callable[[int, int], Awaitable[int]]
FriendshipDurationFn = Callable[[int, int], Awaitable[Optional[timedelta]]]


class InteractionCloseness:
    """Closeness provider: more messages and longer friendships cost less.

    The cost is ``1 / (1 + log1p(messages) + days / day_scale)``, always in
    (0, 1]. Pairs that are not friends cost 1.
    """

    def __init__(
        self,
        message_count: MessageCountFn,
        friendship_duration: FriendshipDurationFn,
        day_scale: Optional[float] = None
    ):
        self.message_count = message_count
        self.friendship_duration = friendship_duration
        self.day_scale = day_scale if day_scale is not None else settings.friendship_day_scale

    async def fetch_pair_closeness(self, user_a: int, user_b: int) -> float:
        duration = await self.friendship_duration(user_a, user_b)
        if duration is None:
            return 1.0

        messages = max(0, await self.message_count(user_a, user_b))
        days = max(0.0, duration.total_seconds() / 86400)

        return 1 / (1 + math.log1p(messages) + days / self.day_scale)
