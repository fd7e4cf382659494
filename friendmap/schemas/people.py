"""
People Schemas
User snapshots and "people you may know" suggestions.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class UserRecord(BaseModel):
    """Immutable snapshot of a user as returned by the identity collaborator."""
    id: int
    first_name: str = ""
    last_name: str = ""
    interests: List[int] = Field(default_factory=list, description="Fixed-length 0/1 interest vector")
    friends: List[int] = Field(default_factory=list)
    blocked_users: List[int] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class FriendPathNode(BaseModel):
    """One hop on the path from a direct friend to a suggested user."""
    user_id: int
    user_name: str


class SuggestedProfile(BaseModel):
    """A user the querying user may know."""
    data: UserRecord
    degree: float = Field(..., ge=0, description="Accumulated closeness cost; lower is closer")
    friend_path: List[FriendPathNode] = Field(
        default_factory=list,
        description="Direct friend first, excluding both the querying and the suggested user"
    )


class CachedSuggestedProfile(BaseModel):
    """A suggestion stored in the people cache, keeping only its immediate parent."""
    data: UserRecord
    degree: float = Field(..., ge=0)
    parent: Optional[FriendPathNode] = None
