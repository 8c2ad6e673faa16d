"""Response schemas for friend requests, friend lists and block state."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from userservice.schemas.user import UserPublic

FriendshipStatus = Literal["pending", "accepted", "rejected", "blocked"]

FRIENDS_DEFAULT_PAGE_SIZE = 20
FRIENDS_MAX_PAGE_SIZE = 100


class FriendshipOut(BaseModel):
    """One friendship row as seen by either side."""

    model_config = {"from_attributes": True}

    id: int
    requester_id: int
    addressee_id: int
    status: FriendshipStatus
    created_at: datetime
    updated_at: datetime | None = None


class FriendshipStatusResponse(BaseModel):
    """Link between two users; status is null when no row exists."""

    status: FriendshipStatus | None = None
    is_outgoing: bool = False


class FriendsPageResponse(BaseModel):
    """One page of accepted friends, ordered by username. Pages are 0-based."""

    users: list[UserPublic] = Field(default_factory=list)
    current_page: int
    total_items: int
    total_pages: int


class FriendsCountResponse(BaseModel):
    count: int


class AreFriendsResponse(BaseModel):
    are_friends: bool
