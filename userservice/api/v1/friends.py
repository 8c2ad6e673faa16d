"""Friendship endpoints under /users/{user_id}/friends."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from userservice.api.v1.auth import get_current_user
from userservice.api.v1.errors import to_http_exception
from userservice.core.config import settings
from userservice.core.database import get_db
from userservice.core.errors import UserServiceError
from userservice.schemas.auth import CurrentUser
from userservice.schemas.friendship import (
    FRIENDS_DEFAULT_PAGE_SIZE,
    FRIENDS_MAX_PAGE_SIZE,
    AreFriendsResponse,
    FriendsCountResponse,
    FriendshipOut,
    FriendshipStatusResponse,
    FriendsPageResponse,
)
from userservice.schemas.user import SEARCH_MAX_PAGE
from userservice.services import friendships as friendship_service

router = APIRouter()

DbSession = Annotated[Session, Depends(get_db)]
AuthUser = Annotated[CurrentUser, Depends(get_current_user)]


def _require_self(user_id: int, current_user: CurrentUser) -> None:
    """Friend requests and blocks can only be managed by the account owner."""
    if user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot manage another user's friendships",
        )


@router.post(
    "/{user_id}/friends/{friend_id}",
    response_model=FriendshipOut,
    status_code=status.HTTP_201_CREATED,
)
def send_friend_request(
    user_id: int,
    friend_id: int,
    current_user: AuthUser,
    db: DbSession,
    response: Response,
) -> FriendshipOut:
    """
    Send a friend request to friend_id.

    400 for a request to yourself, 403 if user_id is not the caller, 404 if either user
    is missing, 409 if the two are already linked (pending, friends, blocked or rejected).
    """
    _require_self(user_id, current_user)
    try:
        friendship = friendship_service.send_request(db, user_id, friend_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e
    response.headers["Location"] = f"{settings.API_V1_PREFIX}/users/{user_id}/friends/{friend_id}"
    return friendship


@router.put("/{user_id}/friends/{friend_id}/accept", response_model=FriendshipOut)
def accept_friend_request(
    user_id: int, friend_id: int, current_user: AuthUser, db: DbSession
) -> FriendshipOut:
    """Accept friend_id's pending request; 404 if there is none."""
    _require_self(user_id, current_user)
    try:
        return friendship_service.accept_request(db, user_id, friend_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.delete("/{user_id}/friends/{friend_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
def reject_friend_request(
    user_id: int, friend_id: int, current_user: AuthUser, db: DbSession
) -> None:
    """Decline friend_id's pending request; 404 if there is none."""
    _require_self(user_id, current_user)
    try:
        friendship_service.reject_request(db, user_id, friend_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.delete("/{user_id}/friends/{friend_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
def cancel_friend_request(
    user_id: int, friend_id: int, current_user: AuthUser, db: DbSession
) -> None:
    """Withdraw your pending request to friend_id; 404 if there is none."""
    _require_self(user_id, current_user)
    try:
        friendship_service.cancel_request(db, user_id, friend_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.delete("/{user_id}/friends/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_friend(user_id: int, friend_id: int, current_user: AuthUser, db: DbSession) -> None:
    """Remove friend_id from your friends; 404 if you are not friends."""
    _require_self(user_id, current_user)
    try:
        friendship_service.remove_friend(db, user_id, friend_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.post("/{user_id}/friends/{target_id}/block", status_code=status.HTTP_204_NO_CONTENT)
def block_user(user_id: int, target_id: int, current_user: AuthUser, db: DbSession) -> None:
    """Block target_id, replacing any request or friendship with them. 404 if target is missing."""
    _require_self(user_id, current_user)
    try:
        friendship_service.block_user(db, user_id, target_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.delete("/{user_id}/friends/{target_id}/block", status_code=status.HTTP_204_NO_CONTENT)
def unblock_user(user_id: int, target_id: int, current_user: AuthUser, db: DbSession) -> None:
    """Lift your block on target_id. Idempotent."""
    _require_self(user_id, current_user)
    friendship_service.unblock_user(db, user_id, target_id)


@router.get("/{user_id}/friends", response_model=FriendsPageResponse)
def list_friends(
    user_id: int,
    _user: AuthUser,
    db: DbSession,
    page: Annotated[
        int, Query(ge=0, le=SEARCH_MAX_PAGE, description="0-based page number")
    ] = 0,
    size: Annotated[
        int, Query(ge=1, le=FRIENDS_MAX_PAGE_SIZE, description="Page size")
    ] = FRIENDS_DEFAULT_PAGE_SIZE,
) -> FriendsPageResponse:
    """Any user's accepted friends, ordered by username. 404 if the user does not exist."""
    try:
        return friendship_service.list_friends(db, user_id, page, size)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.get("/{user_id}/friends/requests/incoming", response_model=list[FriendshipOut])
def incoming_requests(user_id: int, current_user: AuthUser, db: DbSession) -> list[FriendshipOut]:
    _require_self(user_id, current_user)
    return friendship_service.incoming_requests(db, user_id)


@router.get("/{user_id}/friends/requests/outgoing", response_model=list[FriendshipOut])
def outgoing_requests(user_id: int, current_user: AuthUser, db: DbSession) -> list[FriendshipOut]:
    _require_self(user_id, current_user)
    return friendship_service.outgoing_requests(db, user_id)


@router.get("/{user_id}/friends/count", response_model=FriendsCountResponse)
def count_friends(user_id: int, _user: AuthUser, db: DbSession) -> FriendsCountResponse:
    try:
        count = friendship_service.count_friends(db, user_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e
    return FriendsCountResponse(count=count)


@router.get("/{user_id}/friends/{friend_id}/status", response_model=FriendshipStatusResponse)
def friendship_status(
    user_id: int, friend_id: int, _user: AuthUser, db: DbSession
) -> FriendshipStatusResponse:
    """Link between user_id and friend_id as seen from user_id; status is null if none."""
    return friendship_service.get_status(db, user_id, friend_id)


@router.get("/{user_id}/friends/{friend_id}/check", response_model=AreFriendsResponse)
def check_friends(user_id: int, friend_id: int, _user: AuthUser, db: DbSession) -> AreFriendsResponse:
    return AreFriendsResponse(are_friends=friendship_service.are_friends(db, user_id, friend_id))
