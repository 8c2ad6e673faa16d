"""
Friend requests, friendships and blocks.

One row links a pair of users whichever way the request went:
- pending: requester asked, addressee has not answered
- accepted: both are friends
- rejected: addressee declined; the requester cannot ask again
- blocked: requester blocked addressee; no requests either way until unblocked
"""

import logging
import math

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from userservice.core.errors import (
    FriendshipConflictError,
    FriendshipNotFoundError,
    InvalidFriendRequestError,
)
from userservice.models import Friendship, User
from userservice.schemas.friendship import (
    FriendshipOut,
    FriendshipStatusResponse,
    FriendsPageResponse,
)
from userservice.schemas.user import UserPublic
from userservice.services.accounts import get_user_row

logger = logging.getLogger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
BLOCKED = "blocked"

_CONFLICT_MESSAGES = {
    PENDING: "Friend request already pending",
    ACCEPTED: "Users are already friends",
    BLOCKED: "Cannot send request: user is blocked",
    REJECTED: "Friend request was previously rejected",
}


def _find_pair(db: Session, user_a: int, user_b: int) -> Friendship | None:
    """The row linking two users in either direction."""
    return (
        db.query(Friendship)
        .filter(
            or_(
                and_(Friendship.requester_id == user_a, Friendship.addressee_id == user_b),
                and_(Friendship.requester_id == user_b, Friendship.addressee_id == user_a),
            )
        )
        .first()
    )


def _find_directed(
    db: Session, requester_id: int, addressee_id: int, status: str
) -> Friendship | None:
    return (
        db.query(Friendship)
        .filter(
            Friendship.requester_id == requester_id,
            Friendship.addressee_id == addressee_id,
            Friendship.status == status,
        )
        .first()
    )


def _commit(db: Session) -> None:
    """Commit; a concurrent request for the same pair becomes FriendshipConflictError."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise FriendshipConflictError("Friendship between these users already exists") from e


def send_request(db: Session, requester_id: int, addressee_id: int) -> FriendshipOut:
    """
    Create a pending request from requester to addressee.

    Raises UserNotFoundError if either user is missing, InvalidFriendRequestError for a
    request to oneself and FriendshipConflictError if the pair is already linked. A user
    who rejected a request may later send one back; the old row is reused.
    """
    get_user_row(db, requester_id)
    get_user_row(db, addressee_id)
    if requester_id == addressee_id:
        raise InvalidFriendRequestError("Cannot send friend request to yourself")

    friendship = _find_pair(db, requester_id, addressee_id)
    if friendship is None:
        friendship = Friendship(
            requester_id=requester_id, addressee_id=addressee_id, status=PENDING
        )
        db.add(friendship)
    elif friendship.status == REJECTED and friendship.addressee_id == requester_id:
        friendship.requester_id = requester_id
        friendship.addressee_id = addressee_id
        friendship.status = PENDING
    else:
        raise FriendshipConflictError(_CONFLICT_MESSAGES[friendship.status])

    _commit(db)
    db.refresh(friendship)
    logger.info(
        "Friend request sent",
        extra={"requester_id": requester_id, "addressee_id": addressee_id},
    )
    return FriendshipOut.model_validate(friendship)


def accept_request(db: Session, user_id: int, friend_id: int) -> FriendshipOut:
    """Accept friend_id's pending request to user_id."""
    friendship = _find_directed(db, friend_id, user_id, PENDING)
    if friendship is None:
        raise FriendshipNotFoundError("Friend request not found")
    friendship.status = ACCEPTED
    _commit(db)
    db.refresh(friendship)
    logger.info("Friend request accepted", extra={"user_id": user_id, "friend_id": friend_id})
    return FriendshipOut.model_validate(friendship)


def reject_request(db: Session, user_id: int, friend_id: int) -> None:
    """Decline friend_id's pending request to user_id. The row is kept as rejected."""
    friendship = _find_directed(db, friend_id, user_id, PENDING)
    if friendship is None:
        raise FriendshipNotFoundError("Friend request not found")
    friendship.status = REJECTED
    _commit(db)
    logger.info("Friend request rejected", extra={"user_id": user_id, "friend_id": friend_id})


def cancel_request(db: Session, user_id: int, friend_id: int) -> None:
    """Withdraw user_id's own pending request to friend_id."""
    friendship = _find_directed(db, user_id, friend_id, PENDING)
    if friendship is None:
        raise FriendshipNotFoundError("Friend request not found")
    db.delete(friendship)
    _commit(db)
    logger.info("Friend request cancelled", extra={"user_id": user_id, "friend_id": friend_id})


def remove_friend(db: Session, user_id: int, friend_id: int) -> None:
    """End an accepted friendship, whoever sent the original request."""
    friendship = _find_pair(db, user_id, friend_id)
    if friendship is None or friendship.status != ACCEPTED:
        raise FriendshipNotFoundError("Friendship not found")
    db.delete(friendship)
    _commit(db)
    logger.info("Friendship removed", extra={"user_id": user_id, "friend_id": friend_id})


def block_user(db: Session, user_id: int, target_id: int) -> None:
    """
    Block target_id. Any request or friendship between the two becomes a block owned
    by user_id. If target_id already blocked user_id, that block is left in place.
    """
    get_user_row(db, target_id)
    if user_id == target_id:
        raise InvalidFriendRequestError("Cannot block yourself")

    friendship = _find_pair(db, user_id, target_id)
    if friendship is None:
        db.add(Friendship(requester_id=user_id, addressee_id=target_id, status=BLOCKED))
    elif friendship.status == BLOCKED:
        return
    else:
        friendship.requester_id = user_id
        friendship.addressee_id = target_id
        friendship.status = BLOCKED
    _commit(db)
    logger.info("User blocked", extra={"user_id": user_id, "target_id": target_id})


def unblock_user(db: Session, user_id: int, target_id: int) -> None:
    """Lift user_id's block on target_id. Idempotent; a block placed by target_id stays."""
    friendship = _find_directed(db, user_id, target_id, BLOCKED)
    if friendship is None:
        return
    db.delete(friendship)
    _commit(db)
    logger.info("User unblocked", extra={"user_id": user_id, "target_id": target_id})


def list_friends(db: Session, user_id: int, page: int, size: int) -> FriendsPageResponse:
    """Accepted friends of user_id ordered by username, 0-based pages."""
    get_user_row(db, user_id)
    query = (
        db.query(User)
        .join(
            Friendship,
            or_(
                and_(Friendship.requester_id == user_id, Friendship.addressee_id == User.id),
                and_(Friendship.addressee_id == user_id, Friendship.requester_id == User.id),
            ),
        )
        .filter(Friendship.status == ACCEPTED)
    )
    total = query.count()
    rows = query.order_by(User.username, User.id).offset(page * size).limit(size).all()
    return FriendsPageResponse(
        users=[UserPublic.model_validate(u) for u in rows],
        current_page=page,
        total_items=total,
        total_pages=math.ceil(total / size),
    )


def incoming_requests(db: Session, user_id: int) -> list[FriendshipOut]:
    rows = (
        db.query(Friendship)
        .filter(Friendship.addressee_id == user_id, Friendship.status == PENDING)
        .order_by(Friendship.created_at, Friendship.id)
        .all()
    )
    return [FriendshipOut.model_validate(f) for f in rows]


def outgoing_requests(db: Session, user_id: int) -> list[FriendshipOut]:
    rows = (
        db.query(Friendship)
        .filter(Friendship.requester_id == user_id, Friendship.status == PENDING)
        .order_by(Friendship.created_at, Friendship.id)
        .all()
    )
    return [FriendshipOut.model_validate(f) for f in rows]


def get_status(db: Session, user_id: int, other_id: int) -> FriendshipStatusResponse:
    """
    Link between user_id and other_id as seen from user_id.

    A user is reported as an accepted, outgoing friend of themselves.
    """
    if user_id == other_id:
        return FriendshipStatusResponse(status=ACCEPTED, is_outgoing=True)
    friendship = _find_pair(db, user_id, other_id)
    if friendship is None:
        return FriendshipStatusResponse(status=None, is_outgoing=False)
    return FriendshipStatusResponse(
        status=friendship.status,
        is_outgoing=friendship.requester_id == user_id,
    )


def count_friends(db: Session, user_id: int) -> int:
    get_user_row(db, user_id)
    return (
        db.query(Friendship)
        .filter(
            or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
            Friendship.status == ACCEPTED,
        )
        .count()
    )


def are_friends(db: Session, user_a: int, user_b: int) -> bool:
    friendship = _find_pair(db, user_a, user_b)
    return friendship is not None and friendship.status == ACCEPTED
