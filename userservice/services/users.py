"""User CRUD and username search with read-through caching and write invalidation."""

import logging
import math

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from userservice.core.cache import UserCache
from userservice.core.errors import (
    InvalidSearchError,
    NoChangesError,
    UserAlreadyExistsError,
)
from userservice.core.security import hash_password
from userservice.models import User
from userservice.schemas.user import (
    SEARCH_MAX_PAGE,
    AdminUserUpdateRequest,
    SearchUsersResponse,
    UserDetail,
    UserPublic,
    UserUpdateRequest,
    UserUpdateResponse,
)
from userservice.services.accounts import (
    commit_or_conflict,
    ensure_available,
    get_user_row,
)
from userservice.services.tokens import issue_token_pair, revoke_all_refresh_tokens
from userservice.services.verification import deliver_code, stage_code

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def stage_user(
    db: Session,
    username: str,
    password: str,
    email: str | None = None,
    role: str = "user",
) -> User:
    """Validate uniqueness, add a new user and flush it so it has an id. The caller commits."""
    ensure_available(db, username=username, email=email)
    user = User(
        username=username,
        email=email,
        email_verified=False,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise UserAlreadyExistsError("Username or email is already in use") from e
    return user


def create_user(
    db: Session,
    cache: UserCache,
    username: str,
    password: str,
    email: str | None = None,
    role: str = "user",
) -> User:
    """Create and commit a user; new users can appear in any search page."""
    user = stage_user(db, username, password, email=email, role=role)
    commit_or_conflict(db)
    cache.invalidate_searches()
    logger.info("User created", extra={"user_id": user.id, "role": role})
    return user


def get_user_detail(db: Session, cache: UserCache, user_id: int) -> UserDetail:
    """
    Read-through lookup by id: cache first, then the database (populating the cache).

    Population never overwrites an existing entry or a fresh invalidation marker, so a
    row read before a concurrent write cannot be cached after that write's invalidation.
    """
    cached = cache.get_user(user_id)
    if cached is not None:
        try:
            return UserDetail.model_validate_json(cached)
        except ValidationError:
            logger.warning("Discarding malformed cache entry for user %s", user_id)
            cache.invalidate_user(user_id)

    user = get_user_row(db, user_id)
    detail = UserDetail.model_validate(user)
    cache.populate_user(user_id, detail.model_dump_json())
    return detail


def list_users(db: Session) -> list[UserDetail]:
    users = db.query(User).order_by(User.id).all()
    return [UserDetail.model_validate(u) for u in users]


def search_users(
    db: Session,
    cache: UserCache,
    prefix: str,
    page: int,
    size: int,
) -> SearchUsersResponse:
    """Case-insensitive username prefix search, 0-based pages, cached per (prefix, page, size)."""
    trimmed = prefix.strip()
    if not trimmed:
        raise InvalidSearchError("Search prefix cannot be empty")
    if page < 0 or page > SEARCH_MAX_PAGE:
        raise InvalidSearchError(f"Page must be between 0 and {SEARCH_MAX_PAGE}")
    if size < 1:
        raise InvalidSearchError("Page size must be positive")

    cached = cache.get_search(trimmed, page, size)
    if cached is not None:
        try:
            return SearchUsersResponse.model_validate_json(cached)
        except ValidationError:
            logger.warning("Discarding malformed search cache entry for %r", trimmed)

    query = db.query(User).filter(
        User.username.ilike(f"{_escape_like(trimmed)}%", escape="\\")
    )
    total = query.count()
    rows = query.order_by(User.username, User.id).offset(page * size).limit(size).all()
    result = SearchUsersResponse(
        users=[UserPublic.model_validate(u) for u in rows],
        current_page=page,
        total_items=total,
        total_pages=math.ceil(total / size) if size else 0,
    )
    logger.info("Cache MISS for search: prefix=%s, page=%s, size=%s", trimmed, page, size)
    cache.set_search(trimmed, page, size, result.model_dump_json())
    return result


def update_user(
    db: Session,
    cache: UserCache,
    user_id: int,
    body: UserUpdateRequest,
    reissue_tokens: bool = True,
) -> UserUpdateResponse:
    """
    Apply a partial update. Fields that are omitted or equal to the stored value are ignored.

    Changing the username, password or role revokes every refresh token of the user;
    with reissue_tokens a new pair is issued for the caller (self-service updates).
    Changing the email resets email_verified and sends a verification code to the new
    address, as POST /users/me/email does. Raises NoChangesError when nothing would change.
    """
    user = get_user_row(db, user_id)
    credentials_changed = False
    changed_fields: list[str] = []
    code: str | None = None

    if body.username is not None and body.username != user.username:
        ensure_available(db, username=body.username, exclude_id=user.id)
        user.username = body.username
        credentials_changed = True
        changed_fields.append("username")

    if body.password is not None:
        user.password_hash = hash_password(body.password)
        credentials_changed = True
        changed_fields.append("password")

    if body.email is not None and body.email != user.email:
        ensure_available(db, email=body.email, exclude_id=user.id)
        user.email = body.email
        user.email_verified = False
        code = stage_code(db, user.id, body.email)
        changed_fields.append("email")

    if body.phone is not None and body.phone != user.phone:
        user.phone = body.phone
        changed_fields.append("phone")

    if isinstance(body, AdminUserUpdateRequest) and body.role is not None and body.role != user.role:
        user.role = body.role
        credentials_changed = True
        changed_fields.append("role")

    if not changed_fields:
        raise NoChangesError("No changes")

    tokens = None
    if credentials_changed:
        revoke_all_refresh_tokens(db, user.id)
        if reissue_tokens:
            tokens = issue_token_pair(db, user)
    commit_or_conflict(db)
    cache.invalidate_after_write(user.id)
    if code is not None:
        deliver_code(user.email, code)
    logger.info(
        "User updated",
        extra={"user_id": user.id, "changed_fields": ",".join(changed_fields)},
    )
    return UserUpdateResponse(user=UserDetail.model_validate(user), tokens=tokens)


def set_phone(db: Session, cache: UserCache, user_id: int, phone: str) -> UserDetail:
    user = get_user_row(db, user_id)
    user.phone = phone
    db.commit()
    cache.invalidate_after_write(user.id)
    return UserDetail.model_validate(user)


def delete_user(db: Session, cache: UserCache, user_id: int) -> bool:
    """
    Hard-delete a user with its tokens, codes and friendship rows. Idempotent.

    Returns True if a row was deleted, False if the user did not exist.
    Cache entries are evicted either way.
    """
    user = db.get(User, user_id)
    if user is None:
        cache.invalidate_user(user_id)
        return False
    db.delete(user)
    db.commit()
    cache.invalidate_after_write(user_id)
    logger.info("User deleted", extra={"user_id": user_id})
    return True
