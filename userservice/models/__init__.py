"""SQLAlchemy ORM models."""

from userservice.models.base import Base
from userservice.models.friendship import Friendship
from userservice.models.refresh_token import RefreshToken
from userservice.models.user import User
from userservice.models.verification_code import VerificationCode

__all__ = ["Base", "Friendship", "RefreshToken", "User", "VerificationCode"]
