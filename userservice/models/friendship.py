"""ORM model for friend requests, friendships and blocks between users."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from userservice.models.base import Base

FRIENDSHIP_STATUSES = ("pending", "accepted", "rejected", "blocked")


class Friendship(Base):
    """
    Directed link between two users.

    requester_id sent the request (or placed the block); addressee_id received it.
    status: 'pending', 'accepted', 'rejected' or 'blocked'. At most one row exists per
    ordered pair; the service also refuses a second row for the reversed pair.
    """

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friendships_pair"),
        Index("ix_friendships_requester_status", "requester_id", "status"),
        Index("ix_friendships_addressee_status", "addressee_id", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    addressee_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    requester = relationship(
        "User", foreign_keys=[requester_id], back_populates="sent_friendships"
    )
    addressee = relationship(
        "User", foreign_keys=[addressee_id], back_populates="received_friendships"
    )
