from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from lifehub.db.base_class import Base
from lifehub.utils.share_utils import utcnow


class ShareLink(Base):
    __tablename__ = "share_link"

    id = Column(Integer, primary_key=True, index=True)
    share_id = Column(String(64), unique=True, index=True, nullable=False)  # Opaque, never reused
    item_id = Column(Integer, nullable=False, index=True)
    item_type = Column(String(32), nullable=False)
    owner_id = Column(Integer, ForeignKey("sys_user.id"), nullable=False, index=True)

    link = Column(String(512), nullable=False)

    expiry = Column(DateTime, nullable=True)  # None means "never"
    password_protected = Column(Boolean, default=False, nullable=False)
    password_hash = Column(String(255), nullable=True)
    access_level = Column(String(16), default="view", nullable=False)

    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    views = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("User")
    events = relationship(
        "AccessEvent",
        back_populates="share_link",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AccessEvent.id",
    )


class AccessEvent(Base):
    __tablename__ = "share_access_event"

    id = Column(Integer, primary_key=True, index=True)
    share_link_id = Column(
        Integer, ForeignKey("share_link.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    source_address = Column(String(64), nullable=True)
    agent_string = Column(String(512), nullable=True)

    share_link = relationship("ShareLink", back_populates="events")
