from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from lifehub.db.base_class import Base
from lifehub.utils.share_utils import utcnow


class OwnedItem(Base):
    """
    A user-owned resource (note, bookmark, file, photo, ...).
    The kind-specific fields live in ``payload``.
    """
    __tablename__ = "owned_item"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("sys_user.id"), nullable=False, index=True)
    item_type = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    payload = Column(JSON, default=dict)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User")
