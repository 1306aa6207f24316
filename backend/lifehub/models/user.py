from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from lifehub.db.base_class import Base
from lifehub.utils.share_utils import utcnow

class User(Base):
    __tablename__ = "sys_user"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)

    # Profile fields
    bio = Column(Text, nullable=True)
    profile_picture = Column(String(512), nullable=True)
    settings = Column(JSON, default=dict)

    created_at = Column(DateTime, default=utcnow)
