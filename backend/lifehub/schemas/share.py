import enum
from datetime import datetime
from typing import List, Optional, Union

from .base import CamelModel, UTCDateTime
from .item import OwnedItem


class AccessLevel(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"


class ShareLinkCreate(CamelModel):
    item_id: int
    item_type: str  # Checked against SHAREABLE_ITEM_TYPES by the registry
    # Absolute timestamp, "never"/None, or a relative preset like "7d"
    expiry: Optional[Union[datetime, str]] = None
    password_protected: bool = False
    password: Optional[str] = None
    access_level: AccessLevel = AccessLevel.VIEW


class ShareLinkUpdate(CamelModel):
    # Only fields present in the request body are applied (see model_fields_set)
    expiry: Optional[Union[datetime, str]] = None
    password: Optional[str] = None  # "" or null removes the password
    access_level: Optional[AccessLevel] = None


class ShareLink(CamelModel):
    share_id: str
    item_id: int
    item_type: str
    owner_id: int
    link: str
    created_at: UTCDateTime
    expiry: Optional[UTCDateTime] = None
    password_protected: bool
    access_level: AccessLevel
    revoked: bool
    revoked_at: Optional[UTCDateTime] = None
    views: int


class ShareLinkCreated(CamelModel):
    share_id: str
    link: str


class ShareLinkList(CamelModel):
    shared_links: List[ShareLink]


class AccessEvent(CamelModel):
    timestamp: UTCDateTime
    source_address: Optional[str] = None
    agent_string: Optional[str] = None


class ShareAnalytics(CamelModel):
    share_id: str
    total_views: int
    unique_visitors: int
    last_accessed: Optional[UTCDateTime] = None
    access_log: List[AccessEvent] = []


class SharedItemAccess(CamelModel):
    granted: bool
    reason: str
    access_level: Optional[AccessLevel] = None
    item_type: Optional[str] = None
    item: Optional[OwnedItem] = None
