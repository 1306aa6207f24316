import enum
from typing import Any, Dict, Optional

from .base import CamelModel, UTCDateTime


class ItemType(str, enum.Enum):
    TAG = "tag"
    NOTE = "note"
    BOOKMARK_FOLDER = "bookmark_folder"
    BOOKMARK = "bookmark"
    PASSWORD = "password"
    WALLET_CARD = "wallet_card"
    VOICE_MEMO = "voice_memo"
    FOLDER = "folder"
    FILE = "file"
    ALBUM = "album"
    PHOTO = "photo"
    RESUME = "resume"


# Route prefix (relative to API_V1_STR) per resource kind.
ITEM_ROUTES = {
    ItemType.TAG: "/tags",
    ItemType.NOTE: "/notes",
    ItemType.BOOKMARK_FOLDER: "/bookmark-folders",
    ItemType.BOOKMARK: "/bookmarks",
    ItemType.PASSWORD: "/passwords",
    ItemType.WALLET_CARD: "/wallet/cards",
    ItemType.VOICE_MEMO: "/voice-memos",
    ItemType.FOLDER: "/folders",
    ItemType.FILE: "/files",
    ItemType.ALBUM: "/albums",
    ItemType.PHOTO: "/photos",
    ItemType.RESUME: "/resume",
}

# Credentials and card data are never exposed through a share link.
SHAREABLE_ITEM_TYPES = frozenset(ITEM_ROUTES) - {
    ItemType.TAG,
    ItemType.PASSWORD,
    ItemType.WALLET_CARD,
}

SENSITIVE_FIELDS = {
    ItemType.PASSWORD: ("password",),
    ItemType.WALLET_CARD: ("cardNumber", "cvv"),
}

MASK = "********"


class OwnedItem(CamelModel):
    id: int
    item_type: ItemType
    title: Optional[str] = None
    payload: Dict[str, Any] = {}
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None
