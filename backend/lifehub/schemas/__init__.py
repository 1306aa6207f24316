from .token import Token
from .user import User, UserCreate, LoginRequest, UserProfileUpdate, AuthResult
from .item import OwnedItem, ItemType, ITEM_ROUTES, SHAREABLE_ITEM_TYPES
from .share import (
    AccessLevel,
    ShareLink,
    ShareLinkCreate,
    ShareLinkUpdate,
    ShareLinkCreated,
    ShareLinkList,
    ShareAnalytics,
    SharedItemAccess,
)
