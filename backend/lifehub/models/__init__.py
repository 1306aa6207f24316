from .user import User
from .item import OwnedItem
from .share import ShareLink, AccessEvent
