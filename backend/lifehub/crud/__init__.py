from .crud_user import user
from .crud_item import item
from .crud_share import share
