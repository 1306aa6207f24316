# Import all the models, so that Base has them before being
# imported by create_all
from lifehub.db.base_class import Base  # noqa
from lifehub.models.user import User  # noqa
from lifehub.models.item import OwnedItem  # noqa
from lifehub.models.share import ShareLink, AccessEvent  # noqa
