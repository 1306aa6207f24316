from fastapi import APIRouter

from lifehub.api.api_v1.endpoints import auth, items, shares, users
from lifehub.schemas.item import ITEM_ROUTES

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(shares.router, prefix="/share-links", tags=["share-links"])
api_router.include_router(shares.public_router, prefix="/shared", tags=["shared"])

for item_type, prefix in ITEM_ROUTES.items():
    api_router.include_router(
        items.build_item_router(item_type), prefix=prefix, tags=[item_type.value]
    )
