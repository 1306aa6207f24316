from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from lifehub import crud, models, schemas
from lifehub.api import deps
from lifehub.core.errors import NotFoundError
from lifehub.schemas.item import MASK, SENSITIVE_FIELDS, ItemType


def to_public_item(item: models.OwnedItem) -> schemas.OwnedItem:
    """
    Serialize an item, masking credential fields of passwords and wallet cards.
    """
    out = schemas.OwnedItem.model_validate(item)
    hidden = SENSITIVE_FIELDS.get(out.item_type, ())
    if hidden:
        out.payload = {k: (MASK if k in hidden and v else v) for k, v in out.payload.items()}
    return out


def build_item_router(item_type: ItemType) -> APIRouter:
    """
    Owner-scoped create/list/read/delete routes for one resource kind.
    """
    router = APIRouter()
    label = item_type.value.replace("_", " ")

    @router.post("", response_model=schemas.OwnedItem, status_code=201, name=f"create_{item_type.value}")
    def create_item(
        *,
        db: Session = Depends(deps.get_db),
        current_user: models.User = Depends(deps.get_current_user),
        payload: Dict[str, Any] = Body(...),
    ) -> Any:
        item = crud.item.create_with_user(db, item_type=item_type, payload=payload, user_id=current_user.id)
        return to_public_item(item)

    @router.get("", response_model=List[schemas.OwnedItem], name=f"list_{item_type.value}")
    def read_items(
        db: Session = Depends(deps.get_db),
        current_user: models.User = Depends(deps.get_current_user),
        skip: int = 0,
        limit: int = 100,
    ) -> Any:
        items = crud.item.get_by_user(db, user_id=current_user.id, item_type=item_type, skip=skip, limit=limit)
        return [to_public_item(i) for i in items]

    @router.get("/{item_id}", response_model=schemas.OwnedItem, name=f"read_{item_type.value}")
    def read_item(
        item_id: int,
        db: Session = Depends(deps.get_db),
        current_user: models.User = Depends(deps.get_current_user),
    ) -> Any:
        item = crud.item.get_owned(db, id=item_id, user_id=current_user.id, item_type=item_type.value)
        if not item:
            raise NotFoundError(f"{label.capitalize()} {item_id} not found")
        return to_public_item(item)

    @router.delete("/{item_id}", response_model=schemas.OwnedItem, name=f"delete_{item_type.value}")
    def delete_item(
        item_id: int,
        db: Session = Depends(deps.get_db),
        current_user: models.User = Depends(deps.get_current_user),
    ) -> Any:
        """
        Delete the item. Share links pointing at it are deleted too.
        """
        item = crud.item.remove_owned(db, id=item_id, user_id=current_user.id, item_type=item_type)
        if not item:
            raise NotFoundError(f"{label.capitalize()} {item_id} not found")
        return to_public_item(item)

    return router
