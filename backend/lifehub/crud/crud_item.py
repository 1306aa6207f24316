from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from lifehub.crud.base import CRUDBase
from lifehub.models.item import OwnedItem
from lifehub.models.share import ShareLink
from lifehub.schemas.item import ItemType


class CRUDOwnedItem(CRUDBase[OwnedItem, Any, Any]):
    def create_with_user(
        self, db: Session, *, item_type: ItemType, payload: Dict[str, Any], user_id: int
    ) -> OwnedItem:
        # Fixtures and clients use either "title" or "name"
        title = payload.get("title") or payload.get("name")
        db_obj = OwnedItem(
            user_id=user_id,
            item_type=item_type.value,
            title=str(title)[:255] if title is not None else None,
            payload=payload,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_by_user(
        self, db: Session, *, user_id: int, item_type: ItemType, skip: int = 0, limit: int = 100
    ) -> List[OwnedItem]:
        return (
            db.query(OwnedItem)
            .filter(OwnedItem.user_id == user_id, OwnedItem.item_type == item_type.value)
            .order_by(OwnedItem.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_owned(
        self, db: Session, *, id: int, user_id: int, item_type: str
    ) -> Optional[OwnedItem]:
        return db.query(OwnedItem).filter(
            OwnedItem.id == id,
            OwnedItem.user_id == user_id,
            OwnedItem.item_type == item_type,
        ).first()

    def remove_owned(self, db: Session, *, id: int, user_id: int, item_type: ItemType) -> Optional[OwnedItem]:
        """
        Hard delete an item together with every share link pointing at it.
        """
        obj = self.get_owned(db, id=id, user_id=user_id, item_type=item_type.value)
        if not obj:
            return None

        links = db.query(ShareLink).filter(
            ShareLink.item_id == obj.id,
            ShareLink.item_type == obj.item_type,
        ).all()
        for link in links:
            db.delete(link)

        db.delete(obj)
        db.commit()
        return obj


item = CRUDOwnedItem(OwnedItem)
