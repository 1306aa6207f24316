from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from lifehub.models.share import AccessEvent, ShareLink
from lifehub.utils.share_utils import utcnow


class CRUDShareLink:
    def create(
        self,
        db: Session,
        *,
        share_id: str,
        link: str,
        owner_id: int,
        item_id: int,
        item_type: str,
        expiry,
        password_hash: Optional[str],
        access_level: str,
    ) -> ShareLink:
        db_obj = ShareLink(
            share_id=share_id,
            link=link,
            owner_id=owner_id,
            item_id=item_id,
            item_type=item_type,
            expiry=expiry,
            password_protected=password_hash is not None,
            password_hash=password_hash,
            access_level=access_level,
            revoked=False,
            views=0,
            created_at=utcnow(),
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_by_share_id(self, db: Session, *, share_id: str) -> Optional[ShareLink]:
        return db.query(ShareLink).filter(ShareLink.share_id == share_id).first()

    def get_by_owner(
        self,
        db: Session,
        *,
        owner_id: int,
        item_type: Optional[str] = None,
        include_revoked: bool = True,
    ) -> List[ShareLink]:
        query = db.query(ShareLink).filter(ShareLink.owner_id == owner_id)
        if item_type:
            query = query.filter(ShareLink.item_type == item_type)
        if not include_revoked:
            query = query.filter(ShareLink.revoked == False)  # noqa: E712
        # Primary key order is creation order
        return query.order_by(ShareLink.id).all()

    def update_if_active(self, db: Session, *, share_id: str, values: Dict[str, Any]) -> bool:
        """
        Apply ``values`` in one UPDATE guarded by ``revoked = false``.
        Returns False when the row was already revoked (or is gone).
        """
        stmt = (
            update(ShareLink)
            .where(ShareLink.share_id == share_id, ShareLink.revoked == False)  # noqa: E712
            .values(**values)
        )
        result = db.execute(stmt)
        db.commit()
        return result.rowcount > 0

    def mark_revoked(self, db: Session, *, share_id: str) -> bool:
        """
        Flip revoked false -> true. The guard keeps revoked_at from the first revoke.
        """
        stmt = (
            update(ShareLink)
            .where(ShareLink.share_id == share_id, ShareLink.revoked == False)  # noqa: E712
            .values(revoked=True, revoked_at=utcnow())
        )
        result = db.execute(stmt)
        db.commit()
        return result.rowcount > 0

    def record_view(
        self,
        db: Session,
        *,
        link_pk: int,
        source_address: Optional[str],
        agent_string: Optional[str],
    ) -> Optional[AccessEvent]:
        """
        Atomically bump ``views`` and append the access event in one transaction.
        Returns None if the link is revoked or no longer exists.
        """
        stmt = (
            update(ShareLink)
            .where(ShareLink.id == link_pk, ShareLink.revoked == False)  # noqa: E712
            .values(views=ShareLink.views + 1)
        )
        result = db.execute(stmt)
        if result.rowcount == 0:
            db.rollback()
            return None

        event = AccessEvent(
            share_link_id=link_pk,
            timestamp=utcnow(),
            source_address=source_address,
            agent_string=agent_string,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    def get_events(self, db: Session, *, link_pk: int) -> List[AccessEvent]:
        return (
            db.query(AccessEvent)
            .filter(AccessEvent.share_link_id == link_pk)
            .order_by(AccessEvent.id)
            .all()
        )

    def aggregate_events(self, db: Session, *, link_pk: int) -> Tuple[int, int, Any]:
        """
        (total events, distinct source addresses, latest timestamp)
        """
        row = (
            db.query(
                func.count(AccessEvent.id),
                func.count(func.distinct(AccessEvent.source_address)),
                func.max(AccessEvent.timestamp),
            )
            .filter(AccessEvent.share_link_id == link_pk)
            .one()
        )
        return row[0], row[1], row[2]

    def remove(self, db: Session, *, share_link: ShareLink) -> ShareLink:
        db.delete(share_link)
        db.commit()
        return share_link


share = CRUDShareLink()
