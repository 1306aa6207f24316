from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from lifehub.core.security import get_password_hash, verify_password
from lifehub.crud.base import CRUDBase
from lifehub.models.user import User
from lifehub.schemas.user import UserCreate, UserProfileUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserProfileUpdate]):
    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        db_obj = User(
            email=obj_in.email.lower(),
            name=obj_in.name,
            password_hash=get_password_hash(obj_in.password),
            settings={},
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def authenticate(
        self, db: Session, *, email: str, password: str
    ) -> Optional[User]:
        user = self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def update_settings(self, db: Session, *, user: User, new_settings: Dict[str, Any]) -> User:
        merged = dict(user.settings or {})
        merged.update(new_settings)
        # Reassign so the JSON column is flagged dirty
        user.settings = merged
        db.add(user)
        db.commit()
        db.refresh(user)
        return user


user = CRUDUser(User)
