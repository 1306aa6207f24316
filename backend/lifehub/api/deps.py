from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from lifehub import crud, models
from lifehub.core import security
from lifehub.core.config import Settings, settings as default_settings
from lifehub.services.sharing import AccessPolicyEvaluator, AnalyticsAggregator, ShareLinkRegistry

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{default_settings.API_V1_STR}/auth/access-token"
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token: str = Depends(reusable_oauth2),
) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    subject = security.decode_access_token(
        token, secret_key=settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )
    if subject is None or not subject.isdigit():
        raise credentials_exception
    user = crud.user.get(db, id=int(subject))
    if not user:
        raise credentials_exception
    return user


def get_share_registry(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ShareLinkRegistry:
    return ShareLinkRegistry(db, settings)


def get_access_evaluator(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AccessPolicyEvaluator:
    return AccessPolicyEvaluator(db, settings)


def get_analytics(db: Session = Depends(get_db)) -> AnalyticsAggregator:
    return AnalyticsAggregator(db)
