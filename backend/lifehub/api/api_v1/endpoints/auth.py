from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from lifehub import crud, models, schemas
from lifehub.api import deps
from lifehub.core import security
from lifehub.core.config import Settings
from lifehub.core.errors import ConflictError

router = APIRouter()


def _issue_token(user: models.User, settings: Settings) -> str:
    return security.create_access_token(
        user.id,
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


@router.post("/register", response_model=schemas.AuthResult, status_code=201)
def register(
    req: schemas.UserCreate,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    """
    Register a new account and return a bearer token for it.
    """
    if crud.user.get_by_email(db, email=req.email):
        raise ConflictError(f"User {req.email} already exists")

    user = crud.user.create(db, obj_in=req)
    return {"token": _issue_token(user, settings), "user": user}


@router.post("/login", response_model=schemas.AuthResult)
def login(
    req: schemas.LoginRequest,
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
) -> Any:
    user = crud.user.authenticate(db, email=req.email, password=req.password)
    if not user:
        raise HTTPException(status_code=401, detail="Incorrect email or password")
    return {"token": _issue_token(user, settings), "user": user}


# OAuth2 form endpoint for Swagger UI compatibility
@router.post("/access-token", response_model=schemas.Token)
def login_access_token(
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> Any:
    # Swagger sends the email in the "username" field
    user = crud.user.authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    return {"access_token": _issue_token(user, settings), "token_type": "bearer"}
