from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from lifehub import crud, models, schemas
from lifehub.api import deps

router = APIRouter()


@router.get("/me", response_model=schemas.User)
def read_user_me(
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    """
    Get current user.
    """
    return current_user


@router.put("/me/profile", response_model=schemas.User)
@router.put("/profile", response_model=schemas.User, include_in_schema=False)
def update_user_me_profile(
    *,
    db: Session = Depends(deps.get_db),
    profile_in: schemas.UserProfileUpdate,
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    """
    Update name, bio and profile picture of the current user.
    """
    update_data = profile_in.model_dump(exclude_unset=True)
    return crud.user.update(db, db_obj=current_user, obj_in=update_data)


@router.put("/me/settings", response_model=schemas.User)
@router.put("/settings", response_model=schemas.User, include_in_schema=False)
def update_user_me_settings(
    *,
    db: Session = Depends(deps.get_db),
    settings_in: Dict[str, Any] = Body(...),
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    """
    Merge free-form preferences (theme, language, ...) into the user's settings.
    """
    return crud.user.update_settings(db, user=current_user, new_settings=settings_in)
