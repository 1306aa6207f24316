from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from lifehub import crud, models, schemas
from lifehub.api import deps
from lifehub.api.api_v1.endpoints.items import to_public_item
from lifehub.core.errors import NotFoundError
from lifehub.services.sharing import (
    AccessPolicyEvaluator,
    AccessReason,
    AnalyticsAggregator,
    ShareLinkRegistry,
)

router = APIRouter()
public_router = APIRouter()

_DENIED_STATUS = {
    AccessReason.NOT_FOUND: 404,
    AccessReason.REVOKED: 410,
    AccessReason.EXPIRED: 410,
    AccessReason.PASSWORD_REQUIRED: 401,
    AccessReason.PASSWORD_INCORRECT: 403,
}


def _client_address(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("", response_model=schemas.ShareLinkCreated, status_code=201)
def create_share_link(
    *,
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    current_user: models.User = Depends(deps.get_current_user),
    share_in: schemas.ShareLinkCreate,
) -> Any:
    """
    Create a share link for one of the caller's items.
    """
    share_link = registry.create(
        current_user.id,
        share_in.item_id,
        share_in.item_type,
        expiry=share_in.expiry,
        password_protected=share_in.password_protected,
        password=share_in.password,
        access_level=share_in.access_level,
    )
    return share_link


@router.get("", response_model=schemas.ShareLinkList)
def read_share_links(
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    current_user: models.User = Depends(deps.get_current_user),
    item_type: Optional[str] = Query(None, alias="itemType"),
    include_revoked: bool = Query(True, alias="includeRevoked"),
) -> Any:
    """
    All share links of the caller in creation order, revoked ones included by default.
    """
    links = registry.list_by_owner(current_user.id, item_type=item_type, include_revoked=include_revoked)
    return {"shared_links": links}


@router.get("/{share_id}", response_model=schemas.ShareLink)
def read_share_link(
    share_id: str,
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    return registry.get_for_owner(share_id, current_user.id)


@router.patch("/{share_id}", response_model=schemas.ShareLink)
def update_share_link(
    *,
    share_id: str,
    patch_in: schemas.ShareLinkUpdate,
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    """
    Change expiry, password or access level. Revoked links answer 409.
    """
    patch = {field: getattr(patch_in, field) for field in patch_in.model_fields_set}
    return registry.update(share_id, current_user.id, patch)


@router.delete("/{share_id}")
def revoke_share_link(
    share_id: str,
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    """
    Revoke a share link. Idempotent.
    """
    registry.revoke(share_id, current_user.id)
    return {"success": True}


@router.delete("/{share_id}/permanent")
def delete_share_link(
    share_id: str,
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    """
    Permanently delete a share link and its access log.
    """
    registry.delete(share_id, current_user.id)
    return {"success": True}


@router.get("/{share_id}/analytics", response_model=schemas.ShareAnalytics)
def read_share_analytics(
    share_id: str,
    registry: ShareLinkRegistry = Depends(deps.get_share_registry),
    analytics: AnalyticsAggregator = Depends(deps.get_analytics),
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    registry.get_for_owner(share_id, current_user.id)
    summary = analytics.summarize(share_id)
    return {
        "share_id": share_id,
        "total_views": summary.total_views,
        "unique_visitors": summary.unique_visitors,
        "last_accessed": summary.last_accessed,
        "access_log": analytics.access_log(share_id),
    }


@public_router.get("/{share_id}", response_model=schemas.SharedItemAccess)
def access_shared_item(
    share_id: str,
    request: Request,
    token: Optional[str] = None,
    password: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    evaluator: AccessPolicyEvaluator = Depends(deps.get_access_evaluator),
    analytics: AnalyticsAggregator = Depends(deps.get_analytics),
) -> Any:
    """
    Public entry point of a share link. No login required; the token from the
    link (and the password, if the owner set one) is the credential.
    """
    decision = evaluator.evaluate(share_id, password, token=token or "")
    if not decision.granted:
        return JSONResponse(
            status_code=_DENIED_STATUS[decision.reason],
            content={"granted": False, "reason": decision.reason.value},
        )

    share_link = decision.share_link
    item = crud.item.get_owned(
        db, id=share_link.item_id, user_id=share_link.owner_id, item_type=share_link.item_type
    )
    if not item:
        raise NotFoundError("Shared item no longer exists")

    analytics.record_access(share_id, _client_address(request), request.headers.get("user-agent"))

    return {
        "granted": True,
        "reason": decision.reason.value,
        "access_level": decision.access_level,
        "item_type": share_link.item_type,
        "item": to_public_item(item),
    }
