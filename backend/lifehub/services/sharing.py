"""
Share link lifecycle: registry, access policy and analytics.

All three components are request scoped. They receive a database session and
settings when constructed, keep no state of their own, and raise the typed
errors from ``lifehub.core.errors`` instead of returning error codes.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from lifehub import crud, models
from lifehub.core.config import Settings
from lifehub.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from lifehub.core.security import get_password_hash, verify_password
from lifehub.schemas.item import SHAREABLE_ITEM_TYPES, ItemType
from lifehub.schemas.share import AccessLevel
from lifehub.utils.share_utils import (
    build_share_link,
    generate_share_id,
    parse_expiry,
    share_token,
    token_matches,
    utcnow,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_UPDATABLE_FIELDS = frozenset({"expiry", "password", "access_level"})


def _coerce_access_level(value: Union[str, AccessLevel, None]) -> AccessLevel:
    if value is None:
        return AccessLevel.VIEW
    try:
        return AccessLevel(value)
    except ValueError:
        raise ValidationError(f"Unknown access level: {value!r}")


def _coerce_item_type(value: Union[str, ItemType]) -> ItemType:
    try:
        item_type = ItemType(value)
    except ValueError:
        raise ValidationError(f"Unknown item type: {value!r}")
    if item_type not in SHAREABLE_ITEM_TYPES:
        raise ValidationError(f"Items of type {item_type.value!r} cannot be shared")
    return item_type


class ShareLinkRegistry:
    def __init__(self, db: Session, settings: Settings, *, clock: Clock = utcnow) -> None:
        self.db = db
        self.settings = settings
        self.clock = clock

    def create(
        self,
        owner_id: int,
        item_id: int,
        item_type: Union[str, ItemType],
        *,
        expiry: Union[None, str, datetime] = None,
        password_protected: bool = False,
        password: Optional[str] = None,
        access_level: Union[str, AccessLevel, None] = AccessLevel.VIEW,
    ) -> models.ShareLink:
        kind = _coerce_item_type(item_type)
        level = _coerce_access_level(access_level)

        item = crud.item.get_owned(self.db, id=item_id, user_id=owner_id, item_type=kind.value)
        if not item:
            raise ValidationError(f"{kind.value} {item_id} does not belong to the caller")

        if password_protected and not password:
            raise ValidationError("A password is required for a password protected link")
        password_hash = get_password_hash(password) if password else None

        expires = parse_expiry(expiry, now=self.clock())

        share_id = generate_share_id()
        token = share_token(self.settings.SHARE_LINK_SECRET, share_id, self.settings.SHARE_TOKEN_LENGTH)
        link = build_share_link(
            self.settings.SHARE_LINK_BASE_URL, self.settings.API_V1_STR, share_id, token
        )

        share_link = crud.share.create(
            self.db,
            share_id=share_id,
            link=link,
            owner_id=owner_id,
            item_id=item.id,
            item_type=kind.value,
            expiry=expires,
            password_hash=password_hash,
            access_level=level.value,
        )
        logger.info("Share link %s created for %s %s by user %s", share_id, kind.value, item.id, owner_id)
        return share_link

    def get(self, share_id: str) -> models.ShareLink:
        share_link = crud.share.get_by_share_id(self.db, share_id=share_id)
        if not share_link:
            raise NotFoundError(f"Share link {share_id} not found")
        return share_link

    def get_for_owner(self, share_id: str, caller_id: int) -> models.ShareLink:
        """
        Like ``get``, but links owned by someone else are reported as missing.
        """
        share_link = self.get(share_id)
        if share_link.owner_id != caller_id:
            raise NotFoundError(f"Share link {share_id} not found")
        return share_link

    def list_by_owner(
        self, owner_id: int, *, item_type: Optional[str] = None, include_revoked: bool = True
    ) -> List[models.ShareLink]:
        return crud.share.get_by_owner(
            self.db, owner_id=owner_id, item_type=item_type, include_revoked=include_revoked
        )

    def _get_owned_for_mutation(self, share_id: str, caller_id: int) -> models.ShareLink:
        share_link = self.get(share_id)
        if share_link.owner_id != caller_id:
            raise ForbiddenError("Only the owner can change this share link")
        return share_link

    def update(self, share_id: str, caller_id: int, patch: Mapping[str, Any]) -> models.ShareLink:
        """
        Apply a partial patch. Only keys present in ``patch`` are touched:
        ``expiry`` (None/"never" clears it), ``password`` (None/"" removes it),
        ``access_level``.
        """
        share_link = self._get_owned_for_mutation(share_id, caller_id)
        if share_link.revoked:
            raise ConflictError(f"Share link {share_id} has been revoked")

        unknown = set(patch) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        values = {}
        if "expiry" in patch:
            values["expiry"] = parse_expiry(patch["expiry"], now=self.clock())
        if "password" in patch:
            password = patch["password"]
            if password:
                values["password_protected"] = True
                values["password_hash"] = get_password_hash(password)
            else:
                values["password_protected"] = False
                values["password_hash"] = None
        if "access_level" in patch and patch["access_level"] is not None:
            values["access_level"] = _coerce_access_level(patch["access_level"]).value

        if values and not crud.share.update_if_active(self.db, share_id=share_id, values=values):
            # Revoked between the read above and the guarded UPDATE
            raise ConflictError(f"Share link {share_id} has been revoked")

        self.db.refresh(share_link)
        return share_link

    def revoke(self, share_id: str, caller_id: int) -> models.ShareLink:
        share_link = self._get_owned_for_mutation(share_id, caller_id)
        if crud.share.mark_revoked(self.db, share_id=share_id):
            logger.info("Share link %s revoked by user %s", share_id, caller_id)
        self.db.refresh(share_link)
        return share_link

    def delete(self, share_id: str, caller_id: int) -> models.ShareLink:
        """
        Physically remove the link and, by cascade, its access events.
        """
        share_link = self._get_owned_for_mutation(share_id, caller_id)
        crud.share.remove(self.db, share_link=share_link)
        logger.info("Share link %s deleted by user %s", share_id, caller_id)
        return share_link


class AccessReason(str, enum.Enum):
    GRANTED = "GRANTED"
    NOT_FOUND = "NOT_FOUND"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"
    PASSWORD_REQUIRED = "PASSWORD_REQUIRED"
    PASSWORD_INCORRECT = "PASSWORD_INCORRECT"


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    reason: AccessReason
    access_level: Optional[AccessLevel] = None
    share_link: Optional[models.ShareLink] = None


class AccessPolicyEvaluator:
    def __init__(self, db: Session, settings: Settings, *, clock: Clock = utcnow) -> None:
        self.db = db
        self.settings = settings
        self.clock = clock

    def evaluate(
        self,
        share_id: str,
        supplied_password: Optional[str] = None,
        *,
        token: Optional[str] = None,
    ) -> AccessDecision:
        """
        Decide whether a share link currently grants access.

        Checks run in a fixed order and the first failing one is reported:
        existence (including a wrong ``token``, when one is given), revocation,
        expiry, then the password gate.
        """
        share_link = crud.share.get_by_share_id(self.db, share_id=share_id)
        if share_link is None:
            return AccessDecision(False, AccessReason.NOT_FOUND)
        if token is not None and not token_matches(
            self.settings.SHARE_LINK_SECRET, share_id, token, self.settings.SHARE_TOKEN_LENGTH
        ):
            return AccessDecision(False, AccessReason.NOT_FOUND)

        if share_link.revoked:
            return AccessDecision(False, AccessReason.REVOKED, share_link=share_link)

        if share_link.expiry is not None and self.clock() > share_link.expiry:
            return AccessDecision(False, AccessReason.EXPIRED, share_link=share_link)

        if share_link.password_protected:
            if not supplied_password:
                return AccessDecision(False, AccessReason.PASSWORD_REQUIRED, share_link=share_link)
            if not verify_password(supplied_password, share_link.password_hash):
                return AccessDecision(False, AccessReason.PASSWORD_INCORRECT, share_link=share_link)

        return AccessDecision(
            True,
            AccessReason.GRANTED,
            access_level=AccessLevel(share_link.access_level),
            share_link=share_link,
        )


@dataclass(frozen=True)
class ShareSummary:
    total_views: int
    unique_visitors: int
    last_accessed: Optional[datetime]


class AnalyticsAggregator:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _get_link(self, share_id: str) -> models.ShareLink:
        share_link = crud.share.get_by_share_id(self.db, share_id=share_id)
        if not share_link:
            raise NotFoundError(f"Share link {share_id} not found")
        return share_link

    def record_access(
        self, share_id: str, source_address: Optional[str], agent_string: Optional[str]
    ) -> models.AccessEvent:
        """
        Append an access event and bump the view counter. Call only after
        ``AccessPolicyEvaluator.evaluate`` granted access.
        """
        share_link = self._get_link(share_id)
        event = crud.share.record_view(
            self.db,
            link_pk=share_link.id,
            source_address=source_address,
            agent_string=agent_string,
        )
        if event is None:
            raise ConflictError(f"Share link {share_id} has been revoked")
        return event

    def summarize(self, share_id: str) -> ShareSummary:
        share_link = self._get_link(share_id)
        total, unique, last = crud.share.aggregate_events(self.db, link_pk=share_link.id)
        return ShareSummary(total_views=total, unique_visitors=unique, last_accessed=last)

    def access_log(self, share_id: str) -> List[models.AccessEvent]:
        share_link = self._get_link(share_id)
        return crud.share.get_events(self.db, link_pk=share_link.id)
