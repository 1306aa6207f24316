"""
Replay a fixture dataset (``db.json``) against a running LifeHub API.

Phases run in a fixed order and every item is attempted on its own: a failed
item is logged and counted, and the run moves on. Users that already exist
are logged in instead of registered. Items owned by a user without a token
are skipped.

    python -m lifehub.populate --data-file db.json --base-url http://127.0.0.1:8899
"""
import argparse
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from lifehub.core.config import SeedSettings
from lifehub.core.errors import ConflictError, ExternalDependencyError, HubError, error_for_status
from lifehub.schemas.item import ITEM_ROUTES, ItemType

logger = logging.getLogger(__name__)

# (phase name, ((fixture collection, item type), ...)) in execution order.
ITEM_PHASES: Tuple[Tuple[str, Tuple[Tuple[str, ItemType], ...]], ...] = (
    ("tags", (("tags", ItemType.TAG),)),
    ("notes", (("notes", ItemType.NOTE),)),
    ("bookmarks", (("bookmarkFolders", ItemType.BOOKMARK_FOLDER), ("bookmarks", ItemType.BOOKMARK))),
    ("passwords", (("passwords", ItemType.PASSWORD),)),
    ("walletCards", (("walletCards", ItemType.WALLET_CARD),)),
    ("voiceMemos", (("voiceMemos", ItemType.VOICE_MEMO),)),
    ("files", (("folders", ItemType.FOLDER), ("files", ItemType.FILE))),
    ("photos", (("albums", ItemType.ALBUM), ("photos", ItemType.PHOTO))),
    ("resume", (("resume", ItemType.RESUME),)),
)

# Payload fields holding fixture ids of other items, rewritten to server ids.
REFERENCE_FIELDS: Dict[ItemType, Dict[str, ItemType]] = {
    ItemType.BOOKMARK: {"folderId": ItemType.BOOKMARK_FOLDER},
    ItemType.FOLDER: {"parentId": ItemType.FOLDER},
    ItemType.FILE: {"folderId": ItemType.FOLDER},
    ItemType.PHOTO: {"albumId": ItemType.ALBUM},
}

# Resumes in older fixtures carry no owner.
DEFAULT_RESUME_OWNER = "user1"

SHARE_FIELDS = ("expiry", "passwordProtected", "password", "accessLevel")


@dataclass
class PhaseReport:
    created: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass
class PopulationContext:
    """
    State of one driver run. Keys are fixture ids, never server ids.
    """
    tokens: Dict[str, str] = field(default_factory=dict)
    item_ids: Dict[Tuple[str, str], int] = field(default_factory=dict)
    share_ids: Dict[str, str] = field(default_factory=dict)
    reports: Dict[str, PhaseReport] = field(default_factory=dict)

    def report(self, phase: str) -> PhaseReport:
        return self.reports.setdefault(phase, PhaseReport())


class ApiClient:
    """
    Thin wrapper over ``httpx.Client`` that turns failures into ``HubError``s.
    """

    def __init__(self, client: httpx.Client, api_prefix: str) -> None:
        self.client = client
        self.api_prefix = api_prefix.rstrip("/")

    def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[Any] = None,
    ) -> Any:
        url = f"{self.api_prefix}{path}"
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = self.client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise ExternalDependencyError(f"{method} {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise ExternalDependencyError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("detail")
            raise error_for_status(
                response.status_code,
                str(message or f"{method} {url} returned {response.status_code}"),
                detail=body,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalDependencyError(f"{method} {url} returned a non-JSON body") from exc


def _token_for(context: PopulationContext, owner: Any) -> Optional[str]:
    if owner is None:
        return None
    return context.tokens.get(str(owner))


def _to_item_type(value: Any) -> Optional[ItemType]:
    # Fixtures use camelCase ("voiceMemo"), the API uses snake_case
    if not isinstance(value, str):
        return None
    try:
        return ItemType(re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower())
    except ValueError:
        return None


class PopulationDriver:
    def __init__(self, settings: SeedSettings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(base_url=settings.BASE_URL, timeout=settings.TIMEOUT_SECONDS)
        self.api = ApiClient(client, settings.API_PREFIX)

    def close(self) -> None:
        if self._owns_client:
            self.api.client.close()

    def run(self, data: Dict[str, Any]) -> PopulationContext:
        context = PopulationContext()
        logger.info("Starting population")

        self._run_phase(context, "users", self._populate_users, data.get("users") or [])
        for phase, collections in ITEM_PHASES:
            self._run_phase(context, phase, self._populate_items, data, collections)
        self._run_phase(context, "sharedLinks", self._populate_shares, data.get("sharedLinks") or [])

        logger.info("Population complete")
        return context

    def _run_phase(self, context: PopulationContext, phase: str, fn, *args) -> None:
        report = context.report(phase)
        logger.info("Phase %s: starting", phase)
        fn(context, report, *args)
        logger.info(
            "Phase %s: %d created, %d failed, %d skipped",
            phase, report.created, report.failed, report.skipped,
        )

    # Users

    def _populate_users(self, context: PopulationContext, report: PhaseReport, users: List[dict]) -> None:
        for user in users:
            email = user.get("email")
            if user.get("id") is None:
                logger.error("Skipping user %s: fixture record has no id", email)
                report.failed += 1
                continue
            fixture_id = str(user["id"])
            credentials = {"email": email, "password": self.settings.DEFAULT_PASSWORD}
            try:
                try:
                    result = self.api.request(
                        "POST", "/auth/register", json={**credentials, "name": user.get("name")}
                    )
                    logger.info("User %s registered", email)
                except ConflictError:
                    logger.info("User %s already exists, logging in", email)
                    result = self.api.request("POST", "/auth/login", json=credentials)
            except HubError as exc:
                logger.error("Failed to register user %s: %s", email, exc)
                report.failed += 1
                continue

            token = result.get("token") if isinstance(result, dict) else None
            if not token:
                logger.error("No token returned for user %s", email)
                report.failed += 1
                continue
            context.tokens[fixture_id] = token
            report.created += 1
            self._update_user_details(token, user)

    def _update_user_details(self, token: str, user: dict) -> None:
        profile = {k: user[k] for k in ("bio", "profilePicture") if user.get(k) is not None}
        updates = [("/users/me/profile", profile), ("/users/me/settings", user.get("settings"))]
        for path, body in updates:
            if not body:
                continue
            try:
                self.api.request("PUT", path, token=token, json=body)
            except HubError as exc:
                logger.warning("Failed to update %s for %s: %s", path, user.get("email"), exc)

    # Owned items

    def _populate_items(
        self,
        context: PopulationContext,
        report: PhaseReport,
        data: Dict[str, Any],
        collections: Iterable[Tuple[str, ItemType]],
    ) -> None:
        for key, item_type in collections:
            for record in data.get(key) or []:
                self._create_item(context, report, item_type, record)

    def _create_item(
        self, context: PopulationContext, report: PhaseReport, item_type: ItemType, record: dict
    ) -> None:
        owner = record.get("userId")
        if item_type == ItemType.RESUME and not owner:
            owner = DEFAULT_RESUME_OWNER
        label = record.get("title") or record.get("name") or record.get("id")

        token = _token_for(context, owner)
        if not token:
            logger.info("Skipping %s %s for user %s: no token available", item_type.value, label, owner)
            report.skipped += 1
            return

        payload = {k: v for k, v in record.items() if k not in ("id", "userId")}
        for ref_field, ref_type in REFERENCE_FIELDS.get(item_type, {}).items():
            ref = payload.get(ref_field)
            if ref is not None and (ref_type.value, str(ref)) in context.item_ids:
                payload[ref_field] = context.item_ids[(ref_type.value, str(ref))]

        try:
            created = self.api.request("POST", ITEM_ROUTES[item_type], token=token, json=payload)
        except HubError as exc:
            logger.error("Failed to create %s %s: %s", item_type.value, label, exc)
            report.failed += 1
            return

        if record.get("id") is not None and isinstance(created, dict) and "id" in created:
            context.item_ids[(item_type.value, str(record["id"]))] = created["id"]
        logger.info("Created %s %s", item_type.value, label)
        report.created += 1

    # Share links

    def _populate_shares(self, context: PopulationContext, report: PhaseReport, shares: List[dict]) -> None:
        for record in shares:
            owner = record.get("userId") or record.get("ownerId")
            fixture_id = record.get("id")
            token = _token_for(context, owner)
            if not token:
                logger.info("Skipping share link %s for user %s: no token available", fixture_id, owner)
                report.skipped += 1
                continue

            item_type = _to_item_type(record.get("itemType"))
            item_id = context.item_ids.get((item_type.value, str(record.get("itemId")))) if item_type else None
            if item_id is None:
                logger.info(
                    "Skipping share link %s: %s %s was not created",
                    fixture_id, record.get("itemType"), record.get("itemId"),
                )
                report.skipped += 1
                continue

            body = {"itemId": item_id, "itemType": item_type.value}
            body.update({k: record[k] for k in SHARE_FIELDS if k in record})
            try:
                created = self.api.request("POST", "/share-links", token=token, json=body)
            except HubError as exc:
                logger.error("Failed to create share link %s: %s", fixture_id, exc)
                report.failed += 1
                continue

            share_id = created.get("shareId") if isinstance(created, dict) else None
            if not share_id:
                logger.error("Share link %s: response carried no shareId", fixture_id)
                report.failed += 1
                continue
            if fixture_id is not None:
                context.share_ids[str(fixture_id)] = share_id
            logger.info("Created share link for %s %s", item_type.value, item_id)
            report.created += 1


def load_fixture(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Populate a LifeHub API from a fixture file.")
    parser.add_argument("--data-file", help="Fixture JSON (default: SEED_DATA_FILE or db.json)")
    parser.add_argument("--base-url", help="API host (default: SEED_BASE_URL)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level)

    settings = SeedSettings()
    if args.base_url:
        settings.BASE_URL = args.base_url
    data = load_fixture(args.data_file or settings.DATA_FILE)

    logger.info("Using API URL: %s", settings.BASE_URL)
    driver = PopulationDriver(settings)
    try:
        context = driver.run(data)
    finally:
        driver.close()

    failed = sum(report.failed for report in context.reports.values())
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
