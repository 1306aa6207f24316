import itertools
import json

import httpx
import pytest

from lifehub.core.config import SeedSettings
from lifehub.core.errors import (
    ConflictError,
    ExternalDependencyError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from lifehub.populate import ApiClient, PopulationContext, PopulationDriver, load_fixture, main
from tests.conftest import register

API = "/api/v1"


@pytest.fixture()
def seed_settings() -> SeedSettings:
    return SeedSettings(BASE_URL="http://testserver", API_PREFIX=API)


def _fixture(email: str = "alice@example.com") -> dict:
    return {
        "users": [
            {"id": "user1", "email": email, "name": "Alice", "bio": "Hiker", "settings": {"theme": "dark"}},
        ],
        "tags": [{"id": "t1", "userId": "user1", "name": "travel", "color": "#00f"}],
        "notes": [
            {"id": "n1", "userId": "user1", "title": "Packing list"},
            {"id": "n2", "userId": "ghost", "title": "Orphan"},
        ],
        "bookmarkFolders": [{"id": "bf1", "userId": "user1", "name": "Reading"}],
        "bookmarks": [{"id": "b1", "userId": "user1", "title": "Docs", "url": "https://example.com", "folderId": "bf1"}],
        "resume": [{"name": "CV", "summary": "Engineer"}],
        "sharedLinks": [
            {"id": "s1", "userId": "user1", "itemId": "n1", "itemType": "note", "expiry": "7d"},
            {"id": "s2", "userId": "user1", "itemId": "n2", "itemType": "note"},
        ],
    }


def test_existing_user_is_logged_in(client, seed_settings):
    # Account created before the run; registration will answer 409
    headers = register(client, "alice@example.com", seed_settings.DEFAULT_PASSWORD)

    context = PopulationDriver(seed_settings, client=client).run(_fixture())

    assert "user1" in context.tokens
    assert context.reports["users"].created == 1
    assert context.reports["notes"].created == 1
    assert context.reports["notes"].skipped == 1
    assert context.reports["resume"].created == 1
    assert context.reports["sharedLinks"].created == 1
    assert context.reports["sharedLinks"].skipped == 1

    notes = client.get(f"{API}/notes", headers=headers).json()
    assert [n["title"] for n in notes] == ["Packing list"]

    links = client.get(f"{API}/share-links", headers=headers).json()["sharedLinks"]
    assert [l["shareId"] for l in links] == [context.share_ids["s1"]]
    assert links[0]["itemId"] == notes[0]["id"]
    assert links[0]["expiry"] is not None

    me = client.get(f"{API}/users/me", headers=headers).json()
    assert me["bio"] == "Hiker"
    assert me["settings"] == {"theme": "dark"}


def test_references_are_rewritten_to_server_ids(client, seed_settings):
    context = PopulationDriver(seed_settings, client=client).run(_fixture())
    headers = {"Authorization": f"Bearer {context.tokens['user1']}"}

    folder = client.get(f"{API}/bookmark-folders", headers=headers).json()[0]
    bookmark = client.get(f"{API}/bookmarks", headers=headers).json()[0]
    assert bookmark["payload"]["folderId"] == folder["id"]
    assert context.item_ids[("bookmark", "b1")] == bookmark["id"]


class FakeApi:
    """MockTransport handler that records calls and fails selected requests."""

    def __init__(self, fail_titles=(), register_status=201, login_status=200, register_bodies=None, share_body=None):
        self.calls = []
        self.fail_titles = set(fail_titles)
        self.register_status = register_status
        self.login_status = login_status
        # email -> httpx.Response returned by /auth/register
        self.register_bodies = register_bodies or {}
        self.share_body = share_body
        self._ids = itertools.count(1)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else {}
        self.calls.append((request.method, path))

        if path.endswith("/auth/register"):
            if body.get("email") in self.register_bodies:
                return self.register_bodies[body["email"]]
            if self.register_status != 201:
                return httpx.Response(self.register_status, json={"code": "conflict", "message": "exists"})
            return httpx.Response(201, json={"token": "tok", "user": {"id": 1}})
        if path.endswith("/auth/login"):
            if self.login_status != 200:
                return httpx.Response(self.login_status, json={"detail": "Incorrect email or password"})
            return httpx.Response(200, json={"token": "tok", "user": {"id": 1}})
        if body.get("title") in self.fail_titles:
            raise httpx.ConnectError("connection refused", request=request)
        if path.endswith("/share-links"):
            if self.share_body is not None:
                return httpx.Response(201, json=self.share_body)
            return httpx.Response(201, json={"shareId": f"share{next(self._ids)}", "link": "x"})
        return httpx.Response(201, json={"id": next(self._ids)})


def _driver(seed_settings, api: FakeApi) -> PopulationDriver:
    client = httpx.Client(base_url="http://seed.test", transport=httpx.MockTransport(api))
    return PopulationDriver(seed_settings, client=client)


def test_network_failure_does_not_stop_the_run(seed_settings):
    api = FakeApi(fail_titles={"Packing list"})
    data = _fixture()
    data["notes"].append({"id": "n3", "userId": "user1", "title": "Second note"})
    data["passwords"] = [{"id": "p1", "userId": "user1", "title": "Bank", "password": "x"}]
    data["sharedLinks"].append({"id": "s3", "userId": "user1", "itemId": "n3", "itemType": "note"})

    context = _driver(seed_settings, api).run(data)

    notes = context.reports["notes"]
    assert (notes.created, notes.failed, notes.skipped) == (1, 1, 1)
    assert ("note", "n1") not in context.item_ids
    assert ("note", "n3") in context.item_ids
    # Later phases still ran
    assert ("POST", f"{API}/passwords") in api.calls
    assert ("POST", f"{API}/resume") in api.calls
    assert context.share_ids.keys() == {"s3"}


def test_failed_login_skips_the_users_items(seed_settings):
    api = FakeApi(register_status=409, login_status=401)

    context = _driver(seed_settings, api).run(_fixture())

    assert context.tokens == {}
    assert context.reports["users"].failed == 1
    assert context.reports["notes"].skipped == 2
    assert context.reports["sharedLinks"].skipped == 2
    assert [c for c in api.calls if not c[1].startswith(f"{API}/auth")] == []


def test_phase_order(seed_settings):
    api = FakeApi()
    context = _driver(seed_settings, api).run({})

    assert list(context.reports) == [
        "users", "tags", "notes", "bookmarks", "passwords", "walletCards",
        "voiceMemos", "files", "photos", "resume", "sharedLinks",
    ]
    assert api.calls == []


def test_api_client_maps_errors():
    responses = {
        "/bad": httpx.Response(422, json={"message": "nope"}),
        "/denied": httpx.Response(401, json={"detail": "no"}),
        "/missing": httpx.Response(404),
        "/dup": httpx.Response(409, json={"message": "exists"}),
        "/boom": httpx.Response(500, text="oops"),
    }

    def handler(request):
        if request.url.path == "/slow":
            raise httpx.ReadTimeout("timed out", request=request)
        return responses[request.url.path]

    api = ApiClient(httpx.Client(base_url="http://seed.test", transport=httpx.MockTransport(handler)), "")

    for path, error in [
        ("/bad", ValidationError),
        ("/denied", ForbiddenError),
        ("/missing", NotFoundError),
        ("/dup", ConflictError),
        ("/boom", ExternalDependencyError),
        ("/slow", ExternalDependencyError),
    ]:
        with pytest.raises(error):
            api.request("GET", path)


def test_load_fixture_and_cli_args(tmp_path, monkeypatch):
    path = tmp_path / "db.json"
    path.write_text(json.dumps({"users": []}), encoding="utf-8")
    assert load_fixture(str(path)) == {"users": []}

    seen = {}

    def fake_run(self, data):
        seen["base_url"] = self.settings.BASE_URL
        seen["data"] = data
        return PopulationContext()

    monkeypatch.setattr(PopulationDriver, "run", fake_run)
    assert main(["--data-file", str(path), "--base-url", "http://api.test"]) == 0
    assert seen == {"base_url": "http://api.test", "data": {"users": []}}


def _two_users() -> dict:
    return {
        "users": [
            {"id": "user1", "email": "a@x.io"},
            {"id": "user2", "email": "b@x.io"},
        ],
        "notes": [
            {"id": "n1", "userId": "user1", "title": "First"},
            {"id": "n2", "userId": "user2", "title": "Second"},
        ],
    }


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(201, text="<html>"),
        httpx.Response(201, json={"user": {}}),
    ],
)
def test_unusable_register_response_fails_only_that_user(seed_settings, response):
    api = FakeApi(register_bodies={"a@x.io": response})

    context = _driver(seed_settings, api).run(_two_users())

    assert context.reports["users"].created == 1
    assert context.reports["users"].failed == 1
    assert set(context.tokens) == {"user2"}
    notes = context.reports["notes"]
    assert (notes.created, notes.skipped) == (1, 1)
    assert ("note", "n2") in context.item_ids
    assert context.reports["sharedLinks"].failed == 0


def test_share_response_without_id_is_a_failed_item(seed_settings):
    api = FakeApi(share_body={"link": "x"})
    data = _two_users()
    data["sharedLinks"] = [
        {"id": "s1", "userId": "user1", "itemId": "n1", "itemType": "note"},
        {"id": "s2", "userId": "user2", "itemId": "n2", "itemType": "note"},
    ]

    context = _driver(seed_settings, api).run(data)

    assert context.reports["sharedLinks"].failed == 2
    assert context.share_ids == {}
    assert [c for c in api.calls if c[1] == f"{API}/share-links"] == [("POST", f"{API}/share-links")] * 2


def test_non_json_success_body_is_an_external_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    api = ApiClient(httpx.Client(base_url="http://seed.test", transport=transport), "")

    with pytest.raises(ExternalDependencyError):
        api.request("GET", "/page")


def test_records_without_ids_are_never_attributed_to_another_user(seed_settings):
    api = FakeApi()
    data = {
        "users": [{"email": "noid@x.io"}],
        "notes": [{"id": "n1", "title": "no owner"}],
        "sharedLinks": [{"id": "s1", "itemId": "n1", "itemType": "note"}],
    }

    context = _driver(seed_settings, api).run(data)

    assert context.tokens == {}
    assert context.reports["users"].failed == 1
    assert context.reports["notes"].skipped == 1
    assert context.reports["sharedLinks"].skipped == 1
    assert api.calls == []
