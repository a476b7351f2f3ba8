# tests/test_playback_route.py

import time
import uuid

from fastapi.testclient import TestClient

from playback_access.core.redis_client import RedisClient
from playback_access.main import create_app
from playback_access.repositories.videos import MemoryVideoRepository
from tests.fixtures.fakes import PROTECTED_VIDEO, PUBLIC_VIDEO, FakeLinkIssuer, ScriptedRedisClient
from tests.fixtures.mocks.redis import FailingRedisClient, MockRedisClient, UnreachableRedisClient
from tests.fixtures.wallets import auth_sig, delegated_message

URL = "/api/v1/playback/access"


# ─────────────────────────────────────────────────────────────────────────────
# App factory: real app, lifespan skipped, clients installed on app.state
# ─────────────────────────────────────────────────────────────────────────────

def _mk_app(*, redis=None, issuer=None, repo=None):
    app = create_app()

    redis = redis if redis is not None else MockRedisClient()
    wrapper = RedisClient("redis://unused:6379/0")
    wrapper.use_client(redis)
    app.state.redis = wrapper

    if repo is None:
        repo = MemoryVideoRepository()
        repo.add("tok1", PROTECTED_VIDEO)
        repo.add("tok-public", PUBLIC_VIDEO)
    app.state.video_repository = repo
    app.state.db = None
    app.state.link_issuer = issuer if issuer is not None else FakeLinkIssuer()

    client = TestClient(app)
    return app, client, redis, repo


class _HealthyDatabase:
    async def healthcheck(self) -> bool:
        return True


def _now_ms() -> int:
    return int(time.time() * 1000)


def _delegated_body(account, *, token="tok1", nonce=None, expires_at_ms=None):
    message = delegated_message(
        user_address=account.address,
        nonce=nonce or uuid.uuid4().hex,
        expires_at_ms=expires_at_ms if expires_at_ms is not None else _now_ms() + 60_000,
    )
    body = {"authSig": auth_sig(account, message)}
    if token is not None:
        body["tokenId"] = token
    return body


def _assert_error(resp, status, code):
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["error"]["request_id"]
    return body["error"]


# ─────────────────────────────────────────────────────────────────────────────
# Success paths
# ─────────────────────────────────────────────────────────────────────────────

def test_delegated_access_returns_share_link_with_no_store(alice):
    _, client, _, _ = _mk_app()

    resp = client.post(URL, json=_delegated_body(alice))

    assert resp.status_code == 200, resp.text
    assert resp.json() == {"data": "https://links.example/videos/vid1/data/?ttl=14400"}
    assert resp.headers["Cache-Control"] == "no-store"
    assert resp.headers["Pragma"] == "no-cache"
    assert resp.headers.get("X-Request-ID")


def test_root_path_serves_the_same_handler(alice):
    _, client, _, _ = _mk_app()

    resp = client.post("/", json=_delegated_body(alice))

    assert resp.status_code == 200
    assert resp.json()["data"].endswith("vid1/data/?ttl=14400")


def test_public_video_needs_no_auth_sig():
    _, client, _, _ = _mk_app()

    resp = client.post(URL, json={"tokenId": "tok-public"})

    assert resp.status_code == 200
    assert "vid-public/data/" in resp.json()["data"]


def test_existing_grant_after_delegated_grant(alice):
    _, client, _, _ = _mk_app()
    assert client.post(URL, json=_delegated_body(alice)).status_code == 200

    body = {"tokenId": "tok1", "authSig": auth_sig(alice, "login", derived_via="existing-grant")}
    resp = client.post(URL, json=body)

    assert resp.status_code == 200
    assert "vid1/data/" in resp.json()["data"]


def test_client_request_id_is_echoed(alice):
    _, client, _, _ = _mk_app()
    rid = str(uuid.uuid4())

    resp = client.post(URL, json={"tokenId": "missing"}, headers={"X-Request-ID": rid})

    assert resp.headers["X-Request-ID"] == rid
    assert resp.json()["error"]["request_id"] == rid


def test_non_uuid4_request_id_is_replaced():
    _, client, _, _ = _mk_app()

    resp = client.post(URL, json={"tokenId": "missing"}, headers={"X-Request-ID": "drop table"})

    issued = resp.headers["X-Request-ID"]
    assert issued != "drop table"
    assert uuid.UUID(issued).version == 4
    assert resp.json()["error"]["request_id"] == issued


def test_correlation_id_header_is_accepted():
    _, client, _, _ = _mk_app()
    rid = str(uuid.uuid4())

    resp = client.get("/healthz", headers={"X-Correlation-ID": rid})

    assert resp.headers["X-Request-ID"] == rid


# ─────────────────────────────────────────────────────────────────────────────
# Denials and client errors
# ─────────────────────────────────────────────────────────────────────────────

def test_replayed_nonce_is_unauthorized(alice):
    _, client, _, _ = _mk_app()
    body = _delegated_body(alice, nonce="same-nonce")

    assert client.post(URL, json=body).status_code == 200
    err = _assert_error(client.post(URL, json=body), 401, "UNAUTHORIZED")

    assert err["message"] == "Unauthorized"


def test_denials_are_indistinguishable_to_clients(alice, bob):
    _, client, _, _ = _mk_app()
    bodies = [
        {"tokenId": "tok1", "authSig": auth_sig(alice, "login", derived_via="existing-grant")},
        {"tokenId": "tok1", "authSig": auth_sig(bob, "hello", address=alice.address)},
        {"tokenId": "tok1", "authSig": auth_sig(alice, "hello", derived_via="unknown")},
        _delegated_body(alice, expires_at_ms=_now_ms() - 1),
    ]

    messages = set()
    for body in bodies:
        err = _assert_error(client.post(URL, json=body), 401, "UNAUTHORIZED")
        messages.add(err["message"])

    assert messages == {"Unauthorized"}


def test_unknown_token_is_404(alice):
    _, client, _, _ = _mk_app()
    err = _assert_error(client.post(URL, json=_delegated_body(alice, token="missing")), 404, "NOT_FOUND")
    assert err["message"] == "Video metadata not found"


def test_unreadable_body_is_400():
    _, client, _, _ = _mk_app()
    resp = client.post(URL, content="{not json", headers={"Content-Type": "application/json"})
    _assert_error(resp, 400, "BAD_REQUEST")


def test_unparseable_signed_message_is_400(alice):
    _, client, _, _ = _mk_app()
    body = {"tokenId": "tok1", "authSig": auth_sig(alice, "plain text")}
    err = _assert_error(client.post(URL, json=body), 400, "BAD_REQUEST")
    assert err["message"] == "Failed to parse signed message"


def test_other_methods_are_405():
    _, client, _, _ = _mk_app()
    resp = client.get(URL)
    _assert_error(resp, 405, "METHOD_NOT_ALLOWED")


# ─────────────────────────────────────────────────────────────────────────────
# Dependency failures
# ─────────────────────────────────────────────────────────────────────────────

def test_redis_outage_is_500_with_generic_message(alice):
    _, client, _, _ = _mk_app(redis=FailingRedisClient())

    err = _assert_error(client.post(URL, json=_delegated_body(alice)), 500, "INTERNAL_ERROR")

    assert err["message"] == "Internal server error"
    assert "error fetching video metadata: ConnectionError" in err["debug"]


def test_redis_down_at_startup_recovers_without_restart():
    app, client, _, _ = _mk_app()
    up = MockRedisClient()
    app.state.redis = ScriptedRedisClient(UnreachableRedisClient(), up)

    _assert_error(client.post(URL, json={"tokenId": "tok-public"}), 500, "INTERNAL_ERROR")
    resp = client.post(URL, json={"tokenId": "tok-public"})

    assert resp.status_code == 200, resp.text
    assert "vid-public/data/" in resp.json()["data"]
    assert up.store  # metadata cache filled through the recovered client


def test_link_failure_is_500(alice):
    _, client, _, _ = _mk_app(issuer=FakeLinkIssuer(fail=True))

    err = _assert_error(client.post(URL, json=_delegated_body(alice)), 500, "INTERNAL_ERROR")

    assert err["message"] == "Failed to create public shared link"


def test_missing_issuer_is_500(alice):
    app, client, _, _ = _mk_app()
    app.state.link_issuer = None

    _assert_error(client.post(URL, json={"tokenId": "tok-public"}), 500, "INTERNAL_ERROR")


def test_missing_redis_is_500():
    app, client, _, _ = _mk_app()
    app.state.redis = None

    _assert_error(client.post(URL, json={"tokenId": "tok-public"}), 500, "INTERNAL_ERROR")


def test_missing_database_is_500():
    app, client, _, _ = _mk_app()
    app.state.video_repository = None

    _assert_error(client.post(URL, json={"tokenId": "tok-public"}), 500, "INTERNAL_ERROR")


# ─────────────────────────────────────────────────────────────────────────────
# Meta endpoints
# ─────────────────────────────────────────────────────────────────────────────

def test_healthz():
    _, client, _, _ = _mk_app()
    assert client.get("/healthz").json() == {"ok": True}


def test_readyz_is_503_until_every_dependency_answers():
    _, client, _, _ = _mk_app()

    resp = client.get("/readyz")

    assert resp.status_code == 503
    assert resp.json() == {"ready": False, "checks": {"db": False, "redis": True}}


def test_readyz_is_200_when_ready():
    app, client, _, _ = _mk_app()
    app.state.db = _HealthyDatabase()

    resp = client.get("/readyz")

    assert resp.status_code == 200
    assert resp.json()["ready"] is True


def test_cors_preflight_allows_content_type_only():
    _, client, _, _ = _mk_app()
    headers = {"Origin": "https://player.example", "Access-Control-Request-Method": "POST"}

    ok = client.options(URL, headers={**headers, "Access-Control-Request-Headers": "content-type"})
    denied = client.options(URL, headers={**headers, "Access-Control-Request-Headers": "x-api-key"})

    assert ok.status_code == 200
    assert denied.status_code == 400


def test_metrics_exposes_decision_counters(alice):
    _, client, _, _ = _mk_app()
    client.post(URL, json={"tokenId": "tok-public"})

    resp = client.get("/metrics")

    assert resp.status_code == 200
    assert "playback_access_decisions_total" in resp.text
