import httpx
import pytest

from discharge_tracker.core import redis as redis_locks
from discharge_tracker.core.redis import acquire_lock, release_lock
from discharge_tracker.notifications.push import base, fcm_client


def test_send_push_only_logs_when_disabled(monkeypatch):
    def _must_not_send(*args, **kwargs):
        raise AssertionError("push should not be delivered")

    monkeypatch.setattr(fcm_client, "send_via_fcm", _must_not_send)

    base.send_push("device-token-123456", "title", "body", reason="SLA_BREACH")


def test_fcm_requires_server_key(monkeypatch):
    monkeypatch.setattr(fcm_client.settings, "fcm_server_key", None)

    with pytest.raises(fcm_client.PushNotConfiguredError):
        fcm_client.send_via_fcm("device", "title", "body")


def test_fcm_posts_notification(monkeypatch):
    calls = []

    def _fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        return httpx.Response(200, request=httpx.Request("POST", url))

    monkeypatch.setattr(fcm_client.settings, "fcm_server_key", "server-key")
    monkeypatch.setattr(fcm_client.httpx, "post", _fake_post)

    fcm_client.send_via_fcm("device", "Facility Check SLA Breach - NURSING", "Ticket:1  Room:12")

    assert calls[0]["headers"]["Authorization"] == "key=server-key"
    assert calls[0]["json"]["to"] == "device"
    assert calls[0]["json"]["notification"]["title"] == "Facility Check SLA Breach - NURSING"


def test_fcm_raises_on_http_error(monkeypatch):
    def _failing_post(url, json=None, headers=None, timeout=None):
        return httpx.Response(500, request=httpx.Request("POST", url))

    monkeypatch.setattr(fcm_client.settings, "fcm_server_key", "server-key")
    monkeypatch.setattr(fcm_client.httpx, "post", _failing_post)

    with pytest.raises(httpx.HTTPStatusError):
        fcm_client.send_via_fcm("device", "title", "body")


def test_local_lock_is_exclusive_without_redis():
    token = acquire_lock("test-lock")
    assert token == "local"
    assert acquire_lock("test-lock") is None

    release_lock("test-lock", token)
    again = acquire_lock("test-lock")
    assert again == "local"
    release_lock("test-lock", again)


class FakeRedis:
    """Minimal redis client: SET NX and the compare-and-delete script."""

    def __init__(self):
        self.store = {}
        self.scripts = []

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def eval(self, script, numkeys, *args):
        self.scripts.append((script, numkeys, args))
        key, token = args
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


@pytest.fixture()
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(redis_locks, "get_redis_client", lambda: client)
    return client


def test_redis_lock_release_is_a_single_compare_and_delete(fake_redis):
    token = acquire_lock("sla-scan", ttl=30)
    assert token not in (None, "local")
    assert acquire_lock("sla-scan") is None

    release_lock("sla-scan", token)

    assert fake_redis.scripts == [(redis_locks._RELEASE_SCRIPT, 1, ("lock:sla-scan", token))]
    assert "lock:sla-scan" not in fake_redis.store


def test_redis_lock_release_keeps_a_lock_taken_over_by_another_holder(fake_redis):
    stale = acquire_lock("sla-scan")
    # our lock expired and another worker now holds the key
    fake_redis.store["lock:sla-scan"] = "other-worker"

    release_lock("sla-scan", stale)

    assert fake_redis.store["lock:sla-scan"] == "other-worker"
