import requests

import scripts.schedule_check as schedule_check
import scripts.seed_users as seed_users
from app.consistency.checker import CHECKER
from app.store import STORE
from scripts.seed_users import SAMPLE_USERS, seed, summarize


class _Response:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


def test_seed_replaces_users_collection():
    STORE.create_document("users", {"name": "stale"})
    STORE.create_document("orders", {"status": "open"})

    inserted = seed()

    assert len(inserted) == len(SAMPLE_USERS)
    assert len(STORE.list_documents("users")) == len(SAMPLE_USERS)
    assert len(STORE.list_documents("orders")) == 1


def test_seed_main_clears_collection_unless_keep_existing(capsys):
    STORE.create_document("users", {"name": "stale"})

    seed_users.main(["--keep-existing"])
    assert len(STORE.list_documents("users")) == len(SAMPLE_USERS) + 1

    seed_users.main([])
    assert len(STORE.list_documents("users")) == len(SAMPLE_USERS)
    assert f"Inserted {len(SAMPLE_USERS)} users" in capsys.readouterr().out


def test_seed_summary_counts_expected_issues():
    assert summarize(SAMPLE_USERS) == {
        "custom_validation_failed": 4,
        "invalid_type": 3,
        "invalid_value": 1,
        "missing_required_field": 4,
        "out_of_range": 2,
    }


def test_scan_of_seeded_users():
    seed()

    first = CHECKER.check_collection("users")
    second = CHECKER.check_collection("users")

    assert first.total_documents == len(SAMPLE_USERS)
    assert first.inconsistencies_found == 14
    assert first.repairs_applied == 6
    assert first.documents_deleted == 0
    assert len(first.details) == 11
    assert second.inconsistencies_found == 5
    assert second.repairs_applied == 0
    assert STORE.get_status("users")["is_consistent"] is False


def test_trigger_check_success(monkeypatch):
    calls = []

    def post(url, json, timeout):
        calls.append((url, json))
        report = {"status": "clean", "inconsistencies_found": 0, "repairs_applied": 0, "documents_deleted": 0}
        return _Response(200, {"report": report})

    monkeypatch.setattr(schedule_check.requests, "post", post)

    assert schedule_check.trigger_check("http://api", "users") == 0
    assert calls == [("http://api/v1/checks", {"entity_type": "users"})]


def test_trigger_check_skips_when_already_running(monkeypatch):
    monkeypatch.setattr(schedule_check.requests, "post", lambda url, json, timeout: _Response(409))

    assert schedule_check.trigger_check("http://api", "users") == 0


def test_trigger_check_fails_on_server_error(monkeypatch):
    monkeypatch.setattr(
        schedule_check.requests, "post", lambda url, json, timeout: _Response(500, text="boom")
    )

    assert schedule_check.trigger_check("http://api", "users") == 1


def test_main_exits_when_server_is_down(monkeypatch):
    def get(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(schedule_check.requests, "get", get)

    assert schedule_check.main(["--base-url", "http://api/"]) == 1
