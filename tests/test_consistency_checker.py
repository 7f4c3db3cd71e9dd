import pytest

from app.consistency.checker import CHECKER, ConsistencyChecker, ScanAlreadyRunningError
from app.consistency.rules import RuleSet
from app.store import STORE


def _user(**fields):
    return STORE.create_document("users", fields)


def test_clean_collection_produces_empty_report():
    _user(name="Jane", email="jane@example.com", age=25, role="admin", isActive=True)
    _user(name="Luke", email="luke@example.com")

    report = CHECKER.check_collection("users")

    assert report.entity_type == "users"
    assert report.total_documents == 2
    assert report.inconsistencies_found == 0
    assert report.repairs_applied == 0
    assert report.documents_deleted == 0
    assert report.details == []
    assert report.errors == []
    assert report.duration_ms >= 0
    assert CHECKER.is_active() is False


def test_repaired_document_is_written_back():
    bob = _user(name="Bob", age="42")

    report = CHECKER.check_collection("users")

    assert report.inconsistencies_found == 1
    assert report.repairs_applied == 1
    assert report.details == [
        {
            "document_id": bob["id"],
            "issue": "email: set_default",
            "action": "repaired",
            "old_value": None,
            "new_value": "missing@example.com",
        }
    ]
    stored = STORE.get_document(bob["id"])
    assert stored["fields"] == {"name": "Bob", "age": "42", "email": "missing@example.com"}


def test_unrepaired_issues_are_reported_with_descriptions():
    quentin = _user(name="Quentin", email="quentin@example.com", age="abc")

    report = CHECKER.check_collection("users")

    assert report.inconsistencies_found == 1
    assert report.repairs_applied == 0
    assert report.details == [
        {
            "document_id": quentin["id"],
            "issue": "unrepaired_issues",
            "action": "none",
            "details": "Field 'age' should be number but is string and cannot be parsed",
        }
    ]
    assert STORE.get_document(quentin["id"])["fields"]["age"] == "abc"


def test_irreparable_document_is_deleted():
    orders = {"orders": RuleSet(entity_type="orders", allowed_values={"status": ("open", "closed")})}
    checker = ConsistencyChecker(STORE, rules=orders)
    lost = STORE.create_document("orders", {"status": "lost"})
    kept = STORE.create_document("orders", {"status": "open"})

    report = checker.check_collection("orders")

    assert report.documents_deleted == 1
    assert report.details == [
        {
            "document_id": lost["id"],
            "issue": "irreparable_document",
            "action": "deleted",
            "details": "Field 'status' has invalid value 'lost'. Allowed: open, closed",
        }
    ]
    assert STORE.get_document(lost["id"]) is None
    assert STORE.get_document(kept["id"]) is not None
    assert STORE.get_status("orders")["is_consistent"] is True


def test_numeric_value_matching_allowed_integer_is_kept():
    tiers = {"tiers": RuleSet(entity_type="tiers", allowed_values={"level": (1, 2)})}
    checker = ConsistencyChecker(STORE, rules=tiers)
    gold = STORE.create_document("tiers", {"level": 2.0})

    report = checker.check_collection("tiers")

    assert report.inconsistencies_found == 0
    assert report.documents_deleted == 0
    assert STORE.get_document(gold["id"])["fields"] == {"level": 2.0}


def test_fully_repairable_collection_ends_consistent():
    _user(name="Bob", age=30)
    _user(name="Eve", email="eve@example.com", role="superuser")
    _user(name="Frank", email="frank@example.com", age=-5)
    _user(name="Grace", email="grace@example.com", age=200, role="root")

    report = CHECKER.check_collection("users")

    assert report.inconsistencies_found == 5
    assert report.repairs_applied == 5
    assert report.documents_deleted == 0
    status = STORE.get_status("users")
    assert status["is_consistent"] is True
    assert status["all_replicas_consistent"] is True
    assert status["last_report_id"] == report.id
    assert status["last_consistent_time"] is not None

    second = CHECKER.check_collection("users")
    assert second.inconsistencies_found == 0


def test_per_document_failure_does_not_abort_scan(monkeypatch):
    broken = _user(name="Bob")
    healthy = _user(name="Eve", email="eve@example.com", role="superuser")
    real_update = STORE.update_document

    def update_document(document_id, fields):
        if document_id == broken["id"]:
            raise RuntimeError("write rejected")
        return real_update(document_id, fields)

    monkeypatch.setattr(STORE, "update_document", update_document)

    report = CHECKER.check_collection("users")

    assert report.errors == [f"Error processing document {broken['id']}: write rejected"]
    assert report.repairs_applied == 1
    assert STORE.get_document(healthy["id"])["fields"]["role"] == "user"
    assert STORE.get_status("users")["is_consistent"] is False


def test_scan_level_failure_still_returns_report_and_releases_flag(monkeypatch):
    def list_documents(entity_type):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(STORE, "list_documents", list_documents)

    report = CHECKER.check_collection("users")

    assert report.errors == ["Consistency check failed: connection refused"]
    assert report.total_documents == 0
    assert CHECKER.is_active() is False
    assert STORE.get_status("users") is None

    monkeypatch.undo()
    assert CHECKER.check_collection("users").errors == []


def test_unexpected_base_exception_still_releases_flag(monkeypatch):
    def list_documents(entity_type):
        raise KeyboardInterrupt

    monkeypatch.setattr(STORE, "list_documents", list_documents)

    with pytest.raises(KeyboardInterrupt):
        CHECKER.check_collection("users")
    assert CHECKER.is_active() is False


def test_second_scan_is_rejected_while_one_is_running(monkeypatch):
    _user(name="Bob", age="42")
    real_list = STORE.list_documents
    rejected = []

    def list_documents(entity_type):
        assert CHECKER.is_active() is True
        for checker in (CHECKER, ConsistencyChecker(STORE)):
            with pytest.raises(ScanAlreadyRunningError):
                checker.check_collection("orders")
            rejected.append(checker)
        return real_list(entity_type)

    monkeypatch.setattr(STORE, "list_documents", list_documents)

    report = CHECKER.check_collection("users")

    assert len(rejected) == 2
    assert report.errors == []
    assert report.inconsistencies_found == 1
    assert report.repairs_applied == 1


def test_unknown_entity_type_reports_synthetic_issue():
    widget = STORE.create_document("widgets", {"size": 3})

    report = CHECKER.check_collection("widgets")

    assert report.inconsistencies_found == 1
    assert report.details == [
        {
            "document_id": widget["id"],
            "issue": "unrepaired_issues",
            "action": "none",
            "details": "No validation rules found for collection: widgets",
        }
    ]
    assert STORE.get_status("widgets")["is_consistent"] is False


def test_report_to_dict_is_plain_data():
    _user(name="Bob")

    payload = CHECKER.check_collection("users").to_dict()

    assert set(payload) == {
        "id",
        "timestamp",
        "entity_type",
        "total_documents",
        "inconsistencies_found",
        "repairs_applied",
        "documents_deleted",
        "errors",
        "details",
        "duration_ms",
    }
    assert isinstance(payload["timestamp"], str)
