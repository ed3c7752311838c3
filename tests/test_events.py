"""Tests for the violation and contact logging endpoints."""

import pytest


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"violationType": "tab-switch"},
        {"studentId": "stu-1"},
        {"studentId": "", "violationType": "tab-switch"},
        {"studentId": "stu-1", "violationType": "   "},
    ],
)
def test_violation_missing_fields_rejected(client, store, body):
    res = client.post("/api/log/violation", json=body)
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required fields"}
    assert store.collections.get("violations") is None


def test_violation_logged_with_server_timestamp(client, store):
    res = client.post("/api/log/violation", json={"studentId": "stu-1", "violationType": "tab-switch"})
    assert res.status_code == 200
    assert res.json() == {"message": "Violation logged successfully"}

    [doc] = store.collections["violations"]
    assert doc["studentId"] == "stu-1"
    assert doc["violationType"] == "tab-switch"
    assert doc["reviewed"] is False
    assert doc["evidenceUrl"] is None
    assert doc["timestamp"].endswith("Z")
    assert len(doc["timestamp"]) == len("2024-05-01T10:00:00.000Z")


def test_violation_keeps_client_timestamp_normalised(client, store):
    res = client.post(
        "/api/log/violation",
        json={
            "studentId": "stu-1",
            "violationType": "face-missing",
            "timestamp": "2024-05-01T12:00:00+02:00",
            "evidenceUrl": "https://cdn.school.edu/snap.png",
        },
    )
    assert res.status_code == 200
    [doc] = store.collections["violations"]
    assert doc["timestamp"] == "2024-05-01T10:00:00.000Z"
    assert doc["evidenceUrl"] == "https://cdn.school.edu/snap.png"


@pytest.mark.parametrize("blank", ["", "   ", None])
def test_violation_blank_timestamp_gets_server_time(client, store, blank):
    res = client.post(
        "/api/log/violation",
        json={"studentId": "stu-1", "violationType": "tab-switch", "timestamp": blank},
    )
    assert res.status_code == 200
    [doc] = store.collections["violations"]
    assert doc["timestamp"].endswith("Z")
    assert len(doc["timestamp"]) == len("2024-05-01T10:00:00.000Z")


def test_violation_numeric_student_id_stored_as_text(client, store):
    res = client.post("/api/log/violation", json={"studentId": 42, "violationType": "tab-switch"})
    assert res.status_code == 200
    [doc] = store.collections["violations"]
    assert doc["studentId"] == "42"


def test_violation_bad_timestamp_is_bad_request(client, store):
    res = client.post(
        "/api/log/violation",
        json={"studentId": "stu-1", "violationType": "x", "timestamp": "yesterday"},
    )
    assert res.status_code == 400
    assert "violations" not in store.collections


def test_violation_store_failure_is_server_error(client, store):
    store.fail = True
    res = client.post("/api/log/violation", json={"studentId": "stu-1", "violationType": "x"})
    assert res.status_code == 500
    assert res.json() == {"error": "Internal Server Error"}


def test_malformed_json_is_bad_request(client):
    res = client.post(
        "/api/log/violation",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400


def test_reports_newest_first_and_capped(client, store):
    for minute in range(60):
        store.append(
            "violations",
            {"studentId": "stu", "violationType": "x", "timestamp": f"2024-05-01T10:{minute:02d}:00.000Z", "reviewed": False},
        )
    res = client.get("/api/admin/reports")
    assert res.status_code == 200
    reports = res.json()
    assert len(reports) == 50
    stamps = [r["timestamp"] for r in reports]
    assert stamps == sorted(stamps, reverse=True)
    assert stamps[0] == "2024-05-01T10:59:00.000Z"
    assert all("id" in r for r in reports)


def test_reports_limit_can_be_widened(client, store):
    for minute in range(60):
        store.append("violations", {"timestamp": f"2024-05-01T10:{minute:02d}:00.000Z"})
    assert len(client.get("/api/admin/reports", params={"limit": 100}).json()) == 60
    assert client.get("/api/admin/reports", params={"limit": 0}).status_code == 400


def test_reports_store_failure(client, store):
    store.fail = True
    res = client.get("/api/admin/reports")
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to fetch reports"}


@pytest.mark.parametrize("missing", ["name", "email", "message"])
def test_contact_missing_fields_rejected(client, store, missing):
    body = {"name": "Ada", "email": "ada@school.edu", "message": "Camera froze"}
    body[missing] = ""
    res = client.post("/api/contact", json=body)
    assert res.status_code == 400
    assert "messages" not in store.collections


def test_contact_saved_with_server_fields(client, store):
    res = client.post(
        "/api/contact",
        json={"name": "Ada", "email": "ada@school.edu", "message": "Camera froze", "timestamp": "1999-01-01", "read": True},
    )
    assert res.status_code == 200
    assert res.json() == {"message": "Message sent successfully!"}
    [doc] = store.collections["messages"]
    assert doc["read"] is False
    assert doc["phone"] is None
    assert doc["timestamp"].startswith("20") and doc["timestamp"] != "1999-01-01"


def test_contact_duplicates_are_not_merged(client, store):
    body = {"name": "Ada", "email": "ada@school.edu", "phone": "555-0101", "message": "Hello"}
    assert client.post("/api/contact", json=body).status_code == 200
    assert client.post("/api/contact", json=body).status_code == 200
    docs = store.collections["messages"]
    assert len(docs) == 2
    assert docs[0]["id"] != docs[1]["id"]


def test_contact_store_failure(client, store):
    store.fail = True
    res = client.post("/api/contact", json={"name": "Ada", "email": "ada@school.edu", "message": "hi"})
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to send message"}


def _seed_messages(store, count):
    for second in range(count):
        store.append(
            "messages",
            {"name": "n", "email": "e", "message": "m", "timestamp": f"2024-05-01T10:00:{second:02d}.000Z", "read": False},
        )


def test_feedbacks_unbounded_by_default(client, store):
    _seed_messages(store, 55)
    res = client.get("/api/admin/feedbacks")
    assert res.status_code == 200
    feedbacks = res.json()
    assert len(feedbacks) == 55
    stamps = [f["timestamp"] for f in feedbacks]
    assert stamps == sorted(stamps, reverse=True)
    assert "X-Next-Cursor" not in res.headers


def test_feedbacks_paginate_with_cursor(client, store):
    _seed_messages(store, 5)
    seen = []
    params = {"limit": 2}
    while True:
        res = client.get("/api/admin/feedbacks", params=params)
        assert res.status_code == 200
        seen.extend(f["id"] for f in res.json())
        cursor = res.headers.get("X-Next-Cursor")
        if not cursor:
            break
        params = {"limit": 2, "cursor": cursor}
    assert len(seen) == 5
    assert len(set(seen)) == 5


def test_feedbacks_bad_cursor(client):
    res = client.get("/api/admin/feedbacks", params={"limit": 2, "cursor": "%%%"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid cursor"}
