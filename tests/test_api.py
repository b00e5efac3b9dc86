from datetime import datetime, timedelta, timezone

import config
import queries


def _future(days=7):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _create_club(client, name="Retro Arcade", description="8-bit fans"):
    return client.post("/clubs", json={"name": name, "description": description})


def _create_event(client, club_id, title="Pac-Man Night", days=7):
    return client.post(
        f"/clubs/{club_id}/events",
        json={"title": title, "description": "High scores only", "event_date": _future(days)},
    )


def test_root_and_health(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["data"]["documentation"] == "/api-docs"

    health = client.get("/api/health")
    assert health.status_code == 200
    assert health.json()["success"] is True
    assert "timestamp" in health.json()["data"]


def test_create_club(client):
    response = _create_club(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Club created successfully"
    assert body["data"]["name"] == "Retro Arcade"
    assert isinstance(body["data"]["id"], int)


def test_duplicate_club_is_a_conflict(client):
    _create_club(client)
    response = _create_club(client)

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": "Conflict",
        "message": "A club with this name already exists",
    }

    names = [c["name"] for c in client.get("/clubs").json()["data"]]
    assert names == ["Retro Arcade"]


def test_create_club_trims_input(client):
    response = _create_club(client, name="  Speedrun Society  ", description="  frames  ")
    assert response.json()["data"]["name"] == "Speedrun Society"
    assert response.json()["data"]["description"] == "frames"


def test_create_club_validation_error(client):
    response = client.post("/clubs", json={"name": "Retro#1", "description": "x"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Bad Request"
    assert body["message"] == "Validation failed"
    assert body["field"] == "name"
    assert body["validationError"].startswith("Club name contains invalid characters")


def test_create_club_with_malformed_body(client):
    response = client.post("/clubs", content="not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["field"] == "body"


def test_search_clubs(client):
    _create_club(client)
    _create_club(client, name="Board Game Guild", description="Catan nights")

    found = client.get("/clubs", params={"search": "Retro"}).json()
    assert [c["name"] for c in found["data"]] == ["Retro Arcade"]

    by_description = client.get("/clubs", params={"search": "Catan"}).json()
    assert [c["name"] for c in by_description["data"]] == ["Board Game Guild"]

    empty = client.get("/clubs", params={"search": "Zzzz"})
    assert empty.status_code == 200
    assert empty.json() == {"success": True, "data": []}

    everything = client.get("/clubs", params={"search": ""}).json()
    assert [c["name"] for c in everything["data"]] == ["Board Game Guild", "Retro Arcade"]


def test_club_list_hides_timestamps(client):
    _create_club(client)
    club = client.get("/clubs").json()["data"][0]
    assert set(club) == {"id", "name", "description"}


def test_search_rejects_invalid_characters(client):
    response = client.get("/clubs", params={"search": "<script>"})

    assert response.status_code == 400
    assert response.json()["field"] == "search"


def test_create_and_list_events(client):
    club_id = _create_club(client).json()["data"]["id"]

    later = _create_event(client, club_id, title="Later", days=20)
    sooner = _create_event(client, club_id, title="Sooner", days=2)

    assert later.status_code == 201
    assert later.json()["message"] == "Event created successfully"
    assert sooner.json()["data"]["title"] == "Sooner"

    events = client.get(f"/clubs/{club_id}/events").json()["data"]
    assert [e["title"] for e in events] == ["Sooner", "Later"]
    assert set(events[0]) == {"id", "title", "description", "event_date"}
    assert datetime.fromisoformat(events[0]["event_date"]).tzinfo is not None


def test_event_for_unknown_club_is_not_found(client):
    response = _create_event(client, 9999)

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "Not Found",
        "message": "Club with ID 9999 not found",
    }


def test_events_of_unknown_club_is_not_found(client):
    response = client.get("/clubs/9999/events")

    assert response.status_code == 404
    assert response.json()["message"] == "Club with ID 9999 not found"


def test_invalid_club_id(client):
    response = client.get("/clubs/abc/events")

    assert response.status_code == 400
    assert response.json()["field"] == "id"
    assert response.json()["validationError"] == "Club ID must be a positive integer"


def test_club_id_beyond_integer_range_is_rejected(client):
    response = client.get("/clubs/99999999999999999999/events")

    assert response.status_code == 400
    assert response.json()["field"] == "id"
    assert response.json()["validationError"] == "Club ID must be a positive integer"


def test_id_is_checked_before_the_payload(client):
    response = client.post("/clubs/0/events", json={})
    assert response.json()["field"] == "id"


def test_past_event_is_rejected(client):
    club_id = _create_club(client).json()["data"]["id"]

    response = client.post(
        f"/clubs/{club_id}/events",
        json={"title": "Old news", "description": "x", "event_date": "2001-01-01T00:00:00Z"},
    )

    assert response.status_code == 400
    assert response.json()["field"] == "event_date"
    assert response.json()["validationError"] == "Event date cannot be in the past"


def test_paginated_events(client):
    club_id = _create_club(client).json()["data"]["id"]
    for day in (1, 2, 3):
        _create_event(client, club_id, title=f"Day {day}", days=day)

    page = client.get(f"/clubs/{club_id}/events", params={"limit": 2, "offset": 1}).json()

    assert [e["title"] for e in page["data"]] == ["Day 2", "Day 3"]
    assert page["pagination"] == {"total": 3, "limit": 2, "offset": 1, "hasMore": False}

    bad = client.get(f"/clubs/{club_id}/events", params={"limit": "lots"})
    assert bad.status_code == 400
    assert bad.json()["field"] == "limit"


def test_upcoming_events(client):
    club_id = _create_club(client).json()["data"]["id"]
    _create_event(client, club_id, title="Soon", days=3)
    _create_event(client, club_id, title="Far", days=90)

    body = client.get(f"/clubs/{club_id}/events/upcoming", params={"days": 30}).json()

    assert body["days"] == 30
    assert [e["title"] for e in body["data"]] == ["Soon"]
    assert client.get("/clubs/9999/events/upcoming").status_code == 404


def test_deleted_club_takes_its_events(client, db):
    club_id = _create_club(client).json()["data"]["id"]
    _create_event(client, club_id)

    queries.delete_club(db, club_id)

    assert queries.list_events_by_club(db, club_id) == []
    assert client.get(f"/clubs/{club_id}/events").status_code == 404


def test_unknown_route(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["message"] == "Route not found"


def test_internal_errors_hide_details_outside_development(client, monkeypatch):
    def broken(db, search_term=None):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(queries, "list_clubs", broken)
    response = client.get("/clubs")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal Server Error",
        "message": "Error fetching clubs",
    }


def test_internal_errors_show_details_in_development(client, monkeypatch):
    def broken(db, search_term=None):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(queries, "list_clubs", broken)
    monkeypatch.setattr(config, "ENVIRONMENT", "development")
    body = client.get("/clubs").json()

    assert body["errorDetails"] == "database is locked"
    assert "RuntimeError" in body["stack"]


def test_api_key_is_enforced_when_configured(client, monkeypatch):
    monkeypatch.setattr(config, "API_SECRET_KEY", "s3cret")

    denied = client.get("/clubs")
    assert denied.status_code == 403
    assert denied.json()["error"] == "Forbidden"

    allowed = client.get("/clubs", headers={"X-API-Key": "s3cret"})
    assert allowed.status_code == 200


def test_openapi_docs_are_served(client):
    schema = client.get("/openapi.json").json()

    assert schema["info"]["title"] == "Game Club API"
    assert "/clubs/{club_id}/events" in schema["paths"]
