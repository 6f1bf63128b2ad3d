"""Tests for the public HTTP API."""

from fastapi.testclient import TestClient

from ziora.api.app import create_app
from ziora.containers import AppContainer
from tests.conftest import FakePushSender, make_photo

USER = {"X-User-Id": "me"}


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def test_health(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_select_returns_photo_and_honours_exclusions(container: AppContainer) -> None:
    repository = container.photo_service.repository
    repository.add(  # type: ignore[attr-defined]
        make_photo("mine", 0.2, owner_id="me"),
        make_photo("seen", 0.4),
        make_photo("fresh", 0.6),
    )
    client = _client(container)

    for _ in range(10):
        response = client.post(
            "/gacha/select", headers=USER, json={"excluded_ids": ["seen"]}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "found"
        assert body["photo"]["id"] == "fresh"
        assert body["source"] == "random"


def test_select_excludes_caller_photos_regardless_of_body(
    container: AppContainer,
) -> None:
    container.photo_service.repository.add(  # type: ignore[attr-defined]
        make_photo("mine", 0.5, owner_id="me")
    )
    client = _client(container)

    response = client.post(
        "/gacha/select",
        headers=USER,
        json={"excluded_owner_id": "someone-else"},
    )
    anonymous = client.post("/gacha/select", json={})

    assert response.json()["status"] == "no_candidate"
    assert anonymous.status_code == 401


def test_select_reports_no_candidate(container: AppContainer) -> None:
    response = _client(container).post("/gacha/select", headers=USER, json={})

    assert response.status_code == 200
    assert response.json() == {"status": "no_candidate", "photo": None, "source": None}


def test_select_failure_is_service_unavailable(container: AppContainer) -> None:
    container.photo_service.repository.fail_sample = True  # type: ignore[attr-defined]

    response = _client(container).post("/gacha/select", headers=USER, json={})

    assert response.status_code == 503


def test_photo_lookup_and_existence(container: AppContainer) -> None:
    container.photo_service.repository.add(make_photo("p1", 0.3))  # type: ignore[attr-defined]
    client = _client(container)

    found = client.get("/photos/p1")
    missing = client.get("/photos/nope")
    exists = client.post("/photos/exists", json={"ids": ["p1", "nope"]})
    latest = client.get("/photos/latest")

    assert found.status_code == 200
    assert found.json()["location"]["country_code"] == "JP"
    assert missing.status_code == 404
    assert exists.json() == {"ids": ["p1"]}
    assert latest.json()["photo"]["id"] == "p1"


def test_requests_without_identity_are_rejected(container: AppContainer) -> None:
    response = _client(container).post("/photos/p1/like", json={})

    assert response.status_code == 401


def test_upload_and_list_own_photos(container: AppContainer) -> None:
    client = _client(container)

    response = client.post(
        "/photos",
        headers=USER,
        data={
            "location": '{"country": "Japan", "region": "Tokyo", '
            '"city": "Minato", "country_code": "JP"}',
            "date_text": "2025/01/01",
        },
        files={"image": ("photo.jpg", b"jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 201
    photo_id = response.json()["id"]
    listing = client.get("/users/me/photos", headers=USER)
    assert [photo["id"] for photo in listing.json()["photos"]] == [photo_id]
    assert listing.json()["photos"][0]["date_text"] == "2025/01/01"


def test_upload_from_blocked_region_is_forbidden(container: AppContainer) -> None:
    response = _client(container).post(
        "/photos",
        headers=USER,
        data={
            "location": '{"country": "North Korea", "region": "", '
            '"city": "Pyongyang", "country_code": "KP"}'
        },
        files={"image": ("photo.jpg", b"jpeg", "image/jpeg")},
    )

    assert response.status_code == 403
    assert response.json()["detail"] == (
        "Service is not available in your region (KP)."
    )


def test_upload_with_invalid_location_is_rejected(container: AppContainer) -> None:
    response = _client(container).post(
        "/photos",
        headers=USER,
        data={"location": "not-json"},
        files={"image": ("photo.jpg", b"jpeg", "image/jpeg")},
    )

    assert response.status_code == 400


def test_owner_edits_and_deletes(container: AppContainer) -> None:
    container.photo_service.repository.add(  # type: ignore[attr-defined]
        make_photo("p1", 0.3, owner_id="me")
    )
    client = _client(container)

    forbidden = client.patch(
        "/photos/p1/location",
        headers={"X-User-Id": "intruder"},
        json={"country": "Japan", "region": "Tokyo", "city": "Minato"},
    )
    edited = client.patch(
        "/photos/p1/location",
        headers=USER,
        json={"country": "Japan", "region": "Tokyo", "city": "Minato"},
    )
    deleted = client.delete("/photos/p1", headers=USER)

    assert forbidden.status_code == 400
    assert forbidden.json()["detail"] == "You can only change your own photos."
    assert edited.status_code == 200
    assert deleted.status_code == 200
    assert client.get("/photos/p1").status_code == 404


def test_like_unlike_and_impression(
    container: AppContainer, push_sender: FakePushSender
) -> None:
    container.photo_service.repository.add(make_photo("p1", 0.3))  # type: ignore[attr-defined]
    container.notification_service.save_push_target("owner-1", "device", "en")
    client = _client(container)

    liked = client.post(
        "/photos/p1/like", headers=USER, json={"liker_country": "France"}
    )
    again = client.post("/photos/p1/like", headers=USER, json={})
    impression = client.post("/photos/p1/impression", headers=USER)
    unliked = client.delete("/photos/p1/like", headers=USER)

    assert liked.json() == {"liked": True}
    assert again.json() == {"liked": False}
    assert impression.status_code == 200
    assert unliked.json() == {"removed": True}
    record = client.get("/photos/p1").json()
    assert record["like_count"] == 0
    assert record["impression_count"] == 1
    assert len(push_sender.messages) == 1


def test_report_block_and_push_settings(container: AppContainer) -> None:
    client = _client(container)

    report = client.post("/photos/p1/report", headers=USER, json={"reason": "spam"})
    block = client.post(
        "/users/me/blocks", headers=USER, json={"blocked_user_id": "troll"}
    )
    self_block = client.post(
        "/users/me/blocks", headers=USER, json={"blocked_user_id": "me"}
    )
    push = client.put(
        "/users/me/push", headers=USER, json={"token": "device", "language": "ko"}
    )

    assert report.status_code == 200
    assert block.status_code == 200
    assert self_block.status_code == 400
    assert push.status_code == 200
    target = container.notification_service.user_repository.get_push_target("me")
    assert target is not None and target.language == "ko"
