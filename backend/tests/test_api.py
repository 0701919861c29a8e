from datetime import datetime, timedelta, timezone

from kindling.config import settings
from kindling.models import Reservation
from kindling.services import booking_service
from tests.helpers import day

OWNER = {"X-Owner-Id": "owner-1"}
SPONSOR_A = {"X-Sponsor-Id": "sponsor-a", "X-Sponsor-Name": "Acme"}
SPONSOR_B = {"X-Sponsor-Id": "sponsor-b", "X-Sponsor-Name": "Globex"}
PROCESSOR = {"X-Payment-Signature": settings.payment_webhook_secret}


def _setup_slot(client, **slot_fields):
    site = client.post("/sites", json={"name": "Blog", "url": "https://blog.example.com"}, headers=OWNER)
    assert site.status_code == 201
    body = {"position": "BANNER", "price_usd_cents_per_day_full_share": 1000, "max_sponsors": 1}
    body.update(slot_fields)
    slot = client.post(f"/sites/{site.json()['id']}/slots", json=body, headers=OWNER)
    assert slot.status_code == 201
    return slot.json()


def _book(client, slot_id, start, end, headers=SPONSOR_A, **extra):
    body = {
        "ad_slot_id": slot_id,
        "creative": "https://ads.example.com/banner.png",
        "starts_at": day(start).isoformat(),
        "ends_at": day(end).isoformat(),
        **extra,
    }
    return client.post("/sponsorships", json=body, headers=headers)


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_site_endpoints_require_owner(client):
    assert client.get("/sites").status_code == 401
    assert client.post("/sites", json={"name": "x", "url": "https://x"}).status_code == 401


def test_duplicate_site_url_conflicts(client):
    _setup_slot(client)
    resp = client.post("/sites", json={"name": "Again", "url": "https://blog.example.com"}, headers=OWNER)
    assert resp.status_code == 409
    assert resp.json()["error"] == "url_already_exists"


def test_list_sites_includes_slots(client):
    slot = _setup_slot(client)
    sites = client.get("/sites", headers=OWNER).json()
    assert [s["ad_slots"][0]["id"] for s in sites] == [slot["id"]]


def test_get_slot_shows_terms_and_site(client):
    slot = _setup_slot(client, max_sponsors=3, allow_custom_share=True)
    resp = client.get(f"/slots/{slot['id']}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["max_sponsors"] == 3
    assert body["allow_custom_share"] is True
    assert body["site"]["url"] == "https://blog.example.com"
    assert client.get("/slots/999").status_code == 404


def test_booking_then_overlap_then_boundary(client):
    slot = _setup_slot(client)
    first = _book(client, slot["id"], 1, 10)
    assert first.status_code == 201
    sponsorship = first.json()["sponsorship"]
    assert sponsorship["status"] == "PENDING"
    assert sponsorship["share_pct"] == 100
    assert sponsorship["price_usd_cents"] == 9000
    assert sponsorship["total_price_usd"] == 90.0

    clash = _book(client, slot["id"], 5, 15, headers=SPONSOR_B)
    assert clash.status_code == 409
    assert clash.json() == {
        "error": "capacity_exceeded",
        "message": "Slot is full for the requested time period",
        "available": 0,
        "requested": 100,
    }

    assert _book(client, slot["id"], 10, 20, headers=SPONSOR_B).status_code == 201


def test_booking_by_days(client):
    slot = _setup_slot(client, max_sponsors=2)
    resp = client.post(
        "/sponsorships",
        json={"ad_slot_id": slot["id"], "creative": "<b>Hi</b>", "days": 7, "starts_at": day(0).isoformat()},
        headers=SPONSOR_A,
    )
    assert resp.status_code == 201
    assert resp.json()["sponsorship"]["price_usd_cents"] == 3500


def test_booking_validation_errors(client):
    slot = _setup_slot(client)
    assert client.post("/sponsorships", json={"ad_slot_id": slot["id"], "creative": "x"}).status_code == 401
    empty_window = _book(client, slot["id"], 3, 3)
    assert empty_window.status_code == 400
    assert empty_window.json()["error"] == "invalid_input"
    blank = _book(client, slot["id"], 0, 1, creative="   ")
    assert blank.status_code == 400
    assert _book(client, 999, 0, 1).status_code == 404


def test_booking_inactive_slot(client):
    slot = _setup_slot(client)
    assert client.patch(f"/slots/{slot['id']}", json={"active": False}, headers=OWNER).status_code == 200
    resp = _book(client, slot["id"], 0, 1)
    assert resp.status_code == 409
    assert resp.json()["error"] == "slot_inactive"


def test_patch_slot_by_other_owner_is_not_found(client):
    slot = _setup_slot(client)
    resp = client.patch(f"/slots/{slot['id']}", json={"active": False}, headers={"X-Owner-Id": "intruder"})
    assert resp.status_code == 404


def test_availability_endpoint(client):
    slot = _setup_slot(client, max_sponsors=4, allow_custom_share=True)
    _book(client, slot["id"], 0, 10, share_pct=60)
    resp = client.get(
        f"/slots/{slot['id']}/availability",
        params={"starts_at": day(2).isoformat(), "ends_at": day(3).isoformat()},
    )
    assert resp.status_code == 200
    assert resp.json()["available_share"] == 40


def test_confirm_then_widget_serves_creative(client):
    slot = _setup_slot(client)
    now = datetime.now(timezone.utc)
    booked = client.post(
        "/sponsorships",
        json={
            "ad_slot_id": slot["id"],
            "creative": "https://ads.example.com/banner.png",
            "starts_at": (now - timedelta(days=1)).isoformat(),
            "ends_at": (now + timedelta(days=30)).isoformat(),
        },
        headers=SPONSOR_A,
    ).json()["sponsorship"]

    # PENDING sponsors are never served
    assert client.get("/widget", params={"slot": slot["id"]}).json()["has_active_sponsors"] is False

    confirmed = client.post(f"/sponsorships/{booked['id']}/confirm", headers=PROCESSOR)
    assert confirmed.status_code == 200
    assert confirmed.json()["sponsorship"]["status"] == "ACTIVE"

    served = client.get("/widget", params={"slot": slot["id"]})
    assert served.headers["cache-control"] == "no-store"
    assert served.json() == {
        "has_active_sponsors": True,
        "sponsorship": {
            "id": booked["id"],
            "sponsor_id": "sponsor-a",
            "sponsor_name": "Acme",
            "creative": "https://ads.example.com/banner.png",
        },
    }


def test_widget_unknown_slot(client):
    assert client.get("/widget", params={"slot": 999}).status_code == 404


def test_payment_failure_releases_share(client):
    slot = _setup_slot(client)
    booked = _book(client, slot["id"], 0, 10).json()["sponsorship"]
    failed = client.post(f"/sponsorships/{booked['id']}/fail", headers=PROCESSOR)
    assert failed.json()["sponsorship"]["status"] == "CANCELLED"
    assert _book(client, slot["id"], 0, 10, headers=SPONSOR_B).status_code == 201
    again = client.post(f"/sponsorships/{booked['id']}/confirm", headers=PROCESSOR)
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_transition"


def test_cancel_own_sponsorship_only(client):
    slot = _setup_slot(client)
    booked = _book(client, slot["id"], 0, 10).json()["sponsorship"]
    assert client.post(f"/sponsorships/{booked['id']}/cancel", headers=SPONSOR_B).status_code == 404
    resp = client.post(f"/sponsorships/{booked['id']}/cancel", headers=SPONSOR_A)
    assert resp.json()["sponsorship"]["status"] == "CANCELLED"


def test_delete_site(client):
    slot = _setup_slot(client)
    sites = client.get("/sites", headers=OWNER).json()
    assert client.delete(f"/sites/{sites[0]['id']}", headers=OWNER).json() == {"success": True}
    assert client.get(f"/slots/{slot['id']}").status_code == 404


def test_payment_webhooks_require_signature(client, session_factory, monkeypatch):
    slot = _setup_slot(client)
    booked = _book(client, slot["id"], 0, 10).json()["sponsorship"]
    for path in ("confirm", "fail"):
        assert client.post(f"/sponsorships/{booked['id']}/{path}").status_code == 401
        wrong = client.post(f"/sponsorships/{booked['id']}/{path}", headers={"X-Payment-Signature": "forged"})
        assert wrong.status_code == 401
        # a sponsor's own identity is not a payment signature
        assert client.post(f"/sponsorships/{booked['id']}/{path}", headers=SPONSOR_A).status_code == 401

    monkeypatch.setattr(settings, "payment_webhook_secret", "")
    unset = client.post(f"/sponsorships/{booked['id']}/confirm", headers={"X-Payment-Signature": ""})
    assert unset.status_code == 401

    db = session_factory()
    try:
        assert db.get(Reservation, booked["id"]).status == "PENDING"
    finally:
        db.close()


def test_oversized_duration_is_bad_request(client):
    slot = _setup_slot(client)
    huge = {"ad_slot_id": slot["id"], "creative": "https://ads.example.com/b.png", "days": 5_000_000}
    resp = client.post("/sponsorships", json=huge, headers=SPONSOR_A)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_input"
    anchored = client.post("/sponsorships", json={**huge, "starts_at": day(0).isoformat()}, headers=SPONSOR_A)
    assert anchored.status_code == 400

    too_long = client.post(
        "/sponsorships",
        json={
            "ad_slot_id": slot["id"],
            "creative": "https://ads.example.com/b.png",
            "starts_at": day(0).isoformat(),
            "ends_at": day(settings.max_booking_days + 1).isoformat(),
        },
        headers=SPONSOR_A,
    )
    assert too_long.status_code == 400

    assert client.get(f"/slots/{slot['id']}/availability", params={"days": 5_000_000}).status_code == 400
    near_end = client.get(
        f"/slots/{slot['id']}/availability",
        params={"starts_at": "9999-12-30T00:00:00+00:00", "days": 5},
    )
    assert near_end.status_code == 400


def test_availability_with_only_an_end_starts_now(client):
    slot = _setup_slot(client)
    ends_at = datetime.now(timezone.utc) + timedelta(days=2)
    resp = client.get(f"/slots/{slot['id']}/availability", params={"ends_at": ends_at.isoformat()})
    assert resp.status_code == 200
    assert resp.json()["available_share"] == 100


def test_refused_checkout_is_payment_required(client, monkeypatch):
    class Refusing:
        def start_checkout(self, reservation):
            raise RuntimeError("card declined")

    slot = _setup_slot(client)
    with monkeypatch.context() as m:
        m.setattr(booking_service, "get_payment_processor", lambda: Refusing())
        resp = _book(client, slot["id"], 0, 10)
    assert resp.status_code == 402
    assert resp.json()["error"] == "payment_refused"
    # the refused booking released its share
    assert _book(client, slot["id"], 0, 10, headers=SPONSOR_B).status_code == 201
