from kindling.models import Reservation, ReservationStatus
from kindling.services.booking_service import admit, cancel_reservation, confirm_reservation
from kindling.services.expiry_service import expire_reservations
from tests.helpers import day, days


def test_sweep_expires_only_ended_holding_reservations(db, make_slot):
    slot = make_slot(max_sponsors=0)
    ended_active = admit(db, slot.id, days(0, 2), creative="https://a.example.com", sponsor_id="a")
    confirm_reservation(db, ended_active.id)
    ended_pending = admit(db, slot.id, days(0, 3), creative="https://b.example.com", sponsor_id="b")
    ended_cancelled = admit(db, slot.id, days(0, 1), creative="https://c.example.com", sponsor_id="c")
    cancel_reservation(db, ended_cancelled.id)
    running = admit(db, slot.id, days(2, 9), creative="https://d.example.com", sponsor_id="d")

    assert expire_reservations(db, now=day(3)) == 2

    status = {r.id: r.status for r in db.query(Reservation).all()}
    assert status[ended_active.id] == ReservationStatus.EXPIRED.value
    assert status[ended_pending.id] == ReservationStatus.EXPIRED.value
    assert status[ended_cancelled.id] == ReservationStatus.CANCELLED.value
    assert status[running.id] == ReservationStatus.PENDING.value
    assert expire_reservations(db, now=day(3)) == 0
