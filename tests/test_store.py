"""SqlAlchemyStore reads and the serialized check-and-insert."""
from __future__ import annotations

import threading
from datetime import date, datetime, time, timedelta, timezone
from time import sleep

from sqlalchemy.exc import OperationalError

from beautybook import create_app, store as store_module
from beautybook.errors import ConflictError, DataSourceError, ValidationError
from beautybook.extensions import db
from beautybook.models import ACTIVE_STATUSES, Appointment, BlockedClient, Provider
from beautybook.store import AppointmentCandidate, ClientRef, SqlAlchemyStore

DAY = date(2030, 6, 5)


def candidate(provider_id, start, end, **kwargs):
    return AppointmentCandidate(
        provider_id=provider_id,
        date=kwargs.pop("on", DAY),
        start_time=start,
        end_time=end,
        client=kwargs.pop("client", ClientRef(client_id=7)),
        **kwargs,
    )


class FailingSession:
    """Session stand-in whose queries fail like a dropped connection."""

    def __init__(self):
        self.rolled_back = False

    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    query = get = _fail

    def rollback(self):
        self.rolled_back = True


def test_missing_rows_are_ok_none(app, provider_id) -> None:
    store = SqlAlchemyStore(db.session)

    assert store.fetch_special_hours(provider_id, DAY).unwrap() is None
    assert store.fetch_cancellation_policy(provider_id).unwrap() is None
    assert store.fetch_business_hours(provider_id).unwrap() == []


def test_store_failure_is_err_not_empty(app) -> None:
    session = FailingSession()
    store = SqlAlchemyStore(session)

    result = store.fetch_business_hours(1)

    assert not result.is_ok
    assert isinstance(result.error, DataSourceError)
    assert result.error.retryable is True
    assert session.rolled_back is True


def test_insert_then_overlapping_insert_conflicts(app, provider_id) -> None:
    store = SqlAlchemyStore(db.session)

    first = store.insert_appointment(candidate(provider_id, time(10, 0), time(11, 0)))
    second = store.insert_appointment(candidate(provider_id, time(10, 30), time(11, 30)))

    assert first.is_ok
    assert isinstance(second.error, ConflictError)
    assert Appointment.query.count() == 1


def test_back_to_back_inserts_are_allowed(app, provider_id) -> None:
    store = SqlAlchemyStore(db.session)

    assert store.insert_appointment(candidate(provider_id, time(10, 0), time(11, 0))).is_ok
    assert store.insert_appointment(candidate(provider_id, time(11, 0), time(12, 0))).is_ok
    assert store.insert_appointment(candidate(provider_id, time(9, 0), time(10, 0))).is_ok


def test_cancelled_appointment_frees_the_slot(app, provider_id) -> None:
    store = SqlAlchemyStore(db.session)
    appointment_id = store.insert_appointment(candidate(provider_id, time(10, 0), time(11, 0))).unwrap()
    store.update_appointment_status(db.session.get(Appointment, appointment_id), "cancelled")

    assert store.insert_appointment(candidate(provider_id, time(10, 0), time(11, 0))).is_ok


def test_inverted_candidate_is_rejected(app, provider_id) -> None:
    result = SqlAlchemyStore(db.session).insert_appointment(
        candidate(provider_id, time(11, 0), time(10, 0))
    )
    assert isinstance(result.error, ValidationError)


def test_client_lookup_matches_id_or_phone(app, provider_id) -> None:
    store = SqlAlchemyStore(db.session)
    store.insert_appointment(candidate(provider_id, time(9, 0), time(9, 30),
                                       client=ClientRef(client_phone="+48500100200")))
    store.insert_appointment(candidate(provider_id, time(10, 0), time(10, 30),
                                       client=ClientRef(client_id=7)))
    db.session.add(BlockedClient(provider_id=provider_id, client_phone="+48500100200"))
    db.session.commit()

    both = ClientRef(client_id=7, client_phone="+48500100200")
    assert len(store.fetch_client_appointments(provider_id, both).unwrap()) == 2
    assert store.fetch_blocklist_entry(provider_id, both).unwrap() is not None
    assert store.fetch_blocklist_entry(provider_id, ClientRef(client_id=7)).unwrap() is None
    assert store.fetch_client_appointments(provider_id, ClientRef()).unwrap() == []


def test_concurrent_overlapping_inserts_admit_one(tmp_path, monkeypatch) -> None:
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'booking.db'}",
    })
    with app.app_context():
        db.create_all()
        db.session.add(Provider(provider_id=1, name="Studio Lumi", timezone="UTC"))
        db.session.commit()

    real_overlaps_any = store_module.overlaps_any

    def slow_overlaps_any(interval, booked):
        # Widen the gap between the overlap read and the insert.
        sleep(0.2)
        return real_overlaps_any(interval, booked)

    monkeypatch.setattr(store_module, "overlaps_any", slow_overlaps_any)

    barrier = threading.Barrier(2)
    results = []

    def book(start, end):
        with app.app_context():
            barrier.wait()
            results.append(SqlAlchemyStore(db.session).insert_appointment(
                candidate(1, start, end)
            ))

    threads = [
        threading.Thread(target=book, args=(time(10, 0), time(11, 0))),
        threading.Thread(target=book, args=(time(10, 30), time(11, 30))),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(results) == 2
    assert sum(1 for result in results if result.is_ok) == 1
    assert [type(result.error) for result in results if not result.is_ok] == [ConflictError]
    with app.app_context():
        assert Appointment.query.filter(Appointment.status.in_(ACTIVE_STATUSES)).count() == 1
        db.engine.dispose()


def test_lapsed_blocklist_entry_is_ignored(app, provider_id) -> None:
    now = datetime(2030, 6, 3, 8, 0, tzinfo=timezone.utc)
    db.session.add(BlockedClient(provider_id=provider_id, client_id=7,
                                 blocked_until=now - timedelta(hours=1)))
    db.session.add(BlockedClient(provider_id=provider_id, client_id=8,
                                 blocked_until=now + timedelta(days=2)))
    db.session.commit()
    store = SqlAlchemyStore(db.session)

    assert store.fetch_blocklist_entry(provider_id, ClientRef(client_id=7), now).unwrap() is None
    assert store.fetch_blocklist_entry(provider_id, ClientRef(client_id=7)).unwrap() is not None
    active = store.fetch_blocklist_entry(provider_id, ClientRef(client_id=8), now).unwrap()
    assert active.to_dict()["blocked_until"] == (now + timedelta(days=2)).isoformat()


def test_new_provider_takes_configured_slot_interval(app) -> None:
    app.config["DEFAULT_SLOT_INTERVAL_MINUTES"] = 15
    db.session.add(Provider(provider_id=2, name="Nail Bar", timezone="UTC"))
    db.session.commit()

    assert db.session.get(Provider, 2).slot_interval_minutes == 15
