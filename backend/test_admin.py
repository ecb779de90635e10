"""
Admin PIN gate and dashboard tests
"""
import pytest

from app.core.errors import AdminLockedError, StoreUnavailableError
from app.core.security import ADMIN_ACTOR, AdminPinGate
from app.services.admin.dashboard import AdminDashboard, build_view
from app.services.booking.repository import BookingRepository
from app.services.content.store import ContentStore


@pytest.fixture
def gate():
    return AdminPinGate("1844", ttl_minutes=30)


@pytest.fixture
def repository(mock_db):
    return BookingRepository(mock_db)


@pytest.fixture
def store(mock_db):
    return ContentStore(mock_db)


@pytest.fixture
def dashboard(repository, store, gate):
    views = []
    board = AdminDashboard(repository, store, gate, gate.unlock("1844"), on_change=views.append)
    board.views = views
    yield board
    board.close()


# ==================== PIN gate ====================

def test_correct_pin_unlocks(gate):
    session = gate.unlock("1844")
    assert session.actor == ADMIN_ACTOR
    assert gate.verify(session.token).token == session.token


@pytest.mark.parametrize("pin", ["", "0000", "18440", "abcd", None])
def test_wrong_pin_stays_locked(gate, pin):
    with pytest.raises(AdminLockedError):
        gate.unlock(pin)


def test_lock_revokes_session(gate):
    session = gate.unlock("1844")
    gate.lock(session.token)
    with pytest.raises(AdminLockedError):
        gate.verify(session.token)


def test_expired_session():
    gate = AdminPinGate("1844", ttl_minutes=0)
    session = gate.unlock("1844")
    with pytest.raises(AdminLockedError):
        gate.verify(session.token)


# ==================== Dashboard view ====================

def test_aggregates(repository, store, filled_form, catalog):
    first = repository.create_booking(filled_form.to_record_data())
    second = repository.create_booking(filled_form.to_record_data())
    repository.create_booking(filled_form.to_record_data())
    repository.update_booking_status(first, "confirmed")
    repository.update_payment_status(first, "paid")
    repository.update_payment_status(second, "paid")

    view = build_view(repository.list_bookings(), catalog, [])

    assert view.pending_count == 2
    assert view.paid_revenue == 480.0
    assert view.paid_revenue_display == "$480.00"


def test_open_folds_all_three_feeds(dashboard, catalog):
    dashboard.open()

    assert dashboard.subscribed
    assert len(dashboard.views) == 3
    view = dashboard.view
    assert view.bookings == []
    assert view.content == catalog
    assert view.versions == []


def test_live_updates(dashboard, repository, filled_form):
    dashboard.open()
    repository.create_booking(filled_form.to_record_data())

    assert dashboard.view.pending_count == 1
    assert dashboard.views[-1].pending_count == 1


def test_fold_is_idempotent(dashboard, repository, filled_form):
    dashboard.open()
    repository.create_booking(filled_form.to_record_data())
    bookings = repository.list_bookings()

    dashboard.apply_bookings(bookings)
    once = dashboard.view
    dashboard.apply_bookings(bookings)

    assert dashboard.view == once


def test_close_stops_updates(dashboard, repository, filled_form):
    dashboard.open()
    dashboard.close()
    emitted = len(dashboard.views)

    repository.create_booking(filled_form.to_record_data())

    assert not dashboard.subscribed
    assert len(dashboard.views) == emitted


def test_open_during_outage(dashboard, mock_db):
    mock_db.simulate_outage()
    with pytest.raises(StoreUnavailableError):
        dashboard.open()
    assert not dashboard.subscribed


# ==================== Writes ====================

def test_writes_require_live_session(repository, store, gate, filled_form):
    session = gate.unlock("1844")
    board = AdminDashboard(repository, store, gate, session)
    booking_id = repository.create_booking(filled_form.to_record_data())

    board.update_booking_status(booking_id, "confirmed")
    gate.lock(session.token)

    with pytest.raises(AdminLockedError):
        board.update_booking_status(booking_id, "completed")
    assert repository.get_booking(booking_id).status == "confirmed"


def test_content_writes_are_attributed(dashboard, store, catalog):
    version_id = dashboard.save_content(catalog)
    restored = dashboard.restore_content(version_id)

    versions = store.list_versions()
    assert {v.created_by for v in versions} == {ADMIN_ACTOR}
    assert versions[0].id == restored
