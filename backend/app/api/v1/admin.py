"""
Admin dashboard endpoints
PIN unlock, booking status management, site content editing and version restore.
Every endpoint except unlock requires the X-Admin-Session header.
"""
from fastapi import APIRouter, Depends, Header, Query, WebSocket, WebSocketDisconnect, status
from typing import List, Optional
import asyncio
import logging

from app.api.deps import get_booking_repository, get_content_store
from app.core.errors import AdminLockedError, ReservationError, StoreUnavailableError
from app.core.security import AdminPinGate, AdminSession, get_admin_gate, require_admin_session
from app.schemas.admin import AdminSessionResponse, DashboardView, PinRequest
from app.schemas.booking import (
    BookingRecord,
    BookingStatus,
    BookingStatusUpdate,
    PaymentStatus,
    PaymentStatusUpdate,
)
from app.schemas.content import RestoreContentRequest, SaveContentRequest, SiteContentVersion
from app.services.admin.dashboard import AdminDashboard, build_view
from app.services.booking.repository import BookingRepository
from app.services.content.store import VERSION_DISPLAY_LIMIT, ContentStore

logger = logging.getLogger(__name__)

router = APIRouter()

# How often an idle live dashboard re-checks that its session is still unlocked
LIVE_SESSION_CHECK_SECONDS = 5.0


def get_dashboard(
    session: AdminSession = Depends(require_admin_session),
    repository: BookingRepository = Depends(get_booking_repository),
    store: ContentStore = Depends(get_content_store),
    gate: AdminPinGate = Depends(get_admin_gate),
) -> AdminDashboard:
    """Admin operations bound to the caller's session (no feeds opened)"""
    return AdminDashboard(repository, store, gate, session)


# ==================== Session ====================

@router.post("/session", response_model=AdminSessionResponse)
async def unlock(request: PinRequest, gate: AdminPinGate = Depends(get_admin_gate)):
    """Exchange the dashboard PIN for a session token"""
    session = gate.unlock(request.pin)
    return AdminSessionResponse(token=session.token, expires_at=session.expires_at)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def lock(
    x_admin_session: Optional[str] = Header(None, alias="X-Admin-Session"),
    gate: AdminPinGate = Depends(get_admin_gate),
):
    gate.lock(x_admin_session)


# ==================== Dashboard ====================

@router.get("/dashboard", response_model=DashboardView)
async def dashboard_snapshot(
    session: AdminSession = Depends(require_admin_session),
    repository: BookingRepository = Depends(get_booking_repository),
    store: ContentStore = Depends(get_content_store),
):
    """
    One-shot dashboard view. A failing feed is reported in `bookingError`
    or `versionError` instead of failing the whole request.
    """
    bookings, booking_error = [], None
    versions, version_error = [], None
    try:
        bookings = await asyncio.to_thread(repository.list_bookings)
    except StoreUnavailableError as e:
        booking_error = e.detail
    content = await asyncio.to_thread(store.get_content)
    try:
        versions = await asyncio.to_thread(store.list_versions)
    except StoreUnavailableError as e:
        version_error = e.detail
    return build_view(bookings, content, versions, booking_error, version_error)


@router.websocket("/dashboard/live")
async def dashboard_live(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    repository: BookingRepository = Depends(get_booking_repository),
    store: ContentStore = Depends(get_content_store),
    gate: AdminPinGate = Depends(get_admin_gate),
):
    """
    Push the folded dashboard view on every change to bookings, site content
    or content versions. Snapshot callbacks arrive on Firestore's listener
    threads and are handed to the event loop through a queue. The socket
    closes with 4401 once the admin session is locked or expires.
    """
    try:
        session = gate.verify(token)
    except AdminLockedError:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(view: DashboardView) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, view)

    dashboard = AdminDashboard(repository, store, gate, session, on_change=on_change)
    try:
        dashboard.open()
    except ReservationError as e:
        await websocket.send_json(e.to_dict())
        await websocket.close(code=1011)
        return

    logger.info("Admin live dashboard connected")
    receive = asyncio.ensure_future(websocket.receive())
    try:
        while True:
            update = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait(
                {receive, update}, timeout=LIVE_SESSION_CHECK_SECONDS, return_when=asyncio.FIRST_COMPLETED
            )
            if update not in done:
                update.cancel()

            if receive in done:
                if receive.result()["type"] == "websocket.disconnect":
                    logger.info("Admin live dashboard disconnected")
                    break
                # Client messages carry nothing; keep listening
                receive = asyncio.ensure_future(websocket.receive())

            try:
                gate.verify(session.token, refresh=False)
            except AdminLockedError:
                logger.info("Admin session locked, closing live dashboard")
                await websocket.close(code=4401)
                break

            if update in done:
                view = update.result()
                # Only the latest view matters
                while not queue.empty():
                    view = queue.get_nowait()
                await websocket.send_json(view.model_dump(mode="json", by_alias=True))
    except WebSocketDisconnect:
        logger.info("Admin live dashboard disconnected")
    finally:
        receive.cancel()
        dashboard.close()


# ==================== Bookings ====================

@router.get("/bookings", response_model=List[BookingRecord])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="paymentStatus"),
    session: AdminSession = Depends(require_admin_session),
    repository: BookingRepository = Depends(get_booking_repository),
):
    """All bookings, newest first"""
    return await asyncio.to_thread(repository.list_bookings, status_filter, payment_status)


@router.patch("/bookings/{booking_id}/status")
async def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    dashboard: AdminDashboard = Depends(get_dashboard),
):
    await asyncio.to_thread(dashboard.update_booking_status, booking_id, update.status)
    return {"id": booking_id, "status": update.status}


@router.patch("/bookings/{booking_id}/payment-status")
async def update_payment_status(
    booking_id: str,
    update: PaymentStatusUpdate,
    dashboard: AdminDashboard = Depends(get_dashboard),
):
    await asyncio.to_thread(dashboard.update_payment_status, booking_id, update.payment_status)
    return {"id": booking_id, "paymentStatus": update.payment_status}


# ==================== Site content ====================

@router.put("/content", status_code=status.HTTP_201_CREATED)
async def save_content(request: SaveContentRequest, dashboard: AdminDashboard = Depends(get_dashboard)):
    """
    Publish the edited content and record a version in one atomic write.
    Invalid fleet entries block the save (422) and nothing is written.
    """
    version_id = await asyncio.to_thread(
        dashboard.save_content, request.content, request.failed_images
    )
    return {"versionId": version_id}


@router.get("/content/versions", response_model=List[SiteContentVersion])
async def list_versions(
    limit: int = Query(VERSION_DISPLAY_LIMIT, ge=1, le=100),
    session: AdminSession = Depends(require_admin_session),
    store: ContentStore = Depends(get_content_store),
):
    return await asyncio.to_thread(store.list_versions, limit)


@router.post("/content/versions/{version_id}/restore", status_code=status.HTTP_201_CREATED)
async def restore_version(
    version_id: str,
    request: Optional[RestoreContentRequest] = None,
    dashboard: AdminDashboard = Depends(get_dashboard),
):
    """Republish a stored version; the restore itself is recorded as a new version"""
    snapshot = request.snapshot if request else None
    new_version_id = await asyncio.to_thread(dashboard.restore_content, version_id, snapshot)
    return {"versionId": new_version_id}
