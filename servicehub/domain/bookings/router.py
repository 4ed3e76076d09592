"""Booking router - FastAPI endpoints for booking operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...database import get_db
from ...dependencies import get_automation, get_workspace_id, require_active_workspace
from ...models import Booking
from .schemas import BookingCreate, BookingResponse, BookingUpdate, PublicBookingCreate
from .service import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])
public_router = APIRouter(prefix="/public", tags=["Public Booking"])


def get_booking_service(
    db: Session = Depends(get_db), automation: AutomationContext = Depends(get_automation)
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, automation)


def to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        contactId=booking.contact_id,
        bookingTypeId=booking.booking_type_id,
        conversationId=booking.conversation_id,
        status=booking.status,
        scheduledAt=booking.scheduled_at,
        notes=booking.notes,
        created_at=booking.created_at,
    )


@router.get("", response_model=list[BookingResponse])
async def get_bookings(
    status: Optional[str] = Query(None),
    workspace_id: str = Depends(get_workspace_id),
    service: BookingService = Depends(get_booking_service),
):
    return [to_response(b) for b in service.get_bookings(workspace_id, status)]


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    workspace_id: str = Depends(get_workspace_id),
    service: BookingService = Depends(get_booking_service),
):
    """Create a booking; confirmation, reminder and form automation are scheduled"""
    return to_response(await service.create_booking(workspace_id, data))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    workspace_id: str = Depends(get_workspace_id),
    service: BookingService = Depends(get_booking_service),
):
    return to_response(service.get_booking(workspace_id, booking_id))


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    data: BookingUpdate,
    workspace_id: str = Depends(get_workspace_id),
    service: BookingService = Depends(get_booking_service),
):
    return to_response(await service.update_booking(workspace_id, booking_id, data))


@router.delete("/{booking_id}", status_code=204)
async def delete_booking(
    booking_id: str,
    workspace_id: str = Depends(get_workspace_id),
    service: BookingService = Depends(get_booking_service),
):
    service.delete_booking(workspace_id, booking_id)


@public_router.post("/{workspace_id}/bookings", response_model=BookingResponse, status_code=201)
async def create_public_booking(
    workspace_id: str,
    data: PublicBookingCreate,
    db: Session = Depends(get_db),
    service: BookingService = Depends(get_booking_service),
):
    """Public booking page submission (no staff authentication)"""
    require_active_workspace(db, workspace_id)
    return to_response(await service.create_public_booking(workspace_id, data))
