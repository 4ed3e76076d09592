"""Booking repository - Database operations for bookings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingType


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_bookings(db: Session, workspace_id: str, status: Optional[str] = None) -> list[Booking]:
        query = db.query(Booking).filter(Booking.workspace_id == workspace_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.scheduled_at.asc()).all()

    @staticmethod
    def get_booking_by_id(db: Session, workspace_id: str, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id, Booking.workspace_id == workspace_id).first()

    @staticmethod
    def get_booking_type(db: Session, workspace_id: str, booking_type_id: str) -> Optional[BookingType]:
        return (
            db.query(BookingType)
            .filter(BookingType.id == booking_type_id, BookingType.workspace_id == workspace_id)
            .first()
        )

    @staticmethod
    def create_booking(db: Session, workspace_id: str, **booking_data) -> Booking:
        booking = Booking(workspace_id=workspace_id, **booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()
