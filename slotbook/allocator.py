"""
Reservation allocator: the only code that turns a slot id into a booking.

Writes use a two-layer check. A pre-check query gives a friendly early
``Conflict``; the store's unique constraints are what actually make the
write safe when two requests race, so an ``IntegrityError`` on commit is
folded into the same ``Conflict``. No in-process lock is held across
store I/O.
"""

import logging
import re
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import views
from .errors import Conflict, InvalidInput, NotFound, Unavailable
from .models import Booking, Slot

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_RE = re.compile(r'^\d{2}:\d{2}$')

STORE_DOWN = 'Database not connected. Please try again later.'
MAX_ID = 2 ** 63 - 1


def _parse_id(value):
    """Wire ids are opaque digit strings; rows are keyed by integers."""
    if isinstance(value, bool):
        key = None
    elif isinstance(value, int):
        key = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        key = int(value)
    else:
        key = None
    if key is None or not 0 <= key <= MAX_ID:
        return None
    return key


def _clean(value):
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidInput('Fields must be strings')
    return value.strip()


def validate_date(value):
    value = _clean(value)
    if not value:
        raise InvalidInput('Date and time are required')
    if not DATE_RE.match(value):
        raise InvalidInput(f"Invalid date '{value}', expected YYYY-MM-DD")
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise InvalidInput(f"Invalid date '{value}', expected YYYY-MM-DD")
    return value


def validate_time(value):
    value = _clean(value)
    if not value:
        raise InvalidInput('Date and time are required')
    if not TIME_RE.match(value):
        raise InvalidInput(f"Invalid time '{value}', expected HH:MM")
    try:
        datetime.strptime(value, '%H:%M')
    except ValueError:
        raise InvalidInput(f"Invalid time '{value}', expected HH:MM")
    return value


class ReservationAllocator:
    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    # region lookups
    def _get_slot(self, slot_id):
        return self.session.get(Slot, slot_id)

    def _slot_at(self, date, time):
        return Slot.query.filter_by(date=date, time=time).first()

    def _booking_for_slot(self, slot_id):
        return Booking.query.filter_by(slot_id=slot_id).first()

    def _slot_exists(self, slot_id):
        try:
            return self.session.query(Slot.id).filter_by(id=slot_id).first() is not None
        except SQLAlchemyError as e:
            raise self._store_failure('checking slot', e)

    def _store_failure(self, action, exc):
        self.session.rollback()
        logger.error(f"Store error while {action}: {exc}")
        return Unavailable(STORE_DOWN)
    # endregion

    # region writes
    def create_slot(self, date, time):
        date = validate_date(date)
        time = validate_time(time)

        try:
            if self._slot_at(date, time) is not None:
                raise Conflict('This slot already exists', Conflict.SLOT_EXISTS)

            slot = Slot(date=date, time=time, is_available=True)
            self.session.add(slot)
            self.session.commit()
            logger.info(f"Slot {slot.id} published for {date} {time}")
        except IntegrityError:
            self.session.rollback()
            logger.warning(f"Duplicate slot {date} {time} rejected by constraint")
            raise Conflict('This slot already exists', Conflict.SLOT_EXISTS)
        except SQLAlchemyError as e:
            raise self._store_failure('creating slot', e)

        return slot

    def delete_slot(self, slot_id):
        key = _parse_id(slot_id)
        if key is None:
            raise NotFound('Slot not found')

        try:
            if self._booking_for_slot(key) is not None:
                raise Conflict('Cannot delete a slot that has a booking',
                               Conflict.SLOT_HAS_BOOKING)

            slot = self._get_slot(key)
            if slot is None:
                raise NotFound('Slot not found')

            self.session.delete(slot)
            self.session.commit()
        except IntegrityError:
            # A booking landed between the check and the delete
            self.session.rollback()
            logger.warning(f"Slot {key} gained a booking before it could be deleted")
            raise Conflict('Cannot delete a slot that has a booking',
                           Conflict.SLOT_HAS_BOOKING)
        except SQLAlchemyError as e:
            raise self._store_failure('deleting slot', e)

        logger.info(f"Slot {key} deleted")

    def create_booking(self, slot_id, client_name, client_email, client_phone=None):
        client_name = _clean(client_name)
        client_email = _clean(client_email)
        client_phone = _clean(client_phone)
        if slot_id is None or slot_id == '' or not client_name or not client_email:
            raise InvalidInput('Slot id, client name and email are required')

        key = _parse_id(slot_id)
        if key is None:
            raise NotFound('Slot not found')

        try:
            slot = self._get_slot(key)
            if slot is None:
                raise NotFound('Slot not found')

            if self._booking_for_slot(key) is not None:
                raise Conflict('This slot is already booked', Conflict.SLOT_BOOKED)

            booking = Booking(
                slot_id=slot.id,
                date=slot.date,
                time=slot.time,
                client_name=client_name,
                client_email=client_email,
                client_phone=client_phone,
            )
            self.session.add(booking)
            self.session.commit()
            logger.info(f"Booking {booking.id} created for slot {key} ({booking.date} {booking.time})")
        except IntegrityError:
            self.session.rollback()
            # The foreign key fails too if the slot was deleted meanwhile
            if not self._slot_exists(key):
                logger.warning(f"Slot {key} was deleted before booking could be stored")
                raise NotFound('Slot not found')
            logger.warning(f"Concurrent booking for slot {key} rejected by constraint")
            raise Conflict('This slot is already booked', Conflict.SLOT_BOOKED)
        except SQLAlchemyError as e:
            raise self._store_failure('creating booking', e)

        return booking

    def cancel_booking(self, booking_id):
        key = _parse_id(booking_id)
        if key is None:
            raise NotFound('Booking not found')

        try:
            booking = self.session.get(Booking, key)
            if booking is None:
                raise NotFound('Booking not found')
            slot_id = booking.slot_id
            self.session.delete(booking)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._store_failure('cancelling booking', e)

        logger.info(f"Booking {key} cancelled, slot {slot_id} is free again")
    # endregion

    # region reads
    def list_all_slots(self):
        try:
            return Slot.query.order_by(Slot.date, Slot.time).all()
        except SQLAlchemyError as e:
            raise self._store_failure('listing slots', e)

    def list_bookable_slots(self):
        try:
            slots = Slot.query.order_by(Slot.date, Slot.time).all()
            booked_ids = [row.slot_id for row in self.session.query(Booking.slot_id).all()]
        except SQLAlchemyError as e:
            raise self._store_failure('listing bookable slots', e)
        return views.bookable_slots(slots, booked_ids)

    def list_all_slots_with_status(self):
        try:
            slots = Slot.query.order_by(Slot.date, Slot.time).all()
            bookings = Booking.query.all()
        except SQLAlchemyError as e:
            raise self._store_failure('listing slot status', e)
        return views.slots_with_status(slots, bookings)

    def list_bookings(self):
        try:
            return Booking.query.order_by(Booking.date, Booking.time).all()
        except SQLAlchemyError as e:
            raise self._store_failure('listing bookings', e)
    # endregion

    def store_connected(self):
        try:
            self.session.execute(text('SELECT 1'))
            return True
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Health check failed: {e}")
            return False
