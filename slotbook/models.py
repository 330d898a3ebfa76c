import sqlite3
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE RESTRICT unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


# Turno publicado por el operador
class Slot(db.Model):
    __tablename__ = 'slots'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False)     # Ej: "2024-06-01"
    time = db.Column(db.String(5), nullable=False)      # Ej: "14:30"
    # Informational only; availability is the absence of a Booking
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('date', 'time', name='uq_slot_date_time'),
    )

    def to_dict(self):
        return {
            'id': str(self.id),
            'date': self.date,
            'time': self.time,
            'isAvailable': True if self.is_available is None else self.is_available,
        }

    def __repr__(self):
        return f"<Slot {self.id} {self.date} {self.time}>"


# Reserva de un cliente sobre exactamente un turno
class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.Integer, primary_key=True)
    slot_id = db.Column(
        db.Integer,
        db.ForeignKey('slots.id', ondelete='RESTRICT'),
        nullable=False,
    )
    # Copies of the slot's values taken when the booking is made
    date = db.Column(db.String(10), nullable=False)
    time = db.Column(db.String(5), nullable=False)
    client_name = db.Column(db.String(200), nullable=False)
    client_email = db.Column(db.String(200), nullable=False)
    client_phone = db.Column(db.String(50), nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('slot_id', name='uq_booking_slot'),
        db.Index('ix_booking_date_time', 'date', 'time'),
    )

    def to_dict(self):
        return {
            'id': str(self.id),
            'slotId': str(self.slot_id),
            'date': self.date,
            'time': self.time,
            'clientName': self.client_name,
            'clientEmail': self.client_email,
            'clientPhone': self.client_phone or '',
            'createdAt': format_timestamp(self.created_at),
        }

    def __repr__(self):
        return f"<Booking {self.id} slot={self.slot_id}>"


def format_timestamp(value):
    """ISO-8601 UTC with millisecond precision, e.g. ``2024-06-01T09:00:00.000Z``."""
    if value is None:
        return None
    return value.isoformat(timespec='milliseconds') + 'Z'
