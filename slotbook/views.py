"""
Read-side views derived from the slot and booking collections.

These are pure functions over snapshots: they take whatever the store
returned (ORM rows or any object with the same attributes) and never touch
the database themselves. Each view is a single pass over a set or a dict,
so cost grows with slots + bookings, not their product.
"""


def bookable_slots(slots, booked_slot_ids):
    """Slots no booking references, marked available."""
    booked = {str(slot_id) for slot_id in booked_slot_ids}
    return [
        {
            'id': str(slot.id),
            'date': slot.date,
            'time': slot.time,
            'isAvailable': True,
        }
        for slot in slots
        if str(slot.id) not in booked
    ]


def slots_with_status(slots, bookings):
    """Every slot annotated with ``isBooked`` and the booking's client contact."""
    clients = {}
    for booking in bookings:
        if booking.slot_id is None:
            continue
        clients[str(booking.slot_id)] = {
            'clientName': booking.client_name or '',
            'clientEmail': booking.client_email or '',
            'clientPhone': booking.client_phone or '',
        }

    result = []
    for slot in slots:
        client = clients.get(str(slot.id))
        result.append({
            'id': str(slot.id),
            'date': slot.date or '',
            'time': slot.time or '',
            'isBooked': client is not None,
            'booking': client,
        })
    return result
