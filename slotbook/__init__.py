"""
Slot reservation service.

An operator publishes bookable time slots, clients claim exactly one slot
each, and a slot can back at most one booking.
"""
from .app import create_app

__all__ = ["create_app"]
