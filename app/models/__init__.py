"""Database models."""

from app.models.booking import Booking, BookingExtension, BookingTransaction
from app.models.fleet import Car, CarStatus, Customer, Driver
from app.models.payment import Payment

__all__ = [
    # Directory
    "Car",
    "CarStatus",
    "Customer",
    "Driver",
    # Booking
    "Booking",
    "BookingExtension",
    "BookingTransaction",
    # Payment
    "Payment",
]
