class StoreError(RuntimeError):
    """Raised when the clinic store cannot read or write its data."""
    pass


class AppointmentNotFound(LookupError):
    """Raised when a status change targets an appointment id that does not exist."""
    pass


class InvalidBookingRequest(ValueError):
    """Raised when a manual booking payload fails domain validation."""
    pass
