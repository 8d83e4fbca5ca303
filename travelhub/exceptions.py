"""Domain errors raised by the service layer.

Routers translate these into HTTP responses; messages on the ValueError
subclasses are safe to show to the caller.
"""


class BookingPolicyError(ValueError):
    """Well-formed request that violates a booking rule (e.g. past departure)"""


class QRCodeFormatError(ValueError):
    """Scanned payload is not base64-encoded JSON of a known shape"""


class QRSignatureError(ValueError):
    """Scanned payload failed authentication"""


class ShareConflictError(ValueError):
    """Trip is already shared with the address, or the share cap is reached"""


class TripAccessError(PermissionError):
    """Caller may not act on the trip group"""


class PersistenceError(RuntimeError):
    """Storage failure; full detail has been logged server-side"""
