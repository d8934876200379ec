"""
Exceptions raised by the offer engine.

Absent data (no target, empty ledger) is never an error; malformed data is.
"""


class OfferEngineError(Exception):
    """Base class for engine errors."""


class MalformedRecordError(OfferEngineError, ValueError):
    """An offer or transaction field is present but cannot be interpreted."""

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field}: {reason} (got {value!r})")
