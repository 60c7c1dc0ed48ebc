class BillingError(Exception):
    """Base class for billing failures surfaced to callers."""


class InvoiceValidationError(BillingError, ValueError):
    pass


class InvoiceNotFoundError(BillingError, LookupError):
    pass


class StoreError(BillingError):
    """A data-store failure; the driver message is passed through unchanged."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @classmethod
    def from_exc(cls, exc: Exception) -> "StoreError":
        orig = getattr(exc, "orig", None)
        return cls(str(orig) if orig is not None else str(exc))
