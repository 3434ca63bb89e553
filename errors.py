class ReconciliationError(Exception):
    """Base class for failures raised by the reconciliation core."""


class ValidationError(ReconciliationError):
    """Neither an email nor a phone number was supplied."""


class StorageError(ReconciliationError):
    """Reading from or writing to the contact store failed."""


class InconsistentStateError(ReconciliationError):
    """The surviving primary was missing when its cluster was re-read."""
