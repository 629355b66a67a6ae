"""Error taxonomy shared by the calendar services and the API layer."""


class EntryValidationError(ValueError):
    """Raised before any write when an entry's fields are inconsistent."""


class RecurrenceRuleError(EntryValidationError):
    """Raised when a recurrence rule cannot be stored or expanded."""


class EntryNotFoundError(LookupError):
    pass


class EntryPermissionError(PermissionError):
    pass


class PersistenceError(RuntimeError):
    """A create/update/delete did not reach the database. Never retried here."""
