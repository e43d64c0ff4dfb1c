"""
Domain errors for the check-in leaderboard.
"""


class CheckinError(Exception):
    """Base class for all check-in leaderboard errors."""

    status = 500


class EntryNotFound(CheckinError):
    """Referenced entry does not exist."""

    status = 404

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Entry {entry_id} not found")
        self.entry_id = entry_id


class InvalidInput(CheckinError):
    """Caller supplied unusable input (e.g. a blank name)."""

    status = 400


class NotPrivileged(CheckinError):
    """A privileged operation was invoked by an unprivileged caller."""

    status = 401


class DuplicateOrigin(CheckinError):
    """The (entry, origin) pair already has a ledger row."""

    status = 409

    def __init__(self, entry_id: int, origin: str) -> None:
        super().__init__(f"Origin {origin} already scanned entry {entry_id}")
        self.entry_id = entry_id
        self.origin = origin


class StorageUnavailable(CheckinError):
    """The database could not be reached or written."""

    status = 503
