"""Custom exception hierarchy for the volume journal."""


class JournalError(Exception):
    """Base exception for all volume journal errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


# --- Data ---
class DataError(JournalError):
    """Input data could not be interpreted."""


class StatementFormatError(DataError):
    """Statement text has no usable header or body."""


# --- Persistence ---
class PersistenceError(JournalError):
    """Trade or volume-day store failure."""


class StoreUnavailableError(PersistenceError):
    """The backing store cannot be reached."""


# --- Gates ---
class GateInvariantError(JournalError):
    """A gate result violated the pass-implies-flags invariant."""
