# Data-access failure taxonomy surfaced to callers of the query gateway.
# "Not found" is not an error here: point lookups return None instead.
from __future__ import annotations

from sqlalchemy import exc as sa_exc


class DataAccessError(Exception):
    """Base class for failures reported by the relational store.

    The engine's own message is kept verbatim; the original exception is
    chained as ``__cause__`` by :func:`translate`.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConstraintViolation(DataAccessError):
    """Unique, foreign-key, NOT NULL or check constraint rejected a write."""


class ConnectivityFailure(DataAccessError):
    """Pool or engine unreachable, or the statement failed to execute."""


class InvalidParameter(DataAccessError):
    """A caller-supplied value cannot be bound to its column type."""


def _engine_message(exc: BaseException) -> str:
    # DBAPIError wraps the driver exception; its message is the useful part
    orig = getattr(exc, "orig", None)
    if orig is not None and str(orig):
        return str(orig)
    return str(exc) or exc.__class__.__name__


def translate(exc: BaseException) -> DataAccessError:
    """Map a SQLAlchemy/driver exception onto the data-access taxonomy."""
    if isinstance(exc, DataAccessError):
        return exc
    if isinstance(exc, sa_exc.IntegrityError):
        return ConstraintViolation(_engine_message(exc))
    return ConnectivityFailure(_engine_message(exc))
