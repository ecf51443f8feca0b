"""
Error taxonomy shared by the core and the CRUD services.

Storage-engine exceptions (asyncpg) are translated into these kinds in
`core/db.py`; `main.py` maps each kind to an HTTP status.
"""

from __future__ import annotations


class BeekeeperError(RuntimeError):
    pass


class InvalidRequestError(BeekeeperError):
    """Input is structurally valid but cannot be applied (e.g. empty update)."""


class NotFoundError(BeekeeperError):
    pass


class ConflictError(BeekeeperError):
    """A uniqueness constraint was violated, usually `hives.hive_name`."""


class StorageFailure(BeekeeperError):
    """Engine-level failure: connection loss, deadlock, lock timeout, ..."""
