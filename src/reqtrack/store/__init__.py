"""Persistence layer for reqtrack."""

from ._store import AdvisoryLocks, Store, Transaction, translate_error

__all__ = ["AdvisoryLocks", "Store", "Transaction", "translate_error"]
