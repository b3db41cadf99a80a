"""Persistence layer for PawMatch."""

from .tables import metadata, animals, matches, build_engine, init_db
from .transaction import Transaction, TransactionScope
from .animal_store import AnimalStore
from .match_store import MatchStore

__all__ = [
    "metadata",
    "animals",
    "matches",
    "build_engine",
    "init_db",
    "Transaction",
    "TransactionScope",
    "AnimalStore",
    "MatchStore",
]
