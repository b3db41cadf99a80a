"""Services for PawMatch."""

from .animal_service import AnimalService
from .match_engine import MatchEngine, AnimalRepository, MatchRepository, TransactionRunner

__all__ = [
    "AnimalService",
    "MatchEngine",
    "AnimalRepository",
    "MatchRepository",
    "TransactionRunner",
]
