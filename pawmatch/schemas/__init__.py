"""Data schemas and models for PawMatch."""

from .animal_data import Animal, AnimalCreate, AnimalChanges, AnimalUpdate, Sex
from .match_data import Match, MatchDetail

__all__ = [
    "Animal",
    "AnimalCreate",
    "AnimalChanges",
    "AnimalUpdate",
    "Sex",
    "Match",
    "MatchDetail",
]
