"""
PawMatch - Animal Listing and Breeding Match Service

This package contains the match engine that creates, approves, rejects and
withdraws pairing proposals between animals of different owners, together
with the animal and match stores it runs against.
"""

__version__ = "1.0.0"
__author__ = "Lee Whieldon"

from .services.match_engine import MatchEngine

__all__ = ["MatchEngine"]
