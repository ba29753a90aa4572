"""Ledger: job market and provider registry collaborator."""

from duckmesh.ledger.base import Ledger
from duckmesh.ledger.memory import InMemoryLedger

__all__ = [
    "InMemoryLedger",
    "Ledger",
]
