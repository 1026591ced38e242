"""Scheduling-Engine: Generator, Vertretungen, Quotenabbau."""

from .errors import (
    AlreadyResolvedError,
    CapacityExceededError,
    NoCandidateFoundError,
    PersistenceError,
    SchedulingError,
    ValidationError,
)

__all__ = [
    "SchedulingError",
    "ValidationError",
    "CapacityExceededError",
    "NoCandidateFoundError",
    "PersistenceError",
    "AlreadyResolvedError",
]
