"""Shared types for chppsync.

This module defines enums used by both the sync engine and the store.
"""

from __future__ import annotations

from enum import Enum


class GenerationStatus(str, Enum):
    """Status of a sync generation (one download run).

    Readers only trust data tagged with a COMPLETED generation.
    """

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class EntryStatus(str, Enum):
    """Outcome of a single endpoint fetch within a generation."""

    SUCCESS = "success"
    FAILED = "failed"
