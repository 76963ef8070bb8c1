"""
Health models for the resilient store.

These Pydantic models describe the observable state of the durable
backend and whether the volatile backend holds data the durable one
never saw.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from docvault.models.entities import utcnow


class HealthState(str, Enum):
    """Durable backend state as seen by the resilient store."""
    HEALTHY = "healthy"          # Last durable call succeeded
    DEGRADED = "degraded"        # Recent failures, still attempting every call
    UNAVAILABLE = "unavailable"  # Failure threshold reached, calls skipped until cooldown ends
    MEMORY_ONLY = "memory_only"  # No durable backend configured


class StoreHealth(BaseModel):
    """
    Snapshot of a store's health.

    ``diverged`` is true while any entity created by a fallback write is
    still stored in the volatile backend. Nothing replays those writes to
    the durable backend.
    """
    state: HealthState = Field(
        ...,
        description="Durable backend state"
    )
    durable_attempts_allowed: bool = Field(
        ...,
        description="Whether the next call will try the durable backend"
    )
    diverged: bool = Field(
        default=False,
        description="Volatile backend holds writes the durable backend never received"
    )
    consecutive_failures: int = Field(default=0, ge=0)
    total_failures: int = Field(default=0, ge=0)
    total_fallbacks: int = Field(default=0, ge=0)
    diverged_entities: Dict[str, int] = Field(
        default_factory=dict,
        description="Count of volatile-only entities per entity kind"
    )
    volatile_entities: Dict[str, int] = Field(
        default_factory=dict,
        description="Rows held by the volatile backend per entity kind"
    )
    last_error: Optional[str] = None
    last_failed_operation: Optional[str] = None
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="Snapshot timestamp"
    )
