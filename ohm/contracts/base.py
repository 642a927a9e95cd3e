"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- All types are frozen dataclasses for immutability guarantee
- Store failures travel as Error values, not exceptions
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every error state that can reach a client is enumerated here.
    """
    # Store errors
    STORE_UNAVAILABLE = auto()
    INVALID_QUERY = auto()

    # Query outcome errors
    NO_MATCH = auto()

    # Record errors (never fatal, the record is dropped)
    MALFORMED_RECORD = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and inspected.
    """
    code: ErrorCode
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


class MalformedRecordError(ValueError):
    """A stored document could not be decoded into a TrafficRecord."""


# =============================================================================
# TRAFFIC RECORDS
# =============================================================================

PROJECTED_FIELDS: Tuple[str, ...] = ("method", "host", "path")


@dataclass(frozen=True)
class TrafficRecord:
    """
    One observed HTTP exchange, projected to the fields the topology needs.

    Any field may be absent. Absence reduces what the record contributes to
    the graph; it is never an error.
    """
    method: Optional[str] = None
    host: Optional[str] = None
    path: Optional[str] = None

    @staticmethod
    def from_document(document: Mapping[str, Any]) -> TrafficRecord:
        """
        Project a stored capture document onto method/host/path.

        Missing keys and None values decode as absent. Any other non-string
        value makes the whole document undecodable.
        """
        if not isinstance(document, Mapping):
            raise MalformedRecordError(
                f"expected a mapping, got {type(document).__name__}"
            )

        values = {}
        for name in PROJECTED_FIELDS:
            value = document.get(name)
            if value is not None and not isinstance(value, str):
                raise MalformedRecordError(
                    f"field '{name}' must be a string, got {type(value).__name__}"
                )
            values[name] = value
        return TrafficRecord(**values)

    def to_dict(self) -> dict:
        return {"method": self.method, "host": self.host, "path": self.path}


# =============================================================================
# QUERY RESULTS
# =============================================================================

@dataclass(frozen=True)
class TrafficQueryResult:
    """
    IMMUTABLE store query result.

    Contains explicit success/failure state, never implicit.
    Empty results are distinct from errors. Documents that failed to decode
    are counted in `dropped` and do not fail the query.
    """
    success: bool
    records: Tuple[TrafficRecord, ...] = ()
    error: Optional[Error] = None
    dropped: int = 0

    @property
    def is_empty(self) -> bool:
        return self.success and not self.records

    @staticmethod
    def ok(records: Tuple[TrafficRecord, ...], dropped: int = 0) -> TrafficQueryResult:
        return TrafficQueryResult(success=True, records=tuple(records), dropped=dropped)

    @staticmethod
    def failure(error: Error) -> TrafficQueryResult:
        return TrafficQueryResult(success=False, error=error)
