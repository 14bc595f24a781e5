"""Scan progress and outcome types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ScanPhase(str, Enum):
    INSERTING = "inserting"
    UPDATING = "updating"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"  # another scan was already running
    DISABLED = "disabled"  # scanner.enabled = false


@dataclass(frozen=True)
class ScanEvent:
    """Progress tick, emitted after each batch settles.

    processed only ever grows within a phase; total is the phase's workload.
    """

    phase: ScanPhase
    processed: int
    total: int


@dataclass
class ScanReport:
    status: ScanStatus
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    albums_inserted: int = 0
    albums_updated: int = 0
    albums_failed: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    phase_durations_ms: dict[str, int] = field(default_factory=dict)

    @property
    def writes(self) -> int:
        return self.inserted + self.updated + self.albums_inserted + self.albums_updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "albums_inserted": self.albums_inserted,
            "albums_updated": self.albums_updated,
            "albums_failed": self.albums_failed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "phase_durations_ms": dict(self.phase_durations_ms),
        }
