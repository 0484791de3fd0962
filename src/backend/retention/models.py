from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SweeperState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    STOPPED = "Stopped"


@dataclass
class SweepReport:
    files_deleted: int = 0
    dirs_removed: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_deleted": self.files_deleted,
            "dirs_removed": self.dirs_removed,
            "errors": self.errors,
        }
