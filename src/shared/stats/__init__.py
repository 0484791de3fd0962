from __future__ import annotations

from .counter import AdvisoryCounter

__all__ = [
    "AdvisoryCounter",
]
