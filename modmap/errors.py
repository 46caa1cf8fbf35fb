from __future__ import annotations

from typing import List, Tuple


class ModmapError(Exception):
    """Base class for failures reported by the modmap core."""


class EmptyDatasetError(ModmapError, ValueError):
    """No usable records survived filtering; nothing can be rendered."""


class LayoutPreconditionError(ModmapError, ValueError):
    """The hierarchy cannot be packed (non-positive weight, cycle, bad size)."""


class FetchExhaustedError(ModmapError, RuntimeError):
    def __init__(self, message: str, attempts: List[Tuple[str, str]] | None = None) -> None:
        super().__init__(message)
        self.attempts: List[Tuple[str, str]] = list(attempts or [])
