from __future__ import annotations

from typing import Optional


class CrossLinkUserError(Exception):
    """An instructional error intended for end users.

    Use this for mistakes in how the library is called (invalid config, unreadable sources, etc.).
    Heuristic outcomes such as "no relationship found" are never errors.
    It carries a short error code and an optional hint to guide the user.
    """

    def __init__(self, code: str, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.hint:
            return base + f"\nHint: {self.hint}"
        return base


class DetectionCancelled(CrossLinkUserError):
    """Raised at a yield point when the caller's cancel flag is set."""

    def __init__(self, message: str = "Relationship detection was cancelled.", *, hint: Optional[str] = None):
        super().__init__("E_DETECT_CANCELLED", message, hint=hint)
