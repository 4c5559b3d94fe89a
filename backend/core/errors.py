"""
core/errors.py
--------------
Error taxonomy for the skill engine.

Only two conditions are raised as exceptions:
  - LoadTimeoutError   — a single load attempt ran out of time (retryable)
  - EmptyRegistryError — no usable descriptors after a load

MalformedSkillError and BudgetTooSmallError are returned as values:
the loader records malformed sources and keeps going, and the assembler
hands back an empty selection plus a warning when nothing fits.

Owner: Core team
Depends on: nothing
Depended on by: skills/*, core/*, api/routes, scripts/skillctl
"""


class SkillEngineError(Exception):
    """Base class for every error the engine produces."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MalformedSkillError(SkillEngineError):
    """A single source whose front matter could not be turned into a descriptor."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")

    def to_dict(self) -> dict:
        return {"path": self.path, "reason": self.reason}


class LoadTimeoutError(SkillEngineError):
    """Raised when collecting or parsing sources exceeds the load timeout."""

    def __init__(self, timeout: float, completed: int = 0):
        self.timeout = timeout
        self.completed = completed
        super().__init__(
            f"Skill load did not finish within {timeout:.1f}s "
            f"({completed} source(s) processed)."
        )


class EmptyRegistryError(SkillEngineError):
    """Raised when a load produces zero usable descriptors."""

    def __init__(self, errors: list[MalformedSkillError] | None = None):
        self.errors = list(errors or [])
        detail = f" ({len(self.errors)} malformed source(s))" if self.errors else ""
        super().__init__(f"No usable skill descriptors were loaded{detail}.")


class BudgetTooSmallError(SkillEngineError):
    """
    Returned (not raised) when the free part of the budget cannot hold even
    the smallest candidate. max_bytes is that free part (max - used).
    """

    def __init__(self, max_bytes: int, smallest_bytes: int):
        self.max_bytes = max_bytes
        self.smallest_bytes = smallest_bytes
        super().__init__(
            f"Budget of {max_bytes} bytes is smaller than the smallest "
            f"candidate ({smallest_bytes} bytes); no skill fits."
        )

    def to_dict(self) -> dict:
        return {
            "type": "BudgetTooSmallError",
            "message": self.message,
            "maxBytes": self.max_bytes,
            "smallestBytes": self.smallest_bytes,
        }
