"""
Structured operation outcome

Every public gateway operation returns an Outcome instead of raising,
so the dispatcher can route it to the response or error topic.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .exceptions import GatewayError


@dataclass
class Outcome:
    """Result of a gateway operation (success value or error message)"""
    result: Any = None
    error: str | None = None
    code: str | None = None
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, result: Any = None) -> "Outcome":
        return cls(result=result)

    @classmethod
    def failure(cls, error: GatewayError | str, code: str | None = None) -> "Outcome":
        """Build a failed outcome from an exception or a plain message"""
        if isinstance(error, GatewayError):
            return cls(error=error.message, code=code or error.code)
        return cls(error=str(error), code=code)
