"""
Driver base class

A driver is a named capability object the dispatcher can route
commands to. It publishes an explicit table of wire operation
names to coroutines returning an Outcome.
"""

from typing import Any, Awaitable, Callable

from ...common.exceptions import InvalidParamsError
from ...common.outcome import Outcome

Operation = Callable[..., Awaitable[Outcome]]

_MISSING = object()


class Driver:
    """Base class for dispatcher-facing drivers"""

    name: str = "driver"

    def operations(self) -> dict[str, Operation]:
        raise NotImplementedError

    @staticmethod
    def require_mapping(params: Any) -> dict:
        if params is None:
            return {}
        if not isinstance(params, dict):
            raise InvalidParamsError()
        return params

    @staticmethod
    def param(params: dict, name: str, kind: type, default: Any = _MISSING) -> Any:
        """
        Fetch and coerce one named parameter.

        Raises:
            InvalidParamsError: parameter missing (without default) or not coercible
        """
        if name not in params or params[name] is None:
            if default is _MISSING:
                raise InvalidParamsError(f"missing parameter: {name}")
            return default

        raw = params[name]
        if kind in (int, float) and isinstance(raw, bool):
            raise InvalidParamsError(f"invalid parameter {name}: {raw!r}")
        if kind is int and isinstance(raw, float) and not raw.is_integer():
            raise InvalidParamsError(f"invalid parameter {name}: {raw!r}")
        if kind is list:
            if not isinstance(raw, list):
                raise InvalidParamsError(f"invalid parameter {name}: expected a list")
            return raw
        try:
            return kind(raw)
        except (TypeError, ValueError):
            raise InvalidParamsError(f"invalid parameter {name}: {raw!r}")
