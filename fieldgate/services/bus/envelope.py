"""
Command and response envelopes exchanged over the bus

Inbound:
    {"uniqueID": "abc", "driver": "modbus", "method": "readHoldingRegisters",
     "params": {...} | [...]}

    "className"/"methodName" are accepted as aliases of "driver"/"method".

Outbound (response and error topics alike):
    {"uniqueID": "abc", "date": "<ISO-8601 UTC>", "message": <result or error>}
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ...common.exceptions import InvalidParamsError


@dataclass
class CommandEnvelope:
    """Inbound command"""
    unique_id: str
    driver: str
    method: str
    params: Any = None

    @classmethod
    def parse(cls, payload: bytes | str | dict) -> "CommandEnvelope":
        """
        Decode a command from raw bus payload.

        Raises:
            InvalidParamsError: payload is not a JSON object
        """
        data = payload
        if isinstance(payload, (bytes, bytearray)):
            try:
                data = payload.decode("utf-8")
            except UnicodeDecodeError:
                raise InvalidParamsError("invalid command envelope")
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                raise InvalidParamsError("invalid command envelope")
        if not isinstance(data, dict):
            raise InvalidParamsError("invalid command envelope")

        return cls(
            unique_id=str(data.get("uniqueID", "")),
            driver=str(data.get("driver", data.get("className", ""))),
            method=str(data.get("method", data.get("methodName", ""))),
            params=data.get("params"),
        )


@dataclass
class ResponseEnvelope:
    """Outbound response or error"""
    unique_id: str
    message: Any
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "uniqueID": self.unique_id,
            "date": self.date.isoformat(),
            "message": self.message,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)
