"""
Wire protocol for position sync.
Value types plus the JSON codec used by both sides.

Client -> Server: {"id": "...", "x": 48, "y": 48, "frame": 1}
Server -> Client: {"<id>": {"x": 48, "y": 48, "frame": 1}, ...}
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from shared.errors import MalformedMessage


Payload = Union[str, bytes]


@dataclass(frozen=True)
class PositionSample:
    """Position and animation pose of one participant at one instant."""
    x: float
    y: float
    frame: int

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "frame": self.frame}

    @staticmethod
    def from_dict(data: Any) -> "PositionSample":
        """Build a sample from a decoded JSON object, validating every field."""
        if not isinstance(data, dict):
            raise MalformedMessage(f"sample must be an object, got {type(data).__name__}")
        try:
            x, y, frame = data["x"], data["y"], data["frame"]
        except KeyError as e:
            raise MalformedMessage(f"sample missing field {e}") from None
        return PositionSample(
            x=_coordinate(x, "x"),
            y=_coordinate(y, "y"),
            frame=_frame(frame)
        )


StateTable = Dict[str, PositionSample]


def _coordinate(value: Any, name: str) -> float:
    # bool is an int subclass, don't let true/false through as 1/0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedMessage(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise MalformedMessage(f"{name} is too large for a float") from None
    if not math.isfinite(number):
        raise MalformedMessage(f"{name} must be finite, got {value!r}")
    return number


def _frame(value: Any) -> int:
    """Animation frame index. Browser clients send the frame name, which is a numeric string."""
    if isinstance(value, bool):
        raise MalformedMessage(f"frame must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        # Plain ASCII digits only, int() alone would also take "1_0" or other scripts
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if text.isascii() and digits.isdigit():
            try:
                return int(text)
            except ValueError:
                pass
    raise MalformedMessage(f"frame must be an integer, got {value!r}")


def _participant_id(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedMessage(f"id must be a non-empty string, got {value!r}")
    return value


def _load_json(raw: Payload) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessage(f"payload is not UTF-8: {e}") from None
    if not isinstance(raw, str):
        raise MalformedMessage(f"payload must be text, got {type(raw).__name__}")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(f"payload is not JSON: {e}") from None
    except (ValueError, RecursionError) as e:
        # Oversized integer literals or nesting too deep to parse
        raise MalformedMessage(f"payload could not be parsed: {e}") from None


# =============================================================================
# CODEC
# =============================================================================

def encode_sample(participant_id: str, sample: PositionSample) -> str:
    """Serialize the local participant's sample (client outbound)."""
    return json.dumps({"id": participant_id, **sample.to_dict()})


def decode_sample(raw: Payload) -> Tuple[str, PositionSample]:
    """Inverse of encode_sample. Raises MalformedMessage."""
    obj = _load_json(raw)
    if not isinstance(obj, dict):
        raise MalformedMessage("sample message must be a JSON object")
    if "id" not in obj:
        raise MalformedMessage("sample message missing field 'id'")
    return _participant_id(obj["id"]), PositionSample.from_dict(obj)


def encode_table(table: StateTable) -> str:
    """Serialize the full state table (server outbound)."""
    return json.dumps({pid: sample.to_dict() for pid, sample in table.items()})


def decode_table(raw: Payload) -> StateTable:
    """Inverse of encode_table. Raises MalformedMessage."""
    obj = _load_json(raw)
    if not isinstance(obj, dict):
        raise MalformedMessage("state table must be a JSON object")
    return {
        _participant_id(pid): PositionSample.from_dict(record)
        for pid, record in obj.items()
    }
