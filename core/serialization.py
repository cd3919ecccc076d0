"""
Conversion of result records into JSON-ready structures.
"""

import json
import math
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict

import numpy as np


def to_serializable(value: Any) -> Any:
    """Recursively convert records into dicts, lists and JSON scalars."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, np.ndarray):
        return [to_serializable(item) for item in value.tolist()]
    if isinstance(value, np.generic):
        return to_serializable(value.item())
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {str(key): to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return [to_serializable(item) for item in sorted(value)]
    return value


class SerializableRecord:
    """Mixin giving dataclass records a plain-dict / JSON export."""

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
