"""
Typed action contract used by the file-manager adapter to report outcomes.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ActionType(str, Enum):
    """Supported outcome kinds handed back to a host UI."""

    REFRESH = "refresh"
    ERROR = "error"
    INFO = "info"
    SHOW_BUFFER = "show_buffer"


@dataclass(frozen=True)
class ActionResult:
    """Outcome message emitted by file-manager operations."""

    type: ActionType
    payload: Any = None
