"""
Contains the validation modes. The mode decides which field values count as "absent" and therefore skip all
non-implicit rules.
"""
from enum import Enum
from typing import Any

from dvframework.types import MISSING


class Mode(str, Enum):
    """
    `NORMAL`: missing values, empty strings and (with a `nullable` rule) `None` are skipped.
    `STRICT`: only missing values are skipped.
    """

    NORMAL = "normal"
    STRICT = "strict"


def skippable(value: Any, mode: Mode, nullable: bool = False) -> bool:
    """
    Returns True if `value` counts as absent under the given mode.
    """
    if mode is Mode.STRICT:
        return value is MISSING
    if isinstance(value, str):
        return len(value) == 0
    return value is MISSING or (value is None and nullable)
