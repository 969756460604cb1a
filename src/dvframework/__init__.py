"""
This package enables you to validate arbitrary (nested) data structures against declarative, per-field rule specs
like `{"user.email": "required|email", "tags.*": "string"}`. Rules are checked asynchronously.
"""
from typing import Optional, TypeVar

from .analysis import ValidationResult
from .context import ValidationContext, default_context
from .errors import (
    ConfigError,
    DvFrameworkError,
    RuleNotDefinedError,
    RuleViolation,
    ValidationError,
    ValidationFailed,
)
from .execution import ValidationManager
from .expansion import expand_rules
from .messages import make as make_message
from .modes import Mode
from .parser import ParsedRule, normalize_rule_name, parse, parse_rules
from .raw import is_
from .types import MISSING, PASSED, SKIPPED, MessageEntry, MessageTable, RuleFunction, RuleSpec
from .utils import current_mode

DataT = TypeVar("DataT")

_default_manager: ValidationManager = ValidationManager(default_context)


async def validate(data: DataT, rules: RuleSpec, messages: Optional[MessageTable] = None) -> DataT:
    """
    Validates `data` against `rules` and stops at the first failing rule (in declaration order).
    Returns `data` itself or raises a `ValidationFailed` with exactly one error.
    """
    return await _default_manager.validate(data, rules, messages)


async def validate_all(data: DataT, rules: RuleSpec, messages: Optional[MessageTable] = None) -> DataT:
    """
    Validates `data` against `rules` and collects every failure.
    Returns `data` itself or raises a `ValidationFailed` with all errors.
    """
    return await _default_manager.validate_all(data, rules, messages)


async def analyze(data: DataT, rules: RuleSpec, messages: Optional[MessageTable] = None) -> ValidationResult[DataT]:
    """
    Like `validate_all` but returns a `ValidationResult` instead of raising on failures.
    """
    return await _default_manager.analyze(data, rules, messages)


def extend(name: str, predicate: RuleFunction, message: Optional[MessageEntry] = None) -> None:
    """Registers a new rule on the default context"""
    default_context.extend(name, predicate, message)


def extend_implicit(name: str) -> None:
    """Marks a rule of the default context as implicit, i.e. it runs on absent fields too"""
    default_context.extend_implicit(name)


def set_mode(mode: Mode | str) -> None:
    """Switches the mode ("normal" or "strict") of the default context"""
    default_context.set_mode(mode)


__all__ = [
    "ConfigError",
    "DvFrameworkError",
    "MISSING",
    "Mode",
    "PASSED",
    "ParsedRule",
    "RuleNotDefinedError",
    "RuleViolation",
    "SKIPPED",
    "ValidationContext",
    "ValidationError",
    "ValidationFailed",
    "ValidationManager",
    "ValidationResult",
    "analyze",
    "current_mode",
    "default_context",
    "expand_rules",
    "extend",
    "extend_implicit",
    "is_",
    "make_message",
    "normalize_rule_name",
    "parse",
    "parse_rules",
    "set_mode",
    "validate",
    "validate_all",
]
