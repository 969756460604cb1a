"""
Contains the message resolver. It computes the error message for a failing (field, rule) pair from the messages
passed to the validation call, the default message table and a generic fallback.
"""
import inspect
import re
from typing import Any, Mapping, Optional, Sequence

from dvframework.parser import normalize_rule_name
from dvframework.raw import stringify
from dvframework.types import MessageEntry, MessageTable

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


def _render_template(template: str, field: str, args: Sequence[Any]) -> str:
    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name == "field":
            return field
        prefix, _, index = name.partition(".")
        if prefix == "argument" and index.isdecimal() and int(index) < len(args):
            return stringify(args[int(index)])
        return match.group(0)

    return _PLACEHOLDER.sub(_substitute, template)


def _positional_arity(callback: Any) -> int:
    """
    Returns how many positional arguments `callback` accepts (at most 3).
    """
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return 3
    arity = 0
    for parameter in signature.parameters.values():
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return 3
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            arity += 1
    return min(arity, 3)


def render(entry: MessageEntry, field: str, rule: str, args: Sequence[Any]) -> str:
    """
    Turns a message entry into the final message. Callables are called with as many of `(field, rule, args)` as they
    accept, strings have their `{{field}}` and `{{argument.N}}` placeholders replaced.
    """
    if callable(entry):
        return str(entry(*(field, rule, list(args))[: _positional_arity(entry)]))
    return _render_template(str(entry), field, args)


def _lookup(messages: Mapping[str, MessageEntry], keys: Sequence[str]) -> Optional[MessageEntry]:
    for key in keys:
        if key in messages:
            return messages[key]
    return None


def make(
    messages: Optional[MessageTable],
    field: str,
    rule: str,
    args: Optional[Sequence[Any]] = None,
    pattern: Optional[str] = None,
    defaults: Optional[MessageTable] = None,
) -> str:
    """
    Resolves the message for `rule` failing on `field`. The first match wins:
    1. `messages["<field>.<rule>"]` (the concrete field path and then the field `pattern`, e.g. `people.*.email`)
    2. `messages["<rule>"]`
    3. `defaults["<rule>"]`
    4. `"<rule> validation failed on <field>"`
    Unresolvable placeholders in templates are kept as they are.
    """
    args = list(args or [])
    snake_rule = normalize_rule_name(rule)
    rule_names = list(dict.fromkeys([rule, snake_rule]))
    fields = list(dict.fromkeys([field] + ([pattern] if pattern else [])))
    entry: Optional[MessageEntry] = None
    if messages:
        entry = _lookup(messages, [f"{field_path}.{name}" for field_path in fields for name in rule_names])
        if entry is None:
            entry = _lookup(messages, rule_names)
    if entry is None and defaults:
        entry = _lookup(defaults, [snake_rule])
    if entry is None:
        return f"{rule} validation failed on {field}"
    return render(entry, field, rule, args)
