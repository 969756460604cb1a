"""
Contains the rule parser. A rule spec is either a pipe delimited string like `"required|min:4|between:4,10"` or a
sequence of single rule strings like `["required", "min:4"]`. Each rule is split on the first `:` into its name and
its arguments. The arguments are separated by commas.
"""
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Sequence

from frozendict import frozendict

from dvframework.types import RuleSpec, RuleSpecEntry

RULE_SEPARATOR = "|"
ARGS_SEPARATOR = ":"
ARG_SEPARATOR = ","

# the arguments of these rules are patterns and may contain commas themselves
_PATTERN_RULES = frozenset({"regex"})
_REGEX_FLAGS = re.compile(r"^[gimsux]+$")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s\-_]+")


def normalize_rule_name(name: str) -> str:
    """
    Converts a rule name written in camelCase, kebab-case or snake_case into the canonical snake_case lookup key.
    E.g. `alphaNumeric`, `alpha-numeric` and `alpha_numeric` all become `alpha_numeric`.
    """
    snake = _CAMEL_BOUNDARY.sub("_", name.strip())
    return _SEPARATORS.sub("_", snake).strip("_").lower()


@dataclass(frozen=True)
class ParsedRule:
    """
    A single rule of a field. `name` is the rule name as written in the rule spec, `args` the (string) arguments.
    """

    name: str
    args: tuple[str, ...] = field(default_factory=tuple)

    @cached_property
    def key(self) -> str:
        """The canonical name used to look up the rule"""
        return normalize_rule_name(self.name)


def _split_args(rule_key: str, args_blob: str) -> tuple[str, ...]:
    if args_blob == "":
        return ()
    if rule_key in _PATTERN_RULES:
        pattern, separator, flags = args_blob.rpartition(ARG_SEPARATOR)
        if separator and _REGEX_FLAGS.match(flags.strip()):
            return (pattern, flags.strip())
        return (args_blob,)
    return tuple(arg.strip() for arg in args_blob.split(ARG_SEPARATOR))


def parse_rule(rule: str) -> ParsedRule:
    """
    Parses a single rule string like `between:4,10`. Only the first `:` separates the name from the arguments.
    """
    name, _, args_blob = str(rule).partition(ARGS_SEPARATOR)
    name = name.strip()
    return ParsedRule(name=name, args=_split_args(normalize_rule_name(name), args_blob))


def parse(rule_spec: RuleSpecEntry) -> tuple[ParsedRule, ...]:
    """
    Parses the rule spec of one field. It never fails: a malformed rule results in a rule with an empty name which
    will fail later when the validation tries to run it.
    """
    rules: Sequence[str]
    if isinstance(rule_spec, str):
        rules = rule_spec.split(RULE_SEPARATOR)
    else:
        rules = list(rule_spec)
    return tuple(parse_rule(rule) for rule in rules)


def parse_rules(rules: RuleSpec) -> frozendict[str, tuple[ParsedRule, ...]]:
    """
    Parses the rule specs of all fields. The order of the fields is kept.
    """
    return frozendict({field_path: parse(rule_spec) for field_path, rule_spec in rules.items()})
