"""
Contains the field expander. Field paths may contain wildcard segments (`*`) which stand for every element of the
collection at this position, e.g. `people.*.email`. Before the validation starts, every wildcard path is expanded
against the actual data set into concrete paths like `people.0.email` and `people.1.email`.
"""
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Union

from frozendict import frozendict

from dvframework.parser import ParsedRule
from dvframework.utils.query_object import optional_field

WILDCARD = "*"

_Collection = Union[Mapping[Any, Any], list[Any], tuple[Any, ...]]


@dataclass(frozen=True)
class ExpandedField:
    """
    A concrete field path together with the field pattern it was expanded from and the rules to run on it.
    """

    field: str
    pattern: str
    rules: tuple[ParsedRule, ...]


def _join(prefix: str, segment: str) -> str:
    return f"{prefix}.{segment}" if prefix and segment else prefix or segment


def _walk(data: Any, prefix: str, segments: list[str]) -> Iterator[str]:
    if WILDCARD not in segments:
        yield _join(prefix, ".".join(segments))
        return
    wildcard_index = segments.index(WILDCARD)
    collection_path = _join(prefix, ".".join(segments[:wildcard_index]))
    collection = optional_field(data, collection_path, _Collection)
    if collection is None:
        return
    if isinstance(collection, Mapping):
        keys = [str(key) for key in collection.keys()]
    else:
        keys = [str(index) for index in range(len(collection))]
    rest = segments[wildcard_index + 1 :]
    for key in keys:
        item_path = _join(collection_path, key)
        if rest:
            yield from _walk(data, item_path, rest)
        else:
            yield item_path


def expand_field(pattern: str, data: Any) -> list[str]:
    """
    Expands a (possibly wildcarded) field path against `data`. The paths are returned in the natural order of the
    underlying collections. A path without wildcards expands to itself. If a collection at a wildcard position
    doesn't exist or is empty, no path is returned.
    """
    if WILDCARD not in pattern.split("."):
        return [pattern]
    return list(_walk(data, "", pattern.split(".")))


def expand_rules(
    parsed_rules: Mapping[str, tuple[ParsedRule, ...]] | frozendict[str, tuple[ParsedRule, ...]], data: Any
) -> list[ExpandedField]:
    """
    Expands all field patterns of the parsed rule spec. The order of the result follows the order of the rule spec
    and, for wildcard patterns, the order of the collection elements.
    """
    return [
        ExpandedField(field=field, pattern=pattern, rules=tuple(rules))
        for pattern, rules in parsed_rules.items()
        for field in expand_field(pattern, data)
    ]
