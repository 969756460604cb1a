"""
Contains the types used in the validation framework
"""
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Sequence, TypeAlias, Union

if TYPE_CHECKING:
    from .parser import ParsedRule


class _Missing:
    """
    The type of the `MISSING` sentinel. A value resolves to `MISSING` if the path does not exist in the data set.
    It is different from `None` which is an existing value.
    """

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> "_Missing":
        return self


MISSING: Any = _Missing()

PASSED = "validation passed"
SKIPPED = "validation skipped"

RuleArgs: TypeAlias = Sequence[str]
FieldRules: TypeAlias = "Sequence[ParsedRule]"
AsyncRuleFunction: TypeAlias = Callable[[Any, str, str, RuleArgs, FieldRules], Awaitable[str]]
SyncRuleFunction: TypeAlias = Callable[[Any, str, str, RuleArgs, FieldRules], str]
RuleFunction: TypeAlias = AsyncRuleFunction | SyncRuleFunction
RawPredicate: TypeAlias = Callable[..., Any]

MessageCallback: TypeAlias = Callable[..., str]
MessageEntry: TypeAlias = str | MessageCallback
MessageTable: TypeAlias = Mapping[str, MessageEntry]
RuleSpecEntry: TypeAlias = Union[str, Sequence[str]]
RuleSpec: TypeAlias = Mapping[str, RuleSpecEntry]
