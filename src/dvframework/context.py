"""
Contains the `ValidationContext`. It bundles everything a validation run depends on besides its input:
the registry of rule predicates, the default messages, the set of implicit rules and the mode.
A context is configured once and used for many validation runs. Every run works on a `snapshot` of the context,
hence changes made while a run is in flight only affect later runs.
"""
import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from frozendict import frozendict
from typeguard import TypeCheckError, check_type

from dvframework.errors import ConfigError, RuleNotDefinedError
from dvframework.modes import Mode
from dvframework.parser import normalize_rule_name
from dvframework.settings import ValidatorSettings, get_settings
from dvframework.types import MessageEntry, RuleFunction
from dvframework.validations import BUILTIN_RULES, IMPLICIT_RULES

logger = logging.getLogger(__name__)

_RULE_ARGUMENTS = ("data", "field", "message", "args", "rules")


def _check_rule_function(name: str, predicate: Any) -> None:
    """
    Raises a ConfigError if `predicate` can't be used as rule predicate.
    """
    if not callable(predicate):
        raise ConfigError(f"Invalid arguments, extend expects a method to execute for rule '{name}'")
    try:
        signature = inspect.signature(predicate)
    except (TypeError, ValueError):
        # some builtins don't provide a signature
        return
    try:
        signature.bind(*_RULE_ARGUMENTS)
    except TypeError as error:
        raise ConfigError(
            f"Invalid arguments, the predicate of rule '{name}' must accept the arguments {', '.join(_RULE_ARGUMENTS)}"
        ) from error


def _check_message(name: str, message: Any) -> None:
    try:
        check_type(message, Union[str, Callable[..., str]])
    except TypeCheckError as error:
        raise ConfigError(f"The message of rule '{name}' must be a string or a callable") from error


@dataclass(frozen=True)
class ContextSnapshot:
    """
    An immutable view on a `ValidationContext` used during one validation run.
    """

    rules: frozendict[str, RuleFunction]
    messages: frozendict[str, MessageEntry]
    implicit_rules: frozenset[str]
    mode: Mode

    def get_rule(self, name: str) -> RuleFunction:
        """
        Returns the predicate of the rule `name` (in any spelling). Raises a RuleNotDefinedError if there is none.
        """
        try:
            return self.rules[normalize_rule_name(name)]
        except KeyError as error:
            raise RuleNotDefinedError(name) from error

    def is_implicit(self, name: str) -> bool:
        """Returns True if the rule `name` (in any spelling) is implicit"""
        return normalize_rule_name(name) in self.implicit_rules


class ValidationContext:
    """
    The registry of rules, default messages and implicit rules together with the mode.
    """

    def __init__(
        self,
        rules: Optional[dict[str, RuleFunction]] = None,
        messages: Optional[dict[str, MessageEntry]] = None,
        implicit_rules: Optional[set[str]] = None,
        mode: Mode | str = Mode.NORMAL,
    ):
        self._lock = threading.RLock()
        self._rules: dict[str, RuleFunction] = {}
        self._messages: dict[str, MessageEntry] = {}
        self._implicit_rules: set[str] = set()
        self._mode: Mode = Mode.NORMAL
        for name, predicate in (BUILTIN_RULES if rules is None else rules).items():
            _check_rule_function(name, predicate)
            self._rules[normalize_rule_name(name)] = predicate
        for name, message in (messages or {}).items():
            self.set_message(name, message)
        for name in IMPLICIT_RULES if implicit_rules is None else implicit_rules:
            self._implicit_rules.add(normalize_rule_name(name))
        self.set_mode(mode)

    @classmethod
    def from_settings(cls, settings: Optional[ValidatorSettings] = None) -> "ValidationContext":
        """
        Creates a context with the built-in rules, configured by the given (or environment) settings.
        """
        settings = settings or get_settings()
        context = cls()
        context.set_mode(settings.mode)
        return context

    @property
    def mode(self) -> Mode:
        """The mode validation runs use"""
        return self._mode

    @property
    def implicit_rules(self) -> frozenset[str]:
        """The normalized names of the implicit rules"""
        return frozenset(self._implicit_rules)

    def extend(self, name: str, predicate: RuleFunction, message: Optional[MessageEntry] = None) -> None:
        """
        Registers a new rule (or replaces an existing one) together with its default message.
        Raises a ConfigError if `predicate` is not callable with the rule arguments
        `(data, field, message, args, rules)` or if `message` is neither a string nor a callable.
        """
        _check_rule_function(name, predicate)
        if message is not None:
            _check_message(name, message)
        with self._lock:
            self._rules[normalize_rule_name(name)] = predicate
            if message is not None:
                self._messages[normalize_rule_name(name)] = message
        logger.debug("Registered rule '%s'", normalize_rule_name(name))

    def extend_implicit(self, name: str) -> None:
        """
        Marks the rule `name` as implicit: it runs even if the field under validation is absent.
        """
        with self._lock:
            self._implicit_rules.add(normalize_rule_name(name))
        logger.debug("Registered implicit rule '%s'", normalize_rule_name(name))

    def set_message(self, name: str, message: MessageEntry) -> None:
        """
        Sets the default message of the rule `name`. Raises a ConfigError if `message` is neither a string nor a
        callable.
        """
        _check_message(name, message)
        with self._lock:
            self._messages[normalize_rule_name(name)] = message

    def set_mode(self, mode: Mode | str) -> None:
        """
        Switches the mode. Only "normal" and "strict" are accepted, anything else is ignored with a warning.
        """
        try:
            new_mode = Mode(mode)
        except ValueError:
            logger.warning("%s is not a valid mode, keeping mode '%s'", mode, self._mode.value)
            return
        with self._lock:
            self._mode = new_mode
        logger.debug("Switched to %s mode", new_mode.value)

    def get_rule(self, name: str) -> RuleFunction:
        """
        Returns the predicate of the rule `name` (in any spelling). Raises a RuleNotDefinedError if there is none.
        """
        return self.snapshot().get_rule(name)

    def has_rule(self, name: str) -> bool:
        """Returns True if a rule is registered under `name` (in any spelling)"""
        return normalize_rule_name(name) in self._rules

    def snapshot(self) -> ContextSnapshot:
        """
        Returns an immutable copy of the current state.
        """
        with self._lock:
            return ContextSnapshot(
                rules=frozendict(self._rules),
                messages=frozendict(self._messages),
                implicit_rules=frozenset(self._implicit_rules),
                mode=self._mode,
            )

    def copy(self) -> "ValidationContext":
        """
        Returns an independent context with the same configuration.
        """
        state = self.snapshot()
        return ValidationContext(
            rules=dict(state.rules),
            messages=dict(state.messages),
            implicit_rules=set(state.implicit_rules),
            mode=state.mode,
        )


default_context = ValidationContext.from_settings()
