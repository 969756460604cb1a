"""
Contains the ValidationManager. It executes the rules of a rule spec on a data set and collects the failures.
Every (field, rule) check runs as its own asyncio task.
"""
import asyncio
import inspect
import logging
from typing import Any, Generic, Optional, TypeVar

from dvframework.analysis import ValidationResult
from dvframework.context import ContextSnapshot, ValidationContext, default_context
from dvframework.errors import RuleViolation, ValidationError, ValidationFailed
from dvframework.expansion import ExpandedField, expand_rules
from dvframework.messages import make
from dvframework.modes import skippable
from dvframework.parser import ParsedRule, parse_rules
from dvframework.types import MessageTable, RuleFunction, RuleSpec
from dvframework.utils.frame_functions import bind_mode, unbind_mode
from dvframework.utils.query_object import get_value
from dvframework.validations import has_rule

logger = logging.getLogger(__name__)

DataT = TypeVar("DataT")


class ValidationManager(Generic[DataT]):
    """
    Executes rule specs on data sets using the rules, messages and mode of a `ValidationContext`.
    The context is read once per validation call (see `ValidationContext.snapshot`).
    """

    def __init__(self, context: Optional[ValidationContext] = None):
        self.context: ValidationContext = context if context is not None else default_context

    async def validate(self, data: DataT, rules: RuleSpec, messages: Optional[MessageTable] = None) -> DataT:
        """
        Validates `data` in fail-fast mode. Returns `data` itself if every rule passed or skipped.
        Otherwise raises a `ValidationFailed` holding exactly one error: the first failure in field declaration
        order and rule declaration order.
        """
        errors = await self._run(data, rules, messages, fail_fast=True)
        if len(errors) > 0:
            raise ValidationFailed(errors)
        return data

    async def validate_all(self, data: DataT, rules: RuleSpec, messages: Optional[MessageTable] = None) -> DataT:
        """
        Validates `data` in collect-all mode. Returns `data` itself if every rule passed or skipped.
        Otherwise raises a `ValidationFailed` holding every error in field declaration order and rule declaration
        order.
        """
        errors = await self._run(data, rules, messages, fail_fast=False)
        if len(errors) > 0:
            raise ValidationFailed(errors)
        return data

    async def analyze(
        self, data: DataT, rules: RuleSpec, messages: Optional[MessageTable] = None
    ) -> ValidationResult[DataT]:
        """
        Validates `data` in collect-all mode and returns a `ValidationResult` instead of raising on failures.
        Configuration errors and faults inside rule predicates are raised nevertheless.
        """
        errors = await self._run(data, rules, messages, fail_fast=False)
        return ValidationResult(data, errors)

    async def _run(
        self, data: Any, rules: RuleSpec, messages: Optional[MessageTable], fail_fast: bool
    ) -> list[ValidationError]:
        snapshot = self.context.snapshot()
        expanded_fields = expand_rules(parse_rules(rules), data)
        checks: list[tuple[ExpandedField, ParsedRule, RuleFunction]] = [
            (expanded_field, rule, snapshot.get_rule(rule.name))
            for expanded_field in expanded_fields
            for rule in expanded_field.rules
        ]
        if len(checks) == 0:
            return []
        token = bind_mode(snapshot.mode)
        try:
            tasks = [
                asyncio.create_task(
                    self._execute_rule(snapshot, data, expanded_field, rule, predicate, messages),
                    name=f"{expanded_field.field}:{rule.name}",
                )
                for expanded_field, rule, predicate in checks
            ]
        finally:
            unbind_mode(token)
        try:
            errors = await self._gather(tasks, fail_fast)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # collects the outcome of every task, including further faults and cancellations
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(
            "Validated %i fields with %i checks in %s mode: %i error(s)",
            len(expanded_fields),
            len(tasks),
            snapshot.mode.value,
            len(errors),
        )
        return errors

    @staticmethod
    async def _gather(tasks: list[asyncio.Task], fail_fast: bool) -> list[ValidationError]:
        """
        Waits for the tasks and returns the validation errors in the order of `tasks`.
        In fail-fast mode it returns as soon as the first failure in task order is known. A task finishing later can
        never replace it. Exceptions other than validation failures are raised immediately.
        """
        pending = set(tasks)
        while len(pending) > 0:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in tasks:
                if task in done and not task.cancelled() and task.exception() is not None:
                    raise task.exception()  # type: ignore[misc]
            if fail_fast:
                for task in tasks:
                    if not task.done():
                        break
                    error = task.result()
                    if error is not None:
                        return [error]
        return [error for error in (task.result() for task in tasks) if error is not None]

    @staticmethod
    async def _execute_rule(
        snapshot: ContextSnapshot,
        data: Any,
        expanded_field: ExpandedField,
        rule: ParsedRule,
        predicate: RuleFunction,
        messages: Optional[MessageTable],
    ) -> Optional[ValidationError]:
        """
        Executes a single rule on a single (concrete) field.
        Returns a `ValidationError` if the rule rejected the value and `None` if it passed or got skipped.
        """
        field = expanded_field.field
        if not snapshot.is_implicit(rule.name):
            value = get_value(data, field)
            if skippable(value, snapshot.mode, nullable=has_rule(expanded_field.rules, "nullable")):
                logger.debug("Skipped rule '%s' on absent field '%s'", rule.name, field)
                return None
        message = make(
            messages,
            field,
            rule.name,
            rule.args,
            pattern=expanded_field.pattern,
            defaults=snapshot.messages,
        )
        try:
            result = predicate(data, field, message, list(rule.args), expanded_field.rules)
            if inspect.isawaitable(result):
                await result
        except RuleViolation as violation:
            return ValidationError(field=field, validation=rule.name, message=violation.message)
        return None
