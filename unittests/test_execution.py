import asyncio
import copy

import pytest

import dvframework
from dvframework import (
    PASSED,
    ConfigError,
    Mode,
    RuleNotDefinedError,
    RuleViolation,
    ValidationContext,
    ValidationError,
    ValidationFailed,
    ValidationManager,
    current_mode,
    is_,
    validate,
    validate_all,
)


def _fields_and_validations(failure: ValidationFailed) -> list[tuple[str, str]]:
    return [(error.field, error.validation) for error in failure.errors]


class TestValidate:
    async def test_returns_the_data_itself(self):
        data = {"age": 22, "phone": 9192910200}
        assert await validate(data, {"age": "required", "phone": "required"}) is data
        assert await validate_all(data, {"age": "required", "phone": "required"}) is data

    async def test_without_rules(self):
        data = {"username": ""}
        assert await validate(data, {}) is data

    async def test_single_error(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate({}, {"username": "required"})
        assert failure.value.errors == [
            ValidationError("username", "required", "required validation failed on username")
        ]

    async def test_fail_fast_reports_first_failure_only(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate({"username": "aman@33$"}, {"age": "required", "username": "alpha|alphaNumeric"})
        assert _fields_and_validations(failure.value) == [("age", "required")]

    async def test_fail_fast_reports_first_rule_of_a_field(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate({"username": "aman@33$"}, {"username": "alpha|alphaNumeric"})
        assert _fields_and_validations(failure.value) == [("username", "alpha")]

    async def test_repeated_validation_returns_same_data(self):
        data = {"username": "virk", "people": [{"email": "foo@bar.com"}], "age": 22}
        rules = {"username": "required|alpha", "people.*.email": "required|email", "age": "integer|between:18,99"}
        expected = copy.deepcopy(data)
        first = await validate(data, rules)
        second = await validate(first, rules)
        assert first is data and second is data
        assert data == expected

    async def test_collect_all_in_declaration_order(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate_all({"username": "aman@33$"}, {"username": "alpha|alphaNumeric", "age": "required"})
        assert _fields_and_validations(failure.value) == [
            ("username", "alpha"),
            ("username", "alphaNumeric"),
            ("age", "required"),
        ]
        assert len(failure.value) == 3

    async def test_does_not_mutate_data(self):
        data = {"username": "", "email": "foo@bar.com", "people": [{"email": "foo@bar.com"}]}
        expected = copy.deepcopy(data)
        dvframework.set_mode("strict")
        await validate(data, {"email": "required", "people.*.email": "email"})
        assert data == expected


class TestOrdering:
    async def test_first_declared_failure_wins_over_first_completed(self):
        async def slow_failure(data, field, message, args, rules):
            await asyncio.sleep(0.05)
            raise RuleViolation(message)

        async def fast_failure(data, field, message, args, rules):
            raise RuleViolation(message)

        context = ValidationContext()
        context.extend("slowFailure", slow_failure)
        context.extend("fastFailure", fast_failure)
        manager = ValidationManager(context)
        with pytest.raises(ValidationFailed) as failure:
            await manager.validate({"a": 1, "b": 1}, {"a": "slowFailure", "b": "fastFailure"})
        assert _fields_and_validations(failure.value) == [("a", "slowFailure")]

    async def test_fail_fast_cancels_pending_checks(self):
        finished = []

        async def hanging(data, field, message, args, rules):
            await asyncio.sleep(10)
            finished.append(field)
            return PASSED

        context = ValidationContext()
        context.extend("hanging", hanging)
        with pytest.raises(ValidationFailed):
            await asyncio.wait_for(ValidationManager(context).validate({"b": 1}, {"a": "required", "b": "hanging"}), 1)
        await asyncio.sleep(0)
        assert finished == []

    async def test_pending_checks_are_finished_before_returning(self):
        events = []

        async def hanging(data, field, message, args, rules):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                events.append(f"{field} cancelled")
                raise
            return PASSED

        async def broken(data, field, message, args, rules):
            raise ValueError(field)

        context = ValidationContext()
        context.extend("hanging", hanging)
        context.extend("broken", broken)
        with pytest.raises(ValueError, match="a"):
            await ValidationManager(context).validate_all(
                {"a": 1, "b": 1, "c": 1}, {"a": "broken", "b": "broken", "c": "hanging"}
            )
        assert events == ["c cancelled"]

    async def test_sync_predicates(self):
        calls = []

        def remember(data, field, message, args, rules):
            calls.append((field, args))
            return PASSED

        context = ValidationContext()
        context.extend("remember", remember)
        await ValidationManager(context).validate({"a": 1}, {"a": "remember:x,y"})
        assert calls == [("a", ["x", "y"])]


class TestErrors:
    async def test_unknown_rule(self):
        with pytest.raises(RuleNotDefinedError, match="foo is not defined as a validation") as error:
            await validate({"age": 22, "phone": 9192910200}, {"age": "foo", "phone": "required"})
        assert isinstance(error.value, ConfigError)
        assert not isinstance(error.value, ValidationFailed)

    async def test_unknown_rule_on_absent_field(self):
        with pytest.raises(RuleNotDefinedError):
            await validate_all({}, {"age": "foo"})

    async def test_runtime_fault_propagates(self):
        def broken(data, field, message, args, rules):
            return 1 / 0

        dvframework.extend("broken", broken)
        with pytest.raises(ZeroDivisionError):
            await validate_all({"a": 1, "b": None}, {"a": "broken", "b": "required"})

    async def test_config_error_inside_rule_propagates(self):
        with pytest.raises(ConfigError):
            await validate({"age": 12}, {"age": "between:10"})

    async def test_failing_message_callback_propagates(self):
        def broken_message(field, rule, args):
            raise KeyError(field)

        with pytest.raises(KeyError):
            await validate({}, {"age": "required"}, {"age.required": broken_message})


class TestMessages:
    async def test_custom_messages(self):
        messages = {
            "age.required": "Age is required",
            "phone.required": lambda: "Phone number is required for validations",
        }
        with pytest.raises(ValidationFailed) as failure:
            await validate_all({}, {"age": "required", "phone": "required", "name": "required"}, messages)
        assert [error.message for error in failure.value] == [
            "Age is required",
            "Phone number is required for validations",
            "required validation failed on name",
        ]

    async def test_snake_case_rules(self):
        messages = {"alpha_numeric": "Only letters and numbers"}
        with pytest.raises(ValidationFailed) as failure:
            await validate({"username": "$#"}, {"username": "alpha_numeric"}, messages)
        assert failure.value.errors[0].validation == "alpha_numeric"
        assert failure.value.errors[0].message == "Only letters and numbers"

    async def test_wildcard_messages_with_dynamic_field(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate({"email": ["virkm"]}, {"email.*": "email"}, {"email.*.email": "{{field}} is not valid"})
        assert failure.value.errors[0].to_dict() == {
            "field": "email.0",
            "validation": "email",
            "message": "email.0 is not valid",
        }

    async def test_arguments_in_messages(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate({"name": "ab"}, {"name": "min:3"}, {"min": "{{field}} needs {{argument.0}} characters"})
        assert failure.value.errors[0].message == "name needs 3 characters"


class TestWildcards:
    @pytest.mark.parametrize(
        "data, expected",
        [
            pytest.param({"person": [{"firstname": None}]}, ("person.0.firstname", "required"), id="single"),
            pytest.param(
                {"person": [{"firstname": "virk"}, {"firstname": None}]},
                ("person.1.firstname", "required"),
                id="second element",
            ),
        ],
    )
    async def test_nested_objects(self, data, expected):
        with pytest.raises(ValidationFailed) as failure:
            await validate(data, {"person.*.firstname": "required"})
        assert _fields_and_validations(failure.value) == [expected]

    @pytest.mark.parametrize(
        "people, expected",
        [
            pytest.param([{}], ("people.0.email", "required"), id="missing child"),
            pytest.param([{"email": "foo"}], ("people.0.email", "email"), id="invalid child"),
            pytest.param([{"email": "foo@bar.com"}, {"email": "snee"}], ("people.1.email", "email"), id="second child"),
        ],
    )
    async def test_array_of_objects(self, people, expected):
        with pytest.raises(ValidationFailed) as failure:
            await validate({"people": people}, {"people": "array", "people.*.email": "required|email"})
        assert _fields_and_validations(failure.value) == [expected]

    async def test_flat_arrays(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate_all({"email": ["foo@bar.com", "barnseek", "snee"]}, {"email.*": "email"})
        assert _fields_and_validations(failure.value) == [("email.1", "email"), ("email.2", "email")]

    async def test_nested_arrays(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate_all({"matrix": [[1, "x"], [2, "10"]]}, {"matrix.*.*": "integer"})
        assert _fields_and_validations(failure.value) == [("matrix.0.1", "integer"), ("matrix.1.1", "integer")]

    async def test_empty_collection_has_nothing_to_check(self):
        data = {"people": []}
        assert await validate(data, {"people.*.email": "required"}) is data


class TestModes:
    async def test_null_without_nullable(self):
        with pytest.raises(ValidationFailed) as failure:
            await validate({"select": None}, {"select": "array"})
        assert _fields_and_validations(failure.value) == [("select", "array")]

    async def test_null_with_nullable(self):
        data = {"select": None}
        assert await validate(data, {"select": "array|nullable"}) is data

    async def test_empty_string_in_normal_mode(self):
        data = {"select": ""}
        assert await validate(data, {"select": "array"}) is data

    async def test_empty_string_in_strict_mode(self):
        dvframework.set_mode("strict")
        with pytest.raises(ValidationFailed) as failure:
            await validate({"select": ""}, {"select": "array"})
        assert _fields_and_validations(failure.value) == [("select", "array")]

    async def test_null_with_nullable_in_strict_mode(self):
        dvframework.set_mode(Mode.STRICT)
        with pytest.raises(ValidationFailed):
            await validate({"select": None}, {"select": "array|nullable"})

    async def test_missing_field_is_skipped_in_both_modes(self):
        for mode in Mode:
            dvframework.set_mode(mode)
            assert await validate({}, {"email": "email"}) == {}

    async def test_predicates_see_the_mode_of_their_run(self):
        modes = []

        async def remember_mode(data, field, message, args, rules):
            modes.append(current_mode())
            return PASSED

        strict_context = ValidationContext(mode="strict")
        strict_context.extend("rememberMode", remember_mode)
        await ValidationManager(strict_context).validate({"a": 1}, {"a": "rememberMode"})
        assert modes == [Mode.STRICT]
        assert current_mode() is Mode.NORMAL


class TestExtensions:
    async def test_extend_with_default_message(self):
        async def phone(data, field, message, args, rules):
            raise RuleViolation(message)

        dvframework.extend("isPhone", phone, "Enter valid phone number")
        dvframework.extend_implicit("isPhone")
        with pytest.raises(ValidationFailed) as failure:
            await validate({}, {"contact_no": "is_phone"})
        assert failure.value.errors[0].validation == "is_phone"
        assert failure.value.errors[0].message == "Enter valid phone number"

    async def test_custom_rule_is_skipped_for_absent_field(self):
        async def phone(data, field, message, args, rules):
            raise RuleViolation(message)

        dvframework.extend("phone", phone)
        data: dict = {}
        assert await validate(data, {"contact_no": "phone"}) is data

    async def test_extend_with_non_callable(self):
        with pytest.raises(ConfigError):
            dvframework.extend("phone", "not a function")  # type: ignore[arg-type]

    async def test_custom_rule_using_raw_predicates(self):
        is_.extend("isDivisibleBy3", lambda value: value % 3 == 0)

        def divisible_by_3(data, field, message, args, rules):
            if not is_.isDivisibleBy3(data[field]):
                raise RuleViolation(message)
            return PASSED

        dvframework.extend("divisibleByThree", divisible_by_3, "{{field}} must be divisible by 3")
        with pytest.raises(ValidationFailed) as failure:
            await validate_all({"a": 9, "b": 10}, {"a": "divisibleByThree", "b": "divisible_by_three"})
        assert [(error.field, error.message) for error in failure.value] == [("b", "b must be divisible by 3")]

    async def test_separate_contexts(self):
        async def always_fails(data, field, message, args, rules):
            raise RuleViolation(message)

        context = dvframework.default_context.copy()
        context.extend("required", always_fails, "nope")
        data = {"a": 1}
        assert await validate(data, {"a": "required"}) is data
        with pytest.raises(ValidationFailed) as failure:
            await ValidationManager(context).validate(data, {"a": "required"})
        assert failure.value.errors[0].message == "nope"
