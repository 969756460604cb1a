"""
Contains the exceptions raised by the validation framework.
A failing rule is reported as `ValidationError`. Validation calls which found failing rules raise `ValidationFailed`
which carries the list of `ValidationError`s. Setup mistakes (unknown rules, invalid extensions) raise a `ConfigError`
instead - it is never mixed into the list of validation errors.
"""
from typing import Any, Iterator, Sequence


class DvFrameworkError(Exception):
    """
    Base class of all exceptions of this package
    """


class ValidationError(DvFrameworkError):
    """
    Describes a single failing (field, rule) pair.
    `field` is the concrete path (wildcards already expanded), `validation` the rule name as it was written in the
    rule spec and `message` the resolved error message.
    """

    def __init__(self, field: str, validation: str, message: str):
        super().__init__(message)
        self.field = field
        self.validation = validation
        self.message = message

    def to_dict(self) -> dict[str, str]:
        """Returns the error as plain dictionary"""
        return {"field": self.field, "validation": self.validation, "message": self.message}

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, ValidationError)
            and self.field == other.field
            and self.validation == other.validation
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash((self.field, self.validation, self.message))

    def __repr__(self) -> str:
        return f"ValidationError(field={self.field!r}, validation={self.validation!r}, message={self.message!r})"

    def __str__(self) -> str:
        return f"{self.field}: {self.message} ({self.validation})"


class ValidationFailed(DvFrameworkError):
    """
    Raised by `validate` and `validate_all` if at least one rule failed.
    `validate` raises it with exactly one error, `validate_all` with all errors in field-then-rule order.
    """

    def __init__(self, errors: Sequence[ValidationError]):
        self.errors: list[ValidationError] = list(errors)
        super().__init__(f"{len(self.errors)} validation error(s): " + "; ".join(str(err) for err in self.errors))

    def __iter__(self) -> Iterator[ValidationError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __getitem__(self, index: int) -> ValidationError:
        return self.errors[index]


class RuleViolation(DvFrameworkError):
    """
    Rule predicates raise this exception to reject the value of the field under validation.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(DvFrameworkError):
    """
    Raised on programming or setup errors, e.g. extending the framework with something which is not callable.
    It aborts the whole validation run.
    """


class RuleNotDefinedError(ConfigError):
    """
    Raised if a rule spec references a rule which is not registered.
    """

    def __init__(self, rule_name: str):
        super().__init__(f"{rule_name} is not defined as a validation")
        self.rule_name = rule_name
