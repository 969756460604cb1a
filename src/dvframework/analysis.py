"""
Contains functionality to analyze the result of a validation process
"""
import itertools
from typing import Generic, Optional, Sequence, TypeVar

from .errors import ValidationError, ValidationFailed

DataT = TypeVar("DataT")


def _extract_validation(validation_error: ValidationError) -> str:
    return validation_error.validation


class ValidationResult(Generic[DataT]):
    """
    The function `ValidationManager.analyze` will return an instance of this class. This class provides properties
    for further analysis of the ValidationErrors found during the process. Note that the values are calculated only
    if you use them - this saves some CPU time if you are only interested in e.g. whether the data set succeeded.
    """

    def __init__(self, data: DataT, errors: Sequence[ValidationError]):
        self.data = data
        self._errors: list[ValidationError] = list(errors)

        self._field_errors: Optional[dict[str, list[ValidationError]]] = None
        self._num_errors_per_rule: Optional[dict[str, int]] = None

    @property
    def errors(self) -> list[ValidationError]:
        """All ValidationErrors in field declaration order and rule declaration order"""
        return self._errors

    @property
    def succeeded(self) -> bool:
        """True if no rule failed"""
        return len(self._errors) == 0

    @property
    def field_errors(self) -> dict[str, list[ValidationError]]:
        """Maps every failed (concrete) field to the list of its ValidationErrors"""
        if self._field_errors is None:
            self._field_errors = {}
            for error in self._errors:
                self._field_errors.setdefault(error.field, []).append(error)
        return self._field_errors

    @property
    def failed_fields(self) -> list[str]:
        """The failed (concrete) fields in declaration order (equivalent to `list(self.field_errors)`)"""
        return list(self.field_errors)

    @property
    def num_errors_total(self) -> int:
        """Number of errors in total"""
        return len(self._errors)

    @property
    def num_errors_per_rule(self) -> dict[str, int]:
        """
        This is a dictionary which maps the rule name (as written in the rule spec) to the number of times it failed.
        """
        if self._num_errors_per_rule is None:
            self._num_errors_per_rule = {
                key: sum(1 for _ in values_iter)
                for key, values_iter in itertools.groupby(
                    sorted(self._errors, key=_extract_validation), key=_extract_validation
                )
            }
        return self._num_errors_per_rule

    def raise_for_errors(self) -> None:
        """Raises a `ValidationFailed` with all errors if the data set did not succeed"""
        if not self.succeeded:
            raise ValidationFailed(self._errors)
