"""
Contains functions to query values from loosely typed, nested data sets by dotted paths.
A path segment addresses a key of a mapping, an index of a sequence or an attribute of any other object, e.g.
`people.0.email`.
"""
from typing import Any, Mapping, Optional, Sequence, TypeVar, overload

from typeguard import TypeCheckError, check_type

from dvframework.types import MISSING

AttrT = TypeVar("AttrT")


def _child(current_obj: Any, segment: str) -> Any:
    """
    Returns the child of `current_obj` addressed by `segment`. Raises a KeyError if it does not exist.
    """
    if isinstance(current_obj, Mapping):
        if segment in current_obj:
            return current_obj[segment]
        if segment.isdecimal() and int(segment) in current_obj:
            return current_obj[int(segment)]
        raise KeyError(segment)
    if isinstance(current_obj, Sequence) and not isinstance(current_obj, (str, bytes)):
        if segment.isdecimal() and int(segment) < len(current_obj):
            return current_obj[int(segment)]
        raise KeyError(segment)
    if current_obj is None or current_obj is MISSING or isinstance(current_obj, (str, bytes, int, float)):
        raise KeyError(segment)
    try:
        return getattr(current_obj, segment)
    except AttributeError as error:
        raise KeyError(segment) from error


def optional_field(obj: Any, attribute_path: str, attribute_type: type[AttrT] | Any) -> Optional[AttrT]:
    """
    Tries to query the `obj` with the provided `attribute_path`. If it is not existent or does not match the
    `attribute_type`, `None` will be returned.
    """
    try:
        return required_field(obj, attribute_path, attribute_type)
    except (AttributeError, TypeCheckError):
        return None


@overload
def required_field(
    obj: Any, attribute_path: str, attribute_type: type[AttrT], param_base_path: Optional[str] = None
) -> AttrT:
    ...


@overload
def required_field(obj: Any, attribute_path: str, attribute_type: Any, param_base_path: Optional[str] = None) -> Any:
    ...


def required_field(obj: Any, attribute_path: str, attribute_type: Any, param_base_path: Optional[str] = None) -> Any:
    """
    Tries to query the `obj` with the provided `attribute_path`. If it is not existent,
    an AttributeError will be raised.
    If the attribute is found, the type will be checked and TypeCheckError will be raised if the type doesn't match the
    value.
    An empty `attribute_path` addresses `obj` itself.
    """
    current_obj: Any = obj
    splitted_path = attribute_path.split(".") if attribute_path != "" else []
    for index, segment in enumerate(splitted_path):
        try:
            current_obj = _child(current_obj, segment)
        except KeyError as error:
            current_path = ".".join(splitted_path[0 : index + 1])
            if param_base_path is not None:
                current_path = f"{param_base_path}.{current_path}"
            raise AttributeError(f"{current_path}: Not found") from error
    try:
        check_type(current_obj, attribute_type)
    except TypeCheckError as error:
        current_path = attribute_path
        if param_base_path is not None:
            current_path = f"{param_base_path}.{attribute_path}"
        raise TypeCheckError(f"{current_path}: {error}") from error
    return current_obj


def get_value(obj: Any, attribute_path: str) -> Any:
    """
    Returns the value at `attribute_path` or `MISSING` if the path does not exist.
    """
    try:
        return required_field(obj, attribute_path, Any)
    except AttributeError:
        return MISSING
