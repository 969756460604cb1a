"""
Contains the built-in rules. Every rule is a coroutine function with the signature
`rule(data, field, message, args, rules)`:
- `data` is the complete data set, `field` the concrete path of the field under validation,
- `message` the resolved error message, `args` the rule arguments and `rules` all rules of the field.
A rule returns `PASSED` or `SKIPPED` and raises `RuleViolation(message)` if the value is invalid.

The rules don't check if the field is absent - the execution engine skips non-implicit rules for absent values
before calling them. The required-family rules define their own condition.
"""
import asyncio
from fractions import Fraction
from os import stat
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

from PIL import Image

from dvframework import raw
from dvframework.errors import ConfigError, RuleViolation
from dvframework.modes import skippable
from dvframework.parser import ParsedRule
from dvframework.types import MISSING, PASSED, SKIPPED, RuleFunction
from dvframework.utils.frame_functions import current_mode
from dvframework.utils.query_object import get_value

NUMERIC_RULES = frozenset({"numeric", "integer"})
FILE_RULES = frozenset({"file", "image"})
DIMENSION_LIMITS = ("width", "min_width", "max_width", "height", "min_height", "max_height")
IMPLICIT_RULES = frozenset(
    {
        "required",
        "required_if",
        "required_when",
        "required_with_any",
        "required_with_all",
        "required_without_any",
        "required_without_all",
        "present",
    }
)


def has_rule(rules: Sequence[ParsedRule], names: str | Iterable[str]) -> bool:
    """
    Returns True if one of the `rules` has one of the given (canonical) `names`.
    """
    wanted = {names} if isinstance(names, str) else set(names)
    return any(rule.key in wanted for rule in rules)


def _file_path(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("path")
    return getattr(value, "path", None)


def get_size(value: Any, numeric: bool = False, is_file: bool = False) -> float:
    """
    Returns the "size" of a value: the value itself for numeric fields, the number of elements for lists, the size in
    KiB for files and the length of the string representation otherwise.
    """
    if numeric and raw.numeric(value):
        return raw.to_number(value)
    if isinstance(value, (list, tuple)):
        return len(value)
    if is_file and _file_path(value) is not None:
        return round(stat(_file_path(value)).st_size / 1024, 2)
    return len(raw.stringify(value))


async def _size_of(data: Any, field: str, rules: Sequence[ParsedRule]) -> float:
    value = get_value(data, field)
    numeric = has_rule(rules, NUMERIC_RULES)
    if has_rule(rules, FILE_RULES):
        return await asyncio.to_thread(get_size, value, numeric, True)
    return get_size(value, numeric)


def _check(passed: bool, message: str) -> str:
    if passed:
        return PASSED
    raise RuleViolation(message)


def _absent(value: Any) -> bool:
    """Decides if a referenced (other) field counts as absent. `None` is treated like a missing value."""
    return skippable(value, current_mode(), nullable=True)


def image_size(path: Any) -> Optional[tuple[int, int]]:
    """
    Returns the (width, height) of the image file at `path` or None if it cannot be read as an image.
    """
    if path is None:
        return None
    try:
        with Image.open(path) as picture:
            return picture.size
    except (OSError, ValueError):
        return None


def _dimension_limits(args: Sequence[str]) -> dict[str, str]:
    limits: dict[str, str] = {}
    for arg in args:
        key, _, value = arg.partition("=")
        if key.strip() not in (*DIMENSION_LIMITS, "ratio") or value.strip() == "":
            raise ConfigError(f"invalid dimensions constraint '{arg}'")
        limits[key.strip()] = value.strip()
    return limits


def _fits(size: tuple[int, int], limits: Mapping[str, str]) -> bool:
    width, height = size
    actual = {"width": width, "height": height}
    for key, value in limits.items():
        if key == "ratio":
            continue
        try:
            limit = int(value)
        except ValueError as error:
            raise ConfigError(f"dimensions expects whole numbers, got {key}={value}") from error
        measured = actual[key.rsplit("_", 1)[-1]]
        if key.startswith("min_") and measured < limit:
            return False
        if key.startswith("max_") and measured > limit:
            return False
        if key in actual and measured != limit:
            return False
    if "ratio" in limits:
        try:
            ratio = Fraction(limits["ratio"])
        except (ValueError, ZeroDivisionError) as error:
            raise ConfigError(f"invalid dimensions ratio '{limits['ratio']}'") from error
        return height != 0 and Fraction(width, height) == ratio
    return True


# pylint: disable=unused-argument


async def accepted(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be accepted, e.g. `"yes"`, `"on"`, `1` or `True`"""
    return _check(raw.truthy(get_value(data, field)), message)


async def after(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a date after the date given as first argument"""
    return _check(raw.after(get_value(data, field), args[0] if args else None), message)


async def alpha(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must only contain letters"""
    return _check(raw.alpha(get_value(data, field)), message)


async def alpha_numeric(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must only contain letters and digits"""
    return _check(raw.alpha_numeric(get_value(data, field)), message)


async def array(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a list or a tuple"""
    return _check(raw.array(get_value(data, field)), message)


async def before(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a date before the date given as first argument"""
    return _check(raw.before(get_value(data, field), args[0] if args else None), message)


async def boolean(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    Accepts `True`, `False`, `0`, `1`, `"0"` and `"1"`.
    """
    value = get_value(data, field)
    if value == "0":
        value = 0
    elif value == "1":
        value = 1
    return _check(raw.boolean(value), message)


async def confirmed(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field must be equal to `<field>_confirmation`. It is skipped if the confirmation is absent.
    """
    confirmation = get_value(data, f"{field}_confirmation")
    if confirmation is MISSING:
        return SKIPPED
    return _check(raw.same(get_value(data, field), confirmation), message)


async def date(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a date or a string which parses as date"""
    return _check(raw.date_(get_value(data, field)), message)


async def date_format(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a date string in one of the moment style formats given as arguments"""
    return _check(raw.date_format(get_value(data, field), list(args) or None), message)


async def different(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field must differ from the field named by the first argument. It is skipped if that field is absent.
    """
    other = get_value(data, args[0]) if args else MISSING
    if _absent(other):
        return SKIPPED
    return _check(not raw.same(get_value(data, field), other), message)


async def dimensions(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The (file) field must be an image whose size meets every `key=value` argument. Keys are `width`, `height`, their
    `min_`/`max_` variants and `ratio` (e.g. `ratio=3/2`).
    """
    limits = _dimension_limits(args)
    size = await asyncio.to_thread(image_size, _file_path(get_value(data, field)))
    if size is None:
        raise RuleViolation(message)
    return _check(_fits(size, limits), message)


async def email(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a valid email address"""
    return _check(raw.email(get_value(data, field)), message)


async def ends_with(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must end with the first argument"""
    return _check(raw.stringify(get_value(data, field)).endswith(args[0] if args else ""), message)


async def file(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field must describe an uploaded file, i.e. carry a `path` which exists on disk.
    """
    path = _file_path(get_value(data, field))
    if path is None:
        raise RuleViolation(message)
    return _check(await asyncio.to_thread(Path(path).exists), message)


async def image(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The (file) field must point to a file which can be read as an image"""
    path = _file_path(get_value(data, field))
    return _check(await asyncio.to_thread(image_size, path) is not None, message)


async def in_(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be one of the arguments"""
    return _check(raw.in_array(get_value(data, field), list(args)), message)


async def includes(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must contain the first argument"""
    return _check((args[0] if args else "") in raw.stringify(get_value(data, field)), message)


async def integer(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be an integral number. Numeric strings are rejected"""
    value = get_value(data, field)
    return _check(raw.number(value) and float(value).is_integer(), message)


async def ip(  # pylint: disable=invalid-name
    data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]
) -> str:
    """The field must be an IPv4 or IPv6 address"""
    return _check(raw.ip(get_value(data, field)), message)


async def ipv4(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be an IPv4 address"""
    return _check(raw.ipv4(get_value(data, field)), message)


async def ipv6(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be an IPv6 address"""
    return _check(raw.ipv6(get_value(data, field)), message)


async def json(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a string containing a JSON object or array"""
    return _check(raw.json_(get_value(data, field)), message)


async def lowercase(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must not contain uppercase characters"""
    value = raw.stringify(get_value(data, field))
    return _check(value.lower() == value, message)


async def max_(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The size of the field (see `get_size`) must not exceed the first argument.
    """
    return _check(await _size_of(data, field, rules) <= raw.to_number(args[0] if args else None), message)


async def mimetypes(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The `mimetype` of the (file) field must be one of the arguments"""
    value = get_value(data, field)
    mimetype = value.get("mimetype") if isinstance(value, Mapping) else getattr(value, "mimetype", None)
    return _check(mimetype is not None and mimetype in args, message)


async def min_(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The size of the field (see `get_size`) must be at least the first argument.
    """
    return _check(await _size_of(data, field, rules) >= raw.to_number(args[0] if args else None), message)


async def not_in(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must not be one of the arguments"""
    return _check(not raw.in_array(get_value(data, field), list(args)), message)


async def nullable(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    Marker rule. It allows `None` as value for the other rules of the field and never fails itself.
    """
    return SKIPPED


async def numeric(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a number or a string representing one"""
    return _check(raw.numeric(get_value(data, field)), message)


async def object_(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a mapping"""
    return _check(raw.object_(get_value(data, field)), message)


async def present(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field must exist in the data set. Unlike `required`, empty values are fine.
    """
    return _check(get_value(data, field) is not MISSING, message)


async def range_(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The size of the field (see `get_size`) must be between the two arguments (inclusive).
    Missing bounds are a configuration error.
    """
    minimum = args[0] if len(args) > 0 else None
    maximum = args[1] if len(args) > 1 else None
    if minimum is None or maximum is None or str(minimum).strip() == "" or str(maximum).strip() == "":
        raise ConfigError("min and max values are required for range validation")
    return _check(raw.between(await _size_of(data, field, rules), minimum, maximum), message)


async def regex(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must match the pattern given as first argument, using the optional flags of the second argument"""
    pattern = args[0] if args else ""
    flags = args[1] if len(args) > 1 else ""
    return _check(raw.regex(get_value(data, field), pattern, flags), message)


def _is_present(data: Any, field: str) -> bool:
    return not raw.empty(get_value(data, field))


async def required(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field must be present and not empty (`None`, empty strings and empty collections count as empty).
    """
    return _check(_is_present(data, field), message)


async def required_if(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field is required if the field named by the first argument is present.
    """
    if _absent(get_value(data, args[0]) if args else MISSING):
        return SKIPPED
    return _check(_is_present(data, field), message)


async def required_when(
    data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]
) -> str:
    """
    The field is required if the field named by the first argument has the value of the second argument.
    """
    other = get_value(data, args[0]) if args else MISSING
    expected = args[1] if len(args) > 1 else MISSING
    if raw.stringify(expected) != raw.stringify(other):
        return SKIPPED
    return _check(_is_present(data, field), message)


async def required_with_any(
    data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]
) -> str:
    """
    The field is required if any of the fields named by the arguments is present.
    """
    if not any(not _absent(get_value(data, other)) for other in args):
        return SKIPPED
    return _check(_is_present(data, field), message)


async def required_with_all(
    data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]
) -> str:
    """
    The field is required if all of the fields named by the arguments are present.
    """
    if not all(not _absent(get_value(data, other)) for other in args):
        return SKIPPED
    return _check(_is_present(data, field), message)


async def required_without_any(
    data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]
) -> str:
    """
    The field is required if any of the fields named by the arguments is absent.
    """
    if not any(_absent(get_value(data, other)) for other in args):
        return SKIPPED
    return _check(_is_present(data, field), message)


async def required_without_all(
    data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]
) -> str:
    """
    The field is required if all of the fields named by the arguments are absent.
    """
    if not all(_absent(get_value(data, other)) for other in args):
        return SKIPPED
    return _check(_is_present(data, field), message)


async def same(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """
    The field must equal the field named by the first argument. It is skipped if that field is absent.
    """
    other = get_value(data, args[0]) if args else MISSING
    if _absent(other):
        return SKIPPED
    return _check(raw.same(get_value(data, field), other), message)


async def size(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The size of the field (see `get_size`) must equal the first argument"""
    return _check(await _size_of(data, field, rules) == raw.to_number(args[0] if args else None), message)


async def starts_with(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must start with the first argument"""
    return _check(raw.stringify(get_value(data, field)).startswith(args[0] if args else ""), message)


async def string(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a string"""
    return _check(raw.string(get_value(data, field)), message)


async def time(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a time like `10:30`, `10:30:15` or `10:30 am`"""
    return _check(raw.time_(get_value(data, field)), message)


async def uppercase(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must not contain lowercase characters"""
    value = raw.stringify(get_value(data, field))
    return _check(value.upper() == value, message)


async def url(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a valid URL"""
    return _check(raw.url(get_value(data, field)), message)


async def uuid(data: Any, field: str, message: str, args: Sequence[str], rules: Sequence[ParsedRule]) -> str:
    """The field must be a UUID"""
    return _check(raw.uuid(get_value(data, field)), message)


BUILTIN_RULES: dict[str, RuleFunction] = {
    "accepted": accepted,
    "after": after,
    "alpha": alpha,
    "alpha_numeric": alpha_numeric,
    "array": array,
    "before": before,
    "between": range_,
    "boolean": boolean,
    "confirmed": confirmed,
    "date": date,
    "date_format": date_format,
    "different": different,
    "dimensions": dimensions,
    "email": email,
    "ends_with": ends_with,
    "file": file,
    "image": image,
    "in": in_,
    "includes": includes,
    "integer": integer,
    "ip": ip,
    "ipv4": ipv4,
    "ipv6": ipv6,
    "json": json,
    "lowercase": lowercase,
    "max": max_,
    "mimetypes": mimetypes,
    "min": min_,
    "not_in": not_in,
    "nullable": nullable,
    "numeric": numeric,
    "object": object_,
    "present": present,
    "range": range_,
    "regex": regex,
    "required": required,
    "required_if": required_if,
    "required_when": required_when,
    "required_with_all": required_with_all,
    "required_with_any": required_with_any,
    "required_without_all": required_without_all,
    "required_without_any": required_without_any,
    "same": same,
    "size": size,
    "starts_with": starts_with,
    "string": string,
    "time": time,
    "uppercase": uppercase,
    "url": url,
    "uuid": uuid,
}
