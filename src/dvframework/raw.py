"""
Contains the raw predicates. They are plain boolean checks over a single value without any knowledge of fields or
rules. They are available through `is_`, e.g. `is_.email("someone@example.com")`, and can be extended using
`is_.extend(name, function)`.
"""
import json
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from dvframework.errors import ConfigError
from dvframework.parser import normalize_rule_name
from dvframework.types import MISSING, RawPredicate

logger = logging.getLogger(__name__)

_EMAIL = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\.[a-zA-Z]{2,63}$"
)
_URL = re.compile(
    r"^(?:https?|ftp)://(?:\S+(?::\S*)?@)?"
    r"(?:localhost|(?:\d{1,3}\.){3}\d{1,3}|(?:[a-zA-Z0-9-]+\.)+[a-zA-Z]{2,63})"
    r"(?::\d{2,5})?(?:[/?#]\S*)?$",
    re.IGNORECASE,
)
_PHONE = re.compile(r"^(?:\+?\d{1,3}[-. ]?)?\(?\d{3}\)?[-. ]?\d{3}[-. ]?\d{4}$")
_CREDIT_CARD = re.compile(
    r"^(?:4\d{12}(?:\d{3})?|5[1-5]\d{14}|6(?:011|5\d\d)\d{12}|3[47]\d{13}"
    r"|3(?:0[0-5]|[68]\d)\d{11}|(?:2131|1800|35\d{3})\d{11})$"
)
_ALPHA = re.compile(r"^[a-zA-Z]+$")
_ALPHA_NUMERIC = re.compile(r"^[a-zA-Z0-9]+$")
_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)
_AFFIRMATIVE = frozenset({"yes", "y", "ok", "okay", "true", "a"})

_JS_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "u": re.UNICODE, "x": re.VERBOSE}

_MOMENT_TOKENS = re.compile(r"YYYY|YY|MM|M|DD|D|HH|H|hh|h|mm|m|ss|s|SSS|A|a|ZZ|Z")
_MOMENT_TO_STRPTIME = {
    "YYYY": "%Y",
    "YY": "%y",
    "MM": "%m",
    "M": "%m",
    "DD": "%d",
    "D": "%d",
    "HH": "%H",
    "H": "%H",
    "hh": "%I",
    "h": "%I",
    "mm": "%M",
    "m": "%M",
    "ss": "%S",
    "s": "%S",
    "SSS": "%f",
    "A": "%p",
    "a": "%p",
    "ZZ": "%z",
    "Z": "%z",
}
_LOOSE_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%m-%d-%Y", "%d.%m.%Y", "%B %d, %Y", "%b %d, %Y", "%Y-%m-%d %H:%M:%S")


def stringify(value: Any) -> str:
    """
    Renders a value the way the rule language reads it: booleans as `true`/`false`, `None` as `null`, integral
    floats without fraction and missing values as `undefined`.
    """
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None or item is MISSING else stringify(item) for item in value)
    return str(value)


def to_number(value: Any) -> float:
    """
    Converts the value into a float. Returns `nan` if it is not numeric.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip() != "":
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or value.strip() == "":
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for date_format in _LOOSE_DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format)
        except ValueError:
            continue
    return None


def _naive(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def moment_to_strptime(moment_format: str) -> str:
    """
    Translates a moment style date format (e.g. `YYYY-MM-DD HH:mm`) into a strptime format.
    """
    return _MOMENT_TOKENS.sub(lambda match: _MOMENT_TO_STRPTIME[match.group(0)], moment_format.replace("%", "%%"))


# Types


def array(value: Any) -> bool:
    """True for lists and tuples"""
    return isinstance(value, (list, tuple))


def boolean(value: Any) -> bool:
    """True for booleans and the numbers 0 and 1"""
    if isinstance(value, bool):
        return True
    return isinstance(value, (int, float)) and value in (0, 1)


def date_(value: Any, strict: bool = False) -> bool:
    """
    True for date/datetime instances. Unless `strict` is set, strings which parse as a date are accepted too.
    """
    if isinstance(value, (date, datetime)):
        return True
    if strict:
        return False
    return _to_datetime(value) is not None


def function(value: Any) -> bool:
    """True for callables"""
    return callable(value)


def null(value: Any) -> bool:
    """True for None"""
    return value is None


def number(value: Any) -> bool:
    """True for ints and floats except booleans and nan"""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def numeric(value: Any) -> bool:
    """True for finite numbers and strings representing them"""
    if isinstance(value, bool):
        return False
    return math.isfinite(to_number(value))


def object_(value: Any) -> bool:
    """True for mappings"""
    return isinstance(value, Mapping)


def json_(value: Any) -> bool:
    """True for strings containing a JSON object or array"""
    if not isinstance(value, str):
        return False
    try:
        return isinstance(json.loads(value), (dict, list))
    except ValueError:
        return False


def string(value: Any) -> bool:
    """True for strings"""
    return isinstance(value, str)


def same_type(value: Any, other: Any) -> bool:
    """True if both values have the same type"""
    return type(value) is type(other)  # pylint: disable=unidiomatic-typecheck


# Presence


def empty(value: Any) -> bool:
    """
    True for missing values, `None`, empty strings and empty collections. Numbers, booleans and dates are never empty.
    """
    if value is MISSING or value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


def existy(value: Any) -> bool:
    """True unless the value is missing, None or an empty string"""
    return value is not MISSING and value is not None and value != ""


def truthy(value: Any) -> bool:
    """True for existing values other than False and 0"""
    return existy(value) and value is not False and value != 0


def falsy(value: Any) -> bool:
    """Negation of `truthy`"""
    return not truthy(value)


# Regex


def url(value: Any) -> bool:
    """True for http(s) and ftp URLs"""
    return isinstance(value, str) and _URL.match(value) is not None


def email(value: Any) -> bool:
    """True for email addresses"""
    return isinstance(value, str) and _EMAIL.match(value) is not None


def phone(value: Any) -> bool:
    """True for phone numbers like `555-555-5555` or `+1 (555) 555 5555`"""
    return _PHONE.match(stringify(value)) is not None


def credit_card(value: Any) -> bool:
    """True for credit card numbers of the major issuers. Spaces and dashes are ignored"""
    return _CREDIT_CARD.match(re.sub(r"[\s-]", "", stringify(value))) is not None


def alpha(value: Any) -> bool:
    """True if the value only contains letters"""
    return value is not None and value is not MISSING and _ALPHA.match(stringify(value)) is not None


def alpha_numeric(value: Any) -> bool:
    """True if the value only contains letters and digits"""
    return value is not None and value is not MISSING and _ALPHA_NUMERIC.match(stringify(value)) is not None


def affirmative(value: Any) -> bool:
    """True for `yes`, `y`, `ok`, `okay`, `true` and `a` in any case"""
    return stringify(value).strip().lower() in _AFFIRMATIVE


def ip(value: Any) -> bool:  # pylint: disable=invalid-name
    """True for IPv4 and IPv6 addresses"""
    try:
        ip_address(stringify(value))
    except ValueError:
        return False
    return True


def ipv4(value: Any) -> bool:
    """True for IPv4 addresses"""
    try:
        IPv4Address(stringify(value))
    except ValueError:
        return False
    return True


def ipv6(value: Any) -> bool:
    """True for IPv6 addresses"""
    try:
        IPv6Address(stringify(value))
    except ValueError:
        return False
    return True


def uuid(value: Any) -> bool:
    """True for UUIDs of versions 1 to 5"""
    return isinstance(value, str) and _UUID.match(value) is not None


def compile_pattern(pattern: str | re.Pattern[str], flags: str = "") -> re.Pattern[str]:
    """
    Compiles a pattern using javascript style flags (e.g. `"im"`). The `g` flag has no meaning here and is ignored.
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    re_flags = 0
    for flag in flags or "":
        re_flags |= _JS_REGEX_FLAGS.get(flag, 0)
    return re.compile(pattern, re_flags)


def regex(value: Any, pattern: str | re.Pattern[str], flags: str = "") -> bool:
    """True if the pattern matches anywhere in the value"""
    return compile_pattern(pattern, flags).search(stringify(value)) is not None


# Arithmetic


def same(value: Any, other: Any) -> bool:
    """Strict equality: numbers compare by value, everything else by type and value"""
    if number(value) and number(other):
        return value == other
    return same_type(value, other) and value == other


def even(value: Any) -> bool:
    """True for even integral numbers"""
    return number(value) and float(value).is_integer() and int(value) % 2 == 0


def odd(value: Any) -> bool:
    """True for odd integral numbers"""
    return number(value) and float(value).is_integer() and int(value) % 2 == 1


def positive(value: Any) -> bool:
    """True for numbers greater than 0"""
    return number(value) and value > 0


def negative(value: Any) -> bool:
    """True for numbers less than 0"""
    return number(value) and value < 0


def above(value: Any, minimum: Any) -> bool:
    """True if the value is greater than `minimum`"""
    return to_number(value) > to_number(minimum)


def under(value: Any, maximum: Any) -> bool:
    """True if the value is less than `maximum`"""
    return to_number(value) < to_number(maximum)


def between(value: Any, minimum: Any, maximum: Any) -> bool:
    """Inclusive on both ends"""
    return to_number(minimum) <= to_number(value) <= to_number(maximum)


# Arrays


def in_array(value: Any, values: Any) -> bool:
    """
    True if `value` is one of `values`. The comparison is done on the string representation, hence `10` is found in
    `["10", "20"]`.
    """
    if not array(values):
        return False
    needle = stringify(value)
    return any(stringify(candidate) == needle for candidate in values)


def sorted_(value: Any) -> bool:
    """True for lists sorted in ascending order"""
    if not array(value):
        return False
    return all(value[index] <= value[index + 1] for index in range(len(value) - 1))


def intersect_any(values: Any, targets: Any) -> bool:
    """True if any of `values` is one of `targets`"""
    if not array(values) or not array(targets):
        return False
    return any(item in targets for item in values)


def intersect_all(values: Any, targets: Any) -> bool:
    """True if all of `values` are in `targets`"""
    if not array(values) or not array(targets):
        return False
    return all(item in targets for item in values)


# Dates


def _day(value: Any) -> Optional[date]:
    moment = _to_datetime(value)
    return moment.date() if moment is not None else None


def today(value: Any) -> bool:
    """True if the value is a date of today"""
    return _day(value) == date.today()


def yesterday(value: Any) -> bool:
    """True if the value is a date of yesterday"""
    return _day(value) == date.today() - timedelta(days=1)


def tomorrow(value: Any) -> bool:
    """True if the value is a date of tomorrow"""
    return _day(value) == date.today() + timedelta(days=1)


def past(value: Any) -> bool:
    """True for dates before now"""
    moment = _to_datetime(value)
    return moment is not None and _naive(moment) < datetime.now()


def future(value: Any) -> bool:
    """True for dates after now"""
    moment = _to_datetime(value)
    return moment is not None and _naive(moment) > datetime.now()


def after(value: Any, other: Any) -> bool:
    """True if the value is a date after `other`"""
    moment, reference = _to_datetime(value), _to_datetime(other)
    return moment is not None and reference is not None and _naive(moment) > _naive(reference)


def before(value: Any, other: Any) -> bool:
    """True if the value is a date before `other`"""
    moment, reference = _to_datetime(value), _to_datetime(other)
    return moment is not None and reference is not None and _naive(moment) < _naive(reference)


def in_date_range(value: Any, minimum: Any, maximum: Any) -> bool:
    """True if the value is a date between `minimum` and `maximum` (both exclusive)"""
    return after(value, minimum) and before(value, maximum)


def date_format(value: Any, formats: Optional[str | Sequence[str]] = None) -> bool:
    """
    True if `value` is a date string matching one of the moment style `formats`. Without formats any date is accepted.
    """
    if formats is None or formats == "":
        return date_(value)
    if not isinstance(value, str):
        return False
    candidates = [formats] if isinstance(formats, str) else list(formats)
    for candidate in candidates:
        try:
            datetime.strptime(value, moment_to_strptime(candidate))
        except ValueError:
            continue
        return True
    return False


def time_(value: Any) -> bool:
    """True for times and strings like `10:30`, `10:30:15` or `10:30 am`"""
    return isinstance(value, time) or date_format(value, ["HH:mm:ss", "HH:mm", "HH:mm a"])


class RawPredicates:
    """
    The registry of raw predicates. Predicates are available as attributes in snake_case as well as in camelCase,
    e.g. `is_.alpha_numeric("abc")` or `is_.alphaNumeric("abc")`.
    """

    def __init__(self, predicates: Optional[Mapping[str, RawPredicate]] = None):
        self._predicates: dict[str, RawPredicate] = {}
        for name, predicate in (predicates or {}).items():
            self._predicates[normalize_rule_name(name)] = predicate

    def extend(self, name: str, predicate: RawPredicate) -> None:
        """
        Registers a new raw predicate. Raises a ConfigError if `predicate` is not callable.
        """
        if not callable(predicate):
            raise ConfigError("Invalid arguments, is_.extend expects 2nd parameter as a function")
        self._predicates[normalize_rule_name(name)] = predicate
        logger.debug("Registered raw predicate '%s'", name)

    def get(self, name: str) -> RawPredicate:
        """Returns the predicate registered under `name` (in any spelling). Raises a KeyError if there is none"""
        return self._predicates[normalize_rule_name(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_rule_name(name) in self._predicates

    def __iter__(self) -> Iterator[str]:
        return iter(self._predicates)

    def __getattr__(self, name: str) -> RawPredicate:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.get(name)
        except KeyError as error:
            raise AttributeError(f"'{name}' is not a registered raw predicate") from error


_BUILTIN_PREDICATES: dict[str, Callable[..., bool]] = {
    "array": array,
    "boolean": boolean,
    "date": date_,
    "function": function,
    "null": null,
    "number": number,
    "numeric": numeric,
    "object": object_,
    "json": json_,
    "string": string,
    "same_type": same_type,
    "empty": empty,
    "existy": existy,
    "truthy": truthy,
    "falsy": falsy,
    "url": url,
    "email": email,
    "phone": phone,
    "credit_card": credit_card,
    "alpha": alpha,
    "alpha_numeric": alpha_numeric,
    "affirmative": affirmative,
    "ip": ip,
    "ipv4": ipv4,
    "ipv6": ipv6,
    "uuid": uuid,
    "regex": regex,
    "same": same,
    "even": even,
    "odd": odd,
    "positive": positive,
    "negative": negative,
    "above": above,
    "under": under,
    "between": between,
    "in_array": in_array,
    "sorted": sorted_,
    "intersect_any": intersect_any,
    "intersect_all": intersect_all,
    "today": today,
    "yesterday": yesterday,
    "tomorrow": tomorrow,
    "past": past,
    "future": future,
    "after": after,
    "before": before,
    "in_date_range": in_date_range,
    "date_format": date_format,
    "time": time_,
}

is_ = RawPredicates(_BUILTIN_PREDICATES)
