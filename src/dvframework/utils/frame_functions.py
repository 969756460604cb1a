"""
Contains functions which give rule predicates access to the state of the validation run they are executed in.
"""
from contextvars import ContextVar
from typing import Optional

from dvframework.modes import Mode

_run_mode: ContextVar[Optional[Mode]] = ContextVar("dvframework_run_mode", default=None)


def current_mode() -> Mode:
    """
    Returns the mode of the validation run this function is called in.
    Outside a validation run (e.g. if you call a rule predicate "by yourself") the mode of the default context is
    returned.
    E.g.:
    ```
    def my_rule(data, field, message, args, rules):
        if current_mode() is Mode.STRICT:
            ...
    ```
    """
    mode = _run_mode.get()
    if mode is not None:
        return mode
    # pylint: disable=import-outside-toplevel
    from dvframework.context import default_context

    return default_context.mode


def bind_mode(mode: Mode):
    """
    Sets the mode of the current validation run. Tasks created afterwards inherit it.
    Returns a token to reset the mode via `unbind_mode`.
    """
    return _run_mode.set(mode)


def unbind_mode(token) -> None:
    """Resets the mode set by `bind_mode`"""
    _run_mode.reset(token)
