from typing import Iterator

import pytest

from dvframework import default_context, is_


@pytest.fixture(autouse=True)
def restore_default_context() -> Iterator[None]:
    """Tests extend the default context and the raw predicates. This resets them after every test."""
    # pylint: disable=protected-access
    state = default_context.snapshot()
    predicates = dict(is_._predicates)
    yield
    default_context._rules = dict(state.rules)
    default_context._messages = dict(state.messages)
    default_context._implicit_rules = set(state.implicit_rules)
    default_context._mode = state.mode
    is_._predicates = predicates
