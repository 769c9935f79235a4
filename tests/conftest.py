import pytest

from turingsim.parser import Specification, parse_spec
from turingsim.turing_machine import Machine

INCREMENT = """\
input: '1011'
blank: ' '
start state: right
table:
  right:
    [1, 0]: R
    ' ': {L: carry}
  carry:
    1: {write: 0, L}
    [0, ' ']: {write: 1, L: done}
  done:
"""

WILDCARD = """\
blank: ' '
start state: scan
input: 'ab!'
table:
  scan:
    a: {write: A, R}
    ' ': {L: done}
    _: {write: x, R}
  done:
"""


@pytest.fixture
def increment() -> Specification:
    return parse_spec(INCREMENT)


@pytest.fixture
def wildcard() -> Specification:
    return parse_spec(WILDCARD)


@pytest.fixture
def machine(increment: Specification) -> Machine:
    return Machine(increment)
