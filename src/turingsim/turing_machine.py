from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import TYPE_CHECKING, Self, TypeAlias

from rich.markup import escape

if TYPE_CHECKING:
    from turingsim.parser import Specification

logger = logging.getLogger(__name__)

WILDCARD = "_"

StateCallback: TypeAlias = Callable[[str, str], object]


class Direction(IntEnum):
    L = -1
    R = 1

    @classmethod
    def parse(cls, val: str) -> Self:
        match val:
            case "L" | "R":
                return getattr(cls, val)
            case _:
                raise ValueError(f"Not a tape movement: {val!r}")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Instruction:
    """A single table cell. Missing ``symbol``/``state`` mean "keep the current one"."""

    move: Direction
    symbol: str | None = None
    state: str | None = None

    def resolve(self, state: str, symbol: str) -> Instruction:
        if self.symbol is not None and self.state is not None:
            return self
        return replace(
            self,
            symbol=symbol if self.symbol is None else self.symbol,
            state=state if self.state is None else self.state,
        )

    def __str__(self) -> str:
        write = "" if self.symbol is None else f"write {self.symbol!r}, "
        target = "" if self.state is None else f" to {self.state}"
        return f"{write}move {self.move}{target}"


class LogicError(RuntimeError):
    """The machine was driven in a way a validated specification never allows."""


class UnknownStateError(LogicError):
    def __init__(self, state: str) -> None:
        super().__init__(f"not a valid state: {state!r}")
        self.state = state


class HaltingStateError(LogicError):
    def __init__(self, state: str) -> None:
        super().__init__(f"the machine has already reached a halting state: {state!r}")
        self.state = state


@dataclass(frozen=True)
class Configuration:
    state: str
    left: tuple[str, ...]
    right: tuple[str, ...]
    blank: str = " "

    def __str__(self) -> str:
        return f"...{''.join(self.left)}[{self.state}]{''.join(self.right)}..."

    def __format__(self, format: str) -> str:
        if not format:
            return str(self)
        elif format == ">":
            return self.pretty()
        else:
            raise ValueError

    def _cells(self, cells: Iterable[str]) -> str:
        return "".join(
            f"[grey58]{'␣' if char == ' ' else escape(char)}[/]" if char == self.blank else escape(char)
            for char in cells
        )

    def pretty(self) -> str:
        state = f"[cyan]\\[{escape(self.state)}][/]"
        return f"...{self._cells(self.left)}{state}{self._cells(self.right)}..."

    @property
    def head(self) -> str:
        return self.right[0]


class Tape:
    """Bi-infinite tape stored as a zipper.

    ``_before`` holds the cells left of the head in reading order, ``_after`` holds
    the head cell and everything right of it reversed, so the head is ``_after[-1]``.
    ``_after`` is never empty.
    """

    __slots__ = ("blank", "_before", "_after", "_pos")

    def __init__(self, blank: str, input: Iterable[str] = ()) -> None:
        self.blank = blank
        self._before: list[str] = []
        self._after = list(input)[::-1] or [blank]
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def read(self) -> str:
        return self._after[-1]

    def write(self, symbol: str) -> None:
        self._after[-1] = symbol

    def head_right(self) -> None:
        self._before.append(self._after.pop())
        if not self._after:
            self._after.append(self.blank)
        self._pos += 1

    def head_left(self) -> None:
        if not self._before:
            self._before.append(self.blank)
        self._after.append(self._before.pop())
        self._pos -= 1

    def move(self, direction: Direction) -> None:
        match direction:
            case Direction.R:
                self.head_right()
            case Direction.L:
                self.head_left()
            case _:
                raise TypeError(f"not a valid tape movement: {direction!r}")

    def read_offset(self, i: int) -> str:
        if i >= 0:
            return self._after[-1 - i] if i < len(self._after) else self.blank
        else:
            return self._before[i] if -i <= len(self._before) else self.blank

    def read_range(self, start: int, end: int) -> list[str]:
        """Symbols at offsets ``start`` to ``end`` from the head, both inclusive."""
        return [self.read_offset(i) for i in range(start, end + 1)]

    def configuration(self, state: str) -> Configuration:
        return Configuration(state, tuple(self._before), tuple(reversed(self._after)), self.blank)

    def __str__(self) -> str:
        return "".join(self._before) + "🔎" + "".join(reversed(self._after))

    def __repr__(self) -> str:
        return f"Tape({self.blank!r}, {str(self)!r})"


@dataclass(eq=False)
class Machine:
    """A steppable machine for one validated specification.

    The instance owns its state and tape. Nothing here schedules steps; callers
    check :attr:`is_halted` and call :meth:`step` themselves.
    """

    spec: Specification
    state: str = field(init=False)
    tape: Tape = field(init=False)
    steps: int = field(init=False, default=0)
    _observers: list[StateCallback] = field(init=False, default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.state = self.spec.start_state
        self.tape = Tape(self.spec.blank, self.spec.input)

    @classmethod
    def from_text(cls, text: str) -> Self:
        from turingsim.parser import parse_spec

        return cls(parse_spec(text))

    @property
    def table(self) -> Mapping[str, Mapping[str, Instruction] | None]:
        return self.spec.table

    def lookup(self, state: str, symbol: str) -> Instruction | None:
        if state not in self.table:
            raise UnknownStateError(state)
        transitions = self.table[state]
        if transitions is None:
            raise HaltingStateError(state)
        instruction = transitions.get(symbol)
        if instruction is None:
            instruction = transitions.get(WILDCARD)
        if instruction is None:
            return None
        return instruction.resolve(state, symbol)

    @property
    def is_halting_state(self) -> bool:
        return self.table.get(self.state, ()) is None

    @property
    def next_instruction(self) -> Instruction | None:
        if self.is_halting_state:
            return None
        return self.lookup(self.state, self.tape.read())

    @property
    def is_halted(self) -> bool:
        return self.next_instruction is None

    def step(self) -> bool:
        """Perform one transition. Returns ``False`` without changing anything if none applies."""
        symbol = self.tape.read()
        instruction = self.lookup(self.state, symbol)
        if instruction is None:
            logger.info("Halted in state %r reading %r after %d steps", self.state, symbol, self.steps)
            return False
        assert instruction.symbol is not None and instruction.state is not None
        logger.debug("%r reading %r: %s", self.state, symbol, instruction)
        self.tape.write(instruction.symbol)
        self.tape.move(instruction.move)
        self.steps += 1
        self._set_state(instruction.state)
        return True

    def reset(self) -> None:
        self.tape = Tape(self.spec.blank, self.spec.input)
        self.steps = 0
        self._set_state(self.spec.start_state)

    def configuration(self) -> Configuration:
        return self.tape.configuration(self.state)

    def on_state_change(self, callback: StateCallback) -> Callable[[], None]:
        """Call ``callback(old, new)`` after every successful step and on reset.

        Returns a function that removes the callback again.
        """
        self._observers.append(callback)

        def remove() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return remove

    def _set_state(self, new: str) -> None:
        old, self.state = self.state, new
        for callback in list(self._observers):
            callback(old, new)

    def __str__(self) -> str:
        return f"{self.state}\n{self.tape}"
