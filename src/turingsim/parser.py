"""Turns the YAML notation for a machine into a checked :class:`Specification`.

A document looks like::

    input: '1011'
    blank: ' '
    start state: right
    synonyms:
      done: {R: done}
    table:
      right:
        [1, 0]: R
        ' ': {L: carry}
      carry:
        1: {write: 0, L}
        [0, ' ']: {write: 1, L: done}
      done:

Malformed YAML raises :class:`YAMLError`, a well-formed document that does not
describe a machine raises :class:`TMSpecError`. Nothing is returned partially.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Self, TypeAlias

import yaml
from rich.markup import escape
from yaml import YAMLError
from yaml.constructor import ConstructorError

from turingsim.turing_machine import Direction, Instruction

__all__ = ["Reason", "Specification", "TMSpecError", "YAMLError", "load_yaml", "parse_document", "parse_spec"]

logger = logging.getLogger(__name__)

BOOL_TAG = "tag:yaml.org,2002:bool"

Table: TypeAlias = Mapping[str, Mapping[str, Instruction] | None]
Row: TypeAlias = tuple[str, ...]


class Reason(StrEnum):
    empty_document = "The document is empty"
    missing_blank = "No blank symbol was specified"
    invalid_blank = "The blank symbol must be a string of length 1"
    missing_start_state = "No start state was specified"
    missing_table = "Missing transition table"
    invalid_table_type = "Transition table has an invalid type"
    invalid_synonyms_type = "Synonyms table has an invalid type"
    invalid_state_entry_type = "State entry has an invalid type"
    invalid_instruction_type = "Invalid instruction type"
    unrecognized_synonym = "Unrecognized string"
    unrecognized_key = "Unrecognized key"
    conflicting_directions = "Conflicting tape movements"
    missing_direction = "Missing movement direction"
    invalid_write_length = "Write requires a string of length 1"
    undeclared_state = "Undeclared state"
    repeated_symbol = "Repeated symbol"
    undeclared_start_state = "The start state has to be declared in the transition table"


class TMSpecError(Exception):
    """Valid YAML that is not a valid machine, e.g. a transition to an undeclared state.

    ``reason`` says what is wrong, the remaining attributes say where. They are
    filled in while the error travels up through the parser.
    """

    def __init__(
        self,
        reason: Reason,
        *,
        problem_value: str | None = None,
        state: str | None = None,
        symbol: str | None = None,
        synonym: str | None = None,
        info: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.problem_value = problem_value
        self.state = state
        self.symbol = symbol
        self.synonym = synonym
        self.info = info
        self.suggestion = suggestion

    def location(self, code: Callable[[str], str] = "`{}`".format) -> str:
        if self.state is not None:
            if self.symbol is not None:
                return f" in the transition from state {code(self.state)} and symbol {code(self.symbol)}"
            return f" for state {code(self.state)}"
        elif self.synonym is not None:
            return f" in the definition of synonym {code(self.synonym)}"
        return ""

    def __str__(self) -> str:
        problem = "" if self.problem_value is None else f" `{self.problem_value}`"
        sentences = [self.reason.value + problem + self.location(), self.info, self.suggestion]
        return " ".join(f"{s}." for s in sentences if s)

    def pretty(self) -> str:
        def code(val: str) -> str:
            return f"[cyan]{escape(val)}[/]"

        problem = "" if self.problem_value is None else " " + code(self.problem_value)
        lines = [f"[bold]{self.reason.value}[/]{problem}{self.location(code)}."]
        lines.extend(f"{escape(s)}." for s in (self.info, self.suggestion) if s)
        return "\n".join(lines)


class SpecLoader(yaml.SafeLoader):
    """Safe loader that accepts flow sequences as mapping keys and rejects duplicate keys.

    ``[0, 1]: R`` is loaded with the key ``(0, 1)``. Only ``true``/``false`` are
    booleans, so states like ``on`` or ``no`` stay strings.
    """

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Hashable, Any]:
        self.flatten_mapping(node)
        mapping: dict[Hashable, Any] = {}
        for key_node, value_node in node.value:
            key = self.construct_object(key_node, deep=True)
            if isinstance(key, list):
                key = tuple(key)
            try:
                hash(key)
            except TypeError as e:
                raise ConstructorError(
                    "while constructing a mapping", node.start_mark, "found unhashable key", key_node.start_mark
                ) from e
            if key in mapping:
                raise ConstructorError(
                    "while constructing a mapping", node.start_mark, f"found duplicate key {key!r}", key_node.start_mark
                )
            mapping[key] = self.construct_object(value_node, deep=deep)
        return mapping


SpecLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
SpecLoader.add_implicit_resolver(BOOL_TAG, re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"), list("tTfF"))


def load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=SpecLoader)  # noqa: S506


def to_text(val: object) -> str:
    match val:
        case bool():
            return "true" if val else "false"
        case _:
            return str(val)


def split_symbols(key: object) -> list[str]:
    """Symbols named by a table row key.

    A sequence key lists them directly, a string is split on commas where two
    commas in a row stand for a literal comma (``"0,,,1"`` is ``0``, ``,`` and ``1``).
    """
    if isinstance(key, tuple):
        return [to_text(s) for s in key]
    symbols: list[str] = []
    for part in to_text(key).split(","):
        if part == "" and symbols and symbols[-1] == "":
            symbols[-1] = ","
        else:
            symbols.append(part)
    return symbols


def _type_name(val: object) -> str:
    return "null" if val is None else type(val).__name__


@dataclass(frozen=True)
class Specification:
    """A checked machine. ``rows`` keeps the symbol groups of each state's rows as written."""

    blank: str
    start_state: str
    table: Table
    input: tuple[str, ...] = ()
    synonyms: Mapping[str, Instruction] = field(default_factory=dict)
    rows: Mapping[str, tuple[Row, ...]] = field(default_factory=dict)
    name: str | None = None

    def __post_init__(self) -> None:
        assert len(self.blank) == 1, f"Blank symbol {self.blank!r} is not a single symbol"
        assert self.start_state in self.table, f"Start state {self.start_state!r} is not in the table"
        for state, transitions in self.table.items():
            for symbol, instruction in (transitions or {}).items():
                assert instruction.state is None or instruction.state in self.table, (
                    f"Transition '{(state, symbol)}' goes to a nonexistent state {instruction.state}"
                )
        object.__setattr__(
            self,
            "table",
            MappingProxyType({
                state: None if transitions is None else MappingProxyType(dict(transitions))
                for state, transitions in self.table.items()
            }),
        )
        object.__setattr__(self, "synonyms", MappingProxyType(dict(self.synonyms)))
        object.__setattr__(self, "rows", MappingProxyType({state: tuple(rows) for state, rows in self.rows.items()}))
        object.__setattr__(self, "input", tuple(self.input))

    @property
    def states(self) -> list[str]:
        return list(self.table)

    @property
    def halting_states(self) -> list[str]:
        return [state for state, transitions in self.table.items() if transitions is None]

    def with_input(self, input: Iterable[str]) -> Self:
        return replace(self, input=tuple(input))


MOVES = {"L": Instruction(Direction.L), "R": Instruction(Direction.R)}
INSTRUCTION_KEYS = ("L", "R", "write")


def parse_instruction(val: object, synonyms: Mapping[str, Instruction] | None) -> Instruction:
    """Parse one table cell.

    The value is a direction literal, the name of a synonym, or a mapping with one
    direction key and an optional ``write``. Synonyms are checked after the
    direction literals, so ``L`` and ``R`` cannot be redefined.
    """
    match val:
        case "L" | "R":
            return MOVES[val]
        case str():
            if synonyms and val in synonyms:
                return synonyms[val]
            raise TMSpecError(
                Reason.unrecognized_synonym,
                problem_value=val,
                info="An instruction can be a string if it's a synonym or a direction",
            )
        case Mapping():
            return _parse_instruction_mapping(val)
        case _:
            raise TMSpecError(
                Reason.invalid_instruction_type,
                problem_value=_type_name(val),
                info="An instruction can be a string (a direction L/R or a synonym)"
                " or a mapping (examples: {R: accept}, {write: ' ', L: start})",
            )


def _parse_instruction_mapping(val: Mapping[Any, Any]) -> Instruction:
    for key in val:
        if key not in INSTRUCTION_KEYS:
            raise TMSpecError(
                Reason.unrecognized_key,
                problem_value=to_text(key),
                info="An instruction always has a tape movement L or R, and optionally can write a symbol",
            )
    match "L" in val, "R" in val:
        case True, True:
            raise TMSpecError(
                Reason.conflicting_directions,
                info="Each instruction needs exactly one movement direction, but two were found",
            )
        case False, False:
            raise TMSpecError(Reason.missing_direction)
        case True, False:
            move = Direction.L
        case _:
            move = Direction.R
    target = val[move.name]
    symbol = None
    if "write" in val:
        symbol = to_text(val["write"])
        if len(symbol) != 1:
            raise TMSpecError(Reason.invalid_write_length, problem_value=symbol)
    return Instruction(move, symbol, None if target is None else to_text(target))


def parse_synonyms(val: object) -> dict[str, Instruction]:
    if val is None:
        return {}
    if not isinstance(val, Mapping):
        raise TMSpecError(
            Reason.invalid_synonyms_type,
            problem_value=_type_name(val),
            info="Synonyms should be a mapping from string abbreviations to instructions (e.g. accept: {R: accept})",
        )
    synonyms = {}
    for key, instruction in val.items():
        name = to_text(key)
        try:
            synonyms[name] = parse_instruction(instruction, None)
        except TMSpecError as e:
            e.synonym = name
            if e.reason is Reason.unrecognized_synonym:
                e.info = "Note that a synonym cannot be defined using another synonym"
            raise
    return synonyms


def parse_table(
    val: Mapping[Any, Any], synonyms: Mapping[str, Instruction]
) -> tuple[dict[str, dict[str, Instruction] | None], dict[str, tuple[Row, ...]]]:
    """The transitions of every state, and the symbol groups of its rows in document order."""
    table: dict[str, dict[str, Instruction] | None] = {}
    rows: dict[str, tuple[Row, ...]] = {}
    for key, state_val in val.items():
        state = to_text(key)
        if state_val is None:
            table[state] = None
            continue
        if not isinstance(state_val, Mapping):
            raise TMSpecError(
                Reason.invalid_state_entry_type,
                problem_value=_type_name(state_val),
                state=state,
                info="Each state should map symbols to instructions. An empty map signifies a halting state",
            )
        transitions: dict[str, Instruction] = {}
        state_rows: list[Row] = []
        for symbol_key, instruction_val in state_val.items():
            try:
                instruction = parse_instruction(instruction_val, synonyms)
            except TMSpecError as e:
                e.state = state
                e.symbol = ",".join(map(to_text, symbol_key)) if isinstance(symbol_key, tuple) else to_text(symbol_key)
                raise
            symbols = split_symbols(symbol_key)
            for symbol in symbols:
                if symbol in transitions:
                    raise TMSpecError(
                        Reason.repeated_symbol,
                        problem_value=symbol,
                        state=state,
                        info="Each symbol can be listed in only one row of a state",
                    )
                transitions[symbol] = instruction
            state_rows.append(tuple(symbols))
        table[state] = transitions
        rows[state] = tuple(state_rows)
    return table, rows


def _undeclared(state: str) -> TMSpecError:
    return TMSpecError(
        Reason.undeclared_state,
        problem_value=state,
        suggestion="Make sure to list all states in the transition table and define their transitions (if any)",
    )


def check_targets(table: Table, synonyms: Mapping[str, Instruction]) -> None:
    """Every target state has to be declared. Only valid once the whole table is known."""
    for name, instruction in synonyms.items():
        if instruction.state is not None and instruction.state not in table:
            error = _undeclared(instruction.state)
            error.synonym = name
            raise error
    for state, transitions in table.items():
        for symbol, instruction in (transitions or {}).items():
            if instruction.state is not None and instruction.state not in table:
                error = _undeclared(instruction.state)
                error.state, error.symbol = state, symbol
                raise error


def parse_document(obj: object) -> Specification:
    """Check an already deserialized document and build its :class:`Specification`."""
    if not isinstance(obj, Mapping):
        raise TMSpecError(
            Reason.empty_document,
            problem_value=None if obj is None else _type_name(obj),
            info="Every Turing machine requires a blank tape symbol, a start state, and a transition table",
        )
    blank_suggestion = "Examples: blank: ' ', blank: '0'"
    if obj.get("blank") is None:
        raise TMSpecError(Reason.missing_blank, suggestion=blank_suggestion)
    blank = to_text(obj["blank"])
    if len(blank) != 1:
        raise TMSpecError(Reason.invalid_blank, problem_value=blank, suggestion=blank_suggestion)
    if obj.get("start state") is None:
        raise TMSpecError(Reason.missing_start_state, suggestion="Assign one using start state:")
    start_state = to_text(obj["start state"])

    raw_table = obj.get("table")
    if raw_table is None:
        raise TMSpecError(Reason.missing_table, suggestion="Specify one using table:")
    if not isinstance(raw_table, Mapping):
        raise TMSpecError(
            Reason.invalid_table_type,
            problem_value=_type_name(raw_table),
            info="The transition table should be a nested mapping from states to symbols to instructions",
        )
    synonyms = parse_synonyms(obj.get("synonyms"))
    table, rows = parse_table(raw_table, synonyms)
    check_targets(table, synonyms)
    if start_state not in table:
        raise TMSpecError(Reason.undeclared_start_state, problem_value=start_state)

    input = obj.get("input")
    spec = Specification(
        blank=blank,
        start_state=start_state,
        table=table,
        input=() if input is None else tuple(to_text(input)),
        synonyms=synonyms,
        rows=rows,
        name=None if obj.get("name") is None else to_text(obj["name"]),
    )
    logger.debug(
        "Parsed machine with %d states (%d halting), start state %r",
        len(spec.table),
        len(spec.halting_states),
        spec.start_state,
    )
    return spec


def parse_spec(text: str) -> Specification:
    return parse_document(load_yaml(text))
