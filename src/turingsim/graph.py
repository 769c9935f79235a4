from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from turingsim.parser import Row, Specification, Table
from turingsim.turing_machine import WILDCARD, Instruction


def visible_space(symbol: str) -> str:
    return "␣" if symbol == " " else symbol


def label_for(symbols: list[str], instruction: Instruction) -> str:
    write = "" if instruction.symbol is None else f"{visible_space(instruction.symbol)},"
    return f"{','.join(map(visible_space, symbols))}→{write}{instruction.move}"


@dataclass
class Edge:
    source: str
    target: str
    labels: list[str] = field(default_factory=list)


@dataclass
class Vertex:
    label: str
    transitions: dict[str, Edge] | None


@dataclass
class StateGraph:
    """Vertices and edges for drawing a transition table.

    Edges with the same source and target are combined, with one label per table row.
    """

    vertices: dict[str, Vertex]
    edges: list[Edge]

    def edge_for(self, state: str, symbol: str) -> Edge | None:
        transitions = self.vertices[state].transitions
        if transitions is None:
            return None
        return transitions.get(symbol, transitions.get(WILDCARD))

    def __iter__(self) -> Iterator[Edge]:
        return iter(self.edges)


def _rows(transitions: Mapping[str, Instruction], groups: Sequence[Row] | None) -> list[tuple[list[str], Instruction]]:
    if groups is None:
        groups = [(symbol,) for symbol in transitions]
    return [(list(symbols), transitions[symbols[0]]) for symbols in groups if symbols]


def derive_graph(table: Table, rows: Mapping[str, Sequence[Row]] | None = None) -> StateGraph:
    """One labelled edge per row. Without ``rows`` every symbol counts as its own row."""
    vertices = {state: Vertex(state, None if transitions is None else {}) for state, transitions in table.items()}
    edges: list[Edge] = []
    for state, transitions in table.items():
        if transitions is None:
            continue
        vertex_transitions = vertices[state].transitions
        assert vertex_transitions is not None
        outgoing: dict[str, Edge] = {}
        for symbols, instruction in _rows(transitions, (rows or {}).get(state)):
            target = state if instruction.state is None else instruction.state
            if target not in outgoing:
                outgoing[target] = Edge(state, target)
                edges.append(outgoing[target])
            edge = outgoing[target]
            edge.labels.append(label_for(symbols, instruction))
            for symbol in symbols:
                vertex_transitions[symbol] = edge
    return StateGraph(vertices, edges)


def _mermaid_text(text: str) -> str:
    return "".join(f"#{ord(c)};" if c in '#;:"' else c for c in text)


def to_mermaid(spec: Specification) -> str:
    graph = derive_graph(spec.table, spec.rows)
    ids = {state: f"s{i}" for i, state in enumerate(graph.vertices)}
    lines = ["stateDiagram-v2"]
    lines.extend(f'    state "{_mermaid_text(state)}" as {ids[state]}' for state in graph.vertices)
    lines.append(f"    [*] --> {ids[spec.start_state]}")
    for edge in graph:
        label = "<br>".join(map(_mermaid_text, edge.labels))
        lines.append(f"    {ids[edge.source]} --> {ids[edge.target]}: {label}")
    lines.extend(f"    {ids[state]} --> [*]" for state in spec.halting_states)
    return "\n".join(lines)
