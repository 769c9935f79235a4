from turingsim.graph import derive_graph, label_for, to_mermaid
from turingsim.parser import Specification, parse_spec
from turingsim.turing_machine import Direction, Instruction


def test_label_for():
    assert label_for(["1", "0"], Instruction(Direction.R)) == "1,0→R"
    assert label_for([" "], Instruction(Direction.L, " ", "q")) == "␣→␣,L"


def test_vertices(increment: Specification):
    graph = derive_graph(increment.table)
    assert list(graph.vertices) == ["right", "carry", "done"]
    assert graph.vertices["done"].transitions is None
    assert set(graph.vertices["right"].transitions or {}) == {"1", "0", " "}


def test_edges_are_combined(increment: Specification):
    graph = derive_graph(increment.table, increment.rows)
    assert [(e.source, e.target, e.labels) for e in graph] == [
        ("right", "right", ["1,0→R"]),
        ("right", "carry", ["␣→L"]),
        ("carry", "carry", ["1→0,L"]),
        ("carry", "done", ["0,␣→1,L"]),
    ]


def test_edge_for_uses_wildcard(wildcard: Specification):
    graph = derive_graph(wildcard.table)
    loop = graph.edge_for("scan", "a")
    assert loop is not None
    assert loop is graph.edge_for("scan", "?")
    assert loop.labels == ["a→A,R", "_→x,R"]
    assert graph.edge_for("scan", " ").target == "done"
    assert graph.edge_for("done", " ") is None


def test_to_mermaid():
    spec = parse_spec("blank: 0\nstart state: A\ntable:\n  A: {0: {write: 1, R: H}, 1: L}\n  H:\n")
    assert to_mermaid(spec).splitlines() == [
        "stateDiagram-v2",
        '    state "A" as s0',
        '    state "H" as s1',
        "    [*] --> s0",
        "    s0 --> s1: 0→1,R",
        "    s0 --> s0: 1→L",
        "    s1 --> [*]",
    ]


def test_mermaid_escapes_labels():
    spec = parse_spec("blank: ' '\nstart state: 'a:b'\ntable:\n  'a:b': {'#': R}\n")
    text = to_mermaid(spec)
    assert 'state "a#58;b" as s0' in text
    assert "s0 --> s0: #35;→R" in text


def test_one_label_per_row():
    spec = parse_spec("blank: ' '\nstart state: A\ntable:\n  A:\n    0: R\n    1: R\n    [2, 3]: R\n")
    graph = derive_graph(spec.table, spec.rows)
    assert [e.labels for e in graph] == [["0→R", "1→R", "2,3→R"]]


def test_without_rows_every_symbol_is_a_row(increment: Specification):
    graph = derive_graph(increment.table)
    assert graph.edge_for("right", "0") is graph.edge_for("right", "1")
    assert graph.edges[0].labels == ["1→R", "0→R"]
