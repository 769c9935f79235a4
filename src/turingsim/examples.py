"""Built-in machines, stored as YAML files next to this module.

They go through :func:`~turingsim.parser.parse_spec` like any user document.
Each file names its machine with a top-level ``name`` key.
"""

from pathlib import Path

from turingsim.parser import Specification, parse_spec

MACHINE_FOLDER = Path(__file__).parent / "machines"

_cache: dict[str, Specification] = {}


def names() -> list[str]:
    return sorted(path.stem for path in MACHINE_FOLDER.glob("*.yaml"))


def source(name: str) -> str:
    path = MACHINE_FOLDER.joinpath(f"{name}.yaml")
    if not path.is_file():
        raise KeyError(name)
    return path.read_text(encoding="utf-8")


def title(name: str) -> str:
    return get(name).name or name


def get(name: str) -> Specification:
    if name not in _cache:
        _cache[name] = parse_spec(source(name))
    return _cache[name]
