import logging
from pathlib import Path
from typing import Annotated

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme
from typer import Argument, Exit, Option, Typer

from turingsim import examples
from turingsim.config import Settings
from turingsim.controller import Controller, StepLimitExceeded
from turingsim.graph import to_mermaid, visible_space
from turingsim.parser import Specification, TMSpecError, YAMLError, parse_spec
from turingsim.turing_machine import Configuration, Machine, Tape

app = Typer(pretty_exceptions_show_locals=False, no_args_is_help=True)
theme = Theme({
    "success": "green",
    "warning": "orange3",
    "error": "red",
    "attention": "magenta2",
    "heading": "blue",
    "info": "dim cyan",
})
console = Console(theme=theme)

FileArg = Annotated[Path | None, Argument(help="YAML file describing the machine.", dir_okay=False)]
ExampleOpt = Annotated[str | None, Option("--example", "-e", help="Use a built-in machine instead of a file.")]
ConfigOpt = Annotated[Path | None, Option("--config", "-c", help="TOML file with a [turingsim] table.")]
VerboseOpt = Annotated[bool, Option("--verbose", "-v", help="Log every step.")]


def load_settings(path: Path | None, **overrides: object) -> Settings:
    try:
        settings = Settings.load(path).override(**overrides)
    except (FileNotFoundError, TypeError, ValueError) as e:
        console.print(f"[error]Invalid configuration:[/] {escape(str(e))}")
        raise Exit(1) from e
    logging.basicConfig(
        level=settings.level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    return settings


def load_spec(file: Path | None, example: str | None) -> Specification:
    if (file is None) == (example is None):
        console.print("[error]Pass either a machine file or --example, but not both.")
        raise Exit(1)
    if example is not None:
        try:
            text = examples.source(example)
        except KeyError as e:
            console.print(f"[error]There is no built-in machine called '{escape(example)}'.")
            console.print(f"Available: {', '.join(examples.names())}")
            raise Exit(1) from e
    else:
        try:
            text = file.read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[error]Could not read {file}:[/] {escape(e.strerror or str(e))}")
            raise Exit(1) from e
    try:
        return parse_spec(text)
    except YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" (line {mark.line + 1}, column {mark.column + 1})" if mark is not None else ""
        console.print(f"[error]The document is not valid YAML{where}:[/]")
        console.print(str(e), highlight=False, markup=False)
        raise Exit(1) from e
    except TMSpecError as e:
        console.print("[error]The document does not describe a valid machine:[/]")
        console.print(e.pretty(), highlight=False)
        raise Exit(1) from e


def format_configs(configs: list[Configuration], truncate: int | None = 20) -> str:
    if truncate is not None:
        offset = max(0, len(configs) - truncate)
        configs = configs[-truncate:]
    else:
        offset = 0
    out = [
        "Configuration sequence:\n",
        "[heading]step    configuration[/]\n",
        "  ⋮\n" if offset else "",
        *(f"{i: >3}    {c:>}\n" for i, c in enumerate(configs, offset)),
    ]
    return "".join(out)


def format_tape(tape: Tape, window: int) -> str:
    cells = []
    for offset, symbol in enumerate(tape.read_range(-window, window), -window):
        shown = escape(visible_space(symbol))
        if offset == 0:
            cells.append(f"[attention]\\[{shown}][/]")
        elif symbol == tape.blank:
            cells.append(f"[grey58] {shown} [/]")
        else:
            cells.append(f" {shown} ")
    return f"…{''.join(cells)}…"


@app.command()
def check(file: FileArg = None, *, example: ExampleOpt = None):
    """Validate a machine and summarize it."""
    spec = load_spec(file, example)
    halting = spec.halting_states
    summary = {
        "name": spec.name,
        "states": ", ".join(spec.states),
        "start state": spec.start_state,
        "halting": ", ".join(halting) if halting else "(none)",
        "blank": repr(spec.blank),
        "input": repr("".join(spec.input)),
        "synonyms": ", ".join(spec.synonyms) or None,
    }
    console.print("[success]The machine is valid.")
    for key, val in summary.items():
        if val is not None:
            console.print(f"  [info]{f'{key}:': <15}[/]{escape(val)}", highlight=False)


@app.command()
def run(
    file: FileArg = None,
    *,
    example: ExampleOpt = None,
    input: Annotated[str | None, Option("--input", "-i", help="Replace the document's input.")] = None,
    max_steps: Annotated[int | None, Option("--max-steps", "-n", help="Give up after this many steps.")] = None,
    trace: Annotated[bool, Option("--trace/--no-trace", "-t", help="Print every configuration.")] = False,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
):
    """Run a machine until it halts."""
    settings = load_settings(config, max_steps=max_steps, log_level="DEBUG" if verbose else None)
    spec = load_spec(file, example)
    if input is not None:
        spec = spec.with_input(input)
    machine = Machine(spec)
    controller = Controller(machine, settings.max_steps)
    try:
        if trace:
            console.print(format_configs(controller.trace(), truncate=None), highlight=False)
        else:
            controller.run()
    except StepLimitExceeded as e:
        console.print(f"[warning]The machine did not halt within {e.max_steps} steps.")
        console.print(format_configs(e.configurations), highlight=False)
        raise Exit(2) from e

    state = escape(machine.state)
    if machine.is_halting_state:
        console.print(f"[success]Halted in state '{state}' after {machine.steps} steps.")
    else:
        symbol = escape(machine.tape.read())
        console.print(
            f"[success]Stopped in state '{state}' after {machine.steps} steps[/]: "
            f"no transition for symbol '{symbol}'."
        )
    console.print(format_tape(machine.tape, settings.window), highlight=False)


@app.command()
def graph(file: FileArg = None, *, example: ExampleOpt = None):
    """Print the state diagram as Mermaid."""
    spec = load_spec(file, example)
    console.print(to_mermaid(spec), highlight=False, markup=False)


@app.command(name="examples")
def list_examples():
    """List the built-in machines."""
    for name in examples.names():
        console.print(f"[heading]{name}[/]  {escape(examples.title(name))}", highlight=False)


if __name__ == "__main__":
    app()
