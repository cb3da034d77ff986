from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Dict, TypeVar

import typer
from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .config import resolve_parameters, storage_locations
from .logging_setup import setup_logging
from .models import FREE_COL, FREE_ROW, Card, Position
from .persistence import create_gateway
from .rng import create_rng
from .state import GameState
from .verify import verify as verify_snapshot
from .version import __version__

app = typer.Typer(help="Single-player number bingo")

T = TypeVar("T")

NUMBERS_PER_ROW = 10


def _console(settings: Dict[str, Any]) -> Console:
    colors = str(settings.get("colors", "auto")).lower()
    if colors == "always":
        return Console(force_terminal=True)
    if colors == "never":
        return Console(no_color=True, highlight=False)
    return Console()


def _open_state(settings: Dict[str, Any]) -> GameState:
    kv_path, db_url = storage_locations(settings)
    seed = settings.get("seed") or {}
    rng = create_rng(str(seed.get("engine") or "py_random"), seed.get("value"))
    return GameState(
        create_gateway(kv_path, db_url),
        rng,
        max_number=int(settings.get("max_number") or 75),
        card_count=int(settings.get("card_count") or 0),
    )


def _run(settings: Dict[str, Any], action: Callable[[GameState], Awaitable[T]]) -> T:
    """Load the game, run one action and wait for every pending write."""

    async def session() -> T:
        state = _open_state(settings)
        try:
            if not await state.rehydrate() and not state.load_failed:
                # first run: keep the configured starting cards
                await state.persist()
            return await action(state)
        finally:
            await state.close()

    return asyncio.run(session())


def _card_table(card: Card, drawn: set[int]) -> Table:
    flags = " BINGO!" if card.has_bingo else (" REACH" if card.has_reach else "")
    table = Table(title=f"{card.id} ({card.color}){flags}", show_header=False, show_lines=True)
    for _ in range(len(card.cells)):
        table.add_column(justify="center", width=4)
    for r, row in enumerate(card.cells):
        rendered = []
        for c, cell in enumerate(row):
            if r == FREE_ROW and c == FREE_COL:
                rendered.append(Text("FREE", style="bold"))
            elif cell.marked:
                rendered.append(Text(str(cell.number), style="reverse bold"))
            elif cell.number in drawn:
                rendered.append(Text(str(cell.number), style="underline"))
            else:
                rendered.append(Text(str(cell.number)))
        table.add_row(*rendered)
    return table


def _number_board(max_number: int, drawn: set[int], current: int | None) -> Table:
    table = Table(show_header=False, box=None)
    for _ in range(NUMBERS_PER_ROW):
        table.add_column(justify="right", width=3)
    row: list[Text] = []
    for n in range(1, max_number + 1):
        if n == current:
            row.append(Text(str(n), style="bold reverse"))
        elif n in drawn:
            row.append(Text(str(n), style="bold"))
        else:
            row.append(Text(str(n), style="dim"))
        if len(row) == NUMBERS_PER_ROW:
            table.add_row(*row)
            row = []
    if row:
        table.add_row(*row)
    return table


async def _animate_decoys(
    console: Console, max_number: int, frames: int = 15, delay: float = 0.04
) -> None:
    # decoys come from their own source and never reach the game state
    decoys = create_rng("py_random")
    with Live(console=console, transient=True) as live:
        for _ in range(frames):
            live.update(Text(str(decoys.randint(1, max_number)), style="bold"))
            await asyncio.sleep(delay)


@app.callback(invoke_without_command=True)
def common_options(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", help="Show application version and exit", is_eager=True
    ),
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    state_dir: str = typer.Option(None, "--state-dir", help="Directory holding saved games"),
    db_url: str = typer.Option(None, "--db-url", help="Durable store URL (SQLAlchemy async)"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    log_file: str = typer.Option(None, "--log-file", help="Log file path"),
    colors: str = typer.Option(None, "--colors", help="auto|always|never"),
    seed: int = typer.Option(None, "--seed", help="Seed for reproducible draws"),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(0)

    cli_overrides: Dict[str, Any] = {}
    if state_dir:
        cli_overrides["state_dir"] = state_dir
    if db_url:
        cli_overrides["db_url"] = db_url
    if log_level:
        cli_overrides["log_level"] = log_level
    if log_file:
        cli_overrides["log_file"] = log_file
    if colors:
        cli_overrides["colors"] = colors
    if seed is not None:
        cli_overrides["seed.value"] = seed

    resolved, _cfg_path = resolve_parameters(config_path_str=config, cli_overrides=cli_overrides)
    setup_logging(
        level=str(resolved.get("log_level", "INFO")),
        log_file=resolved.get("log_file"),
        json_format=(str(resolved.get("log_format", "text")) == "json"),
    )
    ctx.obj = resolved

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the current number, the number board and every card."""

    async def action(state: GameState) -> None:
        console = _console(ctx.obj)
        drawn = set(state.drawn_numbers)
        current = "-" if state.current_number is None else str(state.current_number)
        console.print(
            f"Current number: [bold]{current}[/bold]  "
            f"drawn {len(state.drawn_numbers)}/{state.max_number}  cards {state.card_count}"
        )
        console.print(_number_board(state.max_number, drawn, state.current_number))
        for card in state.cards:
            console.print(_card_table(card, drawn))

    _run(ctx.obj, action)


@app.command()
def draw(
    ctx: typer.Context,
    animate: bool = typer.Option(False, "--animate", help="Flash decoy numbers before the draw"),
) -> None:
    """Draw the next number."""

    async def action(state: GameState) -> int | None:
        if animate:
            await _animate_decoys(_console(ctx.obj), state.max_number)
        return await state.draw_number()

    number = _run(ctx.obj, action)
    if number is None:
        typer.echo("All numbers have been drawn.")
    else:
        typer.echo(f"Drew {number}")
    raise typer.Exit(code=0)


@app.command()
def reset(ctx: typer.Context) -> None:
    """Clear drawn numbers and deal fresh cards."""

    async def action(state: GameState) -> int:
        await state.reset_game()
        return state.card_count

    count = _run(ctx.obj, action)
    typer.echo(f"Game reset with {count} fresh card(s).")


@app.command("set-max")
def set_max(
    ctx: typer.Context,
    max_number: int = typer.Argument(..., min=10, max=99, help="Highest number to draw"),
) -> None:
    """Change the highest drawable number."""

    async def action(state: GameState) -> None:
        state.set_max_number(max_number)

    _run(ctx.obj, action)
    typer.echo(f"Max number set to {max_number}.")


@app.command("set-cards")
def set_cards(
    ctx: typer.Context,
    count: int = typer.Argument(..., min=0, max=5, help="Number of personal cards"),
) -> None:
    """Add or drop personal cards; existing cards keep their marks."""

    async def action(state: GameState) -> None:
        state.set_card_count(count)

    _run(ctx.obj, action)
    typer.echo(f"Playing with {count} card(s).")


@app.command()
def mark(
    ctx: typer.Context,
    card_id: str = typer.Argument(..., help="Card id, e.g. card-0"),
    row: int = typer.Argument(..., min=0, max=4),
    col: int = typer.Argument(..., min=0, max=4),
    allow_undrawn: bool = typer.Option(
        False, "--allow-undrawn", help="Mark a cell whose number was not drawn yet"
    ),
) -> None:
    """Toggle the mark on one card cell."""

    async def action(state: GameState) -> str:
        card = next((c for c in state.cards if c.id == card_id), None)
        if card is None:
            return f"No card named {card_id}."
        if row == FREE_ROW and col == FREE_COL:
            return "The free space is always marked."
        number = card.cells[row][col].number
        if number not in state.drawn_numbers and not allow_undrawn:
            return f"{number} has not been drawn yet."
        state.toggle_card_mark(card_id, row, col)
        if card.has_bingo:
            return f"{card_id}: BINGO!"
        if card.has_reach:
            return f"{card_id}: reach"
        return f"{card_id}: cell {number} {'marked' if card.cells[row][col].marked else 'unmarked'}"

    typer.echo(_run(ctx.obj, action))


@app.command()
def expand(ctx: typer.Context, card_id: str = typer.Argument(...)) -> None:
    """Toggle which card is shown expanded."""

    async def action(state: GameState) -> bool:
        return state.toggle_card_expanded(card_id)

    if not _run(ctx.obj, action):
        typer.echo(f"No card named {card_id}.")


@app.command()
def move(
    ctx: typer.Context,
    card_id: str = typer.Argument(...),
    x: float = typer.Argument(...),
    y: float = typer.Argument(...),
) -> None:
    """Store a display position for a card."""

    async def action(state: GameState) -> bool:
        return state.update_card_position(card_id, Position(x=x, y=y))

    if not _run(ctx.obj, action):
        typer.echo(f"No card named {card_id}.")


@app.command()
def show(ctx: typer.Context, card_id: str = typer.Argument(...)) -> None:
    """Render a single card."""

    async def action(state: GameState) -> bool:
        card = next((c for c in state.cards if c.id == card_id), None)
        if card is None:
            return False
        _console(ctx.obj).print(_card_table(card, set(state.drawn_numbers)))
        return True

    if not _run(ctx.obj, action):
        typer.echo(f"No card named {card_id}.")
        raise typer.Exit(code=1)


@app.command()
def verify(ctx: typer.Context) -> None:
    """Check the saved game against its invariants."""

    async def action(state: GameState) -> Dict[str, object]:
        return verify_snapshot(state.snapshot())

    report = _run(ctx.obj, action)
    typer.echo(json.dumps(report, indent=2, sort_keys=True))
    raise typer.Exit(code=0 if report["ok"] else 1)


def main(_argv: list[str] | None = None) -> int:
    try:
        app(standalone_mode=True)
        return 0
    except SystemExit as e:
        return int(e.code) if e.code is not None else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
