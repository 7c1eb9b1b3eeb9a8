from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import SimulationConfig
from .persistence import save_state
from .simulation import PracticeEngine
from .visualize import plot_overview

console = Console()
app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine activity.")) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command("simulate")
def simulate(
    days: int = typer.Option(30, help="Number of practice days to simulate."),
    therapists: int = typer.Option(3, help="Therapists on staff, including the player."),
    clients_per_day: float = typer.Option(2.0, help="Scales daily client arrival attempts."),
    seed: int = typer.Option(42, help="Random seed."),
    rooms: int = typer.Option(2, help="Rooms available for in-person sessions."),
    telehealth: bool = typer.Option(True, help="Allow virtual sessions."),
    plot: bool = typer.Option(False, help="Render the matplotlib overview."),
    csv_out: Optional[Path] = typer.Option(None, help="Path to save the session ledger."),
    png_out: Optional[Path] = typer.Option(None, help="Path to save plot instead of showing."),
    save_out: Optional[Path] = typer.Option(None, help="Path to write the final practice save (JSON)."),
) -> None:
    cfg = SimulationConfig(
        seed=seed,
        days=days,
        therapists=therapists,
        clients_per_day=clients_per_day,
        rooms=rooms,
        telehealth_unlocked=telehealth,
    )
    engine = PracticeEngine.from_config(cfg)
    console.log("Running simulation...", style="bold")
    df, metrics = engine.run()

    _print_metrics(metrics)
    if csv_out:
        df.to_csv(csv_out, index=False)
        console.log(f"Saved sessions to {csv_out}")

    if save_out:
        save_state(engine.state, save_out)
        console.log(f"Saved practice to {save_out}")

    if plot or png_out:
        plot_overview(df, outfile=png_out)


def _print_metrics(metrics: dict) -> None:
    table = Table(title="Practice KPIs", show_header=True, header_style="bold magenta")
    table.add_column("Metric")
    table.add_column("Value")
    for key, val in metrics.items():
        table.add_row(key, f"{val:0.3f}" if isinstance(val, float) else str(val))
    console.print(table)
