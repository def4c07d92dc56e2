#!/usr/bin/env python
"""
Fit the RSC model to a combined individual + group assessment.

The response CSV has one row per respondent, two consecutive rows per
pair, and one column per item (blank for missing). The item CSV has
columns item, alpha and beta; item names tag the group form (e.g. "COL").
"""

from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.panel import Panel

from dyad_analysis.core.data_models import PairResponseMatrix, ResponseMatrix
from dyad_analysis.core.parallel import ParallelConfig
from dyad_analysis.irt import EstimationMethod, InformationType
from dyad_analysis.irt.estimation import EstimationConfig, estimate_rsc
from dyad_analysis.irt.parameters import ItemParameterSet

console = Console(force_terminal=True, legacy_windows=True)
app = typer.Typer()


@app.command()
def main(
    responses_path: Path = typer.Argument(
        ..., help="CSV of responses, two consecutive rows per pair"
    ),
    items_path: Path = typer.Argument(
        ..., help="CSV of item parameters (item, alpha, beta)"
    ),
    output_path: Path = typer.Option(
        Path("rsc_estimates.csv"), "-o", "--output", help="Output CSV"
    ),
    group_tag: str = typer.Option(
        "COL", "--group-tag", help="Item-name tag of group-form items"
    ),
    method: EstimationMethod = typer.Option(
        EstimationMethod.ML, "--method", help="ML or MAP"
    ),
    sigma: float = typer.Option(
        1.0, "--sigma", help="Prior SD of the weight logit under MAP"
    ),
    expected: bool = typer.Option(
        False, "--expected", help="Use the expected Hessian for SEs"
    ),
    n_jobs: int = typer.Option(1, "-j", "--n-jobs", help="Worker processes"),
) -> None:
    """Estimate theta1, theta2 and u for every pair."""
    for path in (responses_path, items_path):
        if not path.exists():
            console.print(f"[red]File not found: {path}[/red]")
            raise typer.Exit(1)

    console.print("[dim]Loading data...[/dim]")
    try:
        parms = ItemParameterSet.from_frame(
            pd.read_csv(items_path, index_col="item")
        )
        frame = pd.read_csv(responses_path)[list(parms.item_names)]
        data = PairResponseMatrix(ResponseMatrix.from_frame(frame))
    except (KeyError, ValueError) as e:
        console.print(f"[red]Error loading data: {e}[/red]")
        raise typer.Exit(1) from e

    n_group = int(parms.form_mask(group_tag).sum())
    console.print(
        Panel(
            f"[bold]Fit RSC Model[/bold]\n\n"
            f"Responses: [cyan]{responses_path}[/cyan]\n"
            f"Pairs: [cyan]{data.n_pairs}[/cyan]\n"
            f"Individual items: [cyan]{parms.n_items - n_group}[/cyan]\n"
            f"Group items: [cyan]{n_group}[/cyan]\n"
            f"Method: [cyan]{method.value}[/cyan]",
            title="Configuration",
        )
    )

    console.print("[dim]Fitting RSC model...[/dim]")
    config = EstimationConfig(parallel=ParallelConfig(n_jobs=n_jobs))
    try:
        estimates = estimate_rsc(
            data,
            parms,
            group_tag=group_tag,
            method=method,
            sigma=sigma,
            information=(
                InformationType.EXPECTED
                if expected
                else InformationType.OBSERVED
            ),
            config=config,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    table = estimates.to_frame()
    console.print(
        f"  {int(estimates.converged.sum())}/{estimates.n_pairs} pairs "
        f"converged, median w = {table['w'].median():.3f}"
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(output_path, index_label="pair")
    console.print(
        Panel(
            f"[bold green]Estimates saved[/bold green]\n\n"
            f"Output: [cyan]{output_path}[/cyan]\n"
            f"Model version: [cyan]{estimates.model_version}[/cyan]",
            title="Done",
        )
    )


if __name__ == "__main__":
    app()
