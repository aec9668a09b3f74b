"""Graph command: dependency adjacency, topological order and reachability."""

from pathlib import Path

import typer

from ...graph import DependencyGraph
from ..app import app, console, is_json_output
from ..utils import ExitCode, Output, load_or_exit


@app.command("graph")
def graph_command(
    model_file: Path = typer.Argument(..., help="Event model file (.json, .yaml)"),
    source: str | None = typer.Option(
        None, "--from", help="Element id to start a reachability query from"
    ),
    target: str | None = typer.Option(
        None, "--to", help="Element id the reachability query should reach"
    ),
):
    """
    Print the dependency graph of a valid event model.

    EXAMPLES:
        eventmodel graph cart.json
        eventmodel graph cart.json --from add-item --to cart-items
    """
    out = Output(console=console, json_mode=is_json_output())
    model = load_or_exit(out, model_file)

    elements = [e for s in model.ordered_slices() for e in s.elements()]
    graph = DependencyGraph.from_elements(elements)
    adjacency = graph.to_adjacency()
    titles = {e.id: e.title for e in elements}

    out.table(
        "Dependencies",
        ["Element", "Title", "Fed by", "Feeds"],
        [
            [
                node,
                titles.get(node, ""),
                ", ".join(graph.predecessors(node)) or "-",
                ", ".join(targets) or "-",
            ]
            for node, targets in adjacency.items()
        ],
        data_key="adjacency_table",
    )
    out.set_data("adjacency", adjacency)

    order = graph.topological_order()
    out.set_data("topological_order", order)
    out.blank()
    out.text("[bold]Topological order:[/bold] " + " → ".join(order))

    if (source is None) != (target is None):
        out.error(
            "--from and --to must be given together",
            exit_code=ExitCode.VALIDATION_ERROR,
        )
        raise typer.Exit(out.finish())

    if source is not None and target is not None:
        for node in (source, target):
            if node not in adjacency:
                out.error(
                    f"Unknown element: {node}",
                    category="UNKNOWN_REFERENCE",
                    exit_code=ExitCode.VALIDATION_ERROR,
                )
                raise typer.Exit(out.finish())
        path = graph.path(source, target)
        out.set_data("path", path)
        out.set_data("reachable", path is not None)
        if path is None:
            out.text(f"[yellow]{target} is not reachable from {source}[/yellow]")
        else:
            out.text("[green]Path:[/green] " + " → ".join(path))

    raise typer.Exit(out.finish())
