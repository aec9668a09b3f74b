"""Normalize command: rewrite a model in its canonical persisted form."""

from pathlib import Path

import typer

from ...config import get_config
from ...serialization import save_model
from ..app import app, console, is_json_output
from ..utils import Output, load_or_exit, next_available_path


@app.command("normalize")
def normalize_command(
    model_file: Path = typer.Argument(..., help="Event model file (.json, .yaml)"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output file (default: <name>.normalized.json)"
    ),
    force: bool = typer.Option(
        False, "--force", help="Overwrite the output file if it exists"
    ),
):
    """
    Validate a model and write it back in canonical form.

    When the output file exists and --force is not given, a counter is
    appended to its name (model.json -> model-1.json).

    EXAMPLES:
        eventmodel normalize cart.yaml -o cart.json
        eventmodel normalize cart.json --force -o cart.json
    """
    out = Output(console=console, json_mode=is_json_output())
    model = load_or_exit(out, model_file)

    target = output or model_file.with_name(f"{model_file.stem}.normalized.json")
    if not force:
        target = next_available_path(target)

    save_model(model, target, indent=get_config().cli.indent)
    out.success(
        f"Wrote [bold]{target}[/bold] ({len(model.slices)} slices)",
        output=str(target),
        slice_count=len(model.slices),
    )
    raise typer.Exit(out.finish())
