"""Inspect command: slice overview of an event model file."""

from pathlib import Path

import typer

from ...config import get_config
from ...core.models import ELEMENT_ARRAYS
from ...validator import validate_model
from ..app import app, console, is_json_output
from ..utils import Output, load_or_exit


@app.command("inspect")
def inspect_command(
    model_file: Path = typer.Argument(..., help="Event model file (.json, .yaml)"),
):
    """
    Show the slices of an event model in index order.

    The model only has to have the persisted shape; rule violations are
    counted but do not stop the listing.

    EXAMPLES:
        eventmodel inspect cart.json
        eventmodel --json inspect cart.json
    """
    out = Output(console=console, json_mode=is_json_output())
    model = load_or_exit(out, model_file, validate=False)

    arrays = list(ELEMENT_ARRAYS.values())
    rows = []
    for s in model.ordered_slices():
        rows.append(
            [str(s.index), s.id, s.title, s.slice_type.value]
            + [str(len(getattr(s, array))) for array in arrays]
            + [str(len(s.specifications))]
        )
    out.table(
        "Slices",
        ["Index", "Id", "Title", "Type"] + arrays + ["specifications"],
        rows,
    )

    result = validate_model(model, get_config().rules)
    element_count = sum(len(list(s.elements())) for s in model.slices)
    out.success(
        f"{len(model.slices)} slices, {element_count} elements, "
        f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)",
        slice_count=len(model.slices),
        element_count=element_count,
        error_count=len(result.errors),
        warning_count=len(result.warnings),
    )
    if not out.json_mode:
        out.blank()
        out.text(model.summary())

    raise typer.Exit(out.finish())
