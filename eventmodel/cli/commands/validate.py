"""Validate command for event model files."""

from pathlib import Path

import typer

from ...config import get_config
from ...validator import validate_model
from ..app import app, console, is_json_output
from ..utils import (
    ExitCode,
    Output,
    format_validation_for_json,
    issue_rows,
    load_or_exit,
)


@app.command("validate")
def validate_command(
    model_file: Path = typer.Argument(..., help="Event model file (.json, .yaml)"),
    strict: bool = typer.Option(
        False, "--strict", help="Treat warnings as errors"
    ),
):
    """
    Validate an event model file.

    Checks the persisted shape first, then every structural and composition
    rule, and reports all issues found rather than only the first.

    EXIT CODES:
        0 = Success (valid model)
        1 = Validation error (invalid model)
        2 = Schema violation (unknown keys, wrong enum values, missing keys)
        3 = File not found

    EXAMPLES:
        eventmodel validate cart.json
        eventmodel validate cart.yaml --strict
        eventmodel --json validate cart.json
    """
    out = Output(console=console, json_mode=is_json_output())
    out.blank()

    # Shape errors exit here; invariant errors are collected below
    model = load_or_exit(out, model_file, validate=False)

    out.success(
        f"Loaded: [bold]{model_file.name}[/bold] ({len(model.slices)} slices)",
        model_file=str(model_file),
        slice_count=len(model.slices),
    )
    out.blank()

    result = validate_model(model, get_config().rules)
    out.set_data("validation", format_validation_for_json(result))

    if result.errors:
        out.error(
            f"Model has {len(result.errors)} error(s)",
            exit_code=ExitCode.VALIDATION_ERROR,
        )
        if not out.json_mode:
            out.table(
                "Errors",
                ["Location", "Category", "Message"],
                issue_rows(result.errors),
                styles=["red", "dim", None],
            )
            if len(result.errors) > 15:
                out.text(
                    f"  [dim]... and {len(result.errors) - 15} more error(s)[/dim]"
                )
            suggestions = [e for e in result.errors if e.suggestion][:3]
            if suggestions:
                out.blank()
                out.text("[bold]Suggestions:[/bold]")
                for err in suggestions:
                    out.text(f"  [dim]→ {err.location}: {err.suggestion}[/dim]")
        raise typer.Exit(out.finish())

    if result.warnings:
        if strict:
            out.error(
                f"Model has {len(result.warnings)} warning(s) (strict mode)",
                exit_code=ExitCode.VALIDATION_ERROR,
            )
            if not out.json_mode:
                out.table(
                    "Warnings",
                    ["Location", "Category", "Message"],
                    issue_rows(result.warnings, limit=10),
                    styles=["yellow", "dim", None],
                )
            raise typer.Exit(out.finish())

        out.success(f"Model validated with {len(result.warnings)} warning(s)")
        if not out.json_mode:
            for warn in result.warnings[:3]:
                out.warning(f"{warn.location}: {warn.message}")
            if len(result.warnings) > 3:
                out.text(
                    f"  [dim]... and {len(result.warnings) - 3} more warning(s)[/dim]"
                )
    else:
        out.success("Model validated")

    out.blank()
    out.divider()
    out.text("[green]Validation passed[/green]")
    out.divider()

    raise typer.Exit(out.finish())
