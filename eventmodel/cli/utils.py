"""CLI utilities for dual-mode output (human-friendly + machine-readable).

This module provides utilities for CLI commands to support both:
- Human mode (default): Rich formatting with colors and tables
- Machine mode (--json): Structured JSON output for AI coding tools

Example:
    from ..utils import Output, ExitCode

    @app.command()
    def my_command():
        out = Output(console=console, json_mode=is_json_output())
        out.success("Loaded model", file="cart.json", slice_count=3)
        out.table("Slices", ["Index", "Title"], [["1", "Add Item"]])
        raise typer.Exit(out.finish())
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel, PrivateAttr, ConfigDict
from rich.console import Console
from rich.table import Table

from ..config import get_config
from ..core.errors import EventModelError
from ..core.models import EventModel, ValidationIssue, ValidationResult
from ..serialization import load_model


class ExitCode:
    """Standardized exit codes for CLI commands.

    AI tools can check $? and know exactly what failed:
        0 = Success
        1 = Validation error (model breaks an invariant)
        2 = Schema violation (document does not have the persisted shape)
        3 = File not found
    """

    SUCCESS = 0
    VALIDATION_ERROR = 1
    SCHEMA_ERROR = 2
    FILE_NOT_FOUND = 3


class Output(BaseModel):
    """Dual-mode output handler for CLI commands.

    In human mode: Uses Rich for pretty terminal output with colors and formatting.
    In JSON mode: Collects structured data and outputs JSON at the end.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _data: dict[str, Any] = PrivateAttr()
    _exit_code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def model_post_init(self, __context: Any) -> None:
        # Ensure _data is a fresh dict for each instance
        self._data = {
            "status": "success",
            "warnings": [],
            "errors": [],
        }

    def success(self, message: str, **data: Any) -> None:
        """Output a success message with optional data."""
        if self.json_mode:
            self._data.update(data)
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(
        self,
        message: str,
        *,
        location: str | None = None,
        category: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Output a warning message."""
        if self.json_mode:
            warning_obj: dict[str, Any] = {"message": message}
            if location:
                warning_obj["location"] = location
            if category:
                warning_obj["category"] = category
            if suggestion:
                warning_obj["suggestion"] = suggestion
            self._data["warnings"].append(warning_obj)
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
            if suggestion:
                self.console.print(f"  [dim]→ {suggestion}[/dim]")

    def error(
        self,
        message: str,
        *,
        location: str | None = None,
        category: str | None = None,
        suggestion: str | None = None,
        exit_code: int = ExitCode.VALIDATION_ERROR,
    ) -> None:
        """Output an error message and set exit code."""
        self._exit_code = exit_code
        self._data["status"] = "error"

        if self.json_mode:
            error_obj: dict[str, Any] = {"message": message}
            if location:
                error_obj["location"] = location
            if category:
                error_obj["category"] = category
            if suggestion:
                error_obj["suggestion"] = suggestion
            self._data["errors"].append(error_obj)
        else:
            self.console.print(f"[red]✗[/red] {message}")
            if suggestion:
                self.console.print(f"  [dim]→ {suggestion}[/dim]")

    def text(self, message: str) -> None:
        """Output plain text (human mode only)."""
        if not self.json_mode:
            self.console.print(message)

    def blank(self) -> None:
        """Output a blank line (human mode only)."""
        if not self.json_mode:
            self.console.print()

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        *,
        data_key: str | None = None,
        styles: list[str | None] | None = None,
    ) -> None:
        """Output a formatted table.

        Args:
            title: Table title
            columns: Column headers
            rows: Table rows (list of lists)
            data_key: Key to use in JSON output (defaults to snake_case of title)
            styles: Optional Rich styles for each column
        """
        key = data_key or title.lower().replace(" ", "_")

        if self.json_mode:
            self._data[key] = [dict(zip(columns, row)) for row in rows]
        else:
            table = Table(title=title, show_header=True, header_style="bold")
            for i, col in enumerate(columns):
                style = styles[i] if styles and i < len(styles) else None
                table.add_column(col, style=style)
            for row in rows:
                table.add_row(*row)
            self.console.print(table)

    def set_data(self, key: str, value: Any) -> None:
        """Set arbitrary data in JSON output."""
        self._data[key] = value

    def divider(self) -> None:
        """Output a visual divider (human mode only)."""
        if not self.json_mode:
            self.console.print("═" * 60)

    def finish(self) -> int:
        """Finalize output and return exit code.

        In JSON mode, prints the accumulated data as JSON to stdout.
        Returns the exit code that should be passed to typer.Exit().
        """
        if self.json_mode:
            # Add exit_code to JSON for programmatic access
            self._data["exit_code"] = self._exit_code
            print(json.dumps(self._data, indent=2, default=str))

        return self._exit_code


def _issue_to_json(issue: ValidationIssue) -> dict[str, Any]:
    return {
        "location": issue.location,
        "category": issue.category,
        "message": issue.message,
        "suggestion": issue.suggestion,
    }


def format_validation_for_json(result: ValidationResult) -> dict[str, Any]:
    """Convert ValidationResult to JSON-serializable dict."""
    return {
        "valid": result.valid,
        "error_count": len(result.errors),
        "warning_count": len(result.warnings),
        "errors": [_issue_to_json(e) for e in result.errors],
        "warnings": [_issue_to_json(w) for w in result.warnings],
    }


def issue_rows(issues: list[ValidationIssue], limit: int = 15) -> list[list[str]]:
    """Rows of (location, category, message) for an issue table."""
    return [[i.location, i.category, i.message[:80]] for i in issues[:limit]]


def report_load_error(out: Output, exc: EventModelError) -> None:
    """Report why a model file could not be loaded.

    Schema problems exit with SCHEMA_ERROR, invariant violations with
    VALIDATION_ERROR. Every attached issue is listed.
    """
    exit_code = (
        ExitCode.SCHEMA_ERROR
        if exc.category == "SCHEMA"
        else ExitCode.VALIDATION_ERROR
    )
    out.error(
        f"Failed to load model: {exc}",
        location=exc.location,
        category=exc.category,
        suggestion=exc.suggestion,
        exit_code=exit_code,
    )
    out.set_data("issues", [_issue_to_json(i) for i in exc.issues])
    if len(exc.issues) > 1 and not out.json_mode:
        out.table(
            "Issues",
            ["Location", "Category", "Message"],
            issue_rows(exc.issues),
            styles=["red", "dim", None],
        )


def next_available_path(path: Path | str) -> Path:
    """First free path of the form stem-N.suffix, or path itself if free.

    Examples:
        model.json -> model.json (if it does not exist)
        model.json -> model-1.json
        model.json -> model-2.json (if model-1.json exists too)
    """
    path = Path(path)
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}-{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def load_or_exit(
    out: Output, model_file: Path, *, validate: bool = True
) -> EventModel:
    """Load a model file for a command, or report the failure and exit."""
    if not model_file.exists():
        out.error(
            f"File not found: {model_file}",
            exit_code=ExitCode.FILE_NOT_FOUND,
            suggestion=f"Check the file path: {model_file.absolute()}",
        )
        raise typer.Exit(out.finish())

    try:
        return load_model(model_file, get_config().rules, validate=validate)
    except EventModelError as e:
        report_load_error(out, e)
        raise typer.Exit(out.finish())
