"""Canonical persisted form of an event model.

serialize() emits the camelCase shape with exactly the keys the model carries:
required keys always, optional keys only when they were present on input or
set explicitly. deserialize() is all-or-nothing: it either returns a model
that passed shape and invariant checks or raises, never a partial model.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .config import RulesConfig
from .core.errors import SchemaViolationError, raise_for_issues
from .core.models import STRICT_SHAPE, EventModel, Severity, ValidationIssue
from .validator import validate_model

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def serialize(model: EventModel) -> dict[str, Any]:
    """Convert a model to its persisted dict form."""
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True)


def to_json(model: EventModel, indent: int | None = 2) -> str:
    return json.dumps(serialize(model), indent=indent, ensure_ascii=False)


def schema_issues(exc: PydanticValidationError) -> list[ValidationIssue]:
    """Turn pydantic errors into SCHEMA issues with dotted locations."""
    issues = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "$"
        issues.append(
            ValidationIssue(
                severity=Severity.ERROR,
                category="SCHEMA",
                location=location,
                message=err["msg"],
            )
        )
    return issues


def parse_model(data: Any) -> EventModel:
    """Shape-check a persisted dict and build the model.

    Raises:
        SchemaViolationError: Unknown or missing keys, wrong types or enum values.
    """
    if not isinstance(data, dict):
        raise SchemaViolationError(
            f"Model must be a JSON object, got {type(data).__name__}", location="$"
        )
    try:
        return EventModel.model_validate(data, context={STRICT_SHAPE: True})
    except PydanticValidationError as exc:
        issues = schema_issues(exc)
        first = issues[0]
        raise SchemaViolationError(
            f"{first.message} ({len(issues)} schema error(s))",
            location=first.location,
            issues=issues,
        ) from exc


def deserialize(
    data: dict[str, Any] | str | bytes,
    rules: RulesConfig | None = None,
    *,
    validate: bool = True,
) -> EventModel:
    """Rebuild a model from its persisted form.

    Args:
        data: Parsed dict or a JSON document
        rules: Rule switches used for invariant checks
        validate: Run structural and commit checks on every slice

    Raises:
        SchemaViolationError: The input does not match the persisted shape.
        EventModelError: The first invariant violation, carrying all of them.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise SchemaViolationError(
                f"Invalid JSON: {exc.msg}",
                location=f"line {exc.lineno}, column {exc.colno}",
            ) from exc
        except UnicodeDecodeError as exc:
            raise SchemaViolationError(
                f"Input is not valid UTF-8: {exc.reason}",
                location=f"byte {exc.start}",
            ) from exc

    model = parse_model(data)

    if validate:
        result = validate_model(model, rules)
        raise_for_issues(result.issues)
        for warning in result.warnings:
            logger.warning("%s", warning)

    logger.info("Loaded event model with %d slices", len(model.slices))
    return model


# =============================================================================
# Files
# =============================================================================


def load_model(
    path: Path | str,
    rules: RulesConfig | None = None,
    *,
    validate: bool = True,
) -> EventModel:
    """Load a model from a JSON or YAML file (chosen by suffix).

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaViolationError: If the document cannot be decoded, parsed or has the
            wrong shape.
    """
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except UnicodeDecodeError as exc:
        raise SchemaViolationError(
            f"File is not valid UTF-8: {exc.reason}",
            location=f"{path}: byte {exc.start}",
        ) from exc

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SchemaViolationError(f"Invalid YAML: {exc}", location=str(path)) from exc
        return deserialize(data, rules, validate=validate)

    return deserialize(text, rules, validate=validate)


def save_model(model: EventModel, path: Path | str, indent: int = 2) -> Path:
    """Write a model in its persisted form (YAML for .yaml/.yml, JSON otherwise)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = serialize(model)
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.dump(
                data, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )
        else:
            json.dump(data, f, indent=indent, ensure_ascii=False)
            f.write("\n")

    logger.info("Saved event model to %s", path)
    return path
