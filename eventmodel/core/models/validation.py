"""Validation result models shared by the validator, builder and CLI."""

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(BaseModel):
    """A single problem found in an event model.

    category is one of the error kinds (DUPLICATE_ID, CYCLE, COMPOSITION, ...)
    and maps back to the matching exception class.
    """

    severity: Severity
    category: str
    location: str = Field(description="Dotted path or id of the offending object")
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        return f"[{self.category}] {self.location}: {self.message}"


class ValidationResult(BaseModel):
    """Issues collected from one validation run."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def info(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.INFO]

    @property
    def valid(self) -> bool:
        return not self.errors

    def extend(self, issues: list[ValidationIssue]) -> None:
        self.issues.extend(issues)
