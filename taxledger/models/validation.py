"""Validation issue models collected while building a report."""

from pydantic import BaseModel, Field

from taxledger.models.enums import IssueSeverity


class ValidationIssue(BaseModel):
    code: str
    severity: IssueSeverity
    message: str
    field: str | None = None
    transaction_id: str | None = None


class ValidationResult(BaseModel):
    """Issues found for one transaction or one batch."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.WARNING]

    @property
    def is_valid(self) -> bool:
        """True if no issue has ERROR severity."""
        return not self.errors
