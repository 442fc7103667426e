"""Validation result model and response envelope.

A ValidationResult collects every finding from one validator pass.
Errors block deployment; warnings and suggestions are advisory.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

# =============================================================================
# MODELS
# =============================================================================


class ValidationResult(BaseModel):
    """Outcome of validating a workflow document.

    Attributes:
        errors: Defects that make the workflow undeployable.
        warnings: Problems worth surfacing that do not block deployment.
        suggestions: Maintainability and performance hints.
    """

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        """True iff no errors were recorded."""
        return not self.errors

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def suggest(self, message: str) -> None:
        self.suggestions.append(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise with ``valid`` first, matching the wire contract."""
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


# =============================================================================
# ENVELOPES
# =============================================================================


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


def validation_response(result: ValidationResult) -> dict[str, Any]:
    """Wrap a result in the validation response envelope.

    Returns:
        ``{"success": valid, "validation": {...}, "timestamp": iso}``
    """
    return {
        "success": result.valid,
        "validation": result.to_dict(),
        "timestamp": utc_timestamp(),
    }
