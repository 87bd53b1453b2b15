"""Base validator — abstract class implementing the Strategy Pattern.

Each validator is a standalone, independently testable unit.
New validators are added without modifying the engine.
"""

from abc import ABC, abstractmethod
import re
from typing import Any, Optional

from shieldcheck.config import Settings, get_settings
from shieldcheck.geometry import Vector3
from shieldcheck.validators.models import IssueCode, Severity, ValidationIssue, ValidationResult
from shieldcheck.validators.reference_data import NAME_MAX_LENGTH, NAME_PATTERN, RESERVED_NAMES


class BaseValidator(ABC):
    """Abstract base for all problem-description validators.

    Contract:
        - validate() is deterministic and pure: same input → same output
        - validate() returns a ValidationResult, never raises for bad input
        - No I/O, no shared mutable state
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging."""
        ...

    @abstractmethod
    def validate(self, data: Any, location: str = "") -> ValidationResult:
        """Run validation checks against one sub-structure of the problem.

        Args:
            data: Raw (YAML-shaped) input for this validator
            location: Path prefix used in issue locations, e.g. "source[2]"

        Returns:
            ValidationResult carrying the parsed value when ok
        """
        ...

    # ── Helper Methods ──

    def _issue(
        self,
        code: IssueCode,
        location: str = "",
        severity: Severity = Severity.ERROR,
        suggestion: Optional[str] = None,
        **details: Any,
    ) -> ValidationIssue:
        """Convenience method to create a ValidationIssue."""
        return ValidationIssue(
            code=code,
            severity=severity,
            location=location,
            details=details,
            suggestion=suggestion,
        )

    def _warning(self, code: IssueCode, location: str = "", **details: Any) -> ValidationIssue:
        return self._issue(code, location, severity=Severity.WARNING, **details)

    @staticmethod
    def _path(location: str, key) -> str:
        """Join a location prefix and a key: ("source[0]", "geometry") → "source[0].geometry"."""
        if isinstance(key, int):
            return f"{location}[{key}]"
        return f"{location}.{key}" if location else str(key)

    @staticmethod
    def _is_number(value) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    @staticmethod
    def _is_positive_int(value) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and value >= 1

    def _type_issue(self, location: str, expected: str, value) -> ValidationIssue:
        return self._issue(
            IssueCode.INVALID_TYPE, location,
            key=location, expected=expected, actual=type(value).__name__,
        )

    def _parse_vector(self, raw, location: str) -> tuple[Optional[Vector3], list[ValidationIssue]]:
        """Parse an "x y z" string, reporting INVALID_VECTOR when malformed."""
        vector = Vector3.parse(raw)
        if vector is None:
            return None, [self._issue(IssueCode.INVALID_VECTOR, location, key=location, value=raw)]
        return vector, []

    def _check_name(self, name, location: str, kind: str) -> list[ValidationIssue]:
        """Object names: alphanumerics and underscores, bounded length, not reserved."""
        if not isinstance(name, str) or not name:
            return [self._issue(
                IssueCode.INVALID_NAME, location,
                key=kind, value=name, constraint="a non-empty string is required",
            )]
        if name in RESERVED_NAMES:
            constraint = "name is reserved"
        elif not re.match(NAME_PATTERN, name):
            constraint = "only letters, digits and underscores are allowed"
        elif len(name) > NAME_MAX_LENGTH:
            constraint = f"must be {NAME_MAX_LENGTH} characters or less"
        else:
            return []
        return [self._issue(IssueCode.INVALID_NAME, location, key=kind, value=name, constraint=constraint)]

    def _check_transform(self, transform, location: str, known_transforms=None) -> list[ValidationIssue]:
        """A transform reference is an object name; when the problem's transforms are known it must be one of them."""
        issues = self._check_name(transform, location, "transform name")
        if not issues and known_transforms is not None and transform not in known_transforms:
            issues.append(self._issue(
                IssueCode.UNKNOWN_TRANSFORM, location,
                suggestion="Define the transform in the problem's 'transform' section or remove the reference",
                key=location, value=transform,
            ))
        return issues
