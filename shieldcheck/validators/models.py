"""Validation models — issue codes, severities, results, and the report structure.

All validation is deterministic: same input → same output. Failures are data,
never exceptions; only EngineContractError signals a bug inside the engine.
"""

from enum import Enum
import math
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, Field, computed_field

from shieldcheck.models.problem import FrozenDict, freeze_mapping


class EngineContractError(RuntimeError):
    """An internal invariant of the engine was violated (a bug, not bad input)."""


class Severity(str, Enum):
    """Validation finding severity levels."""

    ERROR = "error"      # Blocks the commit
    WARNING = "warning"  # Advisory, never blocks


class Priority(str, Enum):
    """Recommendation priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueCode(str, Enum):
    """Machine-readable kind of every validation finding."""

    # Structural errors
    MISSING_KEYS = "MISSING_KEYS"
    UNKNOWN_KEYS = "UNKNOWN_KEYS"
    INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"
    INVALID_TYPE = "INVALID_TYPE"
    INVALID_NAME = "INVALID_NAME"
    INVALID_VECTOR = "INVALID_VECTOR"
    UNKNOWN_TRANSFORM = "UNKNOWN_TRANSFORM"

    # Source errors
    UNSUPPORTED_SOURCE_TYPE = "UNSUPPORTED_SOURCE_TYPE"
    GEOMETRY_INCOMPLETE = "GEOMETRY_INCOMPLETE"
    DIVISION_INCOMPLETE = "DIVISION_INCOMPLETE"
    UNEXPECTED_DIVISION = "UNEXPECTED_DIVISION"
    INVALID_RANGE = "INVALID_RANGE"
    EMPTY_INVENTORY = "EMPTY_INVENTORY"

    # Nuclide errors
    INVALID_NUCLIDE_FORMAT = "INVALID_NUCLIDE_FORMAT"

    # Detector errors
    ZERO_EDGE_VECTOR = "ZERO_EDGE_VECTOR"
    DIMENSION_OUT_OF_BOUNDS = "DIMENSION_OUT_OF_BOUNDS"
    EXCESSIVE_COMPLEXITY = "EXCESSIVE_COMPLEXITY"

    # A validator crashed while running
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Warnings
    MIXED_UNIT_SYSTEM = "MIXED_UNIT_SYSTEM"
    ANGLE_UNIT_DEGREE = "ANGLE_UNIT_DEGREE"
    UNUSED_GEOMETRY = "UNUSED_GEOMETRY"
    DIVISION_RANGE_OUTSIDE_UNIT = "DIVISION_RANGE_OUTSIDE_UNIT"
    ZERO_ACTIVITY = "ZERO_ACTIVITY"
    EXTREME_ACTIVITY = "EXTREME_ACTIVITY"
    LARGE_EDGE_VECTOR = "LARGE_EDGE_VECTOR"


MESSAGE_TEMPLATES: dict[IssueCode, str] = {
    IssueCode.MISSING_KEYS: "Missing required {scope} keys: {keys}",
    IssueCode.UNKNOWN_KEYS: "Unknown {scope} keys: {keys}",
    IssueCode.INVALID_ENUM_VALUE: "Invalid value '{value}' for '{key}'. Allowed values: {allowed}",
    IssueCode.INVALID_TYPE: "'{key}' must be {expected}, got {actual}",
    IssueCode.INVALID_NAME: "Invalid {key} '{value}': {constraint}",
    IssueCode.INVALID_VECTOR: "'{key}' must be an \"x y z\" triple of real numbers, got '{value}'",
    IssueCode.UNKNOWN_TRANSFORM: "'{key}' references transform '{value}', which is not defined in the problem",
    IssueCode.UNSUPPORTED_SOURCE_TYPE: "Unsupported source type '{value}'. Supported types: {allowed}",
    IssueCode.GEOMETRY_INCOMPLETE: "{source_type} source is missing geometry keys: {keys}",
    IssueCode.DIVISION_INCOMPLETE: "{source_type} source is missing division axes: {keys}",
    IssueCode.UNEXPECTED_DIVISION: "POINT source must not define a division",
    IssueCode.INVALID_RANGE: "'{key}' value {value} violates constraint: {constraint}",
    IssueCode.EMPTY_INVENTORY: "Source inventory must contain at least one nuclide",
    IssueCode.INVALID_NUCLIDE_FORMAT: (
        "Invalid nuclide identifier '{value}'. Expected element symbol + mass number "
        "with no separator (e.g. Cs137, Tc99m)"
    ),
    IssueCode.ZERO_EDGE_VECTOR: "'{key}' must be a non-zero vector, got '{value}'",
    IssueCode.DIMENSION_OUT_OF_BOUNDS: "Detector grid has {dimension} axes; allowed range is 0 to {max_dimension}",
    IssueCode.EXCESSIVE_COMPLEXITY: "Grid complexity {complexity} exceeds the maximum of {limit} cells",
    IssueCode.INTERNAL_ERROR: "Validator '{validator}' crashed: {error}",
    IssueCode.MIXED_UNIT_SYSTEM: (
        "Mixing SI length ({length}) with CGS density ({density}). Consider a consistent unit system"
    ),
    IssueCode.ANGLE_UNIT_DEGREE: "Using degree for angles. Radian is preferred for internal consistency",
    IssueCode.UNUSED_GEOMETRY: "POINT source ignores the geometry parameter",
    IssueCode.DIVISION_RANGE_OUTSIDE_UNIT: "'{key}' range [{min}, {max}] lies outside [0, 1]",
    IssueCode.ZERO_ACTIVITY: "'{key}' has zero radioactivity and contributes nothing",
    IssueCode.EXTREME_ACTIVITY: "'{key}' radioactivity {value} Bq exceeds {limit} Bq",
    IssueCode.LARGE_EDGE_VECTOR: "'{key}' has a very large edge vector (length {length})",
}


# Past this many bits an int is shown as an order of magnitude; str() refuses ints over 4300 digits.
_MAX_DISPLAY_BITS = 128


def display_count(value):
    """Return an int unchanged, or '~1eN' when it is too large to print in full."""
    if isinstance(value, int) and not isinstance(value, bool) and value.bit_length() > _MAX_DISPLAY_BITS:
        magnitude = abs(value)
        exponent = math.floor(math.log10(magnitude))
        # log10 is a float estimate; settle the exponent with exact integer powers
        if 10 ** exponent > magnitude:
            exponent -= 1
        elif 10 ** (exponent + 1) <= magnitude:
            exponent += 1
        sign = "-" if value < 0 else ""
        return f"{sign}~1e{exponent}"
    return value


class _TemplateArgs(dict):
    """format_map arguments: lists are joined, large counts abbreviated, missing keys render as '?'."""

    def __missing__(self, key):
        return "?"

    def __getitem__(self, key):
        value = super().__getitem__(key)
        if isinstance(value, (list, tuple)):
            return ", ".join(str(display_count(v)) for v in value)
        return display_count(value)


class ValidationIssue(BaseModel):
    """A single validation finding: structured data, rendered to text on demand."""

    code: IssueCode
    severity: Severity = Severity.ERROR
    location: str = ""                                      # e.g. "source[0].division.r"
    # Offending key/value
    details: Annotated[dict[str, Any], AfterValidator(freeze_mapping)] = Field(default_factory=FrozenDict)
    suggestion: Optional[str] = None                        # How to fix it

    model_config = {"frozen": True, "use_enum_values": True}

    @computed_field
    @property
    def message(self) -> str:
        template = MESSAGE_TEMPLATES.get(self.code, "{code}")
        return template.format_map(_TemplateArgs(self.details, code=self.code))

    @property
    def key(self) -> tuple[str, str]:
        """Identity used to de-duplicate findings reported by several categories."""
        return (self.code, self.location)


class Recommendation(BaseModel):
    """Non-blocking optimization advice."""

    type: str
    message: str
    priority: Priority = Priority.LOW
    category: str = ""
    target: Optional[str] = None   # Name of the source/detector concerned

    model_config = {"frozen": True, "use_enum_values": True}


class ValidationResult(BaseModel):
    """Outcome of a single public validator call: {ok, value} or {ok: false, issues}."""

    value: Any = None
    issues: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @computed_field
    @property
    def ok(self) -> bool:
        return not self.issues

    @classmethod
    def success(cls, value: Any = None, warnings=()) -> "ValidationResult":
        return cls(value=value, warnings=tuple(warnings))

    @classmethod
    def failure(cls, issues, warnings=(), value: Any = None) -> "ValidationResult":
        issues = tuple(issues)
        if not issues:
            raise EngineContractError("failure() requires at least one issue")
        return cls(value=value, issues=issues, warnings=tuple(warnings))

    @classmethod
    def from_findings(cls, issues, warnings=(), value: Any = None) -> "ValidationResult":
        """Build a result from accumulated findings; the value is kept only when ok."""
        issues = tuple(issues)
        return cls(value=None if issues else value, issues=issues, warnings=tuple(warnings))

    def has_code(self, code: IssueCode) -> bool:
        return any(i.code == code for i in self.issues)

    @property
    def codes(self) -> list[str]:
        return [i.code for i in self.issues]


class CategoryResult(BaseModel):
    """Aggregated findings for one report category (unit, source, detector, nuclide)."""

    category: str
    passed: bool = True
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def from_results(cls, category: str, results: list[ValidationResult]) -> "CategoryResult":
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        for result in results:
            errors.extend(result.issues)
            warnings.extend(result.warnings)
        return cls(category=category, passed=not errors, errors=tuple(errors), warnings=tuple(warnings))

    def merge(self, other: "CategoryResult") -> "CategoryResult":
        if other.category != self.category:
            raise EngineContractError(
                f"Cannot merge category '{other.category}' into '{self.category}'"
            )
        errors = self.errors + other.errors
        return CategoryResult(
            category=self.category,
            passed=self.passed and other.passed and not errors,
            errors=errors,
            warnings=self.warnings + other.warnings,
        )


def _unique(issues) -> tuple[ValidationIssue, ...]:
    seen = set()
    unique = []
    for issue in issues:
        if issue.key in seen:
            continue
        seen.add(issue.key)
        unique.append(issue)
    return tuple(unique)


class ValidationReport(BaseModel):
    """Complete validation report — the output of the validation engine."""

    overall: bool = Field(description="True if every category passed")
    categories: Annotated[dict[str, CategoryResult], AfterValidator(FrozenDict)] = Field(default_factory=FrozenDict)
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def build(
        cls,
        categories: list[CategoryResult],
        recommendations: Optional[list[Recommendation]] = None,
    ) -> "ValidationReport":
        """Build a complete report from per-category results."""
        by_name: dict[str, CategoryResult] = {}
        for result in categories:
            if result.category in by_name:
                raise EngineContractError(f"Category '{result.category}' reported twice")
            if result.passed != (not result.errors):
                raise EngineContractError(
                    f"Category '{result.category}' passed={result.passed} "
                    f"disagrees with {len(result.errors)} error(s)"
                )
            by_name[result.category] = result

        all_errors = [e for r in categories for e in r.errors]
        all_warnings = [w for r in categories for w in r.warnings]

        return cls(
            overall=all(r.passed for r in categories),
            categories=by_name,
            errors=_unique(all_errors),
            warnings=_unique(all_warnings),
            recommendations=tuple(recommendations or ()),
        )

    def category_passed(self, name: str) -> bool:
        return self.categories[name].passed


class PerformanceEstimate(BaseModel):
    """Resource estimate for a detector grid."""

    complexity: int
    estimated_memory_bytes: int
    recommended_cpu_cores: int

    model_config = {"frozen": True}


class OptimizationReport(BaseModel):
    """Advisory output of an optimizer. Never blocks a commit."""

    analysis: Any = None   # Parsed analysis, None when the input did not validate
    recommendations: tuple[Recommendation, ...] = ()
    performance: Optional[PerformanceEstimate] = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @computed_field
    @property
    def is_optimal(self) -> bool:
        if self.analysis is None:
            return False
        return not any(r.priority == Priority.HIGH for r in self.recommendations)
