"""Source Validator — per-type geometry, division axes, and nuclide inventory."""

import math
from typing import Optional

import structlog

from shieldcheck.config import Settings
from shieldcheck.geometry import Vector3, norm
from shieldcheck.models.problem import (
    GEOMETRY_MODELS,
    DivisionAxis,
    InventoryEntry,
    SourceAnalysis,
    SourceSpec,
)
from shieldcheck.validators.base import BaseValidator
from shieldcheck.validators.models import (
    IssueCode,
    OptimizationReport,
    Priority,
    Recommendation,
    ValidationIssue,
    ValidationResult,
    display_count,
)
from shieldcheck.validators.nuclide_validator import NuclideValidator
from shieldcheck.validators.reference_data import (
    CUTOFF_RATE_DEFAULT,
    CUTOFF_RATE_MAX,
    CUTOFF_RATE_MIN,
    DIVISION_DEFAULT_MAX,
    DIVISION_DEFAULT_MIN,
    DIVISION_KINDS,
    SOURCE_TYPES,
    ZERO_VECTOR_EPSILON,
)

logger = structlog.get_logger()


class _Findings:
    """Accumulator for one source: errors and warnings in discovery order."""

    def __init__(self):
        self.issues: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []


class SourceValidator(BaseValidator):
    """Validates POINT/BOX/RPP/SPH/RCC sources and their division and inventory."""

    def __init__(self, settings: Optional[Settings] = None, nuclide_validator: Optional[NuclideValidator] = None):
        super().__init__(settings)
        self.nuclide_validator = nuclide_validator or NuclideValidator(self.settings)

    @property
    def name(self) -> str:
        return "SourceValidator"

    def validate(self, data, location: str = "source", known_transforms=None) -> ValidationResult:
        """Validate one source.

        Args:
            known_transforms: Transform names defined in the problem. When given,
                a geometry transform reference must name one of them.

        Returns:
            ValidationResult whose value is a SourceAnalysis (typed spec,
            division complexity, inventory count) when ok
        """
        return self.validate_and_advise(data, location, known_transforms)[0]

    def analyze_optimization(self, data, location: str = "source", known_transforms=None) -> OptimizationReport:
        """Advisory suggestions for division resolution and inventory size. Never fails."""
        return self.validate_and_advise(data, location, known_transforms)[1]

    def validate_and_advise(
        self, data, location: str = "source", known_transforms=None
    ) -> tuple[ValidationResult, OptimizationReport]:
        """Validation result and optimization advice from a single pass over the source."""
        findings, analysis = self._analyze(data, location, known_transforms)
        result = ValidationResult.from_findings(findings.issues, findings.warnings, analysis)
        return result, self._advise(data, analysis, location, findings)

    # ── Internal ──

    def _advise(
        self, data, analysis: Optional[SourceAnalysis], location: str, findings: _Findings
    ) -> OptimizationReport:
        if analysis is None:
            logger.debug("source_optimization_skipped", location=location, errors=len(findings.issues))
            return OptimizationReport()

        spec = analysis.spec
        recommendations = []

        if analysis.division_complexity > self.settings.SOURCE_DIVISION_ADVISORY:
            axis_name, axis = max(spec.division.items(), key=lambda item: item[1].count)
            recommendations.append(Recommendation(
                type="performance",
                priority=Priority.MEDIUM,
                category="source",
                target=spec.name,
                message=(
                    f"High division complexity ({display_count(analysis.division_complexity)}) "
                    f"in source '{spec.name}'. "
                    f"Consider coarsening division axis '{axis_name}' (number={display_count(axis.count)})."
                ),
            ))

        if analysis.inventory_count > self.settings.INVENTORY_ADVISORY:
            low = [str(e.nuclide) for e in spec.inventory if e.radioactivity < self.settings.LOW_ACTIVITY_BQ]
            if low:
                hint = f"Consider consolidating low-activity entries: {', '.join(low)}."
            else:
                hint = "Consider grouping nuclides with similar emission spectra."
            recommendations.append(Recommendation(
                type="complexity",
                priority=Priority.LOW,
                category="source",
                target=spec.name,
                message=f"Large inventory ({analysis.inventory_count} nuclides) in source '{spec.name}'. {hint}",
            ))

        if spec.source_type == "POINT" and isinstance(data, dict) and data.get("geometry") is not None:
            recommendations.append(Recommendation(
                type="cleanup",
                priority=Priority.LOW,
                category="source",
                target=spec.name,
                message="POINT source does not need a geometry parameter.",
            ))

        return OptimizationReport(analysis=analysis, recommendations=tuple(recommendations))

    def _analyze(self, source, location: str, known_transforms=None) -> tuple[_Findings, Optional[SourceAnalysis]]:
        findings = _Findings()
        if not isinstance(source, dict):
            findings.issues.append(self._type_issue(location, "a source mapping", source))
            return findings, None

        findings.issues.extend(self._check_name(source.get("name"), self._path(location, "name"), "source name"))

        source_type = source.get("type")
        geometry_values = None
        division_axes = None
        if source_type not in SOURCE_TYPES:
            findings.issues.append(self._issue(
                IssueCode.UNSUPPORTED_SOURCE_TYPE, self._path(location, "type"),
                suggestion="; ".join(f"{name}: {info['description']}" for name, info in SOURCE_TYPES.items()),
                key="type", value=source_type, allowed=list(SOURCE_TYPES),
            ))
        elif source_type == "POINT":
            geometry_values = self._check_point(source, location, findings)
        else:
            geometry_values = self._check_geometry(
                source_type, source.get("geometry"), location, findings, known_transforms,
            )
            division_axes = self._check_division(source_type, source.get("division"), location, findings)

        inventory = self._check_inventory(source.get("inventory"), self._path(location, "inventory"), findings)
        cutoff_rate = self._check_cutoff_rate(source.get("cutoff_rate"), self._path(location, "cutoff_rate"), findings)

        complexity = math.prod(axis.count for axis in division_axes.values()) if division_axes else 0
        if complexity > self.settings.MAX_GRID_COMPLEXITY:
            findings.issues.append(self._issue(
                IssueCode.EXCESSIVE_COMPLEXITY, self._path(location, "division"),
                suggestion="Reduce the number of divisions on one or more axes",
                complexity=display_count(complexity), limit=self.settings.MAX_GRID_COMPLEXITY,
            ))

        if findings.issues:
            return findings, None

        geometry = GEOMETRY_MODELS[source_type](type=source_type, **geometry_values)
        spec = SourceSpec(
            name=source["name"],
            geometry=geometry,
            division=division_axes,
            inventory=inventory,
            cutoff_rate=cutoff_rate,
        )
        return findings, SourceAnalysis(spec=spec, division_complexity=complexity, inventory_count=len(inventory))

    def _check_point(self, source: dict, location: str, findings: _Findings) -> Optional[dict]:
        if source.get("division") is not None:
            findings.issues.append(self._issue(
                IssueCode.UNEXPECTED_DIVISION, self._path(location, "division"),
                suggestion="Remove 'division' or use a volumetric source type (BOX, RPP, SPH, RCC)",
            ))
        if source.get("geometry") is not None:
            findings.warnings.append(self._warning(IssueCode.UNUSED_GEOMETRY, self._path(location, "geometry")))

        if source.get("position") is None:
            findings.issues.append(self._issue(
                IssueCode.GEOMETRY_INCOMPLETE, location,
                source_type="POINT", keys=["position"],
            ))
            return None
        position, issues = self._parse_vector(source["position"], self._path(location, "position"))
        findings.issues.extend(issues)
        return {"position": position} if position is not None else None

    def _check_geometry(
        self, source_type: str, geometry, location: str, findings: _Findings, known_transforms=None
    ) -> Optional[dict]:
        spec = SOURCE_TYPES[source_type]
        geo_location = self._path(location, "geometry")
        if geometry is None:
            geometry = {}
        if not isinstance(geometry, dict):
            findings.issues.append(self._type_issue(geo_location, "a geometry mapping", geometry))
            return None

        required = spec["vectors"] + spec["scalars"]
        missing = [key for key in required if key not in geometry]
        if missing:
            findings.issues.append(self._issue(
                IssueCode.GEOMETRY_INCOMPLETE, geo_location,
                suggestion=f"{source_type} geometry requires: {', '.join(required)}",
                source_type=source_type, keys=missing,
            ))

        values = {}
        for key in spec["vectors"]:
            if key in geometry:
                vector, issues = self._parse_vector(geometry[key], self._path(geo_location, key))
                findings.issues.extend(issues)
                if vector is not None:
                    values[key] = vector
        for key in spec["scalars"]:
            if key in geometry:
                value = geometry[key]
                if not self._is_number(value) or not value > 0:
                    findings.issues.append(self._issue(
                        IssueCode.INVALID_RANGE, self._path(geo_location, key),
                        key=key, value=value, constraint="must be a number > 0",
                    ))
                else:
                    values[key] = float(value)

        self._check_geometry_physics(source_type, values, geo_location, findings)
        complete = len(values) == len(required)

        transform = geometry.get("transform")
        if transform is not None:
            findings.issues.extend(
                self._check_transform(transform, self._path(geo_location, "transform"), known_transforms)
            )
            values["transform"] = transform
        return values if complete else None

    def _check_geometry_physics(self, source_type: str, values: dict, location: str, findings: _Findings) -> None:
        if source_type == "BOX":
            zero_checked = ("edge_1", "edge_2", "edge_3")
        elif source_type == "RCC":
            zero_checked = ("height_vector",)
        else:
            zero_checked = ()

        for key in zero_checked:
            vector = values.get(key)
            if vector is not None and norm(vector) < ZERO_VECTOR_EPSILON:
                findings.issues.append(self._issue(
                    IssueCode.ZERO_EDGE_VECTOR, self._path(location, key), key=key, value=str(vector),
                ))

        if source_type == "RPP" and "min" in values and "max" in values:
            low: Vector3 = values["min"]
            high: Vector3 = values["max"]
            if not all(a < b for a, b in zip(low, high)):
                findings.issues.append(self._issue(
                    IssueCode.INVALID_RANGE, location,
                    key="min/max", value=f"min=({low}), max=({high})",
                    constraint="min must be less than max on every axis",
                ))

    def _check_division(self, source_type: str, division, location: str, findings: _Findings) -> Optional[dict]:
        required = SOURCE_TYPES[source_type]["division_axes"]
        div_location = self._path(location, "division")
        if division is None:
            division = {}
        if not isinstance(division, dict):
            findings.issues.append(self._type_issue(div_location, "a division mapping", division))
            return None

        missing = [axis for axis in required if axis not in division]
        if missing:
            findings.issues.append(self._issue(
                IssueCode.DIVISION_INCOMPLETE, div_location,
                suggestion=f"{source_type} division requires axes: {', '.join(required)}",
                source_type=source_type, keys=missing,
            ))
        extra = sorted(str(axis) for axis in division if axis not in required)
        if extra:
            findings.issues.append(self._issue(
                IssueCode.UNKNOWN_KEYS, div_location,
                suggestion=f"{source_type} division accepts only: {', '.join(required)}",
                scope="division", keys=extra,
            ))

        axes = {}
        for axis_name, raw in division.items():
            axis = self._check_division_axis(raw, self._path(div_location, axis_name), findings)
            if axis is not None and axis_name in required:
                axes[axis_name] = axis
        return axes if len(axes) == len(required) else None

    def _check_division_axis(self, axis, location: str, findings: _Findings) -> Optional[DivisionAxis]:
        if not isinstance(axis, dict):
            findings.issues.append(self._type_issue(location, "a division axis mapping", axis))
            return None

        issues = []
        missing = [key for key in ("type", "number") if key not in axis]
        if missing:
            issues.append(self._issue(IssueCode.MISSING_KEYS, location, scope="division axis", keys=missing))

        kind = axis.get("type")
        if "type" in axis and kind not in DIVISION_KINDS:
            issues.append(self._issue(
                IssueCode.INVALID_ENUM_VALUE, self._path(location, "type"),
                key="type", value=kind, allowed=list(DIVISION_KINDS),
            ))

        number = axis.get("number")
        if "number" in axis and not self._is_positive_int(number):
            issues.append(self._issue(
                IssueCode.INVALID_RANGE, self._path(location, "number"),
                key="number", value=number, constraint="must be a positive integer",
            ))

        low = axis.get("min", DIVISION_DEFAULT_MIN)
        high = axis.get("max", DIVISION_DEFAULT_MAX)
        if not (self._is_number(low) and self._is_number(high)):
            issues.append(self._type_issue(location, "numeric min and max", low if not self._is_number(low) else high))
        elif not low <= high:
            issues.append(self._issue(
                IssueCode.INVALID_RANGE, location,
                suggestion="Swap min and max or correct the range",
                key=location, value=f"min={low}, max={high}", constraint="min <= max",
            ))
        elif low < 0.0 or high > 1.0:
            findings.warnings.append(self._warning(
                IssueCode.DIVISION_RANGE_OUTSIDE_UNIT, location, key=location, min=low, max=high,
            ))

        findings.issues.extend(issues)
        if issues:
            return None
        return DivisionAxis(kind=kind, count=number, min=float(low), max=float(high))

    def _check_inventory(self, inventory, location: str, findings: _Findings) -> tuple[InventoryEntry, ...]:
        if inventory is None or (isinstance(inventory, list) and not inventory):
            findings.issues.append(self._issue(
                IssueCode.EMPTY_INVENTORY, location,
                suggestion="Add at least one {nuclide, radioactivity} entry",
            ))
            return ()
        if not isinstance(inventory, list):
            findings.issues.append(self._type_issue(location, "a list of inventory entries", inventory))
            return ()

        entries = []
        for i, item in enumerate(inventory):
            item_location = self._path(location, i)
            if not isinstance(item, dict):
                findings.issues.append(self._type_issue(item_location, "an inventory entry mapping", item))
                continue

            missing = [key for key in ("nuclide", "radioactivity") if key not in item]
            if missing:
                findings.issues.append(self._issue(
                    IssueCode.MISSING_KEYS, item_location, scope="inventory entry", keys=missing,
                ))

            nuclide = None
            if "nuclide" in item:
                result = self.nuclide_validator.validate_format(item["nuclide"], self._path(item_location, "nuclide"))
                findings.issues.extend(result.issues)
                nuclide = result.value

            activity = item.get("radioactivity")
            activity_location = self._path(item_location, "radioactivity")
            if "radioactivity" in item:
                if not self._is_number(activity):
                    findings.issues.append(self._type_issue(activity_location, "a number", activity))
                    activity = None
                elif math.isnan(activity) or activity < 0:
                    findings.issues.append(self._issue(
                        IssueCode.INVALID_RANGE, activity_location,
                        key="radioactivity", value=activity, constraint="must be non-negative",
                    ))
                    activity = None
                elif activity == 0:
                    findings.warnings.append(self._warning(IssueCode.ZERO_ACTIVITY, activity_location, key=item_location))
                elif activity > self.settings.EXTREME_ACTIVITY_BQ:
                    findings.warnings.append(self._warning(
                        IssueCode.EXTREME_ACTIVITY, activity_location,
                        key=item_location, value=activity, limit=self.settings.EXTREME_ACTIVITY_BQ,
                    ))

            if nuclide is not None and activity is not None:
                entries.append(InventoryEntry(nuclide=nuclide, radioactivity=float(activity)))
        return tuple(entries)

    def _check_cutoff_rate(self, cutoff_rate, location: str, findings: _Findings) -> float:
        if cutoff_rate is None:
            return CUTOFF_RATE_DEFAULT
        if not self._is_number(cutoff_rate):
            findings.issues.append(self._type_issue(location, "a number", cutoff_rate))
        elif not CUTOFF_RATE_MIN <= cutoff_rate <= CUTOFF_RATE_MAX:
            findings.issues.append(self._issue(
                IssueCode.INVALID_RANGE, location,
                key="cutoff_rate", value=cutoff_rate,
                constraint=f"must be between {CUTOFF_RATE_MIN:g} and {CUTOFF_RATE_MAX:g}",
            ))
        else:
            return float(cutoff_rate)
        return CUTOFF_RATE_DEFAULT
