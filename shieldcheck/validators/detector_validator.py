"""Detector Validator — grid dimensionality, orthogonality, complexity, and resource estimates.

Grid complexity is the product of the per-axis division counts. It is compared
against MAX_GRID_COMPLEXITY before any derived quantity (volume, density,
memory) is computed from it.
"""

from itertools import combinations
import math
from typing import Optional

import structlog

from shieldcheck.geometry import Vector3, angle_between_deg, norm, spanned_measure
from shieldcheck.models.problem import (
    AxisPairAngle,
    CompatibilityReport,
    DetectorSpec,
    GridAnalysis,
    GridAxis,
    Orthogonality,
)
from shieldcheck.validators.base import BaseValidator
from shieldcheck.validators.models import (
    IssueCode,
    OptimizationReport,
    PerformanceEstimate,
    Priority,
    Recommendation,
    ValidationIssue,
    ValidationResult,
    display_count,
)
from shieldcheck.validators.reference_data import (
    CPU_CORE_STEPS,
    MAX_GRID_DIMENSION,
    MAX_RECOMMENDED_CORES,
    ZERO_VECTOR_EPSILON,
)

logger = structlog.get_logger()


class DetectorValidator(BaseValidator):
    """Validates point, line, plane and volume detector grids."""

    @property
    def name(self) -> str:
        return "DetectorValidator"

    def validate(self, data, location: str = "detector", known_transforms=None) -> ValidationResult:
        """Validate one detector.

        Args:
            known_transforms: Transform names defined in the problem. When given,
                the detector's transform reference must name one of them.

        Returns:
            ValidationResult whose value is a GridAnalysis (with its typed
            DetectorSpec attached) when ok
        """
        return self.validate_and_advise(data, location, known_transforms)[0]

    def analyze_optimization(self, data, location: str = "detector", known_transforms=None) -> OptimizationReport:
        """Memory/CPU estimates and advisory suggestions.

        The analysis is available whenever the grid itself parses, so an
        excessive grid still gets its resource estimate.
        """
        return self.validate_and_advise(data, location, known_transforms)[1]

    def validate_and_advise(
        self, data, location: str = "detector", known_transforms=None
    ) -> tuple[ValidationResult, OptimizationReport]:
        issues, warnings, analysis = self._analyze(data, location, known_transforms)
        result = ValidationResult.from_findings(issues, warnings, analysis)
        return result, self._advise(data, analysis, location, issues)

    def _advise(self, data, analysis: Optional[GridAnalysis], location: str, issues) -> OptimizationReport:
        if analysis is None:
            logger.debug("detector_optimization_skipped", location=location, errors=len(issues))
            return OptimizationReport()

        target = data.get("name") if isinstance(data.get("name"), str) else None
        complexity = analysis.complexity
        recommendations = []

        if complexity > self.settings.DETECTOR_COMPLEXITY_ADVISORY:
            recommendations.append(Recommendation(
                type="performance",
                priority=Priority.HIGH,
                category="detector",
                target=target,
                message=(
                    f"Very high grid resolution ({display_count(complexity)} cells). "
                    "Consider reducing the number of divisions for better performance."
                ),
            ))

        if not analysis.orthogonality.orthogonal:
            recommendations.append(Recommendation(
                type="geometry",
                priority=Priority.MEDIUM,
                category="detector",
                target=target,
                message=(
                    f"Oblique grid detected ({analysis.orthogonality.ratio * 100:.1f}% of axis pairs orthogonal). "
                    "Re-align the grid axes to the coordinate frame for cheaper downstream computation."
                ),
            ))

        if analysis.grid_density is not None and analysis.grid_density > self.settings.GRID_DENSITY_ADVISORY:
            recommendations.append(Recommendation(
                type="resolution",
                priority=Priority.LOW,
                category="detector",
                target=target,
                message=(
                    f"High grid density ({analysis.grid_density:.1f} cells per unit measure). "
                    "Verify that this resolution is necessary."
                ),
            ))

        if not analysis.show_path_trace and complexity > 1000:
            recommendations.append(Recommendation(
                type="feature",
                priority=Priority.LOW,
                category="detector",
                target=target,
                message="Consider enabling path tracing for high-resolution detector analysis.",
            ))

        if analysis.transform is not None:
            recommendations.append(Recommendation(
                type="geometry",
                priority=Priority.LOW,
                category="detector",
                target=target,
                message="Transform detected. Verify the geometric transformation is necessary for this detector.",
            ))

        performance = PerformanceEstimate(
            complexity=complexity,
            estimated_memory_bytes=self.estimate_memory(
                complexity, analysis.show_path_trace, analysis.transform is not None
            ),
            recommended_cpu_cores=self.recommend_cpu_cores(complexity),
        )
        return OptimizationReport(
            analysis=analysis,
            recommendations=tuple(recommendations),
            performance=performance,
        )

    def check_compatibility(self, first, second) -> ValidationResult:
        """Compare two detectors for dimension, resolution and geometric alignment."""
        issues_a, _, a = self._analyze(first, "detector_a")
        issues_b, _, b = self._analyze(second, "detector_b")
        if issues_a or issues_b:
            return ValidationResult.failure(issues_a + issues_b)

        dimension_match = a.dimension == b.dimension

        ratios = [
            max(axis_a.count / axis_b.count, axis_b.count / axis_a.count)
            for axis_a, axis_b in zip(a.grid, b.grid)
        ]
        max_ratio = max(ratios, default=1.0)
        resolution_compatible = max_ratio <= self.settings.RESOLUTION_RATIO_LIMIT

        if a.orthogonality.orthogonal and b.orthogonality.orthogonal:
            geometry_compatible = True
        else:
            geometry_compatible = all(
                self._parallel(axis_a.edge, axis_b.edge) for axis_a, axis_b in zip(a.grid, b.grid)
            )

        score = sum([dimension_match, resolution_compatible, geometry_compatible])
        if not dimension_match or score < 2:
            overall = "incompatible"
        elif score == 3:
            overall = "fully_compatible"
        else:
            overall = "mostly_compatible"

        return ValidationResult.success(CompatibilityReport(
            dimension_match=dimension_match,
            resolution_compatible=resolution_compatible,
            geometry_compatible=geometry_compatible,
            max_resolution_ratio=max_ratio,
            overall=overall,
        ))

    def estimate_memory(self, complexity: int, path_trace: bool = False, transform: bool = False) -> int:
        per_cell = self.settings.BYTES_PER_CELL
        if path_trace:
            per_cell += self.settings.PATH_TRACE_BYTES_PER_CELL
        memory = complexity * per_cell
        if transform:
            memory += self.settings.TRANSFORM_BYTES
        return memory

    @staticmethod
    def recommend_cpu_cores(complexity: int) -> int:
        for upper, cores in CPU_CORE_STEPS:
            if complexity < upper:
                return cores
        return MAX_RECOMMENDED_CORES

    # ── Internal ──

    def _parallel(self, a: Vector3, b: Vector3) -> bool:
        angle = angle_between_deg(a, b)
        tolerance = self.settings.ORTHOGONALITY_TOLERANCE_DEG
        return angle <= tolerance or angle >= 180.0 - tolerance

    def _analyze(
        self, detector, location: str, known_transforms=None
    ) -> tuple[list[ValidationIssue], list[ValidationIssue], Optional[GridAnalysis]]:
        issues: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        if not isinstance(detector, dict):
            return [self._type_issue(location, "a detector mapping", detector)], warnings, None

        name = detector.get("name")
        issues.extend(self._check_name(name, self._path(location, "name"), "detector name"))

        origin = None
        if detector.get("origin") is None:
            issues.append(self._issue(IssueCode.MISSING_KEYS, location, scope="detector", keys=["origin"]))
        else:
            origin, vector_issues = self._parse_vector(detector["origin"], self._path(location, "origin"))
            issues.extend(vector_issues)

        path_trace = detector.get("show_path_trace", False)
        if not isinstance(path_trace, bool):
            issues.append(self._type_issue(self._path(location, "show_path_trace"), "a boolean", path_trace))
            path_trace = False

        transform = detector.get("transform")
        if transform is not None:
            issues.extend(self._check_transform(transform, self._path(location, "transform"), known_transforms))
            if not isinstance(transform, str):
                transform = None

        axes = self._check_grid(detector.get("grid"), self._path(location, "grid"), issues, warnings)
        if axes is None:
            return issues, warnings, None

        complexity = math.prod(axis.count for axis in axes)
        orthogonality = self._orthogonality([axis.edge for axis in axes])

        volume = None
        density = None
        if complexity > self.settings.MAX_GRID_COMPLEXITY:
            issues.append(self._issue(
                IssueCode.EXCESSIVE_COMPLEXITY, self._path(location, "grid"),
                suggestion="Reduce the number of divisions on one or more grid axes",
                complexity=display_count(complexity), limit=self.settings.MAX_GRID_COMPLEXITY,
            ))
        elif axes:
            volume = self._grid_volume(axes, orthogonality.orthogonal)
            if volume > 0:
                density = complexity / volume

        spec = None
        if not issues:
            spec = DetectorSpec(
                name=name, origin=origin, grid=tuple(axes), show_path_trace=path_trace, transform=transform,
            )

        analysis = GridAnalysis(
            spec=spec,
            grid=tuple(axes),
            show_path_trace=path_trace,
            transform=transform,
            dimension=len(axes),
            complexity=complexity,
            orthogonality=orthogonality,
            grid_volume=volume,
            grid_density=density,
            detector_type=self._classify(len(axes), orthogonality, complexity, path_trace, transform is not None),
        )
        return issues, warnings, analysis

    def _check_grid(
        self, grid, location: str, issues: list[ValidationIssue], warnings: list[ValidationIssue]
    ) -> Optional[list[GridAxis]]:
        """Parse grid axes. Returns None if the grid cannot be analyzed."""
        if grid is None:
            return []
        if not isinstance(grid, list):
            issues.append(self._type_issue(location, "a list of grid axes", grid))
            return None

        ok = True
        if len(grid) > MAX_GRID_DIMENSION:
            issues.append(self._issue(
                IssueCode.DIMENSION_OUT_OF_BOUNDS, location,
                suggestion="A detector grid has at most 3 axes (volume detector)",
                dimension=len(grid), max_dimension=MAX_GRID_DIMENSION,
            ))
            ok = False

        axes = []
        for i, raw in enumerate(grid):
            axis = self._check_grid_axis(raw, self._path(location, i), issues, warnings)
            if axis is None:
                ok = False
            else:
                axes.append(axis)
        return axes if ok else None

    def _check_grid_axis(
        self, raw, location: str, issues: list[ValidationIssue], warnings: list[ValidationIssue]
    ) -> Optional[GridAxis]:
        if not isinstance(raw, dict):
            issues.append(self._type_issue(location, "a grid axis mapping", raw))
            return None

        missing = [key for key in ("edge", "number") if key not in raw]
        if missing:
            issues.append(self._issue(IssueCode.MISSING_KEYS, location, scope="grid axis", keys=missing))

        edge = None
        if "edge" in raw:
            edge_location = self._path(location, "edge")
            edge, vector_issues = self._parse_vector(raw["edge"], edge_location)
            issues.extend(vector_issues)
            if edge is not None:
                length = norm(edge)
                if length < ZERO_VECTOR_EPSILON:
                    issues.append(self._issue(
                        IssueCode.ZERO_EDGE_VECTOR, edge_location, key=edge_location, value=raw["edge"],
                    ))
                    edge = None
                elif length > self.settings.LARGE_EDGE_LENGTH:
                    warnings.append(self._warning(
                        IssueCode.LARGE_EDGE_VECTOR, edge_location, key=edge_location, length=round(length, 2),
                    ))

        number = raw.get("number")
        if "number" in raw and not self._is_positive_int(number):
            issues.append(self._issue(
                IssueCode.INVALID_RANGE, self._path(location, "number"),
                key="number", value=number, constraint="must be a positive integer",
            ))
            number = None

        if edge is None or number is None:
            return None
        return GridAxis(edge=edge, count=number)

    def _orthogonality(self, edges: list[Vector3]) -> Orthogonality:
        tolerance = self.settings.ORTHOGONALITY_TOLERANCE_DEG
        angles = []
        for i, j in combinations(range(len(edges)), 2):
            angle = angle_between_deg(edges[i], edges[j])
            angles.append(AxisPairAngle(
                axes=(i, j),
                angle_deg=angle,
                orthogonal=abs(angle - 90.0) <= tolerance,
            ))

        ratio = sum(a.orthogonal for a in angles) / len(angles) if angles else 1.0
        orthogonal = ratio == 1.0
        return Orthogonality(
            type="orthogonal" if orthogonal else "oblique",
            orthogonal=orthogonal,
            ratio=ratio,
            angles=tuple(angles),
        )

    @staticmethod
    def _grid_volume(axes: list[GridAxis], orthogonal: bool) -> float:
        edges = [axis.edge for axis in axes]
        if orthogonal:
            return math.prod(norm(edge) for edge in edges)
        return spanned_measure(edges)

    def _classify(
        self, dimension: int, orthogonality: Orthogonality, complexity: int, path_trace: bool, transformed: bool = False
    ) -> str:
        detector_type = "point" if dimension == 0 else f"{dimension}d_{orthogonality.type}"
        if complexity > self.settings.HIGH_RESOLUTION_THRESHOLD:
            detector_type += "_high_resolution"
        if transformed:
            detector_type += "_transformed"
        if path_trace:
            detector_type += "_path_traced"
        return detector_type
