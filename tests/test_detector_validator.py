"""
Tests for detector grid validation, optimization and compatibility.
"""

import pytest

from shieldcheck.config import Settings
from shieldcheck.validators import DetectorValidator
from shieldcheck.validators.models import IssueCode, Priority


def _detector(*axes, origin="0 0 0", **extra):
    return {
        "name": "det",
        "origin": origin,
        "grid": [{"edge": edge, "number": number} for edge, number in axes],
        **extra,
    }


LINE = _detector(("10 0 0", 10))
CUBE = _detector(("10 0 0", 10), ("0 10 0", 10), ("0 0 10", 10))
OBLIQUE_PLANE = _detector(("10 0 0", 20), ("7.07 7.07 0", 20))


class TestGridStructure:

    def test_plane_detector(self, detector_validator, plane_detector):
        result = detector_validator.validate(plane_detector)

        assert result.ok, result.issues
        analysis = result.value
        assert analysis.dimension == 2
        assert analysis.complexity == 400
        assert analysis.orthogonality.orthogonal
        assert analysis.orthogonality.ratio == 1.0
        assert analysis.detector_type == "2d_orthogonal"
        assert analysis.spec.name == "plane_detector"
        assert analysis.grid_volume == pytest.approx(100.0)
        assert analysis.grid_density == pytest.approx(4.0)

    def test_oblique_plane(self, detector_validator):
        analysis = detector_validator.validate(OBLIQUE_PLANE).value

        assert analysis.orthogonality.ratio == 0.0
        assert analysis.orthogonality.type == "oblique"
        assert analysis.orthogonality.angles[0].angle_deg == pytest.approx(45.0, abs=0.01)
        assert analysis.detector_type == "2d_oblique"
        assert analysis.grid_volume == pytest.approx(70.7, rel=1e-3)

    def test_angle_within_tolerance_counts_as_orthogonal(self, detector_validator):
        # ~0.57 degrees off square
        detector = _detector(("10 0 0", 5), ("0.1 10 0", 5))
        assert detector_validator.validate(detector).value.orthogonality.orthogonal

    def test_tolerance_is_configurable(self):
        validator = DetectorValidator(Settings(ORTHOGONALITY_TOLERANCE_DEG=0.1))
        detector = _detector(("10 0 0", 5), ("0.1 10 0", 5))
        assert not validator.validate(detector).value.orthogonality.orthogonal

    @pytest.mark.parametrize("grid", [None, []])
    def test_point_detector(self, detector_validator, grid):
        detector = {"name": "p", "origin": "1 2 3", "grid": grid}
        analysis = detector_validator.validate(detector).value

        assert analysis.dimension == 0
        assert analysis.complexity == 1
        assert analysis.detector_type == "point"
        assert analysis.grid_volume is None
        assert analysis.orthogonality.ratio == 1.0

    def test_line_and_volume(self, detector_validator):
        assert detector_validator.validate(LINE).value.detector_type == "1d_orthogonal"

        cube = detector_validator.validate(CUBE).value
        assert cube.dimension == 3
        assert cube.grid_volume == pytest.approx(1000.0)
        assert len(cube.orthogonality.angles) == 3

    def test_four_axes_rejected(self, detector_validator):
        detector = _detector(*[("10 0 0", 2)] * 4)
        result = detector_validator.validate(detector)

        assert IssueCode.DIMENSION_OUT_OF_BOUNDS in result.codes
        assert result.issues[0].details["dimension"] == 4

    def test_zero_edge_vector(self, detector_validator):
        result = detector_validator.validate(_detector(("0 0 0", 10)))

        assert result.codes == [IssueCode.ZERO_EDGE_VECTOR]
        assert result.issues[0].location == "detector.grid[0].edge"

    def test_malformed_edge(self, detector_validator):
        result = detector_validator.validate(_detector(("10 0", 10)))
        assert result.codes == [IssueCode.INVALID_VECTOR]

    @pytest.mark.parametrize("number", [0, -1, 1.5, "20", False])
    def test_count_must_be_positive_integer(self, detector_validator, number):
        result = detector_validator.validate(_detector(("10 0 0", number)))

        assert result.codes == [IssueCode.INVALID_RANGE]
        assert result.issues[0].location == "detector.grid[0].number"

    def test_missing_axis_keys(self, detector_validator):
        detector = {"name": "det", "origin": "0 0 0", "grid": [{"edge": "1 0 0"}]}
        result = detector_validator.validate(detector)

        assert result.codes == [IssueCode.MISSING_KEYS]
        assert result.issues[0].details["keys"] == ("number",)

    def test_missing_origin(self, detector_validator, plane_detector):
        del plane_detector["origin"]
        assert detector_validator.validate(plane_detector).codes == [IssueCode.MISSING_KEYS]

    def test_path_trace_must_be_boolean(self, detector_validator, plane_detector):
        plane_detector["show_path_trace"] = "yes"
        assert detector_validator.validate(plane_detector).codes == [IssueCode.INVALID_TYPE]

    def test_large_edge_warns(self, detector_validator):
        result = detector_validator.validate(_detector(("20000 0 0", 10)))

        assert result.ok
        assert [w.code for w in result.warnings] == [IssueCode.LARGE_EDGE_VECTOR]

    def test_reserved_name(self, detector_validator, plane_detector):
        plane_detector["name"] = "ATMOSPHERE"
        assert detector_validator.validate(plane_detector).codes == [IssueCode.INVALID_NAME]


class TestComplexity:

    def test_excessive_complexity(self, detector_validator):
        detector = _detector(("1 0 0", 1000), ("0 1 0", 1000), ("0 0 1", 1000))
        result = detector_validator.validate(detector)

        assert result.codes == [IssueCode.EXCESSIVE_COMPLEXITY]
        assert result.issues[0].details["complexity"] == 1_000_000_000

    @pytest.mark.parametrize(
        "axes, complexity",
        [
            ((("1 0 0", 200), ("0 1 0", 200), ("0 0 1", 100)), 4_000_000),
            ((("1 0 0", 1000), ("0 1 0", 1000)), 1_000_000),
        ],
    )
    def test_large_but_allowed(self, detector_validator, axes, complexity):
        result = detector_validator.validate(_detector(*axes))

        assert result.ok
        assert result.value.complexity == complexity
        assert result.value.detector_type.endswith("_high_resolution")

    def test_ceiling_is_configurable(self):
        validator = DetectorValidator(Settings(MAX_GRID_COMPLEXITY=100))
        result = validator.validate(_detector(("1 0 0", 20), ("0 1 0", 20)))
        assert result.codes == [IssueCode.EXCESSIVE_COMPLEXITY]

    def test_path_traced_classification(self, detector_validator, plane_detector):
        plane_detector["show_path_trace"] = True
        assert detector_validator.validate(plane_detector).value.detector_type == "2d_orthogonal_path_traced"


class TestResourceEstimates:

    def test_memory_estimate(self, detector_validator):
        assert detector_validator.estimate_memory(400) == 400_000
        assert detector_validator.estimate_memory(400, path_trace=True) == 4_400_000

    @pytest.mark.parametrize(
        "complexity, cores",
        [(1, 1), (99, 1), (100, 2), (999, 2), (5_000, 4), (50_000, 8), (100_000, 16), (10**8, 16)],
    )
    def test_cpu_core_recommendation(self, complexity, cores):
        assert DetectorValidator.recommend_cpu_cores(complexity) == cores


class TestDetectorOptimization:

    def test_small_plane_is_optimal(self, detector_validator, plane_detector):
        report = detector_validator.analyze_optimization(plane_detector)

        assert report.recommendations == ()
        assert report.is_optimal
        assert report.performance.complexity == 400
        assert report.performance.estimated_memory_bytes == 400_000
        assert report.performance.recommended_cpu_cores == 2

    def test_high_resolution_grid(self, detector_validator):
        detector = _detector(("1 0 0", 500), ("0 1 0", 500))
        report = detector_validator.analyze_optimization(detector)

        types = [r.type for r in report.recommendations]
        assert types == ["performance", "resolution", "feature"]
        assert report.recommendations[0].priority == Priority.HIGH
        assert report.recommendations[0].target == "det"
        assert not report.is_optimal

    def test_oblique_grid_recommendation(self, detector_validator):
        report = detector_validator.analyze_optimization(OBLIQUE_PLANE)

        assert [r.type for r in report.recommendations] == ["geometry"]
        assert report.recommendations[0].priority == Priority.MEDIUM
        assert report.is_optimal

    def test_excessive_grid_still_gets_estimate(self, detector_validator):
        detector = _detector(("1 0 0", 1000), ("0 1 0", 1000), ("0 0 1", 1000))
        report = detector_validator.analyze_optimization(detector)

        assert report.performance.recommended_cpu_cores == 16
        assert report.analysis.spec is None

    def test_unparseable_detector(self, detector_validator):
        report = detector_validator.analyze_optimization({"name": "det", "grid": "10 0 0"})

        assert report.analysis is None
        assert report.performance is None


class TestCompatibility:

    def test_identical_planes(self, detector_validator, plane_detector):
        result = detector_validator.check_compatibility(plane_detector, plane_detector)

        assert result.ok
        report = result.value
        assert report.dimension_match
        assert report.max_resolution_ratio == 1.0
        assert report.overall == "fully_compatible"

    def test_line_against_volume(self, detector_validator):
        report = detector_validator.check_compatibility(LINE, CUBE).value

        assert not report.dimension_match
        assert report.overall == "incompatible"

    def test_resolution_mismatch_is_mostly_compatible(self, detector_validator, plane_detector):
        fine = _detector(("10 0 0", 300), ("0 10 0", 20))
        report = detector_validator.check_compatibility(plane_detector, fine).value

        assert report.max_resolution_ratio == pytest.approx(15.0)
        assert not report.resolution_compatible
        assert report.geometry_compatible
        assert report.overall == "mostly_compatible"

    def test_parallel_oblique_grids_are_geometry_compatible(self, detector_validator):
        scaled = _detector(("20 0 0", 20), ("14.14 14.14 0", 20))
        report = detector_validator.check_compatibility(OBLIQUE_PLANE, scaled).value

        assert report.geometry_compatible
        assert report.overall == "fully_compatible"

    def test_invalid_detector_fails(self, detector_validator, plane_detector):
        result = detector_validator.check_compatibility(plane_detector, {"name": "bad"})

        assert not result.ok
        assert all(i.location.startswith("detector_b") for i in result.issues)


class TestGridVolume:

    def test_parallel_edges_span_no_area(self, detector_validator):
        analysis = detector_validator.validate(_detector(("10 0 0", 10), ("20 0 0", 10))).value

        assert analysis.orthogonality.type == "oblique"
        assert analysis.grid_volume == 0.0
        assert analysis.grid_density is None

    def test_oblique_volume_uses_triple_product(self, detector_validator):
        analysis = detector_validator.validate(_detector(("1 0 0", 4), ("1 1 0", 4), ("0 0 2", 4))).value

        assert analysis.detector_type == "3d_oblique"
        assert analysis.orthogonality.ratio == pytest.approx(2 / 3)
        assert analysis.grid_volume == pytest.approx(2.0)
        assert analysis.grid_density == pytest.approx(32.0)


class TestAstronomicalGrid:

    AXES = (("1 0 0", 10**1500), ("0 1 0", 10**1500), ("0 0 1", 10**1500))

    def test_excessive_complexity_is_abbreviated(self, detector_validator):
        result = detector_validator.validate(_detector(*self.AXES))

        assert result.codes == [IssueCode.EXCESSIVE_COMPLEXITY]
        assert "~1e4500" in result.issues[0].message

    def test_optimization_messages_are_abbreviated(self, detector_validator):
        report = detector_validator.analyze_optimization(_detector(*self.AXES))

        assert "~1e4500" in report.recommendations[0].message
        assert report.model_dump()["performance"]["recommended_cpu_cores"] == 16


class TestTransform:

    def test_transformed_classification(self, detector_validator, plane_detector):
        plane_detector["transform"] = "rot90"
        analysis = detector_validator.validate(plane_detector).value

        assert analysis.detector_type == "2d_orthogonal_transformed"
        assert analysis.transform == "rot90"
        assert analysis.spec.transform == "rot90"

    def test_transformed_precedes_path_traced(self, detector_validator, plane_detector):
        plane_detector["transform"] = "rot90"
        plane_detector["show_path_trace"] = True
        detector_type = detector_validator.validate(plane_detector).value.detector_type
        assert detector_type == "2d_orthogonal_transformed_path_traced"

    def test_invalid_transform_name(self, detector_validator, plane_detector):
        plane_detector["transform"] = "bad name!"
        result = detector_validator.validate(plane_detector)

        assert result.codes == [IssueCode.INVALID_NAME]
        assert result.issues[0].location == "detector.transform"

    def test_unknown_transform(self, detector_validator, plane_detector):
        plane_detector["transform"] = "shift"
        result = detector_validator.validate(plane_detector, known_transforms=frozenset({"rot90"}))
        assert result.codes == [IssueCode.UNKNOWN_TRANSFORM]

    def test_transform_memory_and_advice(self, detector_validator, plane_detector):
        plane_detector["transform"] = "rot90"
        report = detector_validator.analyze_optimization(plane_detector)

        assert report.performance.estimated_memory_bytes == 500_000
        assert [r.type for r in report.recommendations] == ["geometry"]
        assert report.recommendations[0].priority == Priority.LOW
        assert "Transform detected" in report.recommendations[0].message

    def test_memory_estimate_with_transform(self, detector_validator):
        assert detector_validator.estimate_memory(400, transform=True) == 500_000
        assert detector_validator.estimate_memory(400, path_trace=True, transform=True) == 4_500_000
