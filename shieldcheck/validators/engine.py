"""Validation Engine — runs every validator over a full problem description.

This is the main entry point for pre-commit validation. It runs the unit,
source, detector and nuclide checks and merges them into one categorized
ValidationReport.

Usage:
    engine = ValidationEngine()
    report = engine.run_comprehensive({"unit": {...}, "source": [...], "detector": [...]})
    if not report.overall:
        # Abort the commit with report.errors
"""

from concurrent.futures import ThreadPoolExecutor
import time
from typing import Callable, Optional, Union

import structlog

from shieldcheck.config import Settings, get_settings
from shieldcheck.validators.detector_validator import DetectorValidator
from shieldcheck.validators.models import (
    CategoryResult,
    EngineContractError,
    IssueCode,
    Recommendation,
    ValidationIssue,
    ValidationReport,
    ValidationResult,
)
from shieldcheck.validators.nuclide_validator import NuclideValidator
from shieldcheck.validators.source_validator import SourceValidator
from shieldcheck.validators.unit_validator import UnitValidator

logger = structlog.get_logger()

CATEGORIES = ("unit", "source", "detector", "nuclide")

# (category result, recommendations) for one category
CategoryOutcome = tuple[CategoryResult, list[Recommendation]]


class ValidationEngine:
    """Orchestrates all validators and produces a unified validation report.

    Design principles:
        - Deterministic: same input → same output
        - Total: validation failures never raise, they become report entries
        - Isolated: a crashing validator only fails its own category
        - Observable: logs every validation run with timing
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        unit_validator: Optional[UnitValidator] = None,
        nuclide_validator: Optional[NuclideValidator] = None,
        source_validator: Optional[SourceValidator] = None,
        detector_validator: Optional[DetectorValidator] = None,
    ):
        self.settings = settings or get_settings()
        self.unit_validator = unit_validator or UnitValidator(self.settings)
        self.nuclide_validator = nuclide_validator or NuclideValidator(self.settings)
        self.source_validator = source_validator or SourceValidator(self.settings, self.nuclide_validator)
        self.detector_validator = detector_validator or DetectorValidator(self.settings)

    def run_comprehensive(self, problem) -> ValidationReport:
        """Run all validators against a full problem description and produce a report.

        Args:
            problem: Mapping with "unit" (4-key record), "source" (list) and
                "detector" (list), as persisted in the YAML configuration. An
                optional "transform" list supplies the names that source and
                detector transform references must resolve to

        Returns:
            ValidationReport with per-category results, merged errors,
            warnings and recommendations
        """
        start_time = time.perf_counter()

        if not isinstance(problem, dict):
            issue = ValidationIssue(
                code=IssueCode.INVALID_TYPE,
                location="",
                details={"key": "problem", "expected": "a mapping", "actual": type(problem).__name__},
            )
            return ValidationReport.build([
                CategoryResult(category=name, passed=False, errors=(issue,)) for name in CATEGORIES
            ])

        runners: dict[str, Callable[[], CategoryOutcome]] = {
            "unit": lambda: self._run_unit(problem),
            "source": lambda: self._run_sources(problem),
            "detector": lambda: self._run_detectors(problem),
            "nuclide": lambda: self._run_nuclides(problem),
        }
        if set(runners) != set(CATEGORIES):
            raise EngineContractError(f"Category runners {sorted(runners)} do not match {CATEGORIES}")

        timings: dict[str, float] = {}
        if self.settings.PARALLEL_CATEGORIES:
            with ThreadPoolExecutor(max_workers=len(CATEGORIES)) as pool:
                futures = {name: pool.submit(self._timed, name, runners[name], timings) for name in CATEGORIES}
                outcomes = {name: futures[name].result() for name in CATEGORIES}
        else:
            outcomes = {name: self._timed(name, runners[name], timings) for name in CATEGORIES}

        recommendations: list[Recommendation] = []
        for name in CATEGORIES:
            recommendations.extend(outcomes[name][1])

        report = ValidationReport.build([outcomes[name][0] for name in CATEGORIES], recommendations)

        total_duration = (time.perf_counter() - start_time) * 1000
        logger.info(
            "validation_complete",
            overall=report.overall,
            failed_categories=[name for name, c in report.categories.items() if not c.passed],
            total_errors=len(report.errors),
            total_warnings=len(report.warnings),
            recommendations=len(report.recommendations),
            duration_ms=round(total_duration, 2),
            category_timings=timings,
        )

        return report

    # ── Category runners ──

    def _timed(self, name: str, runner: Callable[[], CategoryOutcome], timings: dict) -> CategoryOutcome:
        c_start = time.perf_counter()
        try:
            return runner()
        except EngineContractError:
            raise
        except Exception as e:
            logger.error("validator_failed", category=name, error=str(e))
            # Don't let one broken validator kill the whole report
            issue = ValidationIssue(
                code=IssueCode.INTERNAL_ERROR,
                location=name,
                details={"validator": name, "error": str(e)},
            )
            return CategoryResult(category=name, passed=False, errors=(issue,)), []
        finally:
            timings[name] = round((time.perf_counter() - c_start) * 1000, 2)

    def _run_unit(self, problem: dict) -> CategoryOutcome:
        if "unit" not in problem:
            issue = ValidationIssue(
                code=IssueCode.MISSING_KEYS,
                location="unit",
                details={"scope": "problem", "keys": ["unit"]},
            )
            return CategoryResult(category="unit", passed=False, errors=(issue,)), []

        result = self.unit_validator.validate(problem["unit"], "unit")
        recommendations = self.unit_validator.recommend(result.value) if result.ok else []
        return CategoryResult.from_results("unit", [result]), recommendations

    def _run_sources(self, problem: dict) -> CategoryOutcome:
        return self._run_items(problem, "source", self.source_validator)

    def _run_detectors(self, problem: dict) -> CategoryOutcome:
        return self._run_items(problem, "detector", self.detector_validator)

    def _run_items(
        self, problem: dict, key: str, validator: Union[SourceValidator, DetectorValidator]
    ) -> CategoryOutcome:
        items, issue = self._list_section(problem, key)
        category = CategoryResult(category=key)
        if issue is not None:
            return category.merge(CategoryResult(category=key, passed=False, errors=(issue,))), []

        known_transforms = self._known_transforms(problem)
        recommendations: list[Recommendation] = []
        for i, item in enumerate(items):
            location = f"{key}[{i}]"
            result, advice = validator.validate_and_advise(item, location, known_transforms)
            category = category.merge(CategoryResult.from_results(key, [result]))
            recommendations.extend(advice.recommendations)
        return category, recommendations

    def _run_nuclides(self, problem: dict) -> CategoryOutcome:
        sources, _ = self._list_section(problem, "source")
        results: list[ValidationResult] = []
        for i, source in enumerate(sources):
            inventory = source.get("inventory") if isinstance(source, dict) else None
            if not isinstance(inventory, list):
                continue
            for j, entry in enumerate(inventory):
                if isinstance(entry, dict) and "nuclide" in entry:
                    location = f"source[{i}].inventory[{j}].nuclide"
                    results.append(self.nuclide_validator.validate_format(entry["nuclide"], location))
        return CategoryResult.from_results("nuclide", results), []

    def _list_section(self, problem: dict, key: str) -> tuple[list, Optional[ValidationIssue]]:
        section = problem.get(key)
        if section is None:
            return [], None
        if not isinstance(section, list):
            return [], ValidationIssue(
                code=IssueCode.INVALID_TYPE,
                location=key,
                details={"key": key, "expected": "a list", "actual": type(section).__name__},
            )
        return section, None

    def _known_transforms(self, problem: dict) -> Optional[frozenset]:
        """Names defined in the problem's transform section. None when the section is malformed."""
        section = problem.get("transform")
        if section is None:
            return frozenset()
        if not isinstance(section, list):
            return None
        return frozenset(
            entry["name"] for entry in section if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        )


# Module-level singleton
validation_engine = ValidationEngine()
