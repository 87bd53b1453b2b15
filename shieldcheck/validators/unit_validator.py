"""Unit Validator — 4-key completeness, partial updates, consistency, conversion factors."""

from typing import Union

import structlog

from shieldcheck.models.problem import ConversionFactors, PartialUpdateOutcome, UnitRecord
from shieldcheck.validators.base import BaseValidator
from shieldcheck.validators.models import IssueCode, Priority, Recommendation, ValidationResult
from shieldcheck.validators.reference_data import (
    CONVERSION_TOLERANCE,
    UNIT_ALIASES,
    UNIT_KEYS,
    UNIT_SI_FACTORS,
)

logger = structlog.get_logger()

UnitInput = Union[dict, UnitRecord]


class UnitValidator(BaseValidator):
    """Guarantees the unit record always defines exactly length, angle, density, radioactivity."""

    @property
    def name(self) -> str:
        return "UnitValidator"

    def validate(self, data, location: str = "unit") -> ValidationResult:
        """Completeness errors plus physical-consistency warnings."""
        return self.check_physical_consistency(data, location)

    def validate_completeness(self, record, location: str = "unit") -> ValidationResult:
        if isinstance(record, UnitRecord):
            return ValidationResult.success(record)
        if not isinstance(record, dict):
            return ValidationResult.failure([self._type_issue(location, "a mapping of unit keys", record)])

        issues = []

        missing = [key for key in UNIT_KEYS if key not in record]
        if missing:
            issues.append(self._issue(
                IssueCode.MISSING_KEYS, location,
                suggestion="All 4 keys (length, angle, density, radioactivity) are mandatory",
                scope="unit", keys=missing,
            ))

        unknown = sorted(str(key) for key in record if key not in UNIT_KEYS)
        if unknown:
            issues.append(self._issue(
                IssueCode.UNKNOWN_KEYS, location,
                suggestion="Only the 4 required unit keys are allowed",
                scope="unit", keys=unknown,
            ))

        for key in UNIT_KEYS:
            if key not in record:
                continue
            value = record[key]
            allowed = list(UNIT_SI_FACTORS[key])
            if not isinstance(value, str) or value not in allowed:
                issues.append(self._issue(
                    IssueCode.INVALID_ENUM_VALUE, self._path(location, key),
                    suggestion=f"Expected one of: {', '.join(allowed)}",
                    key=key, value=value, allowed=allowed,
                ))

        if issues:
            return ValidationResult.failure(issues)
        return ValidationResult.success(UnitRecord(**{key: record[key] for key in UNIT_KEYS}))

    def validate_partial_update(self, current: UnitInput, updates) -> ValidationResult:
        """Merge updates over the current record; the merged record must stay 4-key complete.

        Returns:
            ValidationResult whose value is a PartialUpdateOutcome (merged record
            and the keys whose value actually changed)
        """
        current_result = self.validate_completeness(current, "current")
        if not current_result.ok:
            return current_result
        current_record: UnitRecord = current_result.value

        if not isinstance(updates, dict):
            return ValidationResult.failure([self._type_issue("updates", "a mapping of unit keys", updates)])

        unknown = sorted(str(key) for key in updates if key not in UNIT_KEYS)
        if unknown:
            return ValidationResult.failure([self._issue(
                IssueCode.UNKNOWN_KEYS, "updates",
                suggestion="Only length, angle, density and radioactivity can be updated",
                scope="unit update", keys=unknown,
            )])

        base = current_record.as_dict()
        merged = {**base, **updates}
        merged_result = self.validate_completeness(merged, "unit")
        if not merged_result.ok:
            return merged_result

        changed = tuple(key for key in UNIT_KEYS if key in updates and updates[key] != base[key])
        logger.debug("unit_partial_update_validated", changed_keys=list(changed))
        return ValidationResult.success(PartialUpdateOutcome(record=merged_result.value, changed_keys=changed))

    def check_physical_consistency(self, record: UnitInput, location: str = "unit") -> ValidationResult:
        """Non-fatal warnings for unit combinations that invite mistakes. Warnings are additive."""
        result = self.validate_completeness(record, location)
        if not result.ok:
            return result
        units: UnitRecord = result.value

        warnings = []
        if units.length == "m" and units.density == "g/cm3":
            warnings.append(self._warning(
                IssueCode.MIXED_UNIT_SYSTEM, self._path(location, "length"),
                length=units.length, density=units.density,
            ))
        if units.angle == "degree":
            warnings.append(self._warning(IssueCode.ANGLE_UNIT_DEGREE, self._path(location, "angle")))

        return ValidationResult.success(units, warnings)

    def calculate_conversion_factors(self, from_units: UnitInput, to_units: UnitInput) -> ValidationResult:
        """Per-key multiplier converting a value in from_units into to_units."""
        from_result = self.validate_completeness(from_units, "from")
        to_result = self.validate_completeness(to_units, "to")
        if not (from_result.ok and to_result.ok):
            return ValidationResult.failure(from_result.issues + to_result.issues)

        source = from_result.value.as_dict()
        target = to_result.value.as_dict()
        factors = {
            key: UNIT_SI_FACTORS[key][source[key]] / UNIT_SI_FACTORS[key][target[key]]
            for key in UNIT_KEYS
        }
        is_identity = all(abs(f - 1.0) < CONVERSION_TOLERANCE for f in factors.values())
        return ValidationResult.success(ConversionFactors(factors=factors, is_identity=is_identity))

    def normalize(self, record, location: str = "unit") -> ValidationResult:
        """Trim values, resolve aliases (deg, rad), order keys canonically, then validate."""
        if not isinstance(record, dict):
            return self.validate_completeness(record, location)

        normalized = {}
        ordered = [k for k in UNIT_KEYS if k in record] + [k for k in record if k not in UNIT_KEYS]
        for key in ordered:
            value = record[key]
            if isinstance(value, str):
                value = value.strip()
                value = UNIT_ALIASES.get(key, {}).get(value, value)
            normalized[key] = value
        return self.validate_completeness(normalized, location)

    def recommend(self, units: UnitRecord) -> list[Recommendation]:
        recommendations = []
        if units.length != "cm" or units.density != "g/cm3":
            recommendations.append(Recommendation(
                type="unit_system",
                message=(
                    f"Current setup uses length '{units.length}' with density '{units.density}'. "
                    "CGS (cm + g/cm3) is commonly preferred in radiation calculations"
                ),
                priority=Priority.LOW,
                category="unit",
            ))
        if units.angle == "degree":
            recommendations.append(Recommendation(
                type="angle_unit",
                message="Consider using radian for angle unit in scientific calculations",
                priority=Priority.LOW,
                category="unit",
            ))
        return recommendations
