"""Nuclide Validator — concatenated nuclide identifiers (Cs137, Co60, U235, Tc99m).

Hyphenated (Cs-137) and mass-number-first (137Cs) notations are rejected on
purpose: the persisted configuration only ever stores the concatenated form.
"""

import re
from typing import Optional

from shieldcheck.models.problem import NuclideId
from shieldcheck.validators.base import BaseValidator
from shieldcheck.validators.models import IssueCode, ValidationResult

NUCLIDE_PATTERN = re.compile(r"([A-Z][a-z]?)([0-9]{1,3})(m?)")

# Common external notations that map onto the concatenated form
HYPHEN_PATTERN = re.compile(r"([A-Z][a-z]?)-([0-9]{1,3})(m?)")
MASS_FIRST_PATTERN = re.compile(r"([0-9]{1,3})-?([A-Z][a-z]?)(m?)")

VALID_EXAMPLES = ("Cs137", "Co60", "U235", "Ra226", "Am241", "Tc99m")


class NuclideValidator(BaseValidator):
    """Validates nuclide identifier grammar."""

    @property
    def name(self) -> str:
        return "NuclideValidator"

    def validate(self, data, location: str = "nuclide") -> ValidationResult:
        return self.validate_format(data, location)

    def validate_format(self, nuclide, location: str = "nuclide") -> ValidationResult:
        parsed = self.parse(nuclide)
        if parsed is not None:
            return ValidationResult.success(parsed)

        concatenated = self.to_concatenated(nuclide)
        if concatenated is not None:
            suggestion = f"Use the concatenated form '{concatenated}'"
        else:
            suggestion = f"Use element symbol + mass number, e.g. {', '.join(VALID_EXAMPLES[:3])}"
        return ValidationResult.failure([self._issue(
            IssueCode.INVALID_NUCLIDE_FORMAT, location,
            suggestion=suggestion,
            key=location, value=nuclide,
        )])

    @staticmethod
    def parse(nuclide) -> Optional[NuclideId]:
        if not isinstance(nuclide, str):
            return None
        match = NUCLIDE_PATTERN.fullmatch(nuclide)
        if not match:
            return None
        element, mass, meta = match.groups()
        return NuclideId(element=element, mass_number=int(mass), metastable=bool(meta))

    @staticmethod
    def to_concatenated(nuclide) -> Optional[str]:
        """Rewrite 'Cs-137' or '137Cs' as 'Cs137'. None when no rewrite applies."""
        if not isinstance(nuclide, str):
            return None
        text = nuclide.strip()
        match = HYPHEN_PATTERN.fullmatch(text)
        if match:
            element, mass, meta = match.groups()
            return f"{element}{mass}{meta}"
        match = MASS_FIRST_PATTERN.fullmatch(text)
        if match:
            mass, element, meta = match.groups()
            return f"{element}{mass}{meta}"
        return None
