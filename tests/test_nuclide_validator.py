"""
Tests for nuclide identifier grammar.
"""

import pytest

from shieldcheck.validators.models import IssueCode


class TestNuclideFormat:

    @pytest.mark.parametrize("nuclide", ["Cs137", "Co60", "Tc99m", "U235", "H3", "Am241"])
    def test_concatenated_form_is_accepted(self, nuclide_validator, nuclide):
        result = nuclide_validator.validate_format(nuclide)

        assert result.ok
        assert str(result.value) == nuclide

    @pytest.mark.parametrize(
        "nuclide",
        ["Cs-137", "Co-60", "137Cs", "invalid", "cs137", "Cs1370", "CS137", "Cs137x", "", "Cs137\n", None, 137],
    )
    def test_other_forms_are_rejected(self, nuclide_validator, nuclide):
        result = nuclide_validator.validate_format(nuclide)

        assert not result.ok
        assert result.codes == [IssueCode.INVALID_NUCLIDE_FORMAT]

    def test_parsed_components(self, nuclide_validator):
        parsed = nuclide_validator.parse("Tc99m")

        assert parsed.element == "Tc"
        assert parsed.mass_number == 99
        assert parsed.metastable is True

    @pytest.mark.parametrize(
        "nuclide, expected",
        [("Cs-137", "Cs137"), ("Tc-99m", "Tc99m"), ("137Cs", "Cs137"), ("60-Co", "Co60")],
    )
    def test_rejection_suggests_concatenated_form(self, nuclide_validator, nuclide, expected):
        issue = nuclide_validator.validate_format(nuclide, "inventory[0].nuclide").issues[0]

        assert expected in issue.suggestion
        assert issue.location == "inventory[0].nuclide"
        assert issue.details["value"] == nuclide

    def test_no_rewrite_for_garbage(self, nuclide_validator):
        assert nuclide_validator.to_concatenated("invalid") is None
        assert nuclide_validator.to_concatenated(42) is None
