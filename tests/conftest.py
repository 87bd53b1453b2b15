import copy

import pytest

from shieldcheck.config import Settings
from shieldcheck.validators import (
    DetectorValidator,
    NuclideValidator,
    SourceValidator,
    UnitValidator,
    ValidationEngine,
)


CGS_UNITS = {"length": "cm", "angle": "radian", "density": "g/cm3", "radioactivity": "Bq"}

UNIFORM_AXIS = {"type": "UNIFORM", "number": 10, "min": 0.0, "max": 1.0}

BOX_SOURCE = {
    "name": "box_source",
    "type": "BOX",
    "geometry": {
        "vertex": "0 0 0",
        "edge_1": "10 0 0",
        "edge_2": "0 10 0",
        "edge_3": "0 0 10",
    },
    "division": {
        "edge_1": dict(UNIFORM_AXIS),
        "edge_2": dict(UNIFORM_AXIS),
        "edge_3": dict(UNIFORM_AXIS),
    },
    "inventory": [{"nuclide": "Cs137", "radioactivity": 1.0e9}],
}

POINT_SOURCE = {
    "name": "point_source",
    "type": "POINT",
    "position": "0 0 50",
    "inventory": [{"nuclide": "Co60", "radioactivity": 3.7e10}],
}

PLANE_DETECTOR = {
    "name": "plane_detector",
    "origin": "0 0 100",
    "grid": [
        {"edge": "10 0 0", "number": 20},
        {"edge": "0 10 0", "number": 20},
    ],
}


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def unit_validator(settings):
    return UnitValidator(settings)


@pytest.fixture
def nuclide_validator(settings):
    return NuclideValidator(settings)


@pytest.fixture
def source_validator(settings):
    return SourceValidator(settings)


@pytest.fixture
def detector_validator(settings):
    return DetectorValidator(settings)


@pytest.fixture
def engine(settings):
    return ValidationEngine(settings)


@pytest.fixture
def cgs_units():
    return dict(CGS_UNITS)


@pytest.fixture
def box_source():
    return copy.deepcopy(BOX_SOURCE)


@pytest.fixture
def point_source():
    return copy.deepcopy(POINT_SOURCE)


@pytest.fixture
def plane_detector():
    return copy.deepcopy(PLANE_DETECTOR)


@pytest.fixture
def problem(cgs_units, box_source, point_source, plane_detector):
    return {
        "unit": cgs_units,
        "source": [box_source, point_source],
        "detector": [plane_detector],
    }
