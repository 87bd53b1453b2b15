"""Reference data — unit tables, source-type key sets, grid limits.

This is the encoded problem-description grammar that makes validation
deterministic. Every table here is read-only and consulted by value.
"""

import math
from types import MappingProxyType

from shieldcheck.models.problem import DivisionKind

# ──────────────────────────────────────────────────────────────────────
# UNIT SYSTEM (4-key record)
# ──────────────────────────────────────────────────────────────────────

# Canonical key order; also the order in which missing keys are reported.
UNIT_KEYS: tuple[str, ...] = ("length", "angle", "density", "radioactivity")

# Factor converting one unit of each value into the SI base unit of its key.
UNIT_SI_FACTORS = MappingProxyType({
    "length": MappingProxyType({"m": 1.0, "cm": 0.01, "mm": 0.001}),
    "angle": MappingProxyType({"radian": 1.0, "degree": math.pi / 180.0}),
    "density": MappingProxyType({"g/cm3": 1000.0}),        # → kg/m3
    "radioactivity": MappingProxyType({"Bq": 1.0}),
})

UNIT_ALIASES = MappingProxyType({
    "angle": MappingProxyType({"deg": "degree", "rad": "radian"}),
})

CONVERSION_TOLERANCE = 1e-10

# ──────────────────────────────────────────────────────────────────────
# SOURCES
# ──────────────────────────────────────────────────────────────────────

CARTESIAN_AXES = ("edge_1", "edge_2", "edge_3")
SPHERICAL_AXES = ("r", "theta", "phi")
CYLINDRICAL_AXES = ("r", "phi", "z")

# Per source type: required geometry keys (vector-valued / scalar-valued) and division axes.
SOURCE_TYPES = MappingProxyType({
    "POINT": {
        "description": "point source",
        "vectors": ("position",),
        "scalars": (),
        "division_axes": (),
    },
    "BOX": {
        "description": "parallelepiped source",
        "vectors": ("vertex", "edge_1", "edge_2", "edge_3"),
        "scalars": (),
        "division_axes": CARTESIAN_AXES,
    },
    "RPP": {
        "description": "axis-aligned box source",
        "vectors": ("min", "max"),
        "scalars": (),
        "division_axes": CARTESIAN_AXES,
    },
    "SPH": {
        "description": "spherical source",
        "vectors": ("center",),
        "scalars": ("radius",),
        "division_axes": SPHERICAL_AXES,
    },
    "RCC": {
        "description": "right circular cylinder source",
        "vectors": ("bottom_center", "height_vector"),
        "scalars": ("radius",),
        "division_axes": CYLINDRICAL_AXES,
    },
})

DIVISION_KINDS: tuple[str, ...] = tuple(kind.value for kind in DivisionKind)

DIVISION_DEFAULT_MIN = 0.0
DIVISION_DEFAULT_MAX = 1.0

# Source cutoff rate: optional, 0.01 when omitted.
CUTOFF_RATE_DEFAULT = 0.01
CUTOFF_RATE_MIN = 1e-4
CUTOFF_RATE_MAX = 1.0

# ──────────────────────────────────────────────────────────────────────
# OBJECT NAMES
# ──────────────────────────────────────────────────────────────────────

NAME_PATTERN = r"^[A-Za-z0-9_]+$"
NAME_MAX_LENGTH = 50
RESERVED_NAMES = frozenset({"ATMOSPHERE"})

# ──────────────────────────────────────────────────────────────────────
# DETECTORS
# ──────────────────────────────────────────────────────────────────────

MAX_GRID_DIMENSION = 3

# Zero-length threshold for edge / height vectors.
ZERO_VECTOR_EPSILON = 1e-10

# (upper bound exclusive, recommended cores); anything larger gets the last entry.
CPU_CORE_STEPS: tuple[tuple[int, int], ...] = (
    (100, 1),
    (1_000, 2),
    (10_000, 4),
    (100_000, 8),
)
MAX_RECOMMENDED_CORES = 16
