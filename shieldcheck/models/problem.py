"""Typed problem-description models.

Raw YAML-shaped dicts are checked by the validators and then parsed into these
immutable models; downstream code never re-checks types.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field

from shieldcheck.geometry import Vector3


class FrozenDict(dict):
    """A dict that rejects in-place mutation. Used for mapping fields of frozen models."""

    def _read_only(self, *args, **kwargs):
        raise TypeError(f"{type(self).__name__} is read-only")

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __reduce__(self):
        return (type(self), (dict(self),))


def freeze_mapping(value: dict) -> FrozenDict:
    """Freeze a mapping and turn its list values into tuples."""
    return FrozenDict((k, tuple(v) if isinstance(v, list) else v) for k, v in value.items())


# ── Units ──

class LengthUnit(str, Enum):
    MM = "mm"
    CM = "cm"
    M = "m"


class AngleUnit(str, Enum):
    RADIAN = "radian"
    DEGREE = "degree"


class DensityUnit(str, Enum):
    G_PER_CM3 = "g/cm3"


class RadioactivityUnit(str, Enum):
    BQ = "Bq"


class UnitRecord(BaseModel):
    """The 4-key unit record. Always complete."""

    length: LengthUnit
    angle: AngleUnit
    density: DensityUnit
    radioactivity: RadioactivityUnit

    model_config = {"frozen": True, "use_enum_values": True}

    def as_dict(self) -> dict[str, str]:
        return self.model_dump()


class PartialUpdateOutcome(BaseModel):
    record: UnitRecord
    changed_keys: tuple[str, ...] = ()

    model_config = {"frozen": True}


class ConversionFactors(BaseModel):
    factors: Annotated[dict[str, float], AfterValidator(freeze_mapping)]
    is_identity: bool

    model_config = {"frozen": True}


# ── Nuclides ──

class NuclideId(BaseModel):
    element: str
    mass_number: int
    metastable: bool = False

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.element}{self.mass_number}{'m' if self.metastable else ''}"


class InventoryEntry(BaseModel):
    nuclide: NuclideId
    radioactivity: float

    model_config = {"frozen": True}


# ── Sources ──

class DivisionKind(str, Enum):
    UNIFORM = "UNIFORM"
    GAUSS_CENTER = "GAUSS_CENTER"
    GAUSS_FIRST = "GAUSS_FIRST"
    GAUSS_BOTH = "GAUSS_BOTH"
    GAUSS_LAST = "GAUSS_LAST"


class DivisionAxis(BaseModel):
    kind: DivisionKind
    count: int = Field(ge=1)
    min: float = 0.0
    max: float = 1.0

    model_config = {"frozen": True, "use_enum_values": True}


class PointGeometry(BaseModel):
    type: Literal["POINT"] = "POINT"
    position: Vector3

    model_config = {"frozen": True}


class BoxGeometry(BaseModel):
    type: Literal["BOX"] = "BOX"
    vertex: Vector3
    edge_1: Vector3
    edge_2: Vector3
    edge_3: Vector3
    transform: Optional[str] = None   # Name of a problem-level transform

    model_config = {"frozen": True}


class RppGeometry(BaseModel):
    type: Literal["RPP"] = "RPP"
    min: Vector3
    max: Vector3
    transform: Optional[str] = None

    model_config = {"frozen": True}


class SphGeometry(BaseModel):
    type: Literal["SPH"] = "SPH"
    center: Vector3
    radius: float
    transform: Optional[str] = None

    model_config = {"frozen": True}


class RccGeometry(BaseModel):
    type: Literal["RCC"] = "RCC"
    bottom_center: Vector3
    height_vector: Vector3
    radius: float
    transform: Optional[str] = None

    model_config = {"frozen": True}


SourceGeometry = Annotated[
    Union[PointGeometry, BoxGeometry, RppGeometry, SphGeometry, RccGeometry],
    Field(discriminator="type"),
]

# One model per source type; the source validator dispatches through this table.
GEOMETRY_MODELS: dict[str, type[BaseModel]] = {
    "POINT": PointGeometry,
    "BOX": BoxGeometry,
    "RPP": RppGeometry,
    "SPH": SphGeometry,
    "RCC": RccGeometry,
}


class SourceSpec(BaseModel):
    name: str
    geometry: SourceGeometry
    division: Optional[Annotated[dict[str, DivisionAxis], AfterValidator(freeze_mapping)]] = None
    inventory: tuple[InventoryEntry, ...]
    cutoff_rate: float = 0.01

    model_config = {"frozen": True}

    @property
    def source_type(self) -> str:
        return self.geometry.type


class SourceAnalysis(BaseModel):
    spec: SourceSpec
    division_complexity: int
    inventory_count: int

    model_config = {"frozen": True}


# ── Detectors ──

class GridAxis(BaseModel):
    edge: Vector3
    count: int = Field(ge=1)

    model_config = {"frozen": True}


class DetectorSpec(BaseModel):
    name: str
    origin: Vector3
    grid: tuple[GridAxis, ...] = ()
    show_path_trace: bool = False
    transform: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def dimension(self) -> int:
        return len(self.grid)


class AxisPairAngle(BaseModel):
    axes: tuple[int, int]
    angle_deg: float
    orthogonal: bool

    model_config = {"frozen": True}


class Orthogonality(BaseModel):
    type: Literal["orthogonal", "oblique"]
    orthogonal: bool
    ratio: float
    angles: tuple[AxisPairAngle, ...] = ()

    model_config = {"frozen": True}


class GridAnalysis(BaseModel):
    """Derived grid metrics. grid_volume/grid_density stay None when complexity is excessive."""

    spec: Optional[DetectorSpec] = None   # Set only when the whole detector validated
    grid: tuple[GridAxis, ...] = ()
    show_path_trace: bool = False
    transform: Optional[str] = None
    dimension: int
    complexity: int
    orthogonality: Orthogonality
    grid_volume: Optional[float] = None
    grid_density: Optional[float] = None
    detector_type: str

    model_config = {"frozen": True}


class CompatibilityReport(BaseModel):
    dimension_match: bool
    resolution_compatible: bool
    geometry_compatible: bool
    max_resolution_ratio: float
    overall: Literal["fully_compatible", "mostly_compatible", "incompatible"]

    model_config = {"frozen": True}
