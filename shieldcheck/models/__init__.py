from shieldcheck.models.problem import (
    UnitRecord,
    NuclideId,
    InventoryEntry,
    DivisionAxis,
    DivisionKind,
    SourceSpec,
    SourceAnalysis,
    GridAxis,
    DetectorSpec,
    FrozenDict,
)

__all__ = [
    "UnitRecord",
    "NuclideId",
    "InventoryEntry",
    "DivisionAxis",
    "DivisionKind",
    "SourceSpec",
    "SourceAnalysis",
    "GridAxis",
    "DetectorSpec",
    "FrozenDict",
]
