"""Vector helpers for source and detector geometry.

Coordinates arrive as ``"x y z"`` strings; they are parsed once into
``Vector3`` and everything downstream works on floats.
"""

import math
from typing import NamedTuple, Optional


class Vector3(NamedTuple):
    x: float
    y: float
    z: float

    @classmethod
    def parse(cls, text) -> Optional["Vector3"]:
        """Parse a whitespace-separated triple of reals. Returns None if malformed."""
        if not isinstance(text, str):
            return None
        parts = text.split()
        if len(parts) != 3:
            return None
        try:
            values = [float(p) for p in parts]
        except ValueError:
            return None
        if not all(math.isfinite(v) for v in values):
            return None
        return cls(*values)

    def __str__(self) -> str:
        return f"{self.x:g} {self.y:g} {self.z:g}"


def dot(a: Vector3, b: Vector3) -> float:
    return a.x * b.x + a.y * b.y + a.z * b.z


def cross(a: Vector3, b: Vector3) -> Vector3:
    return Vector3(
        a.y * b.z - a.z * b.y,
        a.z * b.x - a.x * b.z,
        a.x * b.y - a.y * b.x,
    )


def norm(a: Vector3) -> float:
    return math.sqrt(dot(a, a))


def triple_product(a: Vector3, b: Vector3, c: Vector3) -> float:
    """a · (b × c), the signed parallelepiped volume."""
    return dot(a, cross(b, c))


def angle_between_deg(a: Vector3, b: Vector3) -> float:
    """Angle between two non-zero vectors in degrees, in [0, 180]."""
    cos_theta = dot(a, b) / (norm(a) * norm(b))
    # Rounding can push |cos| slightly past 1 for parallel vectors
    cos_theta = max(-1.0, min(1.0, cos_theta))
    return math.degrees(math.acos(cos_theta))


def spanned_measure(edges: list[Vector3]) -> float:
    """Length, area or volume spanned by 1, 2 or 3 edge vectors (0.0 for none)."""
    if len(edges) == 1:
        return norm(edges[0])
    if len(edges) == 2:
        return norm(cross(edges[0], edges[1]))
    if len(edges) == 3:
        return abs(triple_product(edges[0], edges[1], edges[2]))
    return 0.0
