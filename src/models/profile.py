"""
Calibration profiles: camera quad and game geometry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigurationError

Point = Tuple[float, float]
Polygon = List[Point]


def _parse_point(raw: Any) -> Point:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigurationError(f"Point must be [x, y], got {raw!r}")
    try:
        return (float(raw[0]), float(raw[1]))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Point must be numeric, got {raw!r}") from e


def _parse_size(raw: Any) -> Optional[Tuple[int, int]]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = [raw.get("width"), raw.get("height")]
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigurationError(f"Size must be [width, height], got {raw!r}")
    try:
        width, height = int(raw[0]), int(raw[1])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Size must be numeric, got {raw!r}") from e
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Size must be positive, got {width}x{height}")
    return (width, height)


def _parse_polygon(raw: Any, what: str) -> Polygon:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ConfigurationError(f"{what} must be a list of [x, y] points, got {raw!r}")
    return [_parse_point(p) for p in raw]


@dataclass(frozen=True)
class CanonicalSize:
    """Dimensions of the canonical (top-down) coordinate system."""
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Canonical size must be positive, got {self.width}x{self.height}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CanonicalSize":
        try:
            return cls(width=int(d["width"]), height=int(d["height"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid canonical size: {d!r}") from e

    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass
class CameraProfile:
    """
    Camera calibration.

    Attributes:
        id: Profile identifier.
        name: Display name.
        quad: Playfield corners in scene space, ordered TL, TR, BR, BL.
        scene_size: Capture (width, height) the quad was recorded at, if known.
    """
    id: str
    name: str
    quad: List[Point]
    scene_size: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        if len(self.quad) != 4:
            raise ConfigurationError(
                f"Camera profile '{self.id}' quad must have 4 points (TL, TR, BR, BL), "
                f"got {len(self.quad)}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraProfile":
        quad = _parse_polygon(d.get("quad"), f"Camera profile '{d.get('id')}' quad")
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", d.get("id", ""))),
            quad=quad,
            scene_size=_parse_size(d.get("scene_size")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "quad": [list(p) for p in self.quad],
        }
        if self.scene_size is not None:
            d["scene_size"] = list(self.scene_size)
        return d


@dataclass
class GameProfile:
    """
    Playfield geometry in canonical space.

    Attributes:
        id: Profile identifier.
        name: Display name.
        canonical: Canonical space dimensions.
        regions: Region name -> polygon in canonical coordinates (may be empty).
    """
    id: str
    name: str
    canonical: CanonicalSize
    regions: Dict[str, Polygon] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GameProfile":
        canonical_raw = d.get("canonical")
        if not isinstance(canonical_raw, dict):
            raise ConfigurationError(f"Game profile '{d.get('id')}' is missing canonical size")
        regions_raw = d.get("regions") or {}
        if not isinstance(regions_raw, dict):
            raise ConfigurationError(
                f"Game profile '{d.get('id')}' regions must map names to polygons, "
                f"got {type(regions_raw).__name__}"
            )
        regions: Dict[str, Polygon] = {}
        for name, poly in regions_raw.items():
            regions[str(name)] = _parse_polygon(poly, f"Region '{name}'")
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", d.get("id", ""))),
            canonical=CanonicalSize.from_dict(canonical_raw),
            regions=regions,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "canonical": self.canonical.to_dict(),
            "regions": {k: [list(p) for p in v] for k, v in self.regions.items()},
        }


@dataclass(frozen=True)
class ActiveProfile:
    """Which camera and game profiles the next run uses."""
    camera_id: str
    game_id: str

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActiveProfile":
        try:
            return cls(camera_id=str(d["camera_id"]), game_id=str(d["game_id"]))
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Invalid active profile: {d!r}") from e

    def to_dict(self) -> Dict[str, str]:
        return {"camera_id": self.camera_id, "game_id": self.game_id}
