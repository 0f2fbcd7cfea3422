"""In-memory CAD drawing model: entities, block table and CRS settings."""

from __future__ import annotations

import json
import math
import os
import re
from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Union

DEFAULT_UTM_ZONE = 49
CLOSE_TOLERANCE = 1.0

_UTM_SOUTH_BASE = 32700
_UTM_NORTH_BASE = 32600
_WEB_MERCATOR_SRID = 3857

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str | None) -> int:
    """Leading integer of ``text``; 0 when there is none."""
    if not text:
        return 0
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class CrsSettings:
    """Projection of the drawing: Web Mercator, or a UTM zone and hemisphere."""

    use_3857: bool = False
    zone: int = DEFAULT_UTM_ZONE
    is_south: bool = True

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> CrsSettings:
        """Read ``KMZ_CRS_TYPE``, ``KMZ_UTM_ZONE`` and ``KMZ_HEMISPHERE``.

        A missing or unreadable zone yields zone 0; any hemisphere other than
        ``N`` means south.
        """
        if env is None:
            env = os.environ
        return cls(
            use_3857=env.get("KMZ_CRS_TYPE", "") == "3857",
            zone=_atoi(env.get("KMZ_UTM_ZONE")),
            is_south=env.get("KMZ_HEMISPHERE", "") != "N",
        )

    @classmethod
    def from_srid(cls, srid: int) -> CrsSettings:
        """Settings for an EPSG code: WGS84 UTM zones or Web Mercator."""
        if _UTM_SOUTH_BASE + 1 <= srid <= _UTM_SOUTH_BASE + 60:
            return cls(use_3857=False, zone=srid - _UTM_SOUTH_BASE, is_south=True)
        if _UTM_NORTH_BASE + 1 <= srid <= _UTM_NORTH_BASE + 60:
            return cls(use_3857=False, zone=srid - _UTM_NORTH_BASE, is_south=False)
        if srid == _WEB_MERCATOR_SRID:
            return cls(use_3857=True)
        raise ValueError(f"unsupported SRID {srid}")

    def to_env(self) -> dict[str, str]:
        """The environment variables that :meth:`from_env` reads back."""
        return {
            "KMZ_CRS_TYPE": "3857" if self.use_3857 else "UTM",
            "KMZ_UTM_ZONE": str(self.zone),
            "KMZ_HEMISPHERE": "S" if self.is_south else "N",
        }


@dataclass
class PointEntity:
    """A single point; ``name`` is the attached placemark name, if any."""

    position: tuple[float, float, float]
    layer: str = "0"
    name: str | None = None


@dataclass
class BlockReference:
    """An insertion of a named block at ``position``."""

    position: tuple[float, float, float]
    block_name: str
    layer: str = "0"
    name: str | None = None


@dataclass
class TextEntity:
    """A text label aligned at ``position``, centred both ways by default."""

    text: str
    position: tuple[float, float, float]
    height: float = 2.0
    horizontal: str = "center"
    vertical: str = "middle"
    layer: str = "0"
    name: str | None = None


@dataclass
class Polyline:
    """A lightweight polyline through 2D vertices."""

    vertices: list[tuple[float, float]] = field(default_factory=list)
    closed: bool = False
    layer: str = "0"
    name: str | None = None

    def is_effectively_closed(self) -> bool:
        """Closed, or at least three vertices with ends within one unit."""
        if self.closed:
            return True
        if len(self.vertices) < 3:
            return False
        (x0, y0), (x1, y1) = self.vertices[0], self.vertices[-1]
        return math.hypot(x1 - x0, y1 - y0) <= CLOSE_TOLERANCE


Entity = Union[PointEntity, BlockReference, TextEntity, Polyline]

_ENTITY_TYPES: dict[str, type] = {
    "point": PointEntity,
    "block": BlockReference,
    "text": TextEntity,
    "polyline": Polyline,
}
_TYPE_NAMES = {cls: name for name, cls in _ENTITY_TYPES.items()}


def _entity_to_dict(entity: Entity) -> dict[str, Any]:
    try:
        tag = _TYPE_NAMES[type(entity)]
    except KeyError:
        raise TypeError(f"not a drawing entity: {entity!r}") from None
    return {"type": tag, **asdict(entity)}


def _entity_from_dict(data: Mapping[str, Any]) -> Entity:
    fields = dict(data)
    tag = fields.pop("type", None)
    cls = _ENTITY_TYPES.get(tag)
    if cls is None:
        raise ValueError(f"unknown entity type {tag!r}")
    if "position" in fields:
        fields["position"] = tuple(float(c) for c in fields["position"])
    if "vertices" in fields:
        fields["vertices"] = [tuple(float(c) for c in v) for v in fields["vertices"]]
    try:
        return cls(**fields)
    except TypeError as exc:
        raise ValueError(f"bad {tag} entity: {exc}") from exc


@dataclass
class Drawing:
    """Model space entities plus the names of the defined blocks."""

    entities: list[Entity] = field(default_factory=list)
    blocks: set[str] = field(default_factory=set)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def add(self, entity: Entity) -> Entity:
        """Append ``entity`` to model space and return it."""
        if type(entity) not in _TYPE_NAMES:
            raise TypeError(f"not a drawing entity: {entity!r}")
        self.entities.append(entity)
        return entity

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation of the drawing."""
        return {
            "blocks": sorted(self.blocks),
            "entities": [_entity_to_dict(e) for e in self.entities],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Drawing:
        """Rebuild a drawing from :meth:`to_dict` output."""
        return cls(
            entities=[_entity_from_dict(e) for e in data.get("entities", [])],
            blocks=set(data.get("blocks", [])),
        )

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> Drawing:
        """Read a drawing saved with :meth:`save`."""
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    def save(self, path: str | os.PathLike[str]) -> None:
        """Write the drawing as JSON."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")