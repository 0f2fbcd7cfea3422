"""Reading KML/KMZ placemarks into a drawing."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from slamap.drawing import (
    DEFAULT_UTM_ZONE,
    BlockReference,
    CrsSettings,
    Drawing,
    PointEntity,
    Polyline,
    TextEntity,
)
from slamap.slamath import wgs84_to_cad

log = logging.getLogger(__name__)

LABEL_HEIGHT = 2.0
NO_BLOCK = "NONE"


@dataclass(frozen=True)
class ImportOptions:
    """How placemarks become entities."""

    crs: CrsSettings = field(default_factory=CrsSettings)
    use_block: bool = False
    block_name: str = ""
    use_label: bool = True
    file_path: str = ""

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ImportOptions:
        """Read the import settings from ``KMZ_*`` environment variables.

        A missing UTM zone falls back to zone 49.
        """
        if env is None:
            env = os.environ
        crs = CrsSettings.from_env(env)
        if crs.zone == 0:
            crs = replace(crs, zone=DEFAULT_UTM_ZONE)
        return cls(
            crs=crs,
            use_block=env.get("KMZ_IMPORT_TYPE", "") == "BLOCK",
            block_name=env.get("KMZ_BLOCK_NAME", ""),
            use_label=env.get("KMZ_USE_LABEL", "") == "1",
            file_path=env.get("KMZ_FILE_PATH", ""),
        )


def parse_coordinates(text: str, crs: CrsSettings) -> list[tuple[float, float]]:
    """Project a KML ``lon,lat[,alt]`` tuple list into drawing coordinates.

    Tokens without a comma are skipped; malformed numbers raise ValueError.
    """
    points: list[tuple[float, float]] = []
    for token in text.split():
        lon_text, sep, rest = token.partition(",")
        if not sep:
            continue
        lat_text = rest.split(",", 1)[0]
        lon = float(lon_text)
        lat = float(lat_text)
        points.append(wgs84_to_cad(lat, lon, crs.zone, crs.is_south, crs.use_3857))
    return points


def _local(tag: object) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    if element is None:
        return None
    return next((c for c in element if _local(c.tag) == name), None)


def _text_at(element: ET.Element | None, *path: str) -> str:
    for name in path:
        element = _child(element, name)
    if element is None:
        return ""
    return element.text or ""


def read_kml(path: str | os.PathLike[str]) -> ET.Element:
    """Parse a ``.kml`` file, or the ``doc.kml`` inside a ``.kmz`` archive."""
    path = Path(path)
    try:
        if path.suffix in (".kmz", ".KMZ"):
            with zipfile.ZipFile(path) as archive:
                data = archive.read("doc.kml")
        else:
            data = path.read_bytes()
        return ET.fromstring(data)
    except (OSError, KeyError, zipfile.BadZipFile, ET.ParseError) as exc:
        raise ValueError(f"cannot read KML from {path}: {exc}") from exc


def import_kml(
    path: str | os.PathLike[str],
    drawing: Drawing,
    options: ImportOptions | None = None,
) -> int:
    """Add the placemarks of a KML/KMZ file to ``drawing``.

    Points become points or block references (with an optional text label),
    line strings and polygons become polylines. Returns the number of
    placemark entities added, labels not counted.
    """
    if options is None:
        options = ImportOptions()
    root = read_kml(path)
    crs = options.crs

    block_name: str | None = None
    if options.use_block and options.block_name and options.block_name != NO_BLOCK:
        if options.block_name in drawing.blocks:
            block_name = options.block_name
        else:
            log.warning("block %r not found in drawing, using points", options.block_name)

    count = 0
    for placemark in (e for e in root.iter() if _local(e.tag) == "Placemark"):
        name = _text_at(placemark, "name")
        point = _child(placemark, "Point")
        line = _child(placemark, "LineString")
        polygon = _child(placemark, "Polygon")

        if point is not None:
            pts = parse_coordinates(_text_at(point, "coordinates"), crs)
            if not pts:
                continue
            position = (pts[0][0], pts[0][1], 0.0)
            if options.use_block and block_name is not None:
                drawing.add(BlockReference(position, block_name, name=name))
            else:
                drawing.add(PointEntity(position, name=name))
            count += 1
            if options.use_label and name:
                drawing.add(TextEntity(name, position, height=LABEL_HEIGHT))
        elif line is not None or polygon is not None:
            if line is not None:
                coords = _text_at(line, "coordinates")
            else:
                coords = _text_at(polygon, "outerBoundaryIs", "LinearRing", "coordinates")
            pts = parse_coordinates(coords, crs)
            if len(pts) > 1:
                drawing.add(Polyline(pts, closed=polygon is not None, name=name))
                count += 1
    return count