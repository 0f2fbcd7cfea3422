"""Writing drawing entities out as a KML document grouped by layer."""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from collections.abc import Iterable

from slamap.drawing import (
    BlockReference,
    CrsSettings,
    PointEntity,
    Polyline,
    TextEntity,
)
from slamap.slamath import cad_to_wgs84

UNNAMED = "Tanpa_Nama"
KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
RED = "FF0000FF"
TRANSLUCENT_RED = "B30000FF"
LINE_WIDTH = "2"
ALTITUDE_MODE = "clampToGround"

POINT = "Point"
LINE_STRING = "LineString"
POLYGON = "Polygon"


class ExportError(Exception):
    """Raised when the drawing's projection is not set up for export."""


def entity_name(entity: object) -> str:
    """Placemark name for an entity: its attached name, a text's string, or a default."""
    name = getattr(entity, "name", None)
    if name is not None:
        return name
    if isinstance(entity, TextEntity):
        return entity.text
    return UNNAMED


def _geometry_type(entity: object) -> str | None:
    if isinstance(entity, (PointEntity, BlockReference, TextEntity)):
        return POINT
    if isinstance(entity, Polyline):
        return POLYGON if entity.is_effectively_closed() else LINE_STRING
    return None


def _sub(parent: ET.Element, tag: str, text: str | None = None) -> ET.Element:
    child = ET.SubElement(parent, tag)
    if text is not None:
        child.text = text
    return child


def _coordinate(x: float, y: float, crs: CrsSettings) -> str:
    lat, lon = cad_to_wgs84(x, y, crs.zone, crs.is_south, crs.use_3857)
    return f"{lon:.8f},{lat:.8f},0"


def _add_style(placemark: ET.Element, kind: str) -> None:
    style = _sub(placemark, "Style")
    if kind == POINT:
        _sub(_sub(style, "IconStyle"), "Icon")
        _sub(_sub(style, "LabelStyle"), "color", RED)
        return
    line_style = _sub(style, "LineStyle")
    _sub(line_style, "color", RED)
    _sub(line_style, "width", LINE_WIDTH)
    if kind == POLYGON:
        _sub(_sub(style, "PolyStyle"), "color", TRANSLUCENT_RED)


def _add_geometry(placemark: ET.Element, entity: object, kind: str, crs: CrsSettings) -> None:
    if kind == POINT:
        x, y = entity.position[0], entity.position[1]  # type: ignore[attr-defined]
        geom = _sub(placemark, POINT)
        _sub(geom, "altitudeMode", ALTITUDE_MODE)
        _sub(geom, "coordinates", _coordinate(x, y, crs))
        return

    vertices = list(entity.vertices)  # type: ignore[attr-defined]
    geom = _sub(placemark, kind)
    _sub(geom, "altitudeMode", ALTITUDE_MODE)
    if kind == POLYGON:
        coords_node = _sub(_sub(_sub(geom, "outerBoundaryIs"), "LinearRing"), "coordinates")
        if vertices:
            vertices.append(vertices[0])
    else:
        coords_node = _sub(geom, "coordinates")
    coords_node.text = "".join(f"{_coordinate(x, y, crs)} " for x, y in vertices)


def build_kml(entities: Iterable[object], crs: CrsSettings | None = None) -> ET.Element:
    """Build the ``kml`` element for the supported entities.

    Entities are grouped into one folder per layer and, inside it, one folder
    per geometry kind. Unsupported entities are skipped. Raises
    :class:`ExportError` when a UTM projection has no zone.
    """
    if crs is None:
        crs = CrsSettings.from_env()
    if crs.zone == 0 and not crs.use_3857:
        raise ExportError("UTM zone is not set; configure the CRS before exporting")

    root = ET.Element("kml", {"xmlns": KML_NAMESPACE})
    document = _sub(root, "Document")
    _sub(document, "name", "Export_3857" if crs.use_3857 else "Export_UTM")

    layer_folders: dict[str, ET.Element] = {}
    kind_folders: dict[tuple[str, str], ET.Element] = {}

    for entity in entities:
        kind = _geometry_type(entity)
        if kind is None:
            continue
        layer = entity.layer  # type: ignore[attr-defined]

        layer_folder = layer_folders.get(layer)
        if layer_folder is None:
            layer_folder = _sub(document, "Folder")
            _sub(layer_folder, "name", layer)
            layer_folders[layer] = layer_folder

        kind_folder = kind_folders.get((layer, kind))
        if kind_folder is None:
            kind_folder = _sub(layer_folder, "Folder")
            _sub(kind_folder, "name", kind + "s")
            kind_folders[(layer, kind)] = kind_folder

        placemark = _sub(kind_folder, "Placemark")
        _sub(placemark, "name", entity_name(entity))
        _add_style(placemark, kind)
        _add_geometry(placemark, entity, kind, crs)

    return root


def export_kml(
    entities: Iterable[object],
    path: str | os.PathLike[str],
    crs: CrsSettings | None = None,
) -> int:
    """Write the entities to a KML file; returns the number of placemarks written."""
    root = build_kml(entities, crs)
    count = sum(1 for _ in root.iter("Placemark"))
    tree = ET.ElementTree(root)
    ET.indent(tree, space="\t")
    tree.write(os.fspath(path), encoding="UTF-8", xml_declaration=True)
    return count