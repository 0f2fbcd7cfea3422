"""Command-line front end: KML import/export, tile listing and map opacity."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable, Sequence
from dataclasses import replace
from pathlib import Path

from slamap.drawing import CrsSettings, Drawing
from slamap.geo import TileKey, ll_to_mercator, tile_url
from slamap.kmlexport import ExportError, export_kml
from slamap.kmlimport import ImportOptions, import_kml
from slamap.mapview import MapView
from slamap.tilecache import TileCache

DEFAULT_OPACITY_PERCENT = 60
MIN_OPACITY_PERCENT = 10
MAX_OPACITY_PERCENT = 100


def opacity_to_alpha(percent: int | None = None) -> int:
    """Map an opacity percentage (clamped to 10..100, default 60) to 0..255."""
    if percent is None:
        percent = DEFAULT_OPACITY_PERCENT
    percent = max(MIN_OPACITY_PERCENT, min(percent, MAX_OPACITY_PERCENT))
    return percent * 255 // 100


class _KeyCollector:
    """Stands in for a downloader and records the tiles a view asks for."""

    def __init__(self) -> None:
        self.keys: list[TileKey] = []

    def enqueue(self, keys: Iterable[TileKey], on_done: object = None) -> None:
        self.keys.extend(keys)


def _add_crs_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--crs", choices=["utm", "3857"], help="projection of the drawing")
    parser.add_argument("--zone", type=int, help="UTM zone number")
    parser.add_argument("--hemisphere", choices=["N", "S"], help="UTM hemisphere")
    parser.add_argument("--srid", type=int, help="EPSG code of the drawing's CRS")


def _crs_from_args(args: argparse.Namespace, base: CrsSettings) -> CrsSettings:
    crs = CrsSettings.from_srid(args.srid) if args.srid is not None else base
    changes: dict[str, object] = {}
    if args.crs is not None:
        changes["use_3857"] = args.crs == "3857"
    if args.zone is not None:
        changes["zone"] = args.zone
    if args.hemisphere is not None:
        changes["is_south"] = args.hemisphere == "S"
    return replace(crs, **changes)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slamap", description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    imp = commands.add_parser("import", help="add KML/KMZ placemarks to a drawing")
    imp.add_argument("kml", help="KML or KMZ file to read")
    imp.add_argument("drawing", help="drawing file, created when missing")
    imp.add_argument("--block", help="insert points as references to this block")
    imp.add_argument(
        "--label",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="add a text label for each named point",
    )
    _add_crs_options(imp)

    exp = commands.add_parser("export", help="write drawing entities to KML")
    exp.add_argument("drawing", help="drawing file to read")
    exp.add_argument("output", help="KML file to write")
    exp.add_argument("--layer", action="append", help="export only these layers")
    _add_crs_options(exp)

    tiles = commands.add_parser("tiles", help="list the map tiles covering a view")
    for name in ("west", "south", "east", "north"):
        tiles.add_argument(name, type=float, help=f"{name} edge in degrees")
    tiles.add_argument("--zoom", type=int, default=0, help="force a zoom level")

    opacity = commands.add_parser("opacity", help="alpha byte for a map opacity")
    opacity.add_argument("percent", type=int, nargs="?", help="opacity in percent (10-100)")
    return parser


def _run_import(args: argparse.Namespace) -> int:
    options = ImportOptions.from_env()
    changes: dict[str, object] = {"crs": _crs_from_args(args, options.crs)}
    if args.block:
        changes["use_block"] = True
        changes["block_name"] = args.block
    if args.label is not None:
        changes["use_label"] = args.label
    options = replace(options, **changes)

    drawing_path = Path(args.drawing)
    drawing = Drawing.load(drawing_path) if drawing_path.exists() else Drawing()
    count = import_kml(args.kml, drawing, options)
    drawing.save(drawing_path)
    print(f"Imported {count} objects into {drawing_path}")
    return 0


def _run_export(args: argparse.Namespace) -> int:
    drawing = Drawing.load(args.drawing)
    crs = _crs_from_args(args, CrsSettings.from_env())
    layers = set(args.layer) if args.layer else None
    entities = [e for e in drawing if layers is None or e.layer in layers]
    count = export_kml(entities, args.output, crs)
    print(f"Exported {count} objects to {args.output}")
    return 0


def _run_tiles(args: argparse.Namespace) -> int:
    collector = _KeyCollector()
    view = MapView(TileCache(), downloader=collector)  # type: ignore[arg-type]
    view.set_zoom_override(args.zoom)
    corners = [
        ll_to_mercator(args.south, args.west)[::-1][::-1],
        ll_to_mercator(args.south, args.east),
        ll_to_mercator(args.north, args.east),
        ll_to_mercator(args.north, args.west),
    ]
    view.draw(corners)
    if not collector.keys:
        print("slamap: view is empty or too wide to cover with tiles", file=sys.stderr)
        return 1
    for key in collector.keys:
        print(f"{key.z} {key.x} {key.y} {tile_url(key)}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    args = _build_parser().parse_args(argv)
    try:
        if args.command == "import":
            return _run_import(args)
        if args.command == "export":
            return _run_export(args)
        if args.command == "tiles":
            return _run_tiles(args)
        print(opacity_to_alpha(args.percent))
        return 0
    except (ExportError, ValueError, OSError) as exc:
        print(f"slamap: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())