# slamap

Tools for putting geographic data into CAD-style drawings and getting it back
out, plus the tile arithmetic and downloading needed for a satellite map
background.

- **Coordinate conversion** (`slamap.slamath`) between WGS84 latitude/longitude
  and UTM (any zone, north or south hemisphere) or Web Mercator (EPSG:3857).
- **Drawing model** (`slamap.drawing`): `PointEntity`, `BlockReference`,
  `TextEntity` and `Polyline` entities held in a `Drawing`, which also keeps
  the names of defined blocks and is saved to and loaded from JSON.
- **KML / KMZ import** (`slamap.kmlimport`): placemark points become points or
  block references (with an optional centred text label of height 2), line
  strings and polygons become polylines (polygons closed). Each imported
  entity keeps its placemark name. For a `.kmz` file the `doc.kml` inside the
  archive is read.
- **KML export** (`slamap.kmlexport`): entities are written to KML, grouped
  into one folder per layer and one sub-folder per geometry type (`Points`,
  `LineStrings`, `Polygons`). Open polylines with at least three vertices
  whose ends lie within one drawing unit of each other are exported as
  polygons. A placemark is named after the entity's stored name, a text's
  string, or `Tanpa_Nama`.
- **Map tiles**: slippy-map tile math (`slamap.geo`), a thread-safe LRU
  `TileCache` (`slamap.tilecache`), a `TileDownloader` worker pool that fetches
  tiles and decodes them to BGRA pixels with a fixed alpha
  (`slamap.downloader`), a `ViewportReactor` that fires a callback once editor
  events have been quiet for a debounce period (`slamap.debounce`), and a
  `MapView` that works out which tiles cover a view, uses a cached tile one or
  two zoom levels up as a cropped stand-in for a missing one, and queues the
  missing tiles and their parents for download (`slamap.mapview`).

## Installation

```
pip install .
```

Pillow is the only runtime dependency. To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

The package installs a `slamap` command with four sub-commands; run
`slamap --help` or `slamap <command> --help` for details.

```
slamap import network.kmz network.json [--block NAME] [--label | --no-label]
slamap export network.json out.kml [--layer NAME ...]
slamap tiles WEST SOUTH EAST NORTH [--zoom Z]
slamap opacity [PERCENT]
```

- `import` adds the placemarks of a KML/KMZ file to a drawing JSON file,
  creating it when it does not exist, and prints the number of objects added.
- `export` writes the drawing's entities (optionally only some layers) to a
  KML file.
- `tiles` prints `z x y url` for each tile a view with the given edges (in
  degrees) would request: the covering tiles with a one-tile margin, plus
  their parent tiles. It exits with status 1 when the view is empty or wider
  than 10 degrees of longitude.
- `opacity` prints the alpha byte for an opacity percentage, clamped to
  10..100 with 60 as the default (60 gives 153).

`import` and `export` both accept `--crs utm|3857`, `--zone N`,
`--hemisphere N|S` and `--srid CODE`. Settings not given on the command line
are read from the environment variables `KMZ_CRS_TYPE` (`3857` selects Web
Mercator), `KMZ_UTM_ZONE` and `KMZ_HEMISPHERE` (anything other than `N` means
south). `import` also reads `KMZ_IMPORT_TYPE` (`BLOCK`), `KMZ_BLOCK_NAME` and
`KMZ_USE_LABEL` (`1`); without them points are imported as points and no
labels are made unless `--label` is given. A missing UTM zone falls back to
zone 49 on import, while export refuses to run without one.

## Library use

```python
from slamap.slamath import wgs84_to_utm, utm_to_wgs84, wgs84_to_cad

x, y = wgs84_to_utm(-6.2, 106.8, 48, True)
lat, lon = utm_to_wgs84(x, y, 48, True)
x, y = wgs84_to_cad(-6.2, 106.8, 48, True, False)
```

```python
from slamap.geo import estimate_zoom, lat_to_tile_y, lon_to_tile_x

z = estimate_zoom(0.05, 1920)
tx = lon_to_tile_x(106.8, z)
ty = lat_to_tile_y(-6.2, z)
```

```python
import os
from slamap.drawing import CrsSettings, Drawing
from slamap.kmlimport import ImportOptions, import_kml
from slamap.kmlexport import export_kml

drawing = Drawing()
import_kml("network.kmz", drawing, ImportOptions.from_env(os.environ))
drawing.save("network.json")

export_kml(drawing, "network.kml", CrsSettings.from_srid(32748))
```

`CrsSettings.from_srid` accepts the WGS84 UTM codes 32601–32660 (north) and
32701–32760 (south) and 3857 for Web Mercator; other codes raise
`ValueError`.

Tile opacity is the `alpha` given to `TileDownloader` (and
`decode_png_to_bgra`); it replaces the alpha byte of every decoded pixel, and
`opacity_to_alpha` in `slamap.cli` turns a percentage into that byte.

## What it does not do

- Drawings are the package's own JSON files; DWG and DXF files are neither
  read nor written.
- `MapView.draw` returns the tiles to show together with their placement in
  Web Mercator units; it does not render them. Showing the background in an
  editor or window is left to the caller.
- Tiles are cached in memory only, and the `slamap` command never downloads
  tiles itself; `tiles` only lists them.