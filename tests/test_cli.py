import xml.etree.ElementTree as ET

import pytest

from slamap.cli import main, opacity_to_alpha
from slamap.drawing import Drawing, PointEntity, Polyline
from slamap.geo import TileKey, tile_url
from slamap.slamath import wgs84_to_webmercator

NS = {"k": "http://www.opengis.net/kml/2.2"}
KMZ_VARS = [
    "KMZ_CRS_TYPE",
    "KMZ_UTM_ZONE",
    "KMZ_HEMISPHERE",
    "KMZ_IMPORT_TYPE",
    "KMZ_BLOCK_NAME",
    "KMZ_USE_LABEL",
    "KMZ_FILE_PATH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in KMZ_VARS:
        monkeypatch.delenv(name, raising=False)


def test_default_opacity_matches_default_alpha():
    assert opacity_to_alpha(60) == 153
    assert opacity_to_alpha(None) == 153


def test_opacity_is_clamped():
    assert opacity_to_alpha(5) == opacity_to_alpha(10)
    assert opacity_to_alpha(500) == 255
    assert opacity_to_alpha(100) == 255


def test_opacity_command_prints_alpha(capsys):
    assert main(["opacity", "60"]) == 0
    assert capsys.readouterr().out.strip() == "153"


def test_import_command_creates_drawing(tmp_path):
    kml = tmp_path / "in.kml"
    kml.write_text(
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
        "<Placemark><name>ODP</name><Point><coordinates>106.8,-6.2,0</coordinates>"
        "</Point></Placemark></Document></kml>",
        encoding="utf-8",
    )
    dwg = tmp_path / "drawing.json"
    assert main(["import", str(kml), str(dwg), "--crs", "3857", "--no-label"]) == 0
    drawing = Drawing.load(dwg)
    assert len(drawing) == 1
    (entity,) = drawing.entities
    x, y = wgs84_to_webmercator(-6.2, 106.8)
    assert entity.name == "ODP"
    assert entity.position[0] == pytest.approx(x)
    assert entity.position[1] == pytest.approx(y)


def test_import_command_with_labels_adds_text(tmp_path):
    kml = tmp_path / "in.kml"
    kml.write_text(
        "<kml><Placemark><name>A</name><Point><coordinates>106.8,-6.2</coordinates>"
        "</Point></Placemark></kml>",
        encoding="utf-8",
    )
    dwg = tmp_path / "drawing.json"
    assert main(["import", str(kml), str(dwg), "--srid", "32748", "--label"]) == 0
    assert len(Drawing.load(dwg)) == 2


def test_import_of_missing_file_fails(tmp_path):
    assert main(["import", str(tmp_path / "none.kml"), str(tmp_path / "d.json")]) == 1


def test_export_command_writes_kml(tmp_path):
    dwg = tmp_path / "drawing.json"
    a = wgs84_to_webmercator(-6.2, 106.8)
    b = wgs84_to_webmercator(-6.21, 106.81)
    drawing = Drawing()
    drawing.add(Polyline([a, b], layer="FO", name="cable"))
    drawing.add(PointEntity((a[0], a[1], 0.0), layer="POLE", name="p"))
    drawing.save(dwg)
    out = tmp_path / "out.kml"
    assert main(["export", str(dwg), str(out), "--crs", "3857", "--layer", "FO"]) == 0
    root = ET.parse(out).getroot()
    names = [n.text for n in root.iterfind(".//k:Placemark/k:name", NS)]
    assert names == ["cable"]


def test_export_without_zone_fails(tmp_path):
    dwg = tmp_path / "drawing.json"
    Drawing(entities=[PointEntity((1.0, 2.0, 0.0))]).save(dwg)
    assert main(["export", str(dwg), str(tmp_path / "out.kml")]) == 1
    assert not (tmp_path / "out.kml").exists()


def test_tiles_command_lists_requested_tiles(capsys):
    assert main(["tiles", "106.80", "-6.21", "106.82", "-6.19", "--zoom", "15"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines
    zooms = set()
    for line in lines:
        z, x, y, url = line.split()
        zooms.add(int(z))
        assert url == tile_url(TileKey(int(z), int(x), int(y)))
    assert 15 in zooms
    assert zooms <= {14, 15}


def test_tiles_command_rejects_wide_view():
    assert main(["tiles", "90", "-10", "110", "10"]) == 1


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        main(["bogus"])