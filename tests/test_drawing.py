import pytest

from slamap.drawing import (
    BlockReference,
    CrsSettings,
    Drawing,
    PointEntity,
    Polyline,
    TextEntity,
)


def test_from_env_web_mercator():
    crs = CrsSettings.from_env({"KMZ_CRS_TYPE": "3857", "KMZ_UTM_ZONE": "", "KMZ_HEMISPHERE": "N"})
    assert crs.use_3857 is True
    assert crs.is_south is False


def test_from_env_utm_zone_and_default_south():
    crs = CrsSettings.from_env({"KMZ_CRS_TYPE": "UTM", "KMZ_UTM_ZONE": "48"})
    assert crs == CrsSettings(use_3857=False, zone=48, is_south=True)


def test_from_env_unreadable_zone_is_zero():
    assert CrsSettings.from_env({"KMZ_UTM_ZONE": "AUTO"}).zone == 0
    assert CrsSettings.from_env({}).zone == 0


def test_from_env_leading_digits():
    assert CrsSettings.from_env({"KMZ_UTM_ZONE": " 50x"}).zone == 50


def test_from_env_round_trip():
    crs = CrsSettings(use_3857=False, zone=33, is_south=False)
    assert CrsSettings.from_env(crs.to_env()) == crs


def test_from_srid_south():
    assert CrsSettings.from_srid(32749) == CrsSettings(use_3857=False, zone=49, is_south=True)


def test_from_srid_north():
    assert CrsSettings.from_srid(32601) == CrsSettings(use_3857=False, zone=1, is_south=False)


def test_from_srid_web_mercator():
    assert CrsSettings.from_srid(3857).use_3857 is True


@pytest.mark.parametrize("srid", [4326, 32700, 32761, 32600, 32661])
def test_from_srid_rejects_others(srid):
    with pytest.raises(ValueError):
        CrsSettings.from_srid(srid)


def test_polyline_closed_flag():
    assert Polyline([(0.0, 0.0), (5.0, 0.0)], closed=True).is_effectively_closed() is True


def test_polyline_ends_within_tolerance():
    poly = Polyline([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.5, 0.5)])
    assert poly.is_effectively_closed() is True


def test_polyline_ends_apart():
    poly = Polyline([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (2.0, 2.0)])
    assert poly.is_effectively_closed() is False


def test_polyline_too_short_to_close():
    assert Polyline([(0.0, 0.0), (0.1, 0.1)]).is_effectively_closed() is False


def _sample_drawing():
    drawing = Drawing(blocks={"POLE"})
    drawing.add(PointEntity((1.0, 2.0, 0.0), name="p1"))
    drawing.add(BlockReference((3.0, 4.0, 0.0), "POLE", layer="FTTH", name="b1"))
    drawing.add(TextEntity("label", (1.0, 2.0, 0.0)))
    drawing.add(Polyline([(0.0, 0.0), (1.0, 1.0), (2.0, 0.0)], closed=True, name="area"))
    return drawing


def test_add_returns_entity_and_grows():
    drawing = Drawing()
    point = PointEntity((0.0, 0.0, 0.0))
    assert drawing.add(point) is point
    assert list(drawing) == [point]


def test_add_rejects_other_objects():
    with pytest.raises(TypeError):
        Drawing().add("not an entity")


def test_dict_round_trip():
    drawing = _sample_drawing()
    assert Drawing.from_dict(drawing.to_dict()) == drawing


def test_to_dict_tags_types():
    tags = [e["type"] for e in _sample_drawing().to_dict()["entities"]]
    assert tags == ["point", "block", "text", "polyline"]


def test_save_and_load(tmp_path):
    drawing = _sample_drawing()
    path = tmp_path / "drawing.json"
    drawing.save(path)
    assert Drawing.load(path) == drawing


def test_from_dict_unknown_type():
    with pytest.raises(ValueError):
        Drawing.from_dict({"entities": [{"type": "circle"}]})


def test_from_dict_bad_fields():
    with pytest.raises(ValueError):
        Drawing.from_dict({"entities": [{"type": "point", "radius": 3}]})