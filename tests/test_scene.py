import numpy as np
import pytest

from tbgsim.model import transform
from tbgsim.model.scalebar import BarLabel, BarRect
from tbgsim.model.scene import Layer, LayerArena, ParameterSnapshot, Scene


def _snapshot(**overrides) -> ParameterSnapshot:
    values = dict(
        twist_angle=1.1, uniaxial_strain=0.0, uniaxial_strain_angle=0.0,
        biaxial_strain=0.0, spacing=1.0,
    )
    values.update(overrides)
    return ParameterSnapshot(**values)


@pytest.fixture
def scene():
    s = Scene(300, 200)
    s.attach(1.0)
    return s


def test_attach_creates_containers_in_paint_order(scene):
    assert scene.attached
    assert [c.name for c in scene.containers] == ["top", "bottom", "scalebar", "scalebar-label"]
    assert scene.extent_radius == 50
    assert len(scene.top) == len(scene.bottom) > 0
    assert scene.top.position == (150.0, 100.0)
    assert scene.bottom.position == (150.0, 100.0)


def test_layers_start_with_identical_points(scene):
    np.testing.assert_array_equal(scene.top.points, scene.bottom.points)
    assert scene.top.points is not scene.bottom.points


def test_attach_draws_scale_bar(scene):
    rect, = scene.scalebar_geometry.children
    label, = scene.scalebar_label.children
    assert isinstance(rect, BarRect)
    assert isinstance(label, BarLabel)
    assert not scene.scalebar.dirty


def test_tick_applies_transforms(scene):
    snap = _snapshot(twist_angle=5.0, biaxial_strain=1.0, spacing=2.0)
    assert scene.tick(snap)
    np.testing.assert_allclose(
        scene.top.matrix, transform.compose(5.0, 0.0, 0.0, 1.0, 2.0, 150.0, 100.0)
    )
    np.testing.assert_allclose(scene.bottom.matrix, transform.compose_reference(2.0, 150.0, 100.0))


@pytest.mark.parametrize("missing", ["twist_angle", "uniaxial_strain", "uniaxial_strain_angle", "biaxial_strain", "spacing"])
def test_tick_skips_incomplete_snapshot(scene, missing):
    before = scene.top.matrix.copy()
    assert not scene.tick(_snapshot(**{missing: None}))
    np.testing.assert_array_equal(scene.top.matrix, before)


def test_tick_after_destroy_is_a_no_op(scene):
    scene.destroy()
    assert not scene.attached
    assert scene.containers == []
    assert not scene.tick(_snapshot())


def test_scale_bar_rebuilt_only_when_geometry_changes(scene):
    scene.tick(_snapshot())
    rect = scene.scalebar_geometry.children[0]

    scene.tick(_snapshot())
    assert scene.scalebar_geometry.children[0] is rect

    scene.tick(_snapshot(spacing=1.2))
    zoomed = scene.scalebar_geometry.children[0]
    assert zoomed is not rect
    assert zoomed.width > rect.width
    assert scene.scalebar.length_nm == 4.0

    scene.tick(_snapshot(spacing=2.0))
    assert scene.scalebar.length_nm == 2.0
    assert scene.scalebar_label.children[0].text == "2 nm"


def test_resize_regenerates_only_when_radius_changes(scene):
    generation = scene.bottom.generation
    assert not scene.resize(301, 400)
    assert scene.bottom.generation == generation
    assert scene.bottom.position == (150.5, 200.0)

    assert scene.resize(600, 400)
    assert scene.extent_radius == 100
    assert scene.bottom.generation == generation + 1
    assert scene.top.generation == generation + 1


def test_resize_marks_scale_bar_for_rebuild(scene):
    scene.tick(_snapshot())
    scene.resize(400, 300)
    scene.tick(_snapshot())
    rect = scene.scalebar_geometry.children[0]
    assert rect.x + rect.width == pytest.approx(395.0)


def test_resize_before_attach_only_stores_size():
    s = Scene(100, 100)
    assert not s.resize(400, 400)
    assert s.width == 400.0
    assert s.top is None


def test_arena_populate_replaces_points_and_bumps_generation():
    arena = LayerArena(Layer.TOP)
    assert arena.generation == 0
    arena.populate(np.zeros((3, 2)), 1.0)
    arena.populate(np.ones((5, 2)), 2.0)
    assert arena.generation == 2
    assert len(arena) == 5
    assert arena.point_radius == 2.0
    arena.clear()
    assert len(arena) == 0
    assert arena.children == []


def test_snapshot_update_copies_matching_attributes():
    class Params:
        twist_angle = 2.0
        uniaxial_strain = 0.5
        uniaxial_strain_angle = 10.0
        biaxial_strain = -0.1
        spacing = 3.0

    snap = ParameterSnapshot()
    assert not snap.is_complete()
    snap.update(Params())
    assert snap.is_complete()
    assert snap.spacing == 3.0
