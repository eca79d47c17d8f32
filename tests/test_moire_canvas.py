import numpy as np
import pytest

from tbgsim.app.state import Store
from tbgsim.app.ui.moire_canvas import MoireCanvas
from tbgsim.model import transform
from tbgsim.model.scene import RenderState, Scene


@pytest.fixture
def store(qapp):
    return Store()


@pytest.fixture
def canvas(qtbot, store):
    widget = MoireCanvas(store)
    qtbot.addWidget(widget)
    widget.resize(300, 240)
    yield widget
    widget.teardown()


def _start(qtbot, canvas):
    canvas.show()
    qtbot.waitUntil(lambda: canvas.state == RenderState.RUNNING, timeout=3000)


def test_starts_uninitialized(canvas):
    assert canvas.state == RenderState.UNINITIALIZED
    assert canvas.scene is None


def test_show_initializes_and_starts_frame_loop(qtbot, canvas):
    _start(qtbot, canvas)
    assert canvas.scene.attached
    assert canvas.scene.extent_radius == 50
    assert len(canvas.scene.bottom) > 0
    assert canvas._frame_timer.isActive()


def test_surface_is_transparent_and_ignores_mouse(canvas):
    from PySide6.QtCore import Qt
    assert canvas.testAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
    assert not canvas.autoFillBackground()


def test_tick_applies_store_parameters(qtbot, canvas, store):
    _start(qtbot, canvas)
    store.set_twist_angle(5.0)
    store.set_spacing(2.0)
    assert canvas.snapshot.twist_angle == 5.0

    canvas._tick()
    cx, cy = canvas.scene.center
    np.testing.assert_allclose(
        canvas.scene.top.matrix, transform.compose(5.0, 0.0, 0.0, 0.0, 2.0, cx, cy)
    )
    assert canvas.scene.scalebar.length_nm == 2.0


def test_missing_parameter_suspends_transforms(qtbot, canvas, store):
    _start(qtbot, canvas)
    canvas._tick()
    before = canvas.scene.top.matrix.copy()
    store.moire_store.twist_angle = None
    store.set_spacing(4.0)
    canvas._tick()
    np.testing.assert_array_equal(canvas.scene.top.matrix, before)


def test_paint_caches_polygon_per_generation(qtbot, canvas):
    _start(qtbot, canvas)
    canvas._tick()
    canvas.grab()
    bottom = canvas.scene.bottom
    key = ("bottom", bottom.generation)
    assert key in canvas._polygons
    assert canvas._polygons[key].size() == len(bottom)

    cached = canvas._polygons[key]
    canvas.grab()
    assert canvas._polygons[key] is cached


def test_resize_regenerates_on_radius_change(qtbot, canvas):
    _start(qtbot, canvas)
    canvas.grab()
    generation = canvas.scene.bottom.generation
    canvas.resize(600, 400)
    qtbot.waitUntil(lambda: canvas.scene.width == 600.0, timeout=3000)
    assert canvas.scene.extent_radius == 100
    assert canvas.scene.bottom.generation == generation + 1
    assert ("bottom", generation) not in canvas._polygons


def test_teardown_stops_loop_and_destroys_scene(qtbot, canvas):
    _start(qtbot, canvas)
    canvas.teardown()
    assert canvas.state == RenderState.DESTROYED
    assert not canvas._frame_timer.isActive()
    assert canvas.scene is None
    canvas._tick()
    canvas.grab()
    canvas.teardown()


def test_close_tears_down(qtbot, canvas):
    _start(qtbot, canvas)
    canvas.close()
    assert canvas.state == RenderState.DESTROYED


def test_failed_initialization_degrades_to_empty_surface(qtbot, canvas, monkeypatch, caplog):
    def broken_attach(self, spacing_scale=None):
        raise RuntimeError("no surface")

    monkeypatch.setattr(Scene, "attach", broken_attach)
    canvas.show()
    qtbot.waitUntil(lambda: canvas.state == RenderState.DESTROYED, timeout=3000)
    assert canvas.scene is None
    assert not canvas._frame_timer.isActive()
    assert "Failed to initialize" in caplog.text
    canvas.grab()
