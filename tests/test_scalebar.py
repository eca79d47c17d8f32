import numpy as np
import pytest

from tbgsim.model import scalebar
from tbgsim.model.scalebar import ScaleBar, adjust, format_label, pixel_length


def test_length_in_band_is_kept():
    # 4 nm at zoom 1 is about 84.5 px
    assert adjust(4.0, 1.0) == 4.0


def test_too_long_bar_is_halved():
    assert pixel_length(4.0, 2.0, 0.142, 3.0) > scalebar.MAX_LENGTH_PX
    assert adjust(4.0, 2.0) == 2.0


def test_too_short_bar_is_doubled():
    assert pixel_length(4.0, 0.5, 0.142, 3.0) < scalebar.MIN_LENGTH_PX
    assert adjust(4.0, 0.5) == 8.0


def test_one_decision_per_call():
    # far outside the band, still only one halving
    assert adjust(4.0, 50.0) == 2.0


@pytest.mark.parametrize("length", [0.001, 0.5, 4.0, 1024.0])
@pytest.mark.parametrize("zoom", [0.01, 0.25, 1.0, 7.3, 50.0, 1000.0])
def test_result_is_always_positive(length, zoom):
    assert adjust(length, zoom) > 0


def test_continuous_zoom_sweep_only_takes_power_of_two_steps():
    bar = ScaleBar()
    lengths = []
    out_of_band = []
    for zoom in np.linspace(1.0, 50.0, 5000):
        bar.step(zoom)
        lengths.append(bar.length_nm)
        px = bar.pixel_length(zoom)
        out_of_band.append(not (bar.min_px <= px <= bar.max_px))

    for before, after in zip(lengths, lengths[1:]):
        assert after in (before, before / 2.0, before * 2.0)
    exponents = np.log2(np.array(lengths) / 4.0)
    np.testing.assert_allclose(exponents, np.round(exponents))
    assert not any(a and b for a, b in zip(out_of_band, out_of_band[1:]))
    assert lengths[-1] < lengths[0]


def test_jump_outside_band_is_corrected_on_following_ticks():
    bar = ScaleBar()
    ticks = 0
    while not (bar.min_px <= bar.pixel_length(50.0) <= bar.max_px):
        bar.step(50.0)
        ticks += 1
        assert ticks < 20
    assert bar.length_nm == pytest.approx(0.125)


def test_step_reports_change_and_marks_dirty():
    bar = ScaleBar()
    bar.mark_clean(1.0, 400, 300)
    assert not bar.step(1.0)
    assert not bar.dirty
    assert bar.step(2.0)
    assert bar.dirty
    assert bar.length_nm == 2.0


def test_sync_marks_dirty_on_zoom_and_resize():
    bar = ScaleBar()
    bar.mark_clean(1.0, 400, 300)
    bar.sync(1.0, 400, 300)
    assert not bar.dirty
    bar.sync(1.1, 400, 300)
    assert bar.dirty

    bar.mark_clean(1.1, 400, 300)
    bar.sync(1.1, 500, 300)
    assert bar.dirty


def test_geometry_is_anchored_bottom_right():
    bar = ScaleBar()
    rect, label = bar.geometry(1.0, 400.0, 300.0)
    px = bar.pixel_length(1.0)
    assert rect.width == pytest.approx(px)
    assert rect.height == scalebar.BAR_THICKNESS_PX
    assert rect.x + rect.width == pytest.approx(400.0 - scalebar.BAR_RIGHT_MARGIN_PX)
    assert rect.y + rect.height / 2.0 == pytest.approx(300.0 - scalebar.BAR_BOTTOM_OFFSET_PX)
    assert (label.x, label.y) == (350.0, 260.0)
    assert label.text == "4 nm"


@pytest.mark.parametrize("length, text", [(4.0, "4 nm"), (0.5, "0.5 nm"), (0.125, "0.125 nm"), (16.0, "16 nm")])
def test_format_label(length, text):
    assert format_label(length) == text
