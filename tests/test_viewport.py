import logging

import pytest

from conftest import grey
from core.errors import InvalidParameter
from core.view_transform import ViewState
from core.viewport import Viewport


def test_empty_viewport() -> None:
    viewport = Viewport()
    assert viewport.slice_count == 0
    assert viewport.current_raster is None
    assert viewport.adjusted_raster() is None
    assert viewport.render(10, 10) is None
    assert not viewport.set_slice(0)


def test_loading_resets_view_state() -> None:
    viewport = Viewport()
    viewport.transform.zoom_at(10, 10, 3.0)
    viewport.transform.pan(4, 4)

    viewport.set_image(grey(1, 4, 4))
    assert viewport.transform.state == ViewState(1.0, 0.0, 0.0)

    viewport.transform.pan(1, 2)
    viewport.set_stack([grey(1, 4, 4), grey(2, 4, 4)])
    assert viewport.transform.state == ViewState(1.0, 0.0, 0.0)
    assert viewport.slice_index == 0


def test_slice_navigation() -> None:
    slices = [grey(10), grey(20), grey(30)]
    viewport = Viewport()
    viewport.set_stack(slices)

    assert viewport.slice_count == 3
    assert viewport.set_slice(2)
    assert viewport.current_raster is slices[2]
    assert not viewport.set_slice(3)
    assert not viewport.set_slice(-1)
    assert viewport.slice_index == 2

    viewport.clear()
    assert viewport.slice_count == 0


def test_tone_settings() -> None:
    viewport = Viewport(brightness_factor=2.0, contrast_offset=-10)
    viewport.set_image(grey(50))
    assert viewport.adjusted_raster().pixel(0, 0) == (255, 90, 90, 90)

    viewport.set_brightness(1.0)
    viewport.set_contrast(0)
    assert viewport.adjusted_raster() == viewport.current_raster

    with pytest.raises(InvalidParameter):
        viewport.set_brightness(-0.5)
    with pytest.raises(InvalidParameter):
        Viewport(brightness_factor=-1)


def test_fit_and_render() -> None:
    viewport = Viewport()
    viewport.set_image(grey(80, 4, 2))
    viewport.fit(8, 8)
    assert viewport.transform.zoom == pytest.approx(2.0)

    drawn = viewport.render(8, 8)
    assert drawn.shape == (8, 8)
    assert drawn.pixel(3, 1) == (255, 80, 80, 80)
    assert drawn.pixel(3, 7) == (0, 0, 0, 0)


def test_from_config() -> None:
    config = {
        'tone': {'brightness_factor': 1.5, 'contrast_offset': 3.0},
        'view': {'zoom_bounds': [0.5, 2.0]},
    }
    viewport = Viewport.from_config(config)
    assert viewport.brightness_factor == 1.5
    assert viewport.contrast_offset == 3.0
    assert viewport.transform.zoom_max == 2.0


def test_slice_change_recentres_pan_and_keeps_zoom() -> None:
    viewport = Viewport()
    viewport.set_stack([grey(1, 4, 4), grey(2, 4, 4)])
    viewport.transform.set_zoom(2.5)
    viewport.transform.pan(5, 5)

    assert viewport.set_slice(1)
    assert viewport.transform.state == ViewState(2.5, 0.0, 0.0)

    # A rejected index leaves the view alone
    viewport.transform.pan(3, 4)
    assert not viewport.set_slice(7)
    assert viewport.transform.state == ViewState(2.5, 3.0, 4.0)


def test_adjustment_is_logged_on_viewport_logger(caplog) -> None:
    logger = logging.getLogger('stack_composer.viewport_test')
    viewport = Viewport(brightness_factor=2.0, logger=logger)
    viewport.set_image(grey(10))

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        viewport.adjusted_raster()
    assert any(r.name == logger.name and 'factor=2.0' in r.getMessage() for r in caplog.records)
