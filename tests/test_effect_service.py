import numpy as np
import pytest

from picturesque.models.image import Image, Rectangle
from picturesque.services.effect_service import EffectService


@pytest.fixture
def effect_service():
    return EffectService(saturation_amount=0.5, sharpen_radius=0.6, sharpen_amount=1.2)


@pytest.mark.parametrize("effect", ["saturate", "multiply_self", "sharpen"])
def test_effects_are_deterministic_and_keep_dimensions(effect_service, photo, effect):
    first = getattr(effect_service, effect)(photo)
    second = getattr(effect_service, effect)(photo)

    assert first.pixels.shape == photo.pixels.shape
    assert first.pixels.dtype == np.uint8
    assert np.array_equal(first.pixels, second.pixels)
    assert first.bounds.x0 == 0 and first.bounds.y0 == 0


@pytest.mark.parametrize("effect", ["saturate", "multiply_self", "sharpen"])
def test_effects_leave_shared_views_untouched(effect_service, photo, effect):
    before = photo.pixels.copy()
    view = photo.sub_image(Rectangle(50, 40, 250, 200))
    out = getattr(effect_service, effect)(view)

    assert out.pixels.shape == view.pixels.shape
    assert not np.shares_memory(out.pixels, photo.pixels)
    assert np.array_equal(photo.pixels, before)


def test_saturate_boosts_colour_but_not_grey(effect_service):
    pixels = np.array([[[180, 120, 120], [100, 100, 100]]], np.uint8)
    out = effect_service.saturate(Image(pixels)).pixels

    r, g, b = out[0, 0].astype(int)
    assert r - g > 60
    assert np.array_equal(out[0, 1], pixels[0, 1])


def test_saturate_minus_one_removes_colour(effect_service, photo):
    out = effect_service.saturate(photo, amount=-1.0).pixels.astype(int)
    spread = out.max(axis=2) - out.min(axis=2)
    assert spread.max() <= 1


def test_saturate_single_channel_is_a_copy(effect_service):
    grey = Image(np.full((4, 4), 77, np.uint8))
    out = effect_service.saturate(grey)
    assert np.array_equal(out.pixels, grey.pixels)
    assert not np.shares_memory(out.pixels, grey.pixels)


def test_multiply_self_values(effect_service):
    pixels = np.array([[[0, 128, 255], [200, 10, 64]]], np.uint8)
    out = effect_service.multiply_self(Image(pixels)).pixels
    assert out[0, 0].tolist() == [0, 64, 255]
    assert out[0, 1].tolist() == [157, 0, 16]


def test_multiply_self_keeps_alpha(effect_service):
    pixels = np.full((2, 2, 4), 128, np.uint8)
    pixels[:, :, 3] = 200
    out = effect_service.multiply_self(Image(pixels)).pixels
    assert out.shape == (2, 2, 4)
    assert (out[:, :, 3] == 200).all()
    assert (out[:, :, :3] == 64).all()


def test_saturate_and_multiply_differ(effect_service, photo):
    saturated = effect_service.saturate(photo).pixels
    multiplied = effect_service.multiply_self(photo).pixels
    assert saturated.shape == multiplied.shape
    assert not np.array_equal(saturated, multiplied)
    assert not np.array_equal(saturated, photo.pixels)
    assert multiplied.mean() < photo.pixels.mean()


def test_sharpen_flat_image_is_unchanged(effect_service):
    flat = Image(np.full((16, 16, 3), 90, np.uint8))
    assert np.array_equal(effect_service.sharpen(flat).pixels, flat.pixels)


def test_sharpen_increases_edge_contrast(effect_service):
    pixels = np.full((16, 16), 100, np.uint8)
    pixels[:, 8:] = 150
    out = effect_service.sharpen(Image(pixels)).pixels.astype(int)

    assert out[8, 7] < 100
    assert out[8, 8] > 150
    assert out[8, 0] == 100 and out[8, 15] == 150
