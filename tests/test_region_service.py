import cv2
import numpy as np
import pytest
from PIL import Image as PILImage

from picturesque.errors import RegionDetectionError, UnsupportedViewError
from picturesque.models.crop_engine import SmartCropEngine
from picturesque.models.image import Image, Rectangle
from picturesque.services.image_service import ImageService
from picturesque.services.region_service import RegionService

from conftest import make_photo


@pytest.fixture
def region_service():
    return RegionService(face_boost=False)


def test_detect_region_on_large_photo(region_service):
    img = Image(make_photo(2000, 1500))
    rect = region_service.detect_region(img, 1000, 1000)

    assert img.bounds.contains(rect)
    assert not rect.is_empty
    assert rect.width == rect.height
    assert 900 <= rect.width <= 1000


def test_detect_region_prefers_the_busy_part(region_service):
    pixels = np.full((200, 400, 3), 128, np.uint8)
    rng = np.random.default_rng(1)
    pixels[50:150, 280:380] = rng.integers(0, 255, (100, 100, 3), dtype=np.uint8)
    rect = region_service.detect_region(Image(pixels), 200, 200)
    assert rect.x0 >= 150


def test_target_larger_than_image_keeps_aspect_ratio(region_service, photo):
    rect = region_service.detect_region(photo, 1000, 500)
    assert photo.bounds.contains(rect)
    assert rect.width == 2 * rect.height
    assert 288 <= rect.width <= 320


@pytest.mark.parametrize("width,height", [(0, 100), (100, -1)])
def test_non_positive_target_fails(region_service, photo, width, height):
    with pytest.raises(RegionDetectionError):
        region_service.detect_region(photo, width, height)


def test_empty_image_fails(region_service):
    with pytest.raises(RegionDetectionError):
        region_service.detect_region(Image(np.zeros((0, 0, 3), np.uint8)), 10, 10)


def test_detect_region_on_a_view_is_in_absolute_coordinates(region_service, photo):
    view = photo.sub_image(Rectangle(100, 60, 300, 220))
    rect = region_service.detect_region(view, 80, 80)
    assert view.bounds.contains(rect)


def test_greyscale_images_are_supported(region_service):
    grey = Image(np.tile(np.arange(256, dtype=np.uint8), (100, 1)))
    rect = region_service.detect_region(grey, 50, 50)
    assert grey.bounds.contains(rect)


def test_crop_to_region_shares_pixels(region_service, photo):
    rect = Rectangle(40, 30, 140, 130)
    cropped = region_service.crop_to_region(photo, rect)

    assert cropped.bounds == rect
    assert np.array_equal(cropped.at(40, 30), photo.at(40, 30))
    assert np.array_equal(cropped.at(139, 129), photo.at(139, 129))
    assert np.shares_memory(cropped.pixels, photo.pixels)


def test_crop_to_region_checks_the_view_capability(region_service):
    pil_image = PILImage.new("RGB", (32, 32))
    assert not region_service.supports_view(pil_image)
    with pytest.raises(UnsupportedViewError) as excinfo:
        region_service.crop_to_region(pil_image, Rectangle(0, 0, 8, 8))
    assert excinfo.value.phase == "crop"


def test_crop_detects_then_crops(region_service, photo):
    cropped = region_service.crop(photo, 100, 100)
    assert photo.bounds.contains(cropped.bounds)
    assert 90 <= cropped.width <= 100


def test_crop_size():
    assert SmartCropEngine.crop_size(2000, 1500, 1000, 1000) == (1000, 1000)
    assert SmartCropEngine.crop_size(300, 200, 600, 600) == (200, 200)


def test_importance_peaks_inside_the_window():
    weights = SmartCropEngine().importance(60, 40)
    assert weights.shape == (40, 60)
    assert weights[20, 30] > weights[0, 0]


def test_detection_errors_carry_the_image_path(region_service, photo_file):
    img = ImageService().load(photo_file)
    with pytest.raises(RegionDetectionError) as excinfo:
        region_service.detect_region(img, 0, 100)
    assert excinfo.value.path == photo_file
    assert excinfo.value.phase == "detect"


def test_face_boost_returns_a_valid_region():
    img = Image(make_photo(600, 400))
    rect = RegionService(face_boost=True).detect_region(img, 200, 200)
    assert img.bounds.contains(rect)
    assert not rect.is_empty


def test_face_boost_without_cascade_support_is_disabled(monkeypatch, caplog):
    monkeypatch.delattr(cv2, "CascadeClassifier", raising=False)
    img = Image(make_photo(600, 400))
    rect = RegionService(face_boost=True).detect_region(img, 200, 200)
    assert img.bounds.contains(rect)
    assert "face boost disabled" in caplog.text
