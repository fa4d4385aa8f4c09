import numpy as np
import pytest

from picturesque.errors import ImageIOError, ImageDecodeError, ImageEncodeError
from picturesque.models.image import Image, Rectangle
from picturesque.services.image_service import ImageService


@pytest.fixture
def image_service():
    return ImageService(jpeg_quality=85)


def test_save_then_load_keeps_dimensions(image_service, photo, tmp_path):
    path = image_service.save(photo, tmp_path, "out.jpg")
    assert path == tmp_path / "out.jpg"

    loaded = image_service.load(path)
    assert loaded.pixels.shape == photo.pixels.shape
    assert loaded.pixels.dtype == np.uint8
    assert loaded.path == path

    again = image_service.load(image_service.save(loaded, tmp_path, "again.jpg"))
    assert again.pixels.shape == photo.pixels.shape


def test_load_returns_rgb(image_service, tmp_path):
    red = np.zeros((16, 16, 3), np.uint8)
    red[:, :, 0] = 255
    loaded = image_service.load(image_service.save(Image(red), tmp_path, "red.jpg"))
    r, g, b = loaded.pixels[8, 8].astype(int)
    assert r > 200 and g < 60 and b < 60


def test_greyscale_stays_single_channel(image_service, tmp_path):
    grey = np.full((20, 30), 128, np.uint8)
    loaded = image_service.load(image_service.save(Image(grey), tmp_path, "grey.jpg"))
    assert loaded.pixels.shape == (20, 30)


def test_save_a_cropped_view(image_service, photo, tmp_path):
    view = photo.sub_image(Rectangle(10, 20, 110, 70))
    assert not view.pixels.flags["C_CONTIGUOUS"]
    loaded = image_service.load(image_service.save(view, tmp_path, "view.jpg"))
    assert loaded.pixels.shape == (50, 100, 3)


def test_save_overwrites_existing_file(image_service, photo, tmp_path):
    target = tmp_path / "out.jpg"
    target.write_bytes(b"old contents")
    image_service.save(photo, tmp_path, "out.jpg")
    assert image_service.load(target).pixels.shape == photo.pixels.shape


def test_load_missing_file_is_io_error(image_service, tmp_path):
    with pytest.raises(ImageIOError) as excinfo:
        image_service.load(tmp_path / "nope.jpg")
    assert excinfo.value.phase == "open"
    assert excinfo.value.path == tmp_path / "nope.jpg"


@pytest.mark.parametrize("data", [b"", b"definitely not a jpeg"])
def test_load_garbage_is_decode_error(image_service, tmp_path, data):
    path = tmp_path / "broken.jpg"
    path.write_bytes(data)
    with pytest.raises(ImageDecodeError) as excinfo:
        image_service.load(path)
    assert excinfo.value.phase == "decode"


def test_save_into_missing_directory_is_io_error(image_service, photo, tmp_path):
    missing = tmp_path / "does" / "not" / "exist"
    with pytest.raises(ImageIOError) as excinfo:
        image_service.save(photo, missing, "out.jpg")
    assert excinfo.value.phase == "create"
    assert not missing.exists()


def test_unencodable_pixels_are_encode_error_and_write_nothing(image_service, tmp_path):
    floats = Image(np.zeros((8, 8, 3), np.float32))
    with pytest.raises(ImageEncodeError):
        image_service.save(floats, tmp_path, "out.jpg")
    assert list(tmp_path.iterdir()) == []


def test_failed_rename_removes_the_temp_file(image_service, photo, tmp_path):
    (tmp_path / "out.jpg").mkdir()
    with pytest.raises(ImageIOError) as excinfo:
        image_service.save(photo, tmp_path, "out.jpg")
    assert excinfo.value.phase == "create"
    assert [p.name for p in tmp_path.iterdir()] == ["out.jpg"]
    assert (tmp_path / "out.jpg").is_dir()


def test_explicit_quality_wins_even_when_zero(photo, tmp_path, monkeypatch):
    monkeypatch.setenv("JPEG_QUALITY", "95")
    image_service = ImageService(jpeg_quality=0)
    assert image_service.jpeg_quality == 0
    assert image_service.save(photo, tmp_path, "low.jpg").exists()


def test_blank_quality_setting_uses_default(monkeypatch):
    monkeypatch.setenv("JPEG_QUALITY", "")
    assert ImageService().jpeg_quality == 85
