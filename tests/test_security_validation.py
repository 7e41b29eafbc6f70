import pytest

from image_stacker import config
from utils.validation import (
    guess_media_type,
    is_image_media_type,
    validate_image_path,
    validate_output_path,
)


def test_validate_image_path_rejects_urls(tmp_path):
    with pytest.raises(ValueError):
        validate_image_path("http://example.com/a.png", config.SUPPORTED_IMAGE_FORMATS)


def test_validate_image_path_rejects_bad_extension(tmp_path):
    f = tmp_path / "evil.txt"
    f.write_text("not an image")
    with pytest.raises(ValueError):
        validate_image_path(f, config.SUPPORTED_IMAGE_FORMATS)


def test_validate_image_path_accepts_bare_or_dotted_extensions(tmp_path):
    f = tmp_path / "photo.JPG"
    f.write_bytes(b"\xff\xd8")
    assert validate_image_path(f, ["jpg"]) == f.resolve()
    assert validate_image_path(f, [".jpg"]) == f.resolve()


def test_validate_image_path_without_extension_list_accepts_any_file(tmp_path):
    f = tmp_path / "notes.txt"
    f.write_text("hello")
    assert validate_image_path(f) == f.resolve()


def test_validate_image_path_rejects_directories(tmp_path):
    folder = tmp_path / "dir.png"
    folder.mkdir()
    with pytest.raises(ValueError):
        validate_image_path(folder, {".png"})


def test_validate_output_path_checks_directory(tmp_path):
    bad_dir = tmp_path / "missing" / "out.png"
    with pytest.raises(ValueError):
        validate_output_path(bad_dir, {".png"})


def test_validate_output_path_checks_extension(tmp_path):
    with pytest.raises(ValueError):
        validate_output_path(tmp_path / "merged-image.gif", {"png", "jpeg"})
    assert validate_output_path(tmp_path / "merged-image.jpeg", {"jpeg"}).name == "merged-image.jpeg"


@pytest.mark.parametrize(
    "media_type, expected",
    [
        ("image/png", True),
        ("IMAGE/JPEG", True),
        ("image/svg+xml", True),
        ("text/plain", False),
        ("application/octet-stream", False),
        ("", False),
        (None, False),
    ],
)
def test_is_image_media_type(media_type, expected):
    assert is_image_media_type(media_type) is expected


def test_guess_media_type():
    assert guess_media_type("a.png") == "image/png"
    assert guess_media_type("a.jpeg") == "image/jpeg"
    assert guess_media_type("noext") == "application/octet-stream"
