from PIL import Image

from utils.image_operations import (
    flatten_onto_background,
    has_alpha,
    make_thumbnail,
    paste_with_alpha,
    resize_image,
)


def assert_color_close(actual, expected, tolerance=3):
    assert len(actual) == len(expected)
    for component_actual, component_expected in zip(actual, expected, strict=True):
        assert abs(component_actual - component_expected) <= tolerance


def test_resize_image_ignores_aspect():
    img = Image.new("RGB", (10, 20), color="white")
    resized = resize_image(img, (40, 7))
    assert resized.size == (40, 7)


def test_resize_image_same_size_returns_input():
    img = Image.new("RGB", (10, 20))
    assert resize_image(img, (10, 20)) is img


def test_has_alpha_detects_palette_transparency():
    palette = Image.new("P", (4, 4))
    palette.info["transparency"] = 0
    assert has_alpha(palette)
    assert has_alpha(Image.new("RGBA", (1, 1)))
    assert not has_alpha(Image.new("RGB", (1, 1)))


def test_flatten_blends_half_transparent_pixels():
    img = Image.new("RGBA", (4, 4), color=(0, 0, 0, 128))

    flat = flatten_onto_background(img)

    assert flat.mode == "RGB"
    assert_color_close(flat.getpixel((1, 1)), (127, 127, 127))


def test_flatten_converts_opaque_modes():
    grey = Image.new("L", (2, 2), color=200)
    assert flatten_onto_background(grey).getpixel((0, 0)) == (200, 200, 200)


def test_paste_with_alpha_keeps_background_under_transparency():
    canvas = Image.new("RGB", (4, 4), color=(255, 255, 255))
    overlay = Image.new("RGBA", (2, 4), color=(255, 0, 0, 0))
    solid = Image.new("RGB", (2, 4), color=(0, 0, 255))

    paste_with_alpha(canvas, overlay, (0, 0))
    paste_with_alpha(canvas, solid, (2, 0))

    assert canvas.getpixel((0, 0)) == (255, 255, 255)
    assert canvas.getpixel((3, 3)) == (0, 0, 255)


def test_make_thumbnail_fits_bounds_and_copies():
    img = Image.new("RGB", (400, 100))

    thumb = make_thumbnail(img, (96, 96))

    assert thumb.size == (96, 24)
    assert img.size == (400, 100)
