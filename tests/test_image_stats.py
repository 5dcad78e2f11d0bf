"""
Pixel statistics tests.

Run with: pytest tests/test_image_stats.py -v
"""
import io
import math

import cv2
import numpy as np
import pytest
from PIL import Image

from conftest import checkerboard, png_bytes
from pipeline.file_converter import DecodeError
from pipeline.image_stats import (
    ImageSample,
    blue_ink_ratio,
    compute_image_stats,
    dark_pixel_ratio,
    image_stats_from_sample,
    white_pixel_ratio,
)
from pipeline.utils import average_hash, hamming


class TestUniformImages:
    """Flat images have no Laplacian response and a uniform border."""

    @pytest.mark.parametrize("value", [0, 37, 128, 255])
    def test_flat_gray(self, value):
        stats = image_stats_from_sample(ImageSample.from_array(np.full((12, 9), value)))
        assert stats.blur == pytest.approx(0.0)
        assert stats.background_std_dev == pytest.approx(0.0)
        assert stats.contrast == pytest.approx(0.0)
        assert stats.brightness == pytest.approx(value)

    def test_flat_color_from_png(self):
        stats = compute_image_stats(png_bytes(np.full((20, 30, 3), (10, 200, 90))))
        assert (stats.width, stats.height) == (30, 20)
        assert stats.blur == pytest.approx(0.0)
        assert stats.background_std_dev == pytest.approx(0.0)


class TestColorBalance:

    def test_forced_channels(self):
        pixels = np.zeros((8, 8, 3), dtype=np.uint8)
        pixels[:, :] = (200, 100, 50)
        stats = image_stats_from_sample(ImageSample.from_array(pixels))
        assert stats.r_mean == pytest.approx(200)
        assert stats.g_mean == pytest.approx(100)
        assert stats.b_mean == pytest.approx(50)
        assert stats.rgb_balance_delta == pytest.approx(150)

    def test_forced_channels_survive_png_decode(self):
        pixels = np.zeros((8, 8, 3), dtype=np.uint8)
        pixels[:, :] = (200, 100, 50)
        stats = compute_image_stats(png_bytes(pixels))
        assert stats.rgb_balance_delta == pytest.approx(150)

    def test_single_channel_collapses_to_brightness(self):
        rng = np.random.default_rng(3)
        stats = compute_image_stats(png_bytes(rng.integers(0, 256, size=(16, 16), dtype=np.uint8)))
        assert stats.rgb_balance_delta == 0
        assert stats.r_mean == stats.g_mean == stats.b_mean == stats.brightness

    def test_two_channel_array_collapses_to_brightness(self):
        pixels = np.zeros((5, 5, 2), dtype=np.uint8)
        pixels[:, :, 0] = 90
        stats = image_stats_from_sample(ImageSample.from_array(pixels))
        assert stats.rgb_balance_delta == 0
        assert stats.r_mean == pytest.approx(90)

    def test_alpha_is_dropped(self):
        pixels = np.zeros((6, 6, 4), dtype=np.uint8)
        pixels[:, :] = (10, 20, 30, 128)
        sample = ImageSample.from_image(Image.fromarray(pixels))
        assert sample.channels == 3


class TestSharpnessAndBorder:

    def test_laplacian_variance_of_single_spike(self):
        pixels = np.zeros((5, 5), dtype=np.uint8)
        pixels[2, 2] = 255
        stats = image_stats_from_sample(ImageSample.from_array(pixels))
        # Interior responses: -1020 once, 255 four times, 0 four times
        assert stats.blur == pytest.approx((1020 ** 2 + 4 * 255 ** 2) / 9)

    def test_blurring_lowers_sharpness(self):
        sharp = checkerboard(64)
        blurred = cv2.GaussianBlur(sharp, (9, 9), 3)
        sharp_stats = image_stats_from_sample(ImageSample.from_array(sharp))
        blurred_stats = image_stats_from_sample(ImageSample.from_array(blurred))
        assert sharp_stats.blur > blurred_stats.blur >= 0

    def test_no_interior_means_zero_blur(self):
        stats = image_stats_from_sample(ImageSample.from_array(checkerboard(2)))
        assert stats.blur == 0.0

    def test_border_ring_only(self):
        pixels = np.full((10, 10), 255, dtype=np.uint8)
        pixels[0, :] = pixels[-1, :] = pixels[:, 0] = pixels[:, -1] = 0
        stats = image_stats_from_sample(ImageSample.from_array(pixels))
        assert stats.background_std_dev == pytest.approx(0.0)
        assert stats.contrast > 0

    def test_border_std_counts_corners_twice(self):
        pixels = np.zeros((4, 4), dtype=np.uint8)
        pixels[0, :] = 255
        stats = image_stats_from_sample(ImageSample.from_array(pixels))
        # 6 of the 16 ring samples are 255
        share = 6 / 16
        assert stats.background_std_dev == pytest.approx(255 * math.sqrt(share * (1 - share)))

    def test_non_negative_on_noise(self):
        rng = np.random.default_rng(7)
        stats = image_stats_from_sample(
            ImageSample.from_array(rng.integers(0, 256, size=(40, 30, 3), dtype=np.uint8))
        )
        assert stats.contrast >= 0
        assert stats.blur >= 0
        assert stats.rgb_balance_delta >= 0
        assert all(math.isfinite(v) for v in stats.as_dict().values())


class TestDegenerateInput:

    def test_zero_height_gives_zero_stats(self):
        sample = ImageSample(
            luminance=np.zeros((0, 4), dtype=np.uint8),
            color=np.zeros((0, 4, 3), dtype=np.uint8),
        )
        stats = image_stats_from_sample(sample)
        assert stats.width == 4
        assert stats.height == 0
        assert stats.brightness == 0.0
        assert stats.blur == 0.0

    def test_garbage_bytes_raise_decode_error(self):
        with pytest.raises(DecodeError):
            compute_image_stats(b"not an image")

    def test_empty_bytes_raise_decode_error(self):
        with pytest.raises(DecodeError):
            compute_image_stats(b"")


class TestPixelRatios:

    def test_white_and_dark_ratios(self):
        pixels = np.full((10, 10), 255, dtype=np.uint8)
        pixels[:2, :] = 0
        sample = ImageSample.from_array(pixels)
        assert white_pixel_ratio(sample) == pytest.approx(0.8)
        assert dark_pixel_ratio(sample) == pytest.approx(0.2)

    def test_blue_ink_ignores_white(self):
        pixels = np.full((10, 10, 3), 255, dtype=np.uint8)
        pixels[0, :5] = (40, 40, 200)
        assert blue_ink_ratio(ImageSample.from_array(pixels)) == pytest.approx(0.05)

    def test_blue_ink_needs_color(self):
        assert blue_ink_ratio(ImageSample.from_array(np.zeros((4, 4)))) == 0.0


class TestAverageHash:

    def test_identical_images_hash_equal(self):
        sample = ImageSample.from_array(checkerboard(64))
        assert hamming(average_hash(sample), average_hash(sample)) == 0

    def test_hash_length(self):
        rng = np.random.default_rng(1)
        sample = ImageSample.from_array(rng.integers(0, 256, size=(50, 70), dtype=np.uint8))
        assert len(average_hash(sample)) == 32 * 32

    def test_hamming_counts_length_difference(self):
        assert hamming("1010", "1000") == 1
        assert hamming("10", "1011") == 2


class TestHighBitDepth:
    """16-bit samples are scaled to 8 bits, not clipped"""

    def test_sixteen_bit_png(self):
        buffer = io.BytesIO()
        Image.fromarray(np.full((20, 20), 32768, dtype=np.uint16)).save(buffer, "PNG")
        stats = compute_image_stats(buffer.getvalue())
        assert stats.brightness == pytest.approx(128)

    def test_sixteen_bit_gradient_keeps_contrast(self):
        ramp = np.tile(np.linspace(0, 65535, 64).astype(np.uint16), (64, 1))
        buffer = io.BytesIO()
        Image.fromarray(ramp).save(buffer, "PNG")
        stats = compute_image_stats(buffer.getvalue())
        assert 100 < stats.brightness < 155
        assert stats.contrast > 50

    def test_thirty_two_bit_image(self):
        img = Image.fromarray(np.full((10, 10), 32768, dtype=np.int32))
        sample = ImageSample.from_image(img)
        assert sample.luminance.dtype == np.uint8
        assert int(sample.luminance[0, 0]) == 128

    def test_eight_bit_range_in_i_mode_is_kept(self):
        img = Image.fromarray(np.full((10, 10), 200, dtype=np.int32))
        assert int(ImageSample.from_image(img).luminance[0, 0]) == 200
