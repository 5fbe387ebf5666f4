"""
Tests for image optimization.

Tests cover:
- Option builders
- Aspect-ratio preserving downscale
- Re-encoding per MIME type
- Batch optimization keeps only smaller results
"""

import io

import pytest
from PIL import Image

from conftest import make_image_bytes
from ebook_cli.core.image_optimizer import ImageOptimizer, OptimizationOptions, optimize_images
from ebook_cli.errors import ImageProcessingError
from ebook_cli.models.book import ImageData


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


class TestOptions:
    def test_defaults(self):
        options = OptimizationOptions()
        assert (options.max_width, options.max_height) == (1920, 1920)
        assert options.quality == 85
        assert options.preserve_aspect_ratio is True

    def test_builders(self):
        options = OptimizationOptions().with_max_dimensions(100, 200).with_quality(150)
        assert (options.max_width, options.max_height) == (100, 200)
        assert options.quality == 100
        assert OptimizationOptions().no_resize().max_width is None


class TestImageOptimizer:
    """Single image resize and encode"""

    def test_aspect_ratio_dimensions(self):
        calc = ImageOptimizer.calculate_aspect_ratio_dimensions
        assert calc(800, 400, 100, 100) == (100, 50)
        assert calc(400, 800, 100, 100) == (50, 100)
        assert calc(50, 50, 100, 100) == (50, 50)

    def test_downscale_png(self):
        optimizer = ImageOptimizer(OptimizationOptions().with_max_dimensions(200, 200))
        result = optimizer.optimize(make_image_bytes((800, 400)), "image/png")

        assert image_size(result) == (200, 100)

    def test_small_image_not_resized(self):
        optimizer = ImageOptimizer()
        result = optimizer.optimize(make_image_bytes((64, 48)), "image/png")
        assert image_size(result) == (64, 48)

    def test_jpeg_output(self):
        optimizer = ImageOptimizer(OptimizationOptions().with_quality(40))
        result = optimizer.optimize(make_image_bytes((120, 80), "PNG"), "image/jpeg")

        with Image.open(io.BytesIO(result)) as img:
            assert img.format == "JPEG"

    def test_no_resize_keeps_dimensions(self):
        optimizer = ImageOptimizer(OptimizationOptions().no_resize())
        result = optimizer.optimize(make_image_bytes((3000, 10)), "image/png")
        assert image_size(result) == (3000, 10)

    def test_undecodable_image(self):
        with pytest.raises(ImageProcessingError):
            ImageOptimizer().optimize(b"not an image", "image/png")

    def test_calculate_savings(self):
        assert ImageOptimizer.calculate_savings(200, 50) == 75.0
        assert ImageOptimizer.calculate_savings(0, 0) == 0.0


class TestOptimizeImages:
    """Batch optimization in place"""

    def test_replaces_only_when_smaller(self):
        large = make_image_bytes((800, 400))
        images = [
            ImageData(name="big.png", mime_type="image/png", data=large),
            ImageData(name="broken.png", mime_type="image/png", data=b"garbage"),
        ]

        saved = optimize_images(images, OptimizationOptions().with_max_dimensions(50, 50))

        assert saved == len(large) - len(images[0].data)
        assert saved > 0
        assert images[1].data == b"garbage"

    def test_empty_list(self):
        assert optimize_images([]) == 0
