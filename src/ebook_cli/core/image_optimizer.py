"""Image resize and re-encode using Pillow."""

import io
import logging
from dataclasses import dataclass, replace

from PIL import Image, UnidentifiedImageError

from ebook_cli.errors import ImageProcessingError
from ebook_cli.models.book import ImageData

# Pillow logs every plugin it tries at DEBUG
logging.getLogger("PIL").setLevel(logging.ERROR)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizationOptions:
    """Options for image optimization."""

    max_width: int | None = 1920
    max_height: int | None = 1920
    quality: int = 85  # 0-100, used by lossy encoders
    preserve_aspect_ratio: bool = True

    def with_max_dimensions(self, width: int, height: int) -> "OptimizationOptions":
        return replace(self, max_width=width, max_height=height)

    def with_quality(self, quality: int) -> "OptimizationOptions":
        return replace(self, quality=max(0, min(quality, 100)))

    def no_resize(self) -> "OptimizationOptions":
        return replace(self, max_width=None, max_height=None)


class ImageOptimizer:
    """Resize and recompress a single image."""

    def __init__(self, options: OptimizationOptions | None = None):
        self.options = options or OptimizationOptions()

    def optimize(self, image_data: bytes, mime_type: str) -> bytes:
        """Return re-encoded image bytes.

        Raises:
            ImageProcessingError: If the image cannot be decoded or encoded
        """
        try:
            with Image.open(io.BytesIO(image_data)) as img:
                img.load()
                resized = self._resize_if_needed(img)
                return self._encode(resized, mime_type)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImageProcessingError(str(e)) from e

    def _resize_if_needed(self, img: Image.Image) -> Image.Image:
        width, height = img.size
        max_width = self.options.max_width or width
        max_height = self.options.max_height or height

        if width <= max_width and height <= max_height:
            return img

        if self.options.preserve_aspect_ratio:
            new_size = self.calculate_aspect_ratio_dimensions(
                width, height, max_width, max_height
            )
        else:
            new_size = (min(max_width, width), min(max_height, height))

        return img.resize(new_size, Image.Resampling.LANCZOS)

    @staticmethod
    def calculate_aspect_ratio_dimensions(
        width: int, height: int, max_width: int, max_height: int
    ) -> tuple[int, int]:
        ratio = min(max_width / width, max_height / height)
        if ratio >= 1.0:
            return width, height
        return max(1, int(width * ratio)), max(1, int(height * ratio))

    def _encode(self, img: Image.Image, mime_type: str) -> bytes:
        buffer = io.BytesIO()

        if mime_type in ("image/jpeg", "image/jpg"):
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(buffer, "JPEG", quality=self.options.quality, optimize=True)
        elif mime_type == "image/webp":
            img.save(buffer, "WEBP", quality=self.options.quality)
        else:
            # PNG for PNG and for anything we do not encode natively
            img.save(buffer, "PNG", optimize=True)

        return buffer.getvalue()

    @staticmethod
    def calculate_savings(original_size: int, optimized_size: int) -> float:
        """Percentage saved relative to the original size."""
        if original_size == 0:
            return 0.0
        return (original_size - optimized_size) / original_size * 100.0


def optimize_images(
    images: list[ImageData], options: OptimizationOptions | None = None
) -> int:
    """Optimize images in place and return the number of bytes saved.

    An image is replaced only when the result is strictly smaller. Images
    that fail to decode or encode are skipped.
    """
    optimizer = ImageOptimizer(options)
    total_savings = 0

    for image in images:
        original_size = len(image.data)
        try:
            optimized = optimizer.optimize(image.data, image.mime_type)
        except ImageProcessingError as e:
            log.warning("Skipping image %s: %s", image.name, e.message)
            continue

        if len(optimized) < original_size:
            total_savings += original_size - len(optimized)
            image.data = optimized

    log.info("Optimized %d images, saved %d bytes", len(images), total_savings)
    return total_savings
