"""Screenshot preprocessing and raster transforms for OCR."""

import io

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import (
    WORKING_WIDTH, DETECTION_THRESHOLD, CHAR_CROP_WIDTH, CHAR_CROP_THRESHOLD,
    TIME_CROP_WIDTH,
)
from .models import ImageLayers, Rect

_SHARPEN_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)


class ImagePreprocessor:
    """Builds the detection and text layers for a schedule screenshot."""

    def __init__(self, working_width: int = WORKING_WIDTH, threshold: int = DETECTION_THRESHOLD):
        """
        Initialize the preprocessor.

        Args:
            working_width: Images wider than this are shrunk to it (never upscaled)
            threshold: Gray level at or above which detection pixels become white
        """
        self.working_width = working_width
        self.threshold = threshold

    def process(self, data: bytes) -> ImageLayers:
        """
        Produce the two derived layers from raw image bytes.

        The detection layer is hard-thresholded for finding ink boundaries;
        the text layer keeps mid-tones and is sharpened for recognition.

        Args:
            data: Encoded image (PNG, JPEG, ...)

        Returns:
            ImageLayers with grayscale uint8 arrays of identical size

        Raises:
            ValueError: If the bytes cannot be decoded as an image
        """
        base = normalize(to_grayscale(resize_to_width(load_image(data), self.working_width)))
        detection = threshold(base, self.threshold)
        text = sharpen(base)
        return ImageLayers(detection=detection, text=text)


def load_image(data: bytes) -> np.ndarray:
    """
    Decode image bytes into an RGB array, applying EXIF orientation.

    Raises:
        ValueError: If the data is not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            return np.array(img.convert('RGB'))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValueError(f"Error decoding image: {e}")


def to_grayscale(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def resize_to_width(image: np.ndarray, width: int, allow_upscale: bool = False) -> np.ndarray:
    """
    Resize to the given width, maintaining aspect ratio.

    Args:
        image: Input image
        width: Target width
        allow_upscale: When False, narrower images are returned unchanged

    Returns:
        Resized image
    """
    h, w = image.shape[:2]
    if w == 0 or h == 0 or w == width:
        return image
    if w < width and not allow_upscale:
        return image

    scale = width / w
    new_h = max(1, int(round(h * scale)))
    interpolation = cv2.INTER_AREA if scale < 1 else cv2.INTER_CUBIC
    return cv2.resize(image, (width, new_h), interpolation=interpolation)


def normalize(image: np.ndarray) -> np.ndarray:
    """Stretch gray levels to the full 0-255 range."""
    if image.size == 0 or int(image.min()) == int(image.max()):
        return image
    return cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX)


def sharpen(image: np.ndarray) -> np.ndarray:
    return cv2.filter2D(image, -1, _SHARPEN_KERNEL)


def threshold(image: np.ndarray, level: int) -> np.ndarray:
    """Binarize: pixels >= level become white, everything else black."""
    _, binary = cv2.threshold(image, level - 1, 255, cv2.THRESH_BINARY)
    return binary


def crop(image: np.ndarray, rect: Rect) -> np.ndarray:
    """
    Cut a rectangle out of an image, clamped to its bounds.

    Always returns at least a 1x1 region so downstream OCR calls never
    receive an empty array.
    """
    h, w = image.shape[:2]
    if h == 0 or w == 0:
        return image
    left = min(max(0, rect.left), w - 1)
    top = min(max(0, rect.top), h - 1)
    right = min(w, left + max(1, rect.width))
    bottom = min(h, top + max(1, rect.height))
    return image[top:bottom, left:right]


def enhance_crop_for_ocr(image: np.ndarray) -> np.ndarray:
    """Upscale, normalize and hard-threshold a character crop (day digits, weekday)."""
    resized = resize_to_width(to_grayscale(image), CHAR_CROP_WIDTH, allow_upscale=True)
    return threshold(normalize(resized), CHAR_CROP_THRESHOLD)


def enhance_crop_for_time_ocr(image: np.ndarray) -> np.ndarray:
    # time glyphs are thin and gray; a hard threshold erases them
    resized = resize_to_width(to_grayscale(image), TIME_CROP_WIDTH, allow_upscale=True)
    return sharpen(normalize(resized))
