"""Image preprocessing for the on-device classifier."""

import io
from typing import Literal

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

Normalization = Literal["minus_one_to_one", "zero_to_one"]
Layout = Literal["nhwc", "nchw"]

# Mean/std for mapping 0..255 to [-1, 1]
IMAGE_MEAN = 127.5
IMAGE_STD = 127.5


def load_rgb_image(image_data: bytes) -> Image.Image:
    """
    Decode image bytes into an upright RGB image.

    Raises:
        ValueError: If the bytes are not a decodable image
    """
    if not image_data:
        raise ValueError("Empty image data")
    try:
        image = Image.open(io.BytesIO(image_data))
        image = ImageOps.exif_transpose(image)
        return image.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Could not decode image: {e}") from e


def to_input_tensor(
    image: Image.Image,
    width: int,
    height: int,
    *,
    normalization: Normalization = "minus_one_to_one",
    layout: Layout = "nhwc",
) -> np.ndarray:
    """
    Resize and normalize an RGB image into a batch-of-one float32 tensor.

    Returns:
        Array of shape (1, H, W, 3) for "nhwc" or (1, 3, H, W) for "nchw"
    """
    resized = image.resize((width, height), Image.Resampling.BILINEAR)
    pixels = np.asarray(resized, dtype=np.float32)

    if normalization == "zero_to_one":
        pixels = pixels / 255.0
    else:
        pixels = (pixels - IMAGE_MEAN) / IMAGE_STD

    if layout == "nchw":
        pixels = pixels.transpose(2, 0, 1)

    return pixels[None].astype(np.float32)
