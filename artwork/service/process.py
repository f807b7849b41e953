"""
Image compositing, resizing and encoding.
"""
import io

from PIL import Image

from artwork.service.errors import GenerationFailedError, UnsupportedLayoutError

RESAMPLE = Image.Resampling.LANCZOS

PIL_SAVE_FORMATS = {
    'jpg': 'JPEG',
    'jpeg': 'JPEG',
    'png': 'PNG',
    'gif': 'GIF',
}


def square_layout(count, size=500):
    """
    Cell boxes (left, top, right, bottom) for a square of the given side.

    2 images: two vertical halves.
    3 images: full-width top band, two bottom quarters.
    4 images: four quadrants.

    Raises:
        UnsupportedLayoutError: For any other count
    """
    half = size // 2
    layouts = {
        2: [
            (0, 0, half, size),
            (half, 0, size, size),
        ],
        3: [
            (0, 0, size, half),
            (0, half, half, size),
            (half, half, size, size),
        ],
        4: [
            (0, 0, half, half),
            (half, 0, size, half),
            (0, half, half, size),
            (half, half, size, size),
        ],
    }
    if count not in layouts:
        raise UnsupportedLayoutError(f'Unsupported number of images: {count}')
    return layouts[count]


def fill_cell(image, width, height):
    """
    Scale an image to cover width x height, then center-crop the overflow.
    """
    src_aspect = image.width / image.height
    dst_aspect = width / height

    if src_aspect > dst_aspect:
        # Wider than the cell: match height
        new_height = height
        new_width = max(width, round(height * src_aspect))
    else:
        # Taller than the cell: match width
        new_width = width
        new_height = max(height, round(width / src_aspect))

    resized = image.resize((new_width, new_height), RESAMPLE)
    dx = (new_width - width) // 2
    dy = (new_height - height) // 2
    return resized.crop((dx, dy, dx + width, dy + height))


def compose_square(images, size=500):
    """
    Composite 2-4 images into a size x size square.

    Args:
        images: PIL images in layout order
        size: Side length of the square canvas

    Returns:
        PIL.Image.Image in RGB mode
    """
    boxes = square_layout(len(images), size)
    canvas = Image.new('RGB', (size, size))

    for image, (left, top, right, bottom) in zip(images, boxes):
        cell = fill_cell(image.convert('RGB'), right - left, bottom - top)
        canvas.paste(cell, (left, top))

    return canvas


def resize_square(image, size=1024):
    """Resize to size x size with a Lanczos filter."""
    return image.resize((size, size), RESAMPLE)


def encode_image(image, fmt, quality=95):
    """
    Encode an image to bytes.

    Args:
        image: PIL image
        fmt: Target extension (jpg, jpeg, png or gif)
        quality: JPEG quality

    Returns:
        bytes
    """
    pil_format = PIL_SAVE_FORMATS.get(fmt)
    if pil_format is None:
        raise GenerationFailedError(f'Unsupported image format: {fmt}')

    buffer = io.BytesIO()
    if pil_format == 'JPEG':
        if image.mode != 'RGB':
            image = image.convert('RGB')
        image.save(buffer, pil_format, quality=quality)
    else:
        image.save(buffer, pil_format)
    return buffer.getvalue()
