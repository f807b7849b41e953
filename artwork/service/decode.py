"""
Image decoding with an ordered fallback chain.

Decoders are tried in priority order: declared content type, generic
multi-format detection, WebP, and finally a guess from the URL's extension.
The first decoder that both accepts the payload and decodes it wins.
"""
import io
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from artwork.service.errors import DecodeError

# Pillow format name and the extension the decoded image is saved under.
# WebP is not in the store's allow-list and is normalized to PNG.
CONTENT_TYPE_FORMATS = [
    ('jpeg', 'JPEG', 'jpg'),
    ('jpg', 'JPEG', 'jpg'),
    ('png', 'PNG', 'png'),
    ('gif', 'GIF', 'gif'),
    ('webp', 'WEBP', 'png'),
]

GENERIC_FORMATS = {'JPEG': 'jpg', 'PNG': 'png', 'GIF': 'gif'}

EXTENSION_FORMATS = {
    'jpg': 'jpg',
    'jpeg': 'jpeg',
    'png': 'png',
    'gif': 'gif',
    'webp': 'png',
}


@dataclass
class DecodedImage:
    """A decoded image and the extension it should be saved under"""
    image: Image.Image
    format: str
    url: str


def _open(data, formats=None):
    image = Image.open(io.BytesIO(data), formats=formats)
    image.load()
    return image


class ImageDecoder:
    """Base decoder; subclasses claim payloads they can attempt."""

    name = 'base'

    def accepts(self, fetched):
        return True

    def decode(self, fetched):
        raise NotImplementedError


class ContentTypeDecoder(ImageDecoder):
    """Trust the transport-reported content type."""

    name = 'content-type'

    def _match(self, content_type):
        content_type = (content_type or '').lower()
        for needle, pil_format, extension in CONTENT_TYPE_FORMATS:
            if needle in content_type:
                return pil_format, extension
        return None

    def accepts(self, fetched):
        return self._match(fetched.content_type) is not None

    def decode(self, fetched):
        pil_format, extension = self._match(fetched.content_type)
        return DecodedImage(_open(fetched.data, [pil_format]), extension, fetched.url)


class GenericDecoder(ImageDecoder):
    """Auto-detect among the standard raster formats."""

    name = 'generic'

    def decode(self, fetched):
        image = _open(fetched.data, list(GENERIC_FORMATS))
        return DecodedImage(image, GENERIC_FORMATS[image.format], fetched.url)


class WebPDecoder(ImageDecoder):
    """WebP is outside the generic set; saved as PNG."""

    name = 'webp'

    def decode(self, fetched):
        return DecodedImage(_open(fetched.data, ['WEBP']), 'png', fetched.url)


class ExtensionDecoder(ImageDecoder):
    """Last resort: infer the format from the URL path suffix."""

    name = 'extension'

    def _extension(self, url):
        return PurePosixPath(urlparse(url).path).suffix.lstrip('.').lower()

    def accepts(self, fetched):
        return self._extension(fetched.url) in EXTENSION_FORMATS

    def decode(self, fetched):
        extension = EXTENSION_FORMATS[self._extension(fetched.url)]
        return DecodedImage(_open(fetched.data), extension, fetched.url)


DEFAULT_DECODERS = (
    ContentTypeDecoder(),
    GenericDecoder(),
    WebPDecoder(),
    ExtensionDecoder(),
)


def decode_image(fetched, decoders=DEFAULT_DECODERS, logger=None):
    """
    Decode a fetched image with the first decoder that succeeds.

    Args:
        fetched: FetchedImage
        decoders: Decoders in priority order
        logger: Optional callable(str) for logging

    Returns:
        DecodedImage

    Raises:
        DecodeError: If no decoder can decode the payload
    """
    def log(message):
        if logger:
            logger(message)

    failures = []
    for decoder in decoders:
        if not decoder.accepts(fetched):
            continue
        try:
            decoded = decoder.decode(fetched)
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
            failures.append(f'{decoder.name}: {e}')
            continue
        log(f'Decoded {fetched.url} with {decoder.name} decoder as {decoded.format}')
        return decoded

    detail = '; '.join(failures) or 'no decoder accepted the payload'
    raise DecodeError(fetched.url, f'Failed to decode image from {fetched.url}: {detail}')
