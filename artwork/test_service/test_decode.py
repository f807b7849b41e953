"""
Tests for service/decode.py
"""

import io

from django.test import SimpleTestCase
from PIL import Image

from artwork.service.decode import (
    ContentTypeDecoder,
    GenericDecoder,
    decode_image,
)
from artwork.service.download import FetchedImage
from artwork.service.errors import DecodeError


def image_bytes(pil_format, size=(8, 8), color=(200, 10, 10)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, pil_format)
    return buffer.getvalue()


class DecodeChainTest(SimpleTestCase):
    """Tests for the ordered decoder fallback chain"""

    def test_content_type_decoder_wins(self):
        fetched = FetchedImage('https://a.mzstatic.com/x', image_bytes('JPEG'), 'image/jpeg')

        decoded = decode_image(fetched)

        self.assertEqual(decoded.format, 'jpg')
        self.assertEqual(decoded.image.size, (8, 8))

    def test_wrong_content_type_falls_back_to_generic(self):
        fetched = FetchedImage('https://a.mzstatic.com/x', image_bytes('PNG'), 'image/jpeg')
        logs = []

        decoded = decode_image(fetched, logger=logs.append)

        self.assertEqual(decoded.format, 'png')
        self.assertTrue(any('generic' in log for log in logs))

    def test_webp_saved_as_png(self):
        fetched = FetchedImage('https://a.mzstatic.com/x', image_bytes('WEBP'), None)

        decoded = decode_image(fetched)

        self.assertEqual(decoded.format, 'png')

    def test_webp_content_type_saved_as_png(self):
        fetched = FetchedImage('https://a.mzstatic.com/x', image_bytes('WEBP'), 'image/webp')

        decoded = decode_image(fetched)

        self.assertEqual(decoded.format, 'png')

    def test_extension_guess_is_last_resort(self):
        """A payload outside the generic set decodes via the URL suffix"""
        fetched = FetchedImage('https://a.mzstatic.com/art.jpg', image_bytes('TIFF'), None)

        decoded = decode_image(fetched)

        self.assertEqual(decoded.format, 'jpg')

    def test_all_decoders_fail(self):
        fetched = FetchedImage('https://a.mzstatic.com/broken.jpg', b'not an image', 'image/jpeg')

        with self.assertRaises(DecodeError) as ctx:
            decode_image(fetched)

        self.assertEqual(ctx.exception.url, 'https://a.mzstatic.com/broken.jpg')
        self.assertIn('https://a.mzstatic.com/broken.jpg', str(ctx.exception))

    def test_custom_chain(self):
        fetched = FetchedImage('https://a.mzstatic.com/x', image_bytes('PNG'), 'image/png')

        with self.assertRaises(DecodeError):
            decode_image(fetched, decoders=())

        self.assertEqual(decode_image(fetched, decoders=(GenericDecoder(),)).format, 'png')

    def test_content_type_decoder_ignores_unknown_types(self):
        decoder = ContentTypeDecoder()
        self.assertFalse(decoder.accepts(FetchedImage('u', b'', 'application/octet-stream')))
        self.assertTrue(decoder.accepts(FetchedImage('u', b'', 'image/PNG')))
