"""
Tests for artwork/views.py

Drives the HTTP surface through the Django test client with a context
rooted in a temporary cache directory.
"""

import json
import tempfile
import threading
from pathlib import Path
from unittest.mock import patch

from django.test import SimpleTestCase

from artwork.service.config import ArtworkConfig
from artwork.service.constants import ArtifactKind
from artwork.service.context import ArtworkContext
from artwork.service.errors import TranscodeError
from artwork.service.keys import derive_composite_key, derive_key

MANIFEST_URL = 'https://mvod.itunes.apple.com/itunes-assets/abc/master.m3u8'
IMAGE_URLS = [
    'https://is1-ssl.mzstatic.com/image/thumb/1.jpg',
    'https://is1-ssl.mzstatic.com/image/thumb/2.jpg',
    'https://is1-ssl.mzstatic.com/image/thumb/3.jpg',
]
IMAGE_URL = 'https://is1-ssl.mzstatic.com/image/thumb/art.png'


class ArtworkViewTestCase(SimpleTestCase):

    config_overrides = {}

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        options = {'wait_timeout': 5, **self.config_overrides}
        config = ArtworkConfig(cache_dir=Path(self.temp_dir.name), **options)
        self.context = ArtworkContext.build(config)
        self.store = self.context.store
        self.store.ensure_directories()

        self.context_patcher = patch('artwork.views.get_context', return_value=self.context)
        self.context_patcher.start()
        self.generator_patcher = patch('artwork.operations.run_generator')
        self.mock_generator = self.generator_patcher.start()

    def tearDown(self):
        self.generator_patcher.stop()
        self.context_patcher.stop()
        self.context.orchestrator.shutdown(wait=True)
        self.temp_dir.cleanup()

    def commit_on_generate(self, data=b'data', ext=None):
        def generate(kind, source, key, store, config, logger=None):
            return store.commit(key, kind, data, ext)
        self.mock_generator.side_effect = generate


class GenerateClipViewTest(ArtworkViewTestCase):
    """Tests for GET /artwork/generate"""

    def test_missing_url(self):
        response = self.client.get('/artwork/generate')
        self.assertEqual(response.status_code, 400)

    def test_disallowed_domain(self):
        response = self.client.get('/artwork/generate', {'url': 'https://evil.example.com/master.m3u8'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()['error'], 'URL must be from *.apple.com or *.mzstatic.com domain'
        )
        self.mock_generator.assert_not_called()

    def test_cached(self):
        key = derive_key(MANIFEST_URL)
        self.store.commit(key, ArtifactKind.ANIMATED_CLIP, b'GIF89a', 'gif')

        response = self.client.get('/artwork/generate', {'url': MANIFEST_URL})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'key': key,
            'message': 'Animated artwork already exists',
            'url': f'http://testserver/artwork/{key}.gif',
        })
        self.mock_generator.assert_not_called()

    def test_generated(self):
        self.commit_on_generate(b'GIF89a', 'gif')

        response = self.client.get('/artwork/generate', {'url': MANIFEST_URL})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Animated artwork has been generated')
        self.assertTrue(self.store.exists(derive_key(MANIFEST_URL), ArtifactKind.ANIMATED_CLIP))

    def test_failed(self):
        self.mock_generator.side_effect = TranscodeError('ffmpeg failed with code 1')

        response = self.client.get('/artwork/generate', {'url': MANIFEST_URL})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Failed to generate animated artwork'})

    def test_post_not_allowed(self):
        response = self.client.post('/artwork/generate')
        self.assertEqual(response.status_code, 405)


class PendingViewTest(ArtworkViewTestCase):
    """Tests for the bounded wait"""

    config_overrides = {'wait_timeout': 0.05, 'timeout_status': 202}

    def test_pending_then_cached(self):
        gate = threading.Event()

        def slow_generate(kind, source, key, store, config, logger=None):
            gate.wait(5)
            return store.commit(key, kind, b'GIF89a', 'gif')

        self.mock_generator.side_effect = slow_generate

        response = self.client.get('/artwork/generate', {'url': MANIFEST_URL})

        self.assertEqual(response.status_code, 202)
        self.assertEqual(
            response.json()['message'],
            'Animated artwork is still being processed. Please check back later.',
        )

        key = derive_key(MANIFEST_URL)
        self.assertTrue(self.context.orchestrator.in_flight(key))
        gate.set()
        self.context.orchestrator.shutdown(wait=True)

        response = self.client.get('/artwork/generate', {'url': MANIFEST_URL})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Animated artwork already exists')


class PublishedUriViewTest(ArtworkViewTestCase):
    """Tests for URLs built from the published base URI"""

    config_overrides = {'published_uri': 'https://art.example.com'}

    def test_url_uses_published_uri(self):
        key = derive_key(MANIFEST_URL)
        self.store.commit(key, ArtifactKind.ANIMATED_CLIP, b'GIF89a', 'gif')

        response = self.client.get('/artwork/generate', {'url': MANIFEST_URL})

        self.assertEqual(response.json()['url'], f'https://art.example.com/artwork/{key}.gif')


class ClipFileViewTest(ArtworkViewTestCase):
    """Tests for GET /artwork/{key}.{gif|webp}"""

    def test_serves_clip_with_cache_headers(self):
        key = derive_key(MANIFEST_URL)
        self.store.commit(key, ArtifactKind.ANIMATED_CLIP, b'GIF89a', 'gif')

        response = self.client.get(f'/artwork/{key}.gif')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/gif')
        self.assertEqual(response.content, b'GIF89a')
        self.assertIn('public', response['Cache-Control'])
        self.assertIn('max-age=604800', response['Cache-Control'])
        self.assertTrue(response.has_header('Expires'))

    def test_missing(self):
        response = self.client.get(f'/artwork/{derive_key("nothing")}.gif')
        self.assertEqual(response.status_code, 404)

    def test_wrong_extension(self):
        key = derive_key(MANIFEST_URL)
        self.store.commit(key, ArtifactKind.ANIMATED_CLIP, b'GIF89a', 'gif')

        response = self.client.get(f'/artwork/{key}.webp')

        self.assertEqual(response.status_code, 404)

    def test_serves_requested_format_when_both_exist(self):
        key = derive_key(MANIFEST_URL)
        self.store.commit(key, ArtifactKind.ANIMATED_CLIP, b'GIF89a', 'gif')
        self.store.commit(key, ArtifactKind.ANIMATED_CLIP, b'RIFFwebp', 'webp')

        gif = self.client.get(f'/artwork/{key}.gif')
        webp = self.client.get(f'/artwork/{key}.webp')

        self.assertEqual(gif.status_code, 200)
        self.assertEqual(gif['Content-Type'], 'image/gif')
        self.assertEqual(webp.status_code, 200)
        self.assertEqual(webp['Content-Type'], 'image/webp')
        self.assertEqual(webp.content, b'RIFFwebp')

    def test_temp_file_is_not_served(self):
        key = derive_key(MANIFEST_URL)
        self.store.temp_path_for(key, ArtifactKind.ANIMATED_CLIP, 'gif').write_bytes(b'partial')

        response = self.client.get(f'/artwork/{key}.gif')

        self.assertEqual(response.status_code, 404)


class ArtistSquareViewTest(ArtworkViewTestCase):
    """Tests for /artwork/artist-square"""

    def post(self, body):
        return self.client.post(
            '/artwork/artist-square', data=json.dumps(body), content_type='application/json'
        )

    def test_generated(self):
        self.commit_on_generate(b'jpeg', 'jpg')

        response = self.post({'imageUrls': IMAGE_URLS})

        key = derive_composite_key(IMAGE_URLS)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'key': key,
            'message': 'Artist square has been generated',
            'url': f'http://testserver/artwork/artist-square/{key}.jpg',
        })

    def test_order_independent_cache_hit(self):
        self.commit_on_generate(b'jpeg', 'jpg')
        self.post({'imageUrls': IMAGE_URLS})

        response = self.post({'imageUrls': list(reversed(IMAGE_URLS))})

        self.assertEqual(response.json()['message'], 'Artist square already exists')
        self.assertEqual(self.mock_generator.call_count, 1)

    def test_invalid_json(self):
        response = self.client.post(
            '/artwork/artist-square', data='{not json', content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_missing_image_urls(self):
        self.assertEqual(self.post({}).status_code, 400)

    def test_too_few_images(self):
        response = self.post({'imageUrls': IMAGE_URLS[:1]})
        self.assertEqual(response.status_code, 400)

    def test_disallowed_image_url(self):
        response = self.post({'imageUrls': IMAGE_URLS[:1] + ['https://evil.example.com/x.jpg']})

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()['error'].startswith('Invalid URL: https://evil.example.com/x.jpg.'))

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get('/artwork/artist-square').status_code, 405)

    def test_serves_square(self):
        key = derive_composite_key(IMAGE_URLS)
        self.store.commit(key, ArtifactKind.COMPOSITE_SQUARE, b'jpeg', 'jpg')

        response = self.client.get(f'/artwork/artist-square/{key}.jpg')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/jpeg')

    def test_missing_square(self):
        response = self.client.get(f'/artwork/artist-square/{derive_key("x")}.jpg')
        self.assertEqual(response.status_code, 404)


class ICloudViewTest(ArtworkViewTestCase):
    """Tests for /artwork/icloud"""

    def post(self, body):
        return self.client.post('/artwork/icloud', data=json.dumps(body), content_type='application/json')

    def test_generated_url_has_extension(self):
        self.commit_on_generate(b'png', 'png')

        response = self.post({'imageUrl': IMAGE_URL})

        key = derive_key(IMAGE_URL)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['url'], f'http://testserver/artwork/icloud/{key}.png')
        self.assertEqual(response.json()['message'], 'iCloud art has been generated')

    def test_missing_image_url(self):
        self.assertEqual(self.post({}).status_code, 400)

    def test_disallowed_domain(self):
        self.assertEqual(self.post({'imageUrl': 'https://evil.example.com/x.png'}).status_code, 400)

    def test_serves_without_extension(self):
        key = derive_key(IMAGE_URL)
        self.store.commit(key, ArtifactKind.RESIZED_COPY, b'png', 'png')

        response = self.client.get(f'/artwork/icloud/{key}')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/png')
        self.assertEqual(response.content, b'png')

    def test_serves_with_extension(self):
        key = derive_key(IMAGE_URL)
        self.store.commit(key, ArtifactKind.RESIZED_COPY, b'png', 'png')

        response = self.client.get(f'/artwork/icloud/{key}.png')

        self.assertEqual(response.status_code, 200)

    def test_missing(self):
        self.assertEqual(self.client.get(f'/artwork/icloud/{derive_key("x")}').status_code, 404)
