"""
Tests for the artwork management commands
"""

import json
import os
import tempfile
import time
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from artwork.service.config import ArtworkConfig
from artwork.service.constants import ArtifactKind
from artwork.service.context import ArtworkContext
from artwork.service.keys import derive_key
from artwork.service.orchestrator import GenerationOutcome

KEY = '900150983cd24fb0d6963f7d28e17f72'


class CommandTestCase(SimpleTestCase):

    command_module = None

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.context = ArtworkContext.build(ArtworkConfig(cache_dir=Path(self.temp_dir.name)))
        self.store = self.context.store
        self.store.ensure_directories()
        self.context_patcher = patch(f'{self.command_module}.get_context', return_value=self.context)
        self.context_patcher.start()

    def tearDown(self):
        self.context_patcher.stop()
        self.context.orchestrator.shutdown(wait=True)
        self.temp_dir.cleanup()


class CleanCacheCommandTest(CommandTestCase):
    """Tests for the clean_cache command"""

    command_module = 'artwork.management.commands.clean_cache'

    def make_temp_file(self, age_minutes):
        path = self.store.temp_path_for(KEY, ArtifactKind.ANIMATED_CLIP, 'gif')
        path.write_bytes(b'partial')
        old = time.time() - age_minutes * 60
        os.utime(path, (old, old))
        return path

    def test_nothing_to_clean(self):
        out = StringIO()
        call_command('clean_cache', '--force', stdout=out)
        self.assertIn('Nothing to clean up', out.getvalue())

    def test_deletes_abandoned_temp_files(self):
        path = self.make_temp_file(age_minutes=120)
        out = StringIO()

        call_command('clean_cache', '--force', stdout=out)

        self.assertFalse(path.exists())
        self.assertIn('Deleted 1 of 1 file', out.getvalue())

    def test_keeps_recent_temp_files(self):
        path = self.make_temp_file(age_minutes=5)

        call_command('clean_cache', '--force', stdout=StringIO())

        self.assertTrue(path.exists())

    def test_dry_run(self):
        path = self.make_temp_file(age_minutes=120)
        out = StringIO()

        call_command('clean_cache', '--dry-run', stdout=out)

        self.assertTrue(path.exists())
        self.assertIn('DRY RUN', out.getvalue())

    def test_committed_artifacts_are_kept(self):
        path = self.store.commit(KEY, ArtifactKind.RESIZED_COPY, b'jpeg', 'jpg')
        os.utime(path, (0, 0))

        call_command('clean_cache', '--force', stdout=StringIO())

        self.assertTrue(path.exists())

    @patch('artwork.management.commands.clean_cache.validate_clip')
    def test_validate_removes_invalid_clips(self, mock_validate):
        good = self.store.commit('a' * 32, ArtifactKind.ANIMATED_CLIP, b'GIF89a', 'gif')
        bad = self.store.commit('b' * 32, ArtifactKind.ANIMATED_CLIP, b'junk', 'gif')
        mock_validate.side_effect = lambda path, **kwargs: path == good

        call_command('clean_cache', '--validate', '--force', stdout=StringIO())

        self.assertTrue(good.exists())
        self.assertFalse(bad.exists())


class GenerateArtworkCommandTest(CommandTestCase):
    """Tests for the generate_artwork command"""

    command_module = 'artwork.management.commands.generate_artwork'

    @patch('artwork.management.commands.generate_artwork.request_artwork')
    def test_json_output(self, mock_request):
        url = 'https://is1-ssl.mzstatic.com/art.jpg'
        path = self.store.commit(derive_key(url), ArtifactKind.RESIZED_COPY, b'jpeg', 'jpg')
        mock_request.return_value = GenerationOutcome(
            derive_key(url), ArtifactKind.RESIZED_COPY, GenerationOutcome.STATE_GENERATED,
            path=path, job_id='abcd1234',
        )
        out = StringIO()

        call_command('generate_artwork', 'icloud', url, '--json', stdout=out)

        output = json.loads(out.getvalue())
        self.assertTrue(output['success'])
        self.assertEqual(output['key'], derive_key(url))
        self.assertEqual(output['state'], 'generated')
        self.assertEqual(output['path'], str(path))

    @patch('artwork.management.commands.generate_artwork.request_artwork')
    def test_square_passes_all_urls(self, mock_request):
        urls = ['https://a.mzstatic.com/1.jpg', 'https://a.mzstatic.com/2.jpg']
        mock_request.return_value = GenerationOutcome(
            'k' * 32, ArtifactKind.COMPOSITE_SQUARE, GenerationOutcome.STATE_PENDING
        )
        out = StringIO()

        call_command('generate_artwork', 'square', *urls, '--mode', 'queue', stdout=out)

        args, kwargs = mock_request.call_args
        self.assertEqual(args, (ArtifactKind.COMPOSITE_SQUARE, urls))
        self.assertEqual(kwargs['mode'], 'queue')
        self.assertIn('still being processed', out.getvalue())

    @patch('artwork.management.commands.generate_artwork.request_artwork')
    def test_wait_uses_long_timeout(self, mock_request):
        mock_request.return_value = GenerationOutcome(
            'k' * 32, ArtifactKind.ANIMATED_CLIP, GenerationOutcome.STATE_CACHED
        )

        call_command(
            'generate_artwork', 'clip', 'https://a.apple.com/master.m3u8', '--wait', stdout=StringIO()
        )

        self.assertGreater(mock_request.call_args.kwargs['timeout'], 3600)

    @patch('artwork.management.commands.generate_artwork.request_artwork')
    def test_failure_raises(self, mock_request):
        mock_request.return_value = GenerationOutcome(
            'k' * 32, ArtifactKind.ANIMATED_CLIP, GenerationOutcome.STATE_FAILED,
            error=RuntimeError('ffmpeg failed'),
        )

        with self.assertRaises(CommandError):
            call_command('generate_artwork', 'clip', 'https://a.apple.com/master.m3u8', stdout=StringIO())

    def test_rejects_disallowed_url(self):
        with self.assertRaises(CommandError):
            call_command('generate_artwork', 'icloud', 'https://evil.example.com/x.jpg', stdout=StringIO())

    def test_rejects_extra_urls_for_single_image(self):
        with self.assertRaises(CommandError):
            call_command(
                'generate_artwork', 'icloud',
                'https://a.mzstatic.com/1.jpg', 'https://a.mzstatic.com/2.jpg',
                stdout=StringIO(),
            )
