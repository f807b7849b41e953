"""
Management command to clean up the artwork cache.

Removes abandoned {key}_temp.{ext} files left behind by crashed workers and,
with --validate, committed clips that ffmpeg can no longer decode.
"""
import time

from django.core.management.base import BaseCommand, CommandError

from artwork.apps import get_context
from artwork.service.constants import ArtifactKind
from artwork.service.errors import TranscodeError
from artwork.service.transcode import validate_clip


class Command(BaseCommand):
    help = 'Clean up abandoned temporary files and invalid clips from the artwork cache'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without actually deleting'
        )
        parser.add_argument(
            '--force',
            action='store_true',
            help='Delete files without confirmation'
        )
        parser.add_argument(
            '--max-age',
            type=int,
            default=60,
            help='Minutes before a temporary file is considered abandoned (default: 60)'
        )
        parser.add_argument(
            '--validate',
            action='store_true',
            help='Also delete committed clips that fail to decode'
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        force = options['force']
        max_age_minutes = options['max_age']

        context = get_context()
        store = context.store

        cutoff = time.time() - max_age_minutes * 60
        stale = [path for path in store.temp_files() if path.stat().st_mtime < cutoff]
        targets = [(path, 'abandoned temp file') for path in stale]

        if options['validate']:
            ffmpeg_binary = context.config.ffmpeg_binary
            for path in store.artifacts(ArtifactKind.ANIMATED_CLIP):
                try:
                    valid = validate_clip(path, ffmpeg_binary=ffmpeg_binary)
                except TranscodeError as e:
                    raise CommandError(f'Cannot validate clips: {e}')
                if not valid:
                    targets.append((path, 'invalid clip'))

        if not targets:
            self.stdout.write(self.style.SUCCESS('Nothing to clean up'))
            return

        plural = 's' if len(targets) != 1 else ''
        self.stdout.write(f'\nFound {len(targets)} file{plural} to remove:')
        self.stdout.write(f"{'=' * 80}")

        total_size = 0
        for path, reason in targets:
            size = path.stat().st_size
            total_size += size
            self.stdout.write(f'{reason:20} | {path.name:50} | {size / 1024:8.1f} KB')

        self.stdout.write(f"{'=' * 80}")
        self.stdout.write(f'Total size: {total_size / (1024 * 1024):.1f} MB\n')

        if dry_run:
            self.stdout.write(self.style.WARNING(f'DRY RUN: Would delete {len(targets)} file{plural}'))
            self.stdout.write('Run without --dry-run to actually delete')
            return

        if not force:
            response = input(f'\nDelete these {len(targets)} file{plural}? [y/N]: ')
            if response.lower() != 'y':
                self.stdout.write('Cancelled')
                return

        deleted_count = 0
        for path, _ in targets:
            try:
                path.unlink()
                self.stdout.write(self.style.SUCCESS(f'Deleted: {path.name}'))
                deleted_count += 1
            except OSError as e:
                self.stdout.write(self.style.ERROR(f'Failed to delete {path.name}: {e}'))

        self.stdout.write(self.style.SUCCESS(f'\nDeleted {deleted_count} of {len(targets)} file{plural}'))
