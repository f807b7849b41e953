"""
Django management command for generating artwork from the command line.

This is a thin CLI wrapper around artwork.operations.request_artwork.
"""
import json

from django.core.management.base import BaseCommand, CommandError

from artwork.apps import get_context
from artwork.operations import request_artwork
from artwork.service.constants import GENERATION_MODES, MODE_QUEUE, MODE_SYNC, ArtifactKind
from artwork.service.errors import ValidationError
from artwork.service.orchestrator import GenerationOutcome
from artwork.utils import validate_image_urls, validate_source_url

KIND_CHOICES = {
    'clip': ArtifactKind.ANIMATED_CLIP,
    'square': ArtifactKind.COMPOSITE_SQUARE,
    'icloud': ArtifactKind.RESIZED_COPY,
}


class Command(BaseCommand):
    help = 'Generate an animated clip, artist square or resized copy'

    def add_arguments(self, parser):
        parser.add_argument(
            'kind',
            type=str,
            choices=list(KIND_CHOICES),
            help='Artwork to generate'
        )
        parser.add_argument(
            'urls',
            nargs='+',
            type=str,
            help='Manifest URL (clip), 2-4 image URLs (square) or one image URL (icloud)'
        )
        parser.add_argument(
            '--mode',
            type=str,
            choices=GENERATION_MODES,
            default=None,
            help='Generation mode (default: ARTCACHE_GENERATION_MODE)'
        )
        parser.add_argument(
            '--wait',
            action='store_true',
            help='Wait for generation to finish instead of using the bounded timeout'
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Output result as JSON'
        )

    def handle(self, *args, **options):
        kind = KIND_CHOICES[options['kind']]
        urls = options['urls']
        mode = options['mode']
        output_json = options['json']

        context = get_context()
        allowed_domains = context.config.allowed_domains

        try:
            if kind == ArtifactKind.COMPOSITE_SQUARE:
                validate_image_urls(urls, allowed_domains)
                source = urls
            else:
                if len(urls) != 1:
                    raise ValidationError(f'{kind.label} takes exactly one URL')
                source = validate_source_url(urls[0], allowed_domains)
        except ValidationError as e:
            raise CommandError(str(e))

        # Waiting indefinitely only makes sense when something is waited on
        timeout = None
        if options['wait']:
            timeout = 24 * 60 * 60
            if mode == MODE_QUEUE:
                mode = MODE_SYNC

        outcome = request_artwork(kind, source, context=context, mode=mode, timeout=timeout)

        if output_json:
            output = {
                'success': outcome.state != GenerationOutcome.STATE_FAILED,
                'key': outcome.key,
                'kind': options['kind'],
                'state': outcome.state,
                'path': str(outcome.path) if outcome.path else None,
                'job_id': outcome.job_id,
            }
            if outcome.error is not None:
                output['error'] = str(outcome.error)
            self.stdout.write(json.dumps(output, indent=2))
            if outcome.state == GenerationOutcome.STATE_FAILED:
                raise CommandError(f'Failed to generate {kind.label.lower()}')
            return

        if outcome.state == GenerationOutcome.STATE_FAILED:
            raise CommandError(f'Failed to generate {kind.label.lower()}: {outcome.error}')

        if outcome.ready:
            self.stdout.write(self.style.SUCCESS(f'{kind.label} ready'))
            self.stdout.write(f'  Key: {outcome.key}')
            self.stdout.write(f'  State: {outcome.state}')
            self.stdout.write(f'  Path: {outcome.path}')
        else:
            self.stdout.write(self.style.WARNING(f'{kind.label} is still being processed'))
            self.stdout.write(f'  Key: {outcome.key}')
        if outcome.job_id:
            self.stdout.write(f'  Job: {outcome.job_id}')
