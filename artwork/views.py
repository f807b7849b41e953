import json
import logging

from django.http import HttpResponse, JsonResponse
from django.utils.cache import patch_cache_control, patch_response_headers
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from artwork.apps import get_context
from artwork.operations import expected_extension, get_artifact, request_artwork
from artwork.service.constants import CONTENT_TYPES, ArtifactKind
from artwork.service.errors import NotFoundError, ValidationError
from artwork.service.orchestrator import GenerationOutcome
from artwork.utils import build_artwork_url, validate_image_urls, validate_source_url

logger = logging.getLogger(__name__)


def _outcome_response(request, outcome, context):
    """Translate a GenerationOutcome into the {key, message, url} JSON contract."""
    kind = outcome.kind
    config = context.config

    if outcome.state == GenerationOutcome.STATE_FAILED:
        logger.error('Failed to generate %s for key %s: %s', kind.label, outcome.key, outcome.error)
        return JsonResponse({'error': f'Failed to generate {kind.label.lower()}'}, status=500)

    ext = outcome.extension or expected_extension(kind, config)
    url = build_artwork_url(kind, outcome.key, ext, config.published_uri, request)

    if outcome.state == GenerationOutcome.STATE_CACHED:
        message, status = f'{kind.label} already exists', 200
    elif outcome.state == GenerationOutcome.STATE_GENERATED:
        message, status = f'{kind.label} has been generated', 200
    else:
        message = f'{kind.label} is still being processed. Please check back later.'
        status = config.timeout_status

    return JsonResponse({'key': outcome.key, 'message': message, 'url': url}, status=status)


def _parse_json_body(request):
    try:
        body = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError('Request body must be valid JSON')
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    return body


def _artifact_response(kind, key, context, ext=None):
    try:
        artifact = get_artifact(kind, key, context=context, ext=ext)
    except NotFoundError:
        return JsonResponse({'error': f'{kind.label} not found'}, status=404)

    response = HttpResponse(artifact.data, content_type=CONTENT_TYPES[artifact.format])
    patch_response_headers(response, cache_timeout=context.config.cache_max_age)
    patch_cache_control(response, public=True)
    return response


@require_GET
def generate_clip_view(request):
    """
    Generate (or look up) an animated clip for an HLS master playlist.

    Params:
        url (required): Master playlist URL on an allowed domain

    Returns:
        JSON {key, message, url}
    """
    context = get_context()
    url = request.GET.get('url')
    if not url:
        return JsonResponse({'error': 'URL query parameter is required'}, status=400)

    try:
        validate_source_url(url, context.config.allowed_domains)
    except ValidationError as e:
        logger.warning('Rejected clip request for %s: %s', url, e)
        return JsonResponse({'error': str(e)}, status=400)

    outcome = request_artwork(ArtifactKind.ANIMATED_CLIP, url, context=context)
    return _outcome_response(request, outcome, context)


@require_GET
def clip_view(request, key, ext):
    """Serve a committed clip."""
    return _artifact_response(ArtifactKind.ANIMATED_CLIP, key, get_context(), ext=ext)


@csrf_exempt
@require_POST
def artist_square_view(request):
    """
    Generate (or look up) an artist square.

    Body:
        {"imageUrls": [2..4 image URLs on allowed domains]}

    Returns:
        JSON {key, message, url}
    """
    context = get_context()
    try:
        body = _parse_json_body(request)
        image_urls = body.get('imageUrls')
        if image_urls is None:
            raise ValidationError('imageUrls is required')
        validate_image_urls(image_urls, context.config.allowed_domains)
    except ValidationError as e:
        return JsonResponse({'error': str(e)}, status=400)

    outcome = request_artwork(ArtifactKind.COMPOSITE_SQUARE, image_urls, context=context)
    return _outcome_response(request, outcome, context)


@require_GET
def artist_square_file_view(request, key):
    """Serve a committed artist square."""
    return _artifact_response(ArtifactKind.COMPOSITE_SQUARE, key, get_context())


@csrf_exempt
@require_POST
def icloud_view(request):
    """
    Generate (or look up) a resized copy of one image.

    Body:
        {"imageUrl": image URL on an allowed domain}

    Returns:
        JSON {key, message, url}
    """
    context = get_context()
    try:
        body = _parse_json_body(request)
        image_url = body.get('imageUrl')
        if not image_url:
            raise ValidationError('imageUrl is required')
        validate_source_url(image_url, context.config.allowed_domains)
    except ValidationError as e:
        return JsonResponse({'error': str(e)}, status=400)

    outcome = request_artwork(ArtifactKind.RESIZED_COPY, image_url, context=context)
    return _outcome_response(request, outcome, context)


@require_GET
def icloud_file_view(request, key, ext=None):
    """Serve a committed resized copy; the extension is looked up on disk."""
    return _artifact_response(ArtifactKind.RESIZED_COPY, key, get_context())
