from urllib.parse import urlparse

from artwork.service.constants import MAX_COMPOSITE_IMAGES, MIN_COMPOSITE_IMAGES, ArtifactKind
from artwork.service.errors import ValidationError

# Public path prefix per artifact kind
ARTWORK_PATHS = {
    ArtifactKind.ANIMATED_CLIP: '/artwork/',
    ArtifactKind.COMPOSITE_SQUARE: '/artwork/artist-square/',
    ArtifactKind.RESIZED_COPY: '/artwork/icloud/',
}


def validate_source_url(url, allowed_domains):
    """
    Ensure a URL is http(s) and its host ends with an allowed suffix.

    Raises:
        ValidationError
    """
    if not url or not isinstance(url, str):
        raise ValidationError('URL is required')

    try:
        parsed = urlparse(url)
    except ValueError:
        raise ValidationError('Invalid URL')

    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        raise ValidationError('Invalid URL')

    hostname = parsed.hostname.lower()
    if not any(hostname.endswith(suffix) for suffix in allowed_domains):
        allowed = ' or '.join(f'*{suffix}' for suffix in allowed_domains)
        raise ValidationError(f'URL must be from {allowed} domain')

    return url


def validate_image_urls(urls, allowed_domains):
    """
    Validate the image list of a composite request.

    Raises:
        ValidationError
    """
    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        raise ValidationError('imageUrls must be a list of strings')

    if not MIN_COMPOSITE_IMAGES <= len(urls) <= MAX_COMPOSITE_IMAGES:
        raise ValidationError(
            f'imageUrls must contain between {MIN_COMPOSITE_IMAGES} '
            f'and {MAX_COMPOSITE_IMAGES} URLs'
        )

    for url in urls:
        try:
            validate_source_url(url, allowed_domains)
        except ValidationError as e:
            raise ValidationError(f'Invalid URL: {url}. {e}')

    return urls


def build_artwork_url(kind, key, ext=None, published_uri=None, request=None):
    """
    Build the public URL of an artifact, honoring the published base URI.

    Args:
        kind: ArtifactKind
        key: Cache key
        ext: File extension, omitted when the format is not yet known
        published_uri: Base URI from config, if any
        request: Optional Django request for absolute URL building

    Returns:
        str
    """
    path = f'{ARTWORK_PATHS[kind]}{key}'
    if ext:
        path = f'{path}.{ext}'

    if published_uri:
        return f'{published_uri.rstrip("/")}{path}'
    if request:
        return request.build_absolute_uri(path)
    return path
