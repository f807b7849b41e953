"""
Artifact generators.

Each generator runs fetch -> decode -> transform -> encode and commits the
result through the store. A failure at any stage leaves nothing committed.
"""
from artwork.service.constants import (
    MAX_COMPOSITE_IMAGES,
    MIN_COMPOSITE_IMAGES,
    ArtifactKind,
)
from artwork.service.decode import decode_image
from artwork.service.download import fetch_image
from artwork.service.errors import UnsupportedLayoutError
from artwork.service.manifest import select_best_rendition
from artwork.service.process import compose_square, encode_image, resize_square
from artwork.service.transcode import transcode_clip


def _fetch_kwargs(config, logger):
    return {
        'attempts': config.download_attempts,
        'retry_delay': config.download_retry_delay,
        'timeout': config.http_timeout,
        'max_bytes': config.max_image_bytes,
        'logger': logger,
    }


def generate_clip(manifest_url, key, store, config, logger=None):
    """
    Build an animated clip from an HLS master playlist.

    Returns:
        Path: Committed artifact path
    """
    stream_url = select_best_rendition(
        manifest_url,
        min_width=config.min_rendition_width,
        timeout=config.http_timeout,
        logger=logger,
    )

    kind = ArtifactKind.ANIMATED_CLIP
    with store.staging(key, kind, config.clip_format) as temp_path:
        transcode_clip(
            stream_url,
            temp_path,
            preset=config.clip_preset,
            width=config.clip_width,
            ffmpeg_binary=config.ffmpeg_binary,
            timeout=config.transcode_timeout,
            logger=logger,
        )
    return store.path_for(key, kind, config.clip_format)


def generate_composite(image_urls, key, store, config, logger=None):
    """
    Build an artist square from 2-4 images.

    Returns:
        Path: Committed artifact path
    """
    count = len(image_urls)
    if not MIN_COMPOSITE_IMAGES <= count <= MAX_COMPOSITE_IMAGES:
        raise UnsupportedLayoutError(f'Unsupported number of images: {count}')

    images = []
    for url in image_urls:
        fetched = fetch_image(url, **_fetch_kwargs(config, logger))
        images.append(decode_image(fetched, logger=logger).image)

    square = compose_square(images, size=config.square_size)
    data = encode_image(square, 'jpg', quality=config.jpeg_quality)
    return store.commit(key, ArtifactKind.COMPOSITE_SQUARE, data, 'jpg')


def generate_resized(image_url, key, store, config, logger=None):
    """
    Build a fixed-size square copy of a single image, keeping its format.

    Returns:
        Path: Committed artifact path
    """
    fetched = fetch_image(image_url, **_fetch_kwargs(config, logger))
    decoded = decode_image(fetched, logger=logger)

    resized = resize_square(decoded.image, size=config.resize_size)
    data = encode_image(resized, decoded.format, quality=config.jpeg_quality)
    return store.commit(key, ArtifactKind.RESIZED_COPY, data, decoded.format)


GENERATORS = {
    ArtifactKind.ANIMATED_CLIP: generate_clip,
    ArtifactKind.COMPOSITE_SQUARE: generate_composite,
    ArtifactKind.RESIZED_COPY: generate_resized,
}


def run_generator(kind, source, key, store, config, logger=None):
    """Dispatch to the generator for an artifact kind."""
    return GENERATORS[kind](source, key, store, config, logger=logger)
