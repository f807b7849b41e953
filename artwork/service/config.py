"""
Configuration adapter for artwork generation settings.

Centralizes access to Django settings and environment variables so that the
web app, the queue workers and the CLI all build components from the same
explicit configuration object.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import yaml
from django.conf import settings

from artwork.service.constants import MAX_COMPOSITE_IMAGES


@dataclass(frozen=True)
class ArtworkConfig:
    """Settings snapshot passed to every artwork component at construction."""

    cache_dir: Path
    published_uri: Optional[str] = None
    allowed_domains: Tuple[str, ...] = ('.apple.com', '.mzstatic.com')
    generation_mode: str = 'sync'
    wait_timeout: float = 30.0
    timeout_status: int = 202
    max_workers: int = 5
    sync_retries: int = 0
    sync_retry_delay: float = 1.0
    min_rendition_width: int = 450
    clip_preset: str = 'palette'
    clip_format: str = 'gif'
    clip_width: int = 486
    square_size: int = 500
    resize_size: int = 1024
    jpeg_quality: int = 95
    max_image_bytes: int = 50 * 1024 * 1024
    download_attempts: int = 3
    download_retry_delay: float = 1.0
    http_timeout: float = 30.0
    transcode_timeout: float = 600.0
    ffmpeg_binary: str = 'ffmpeg'
    cache_max_age: int = 7 * 24 * 60 * 60

    @classmethod
    def from_settings(cls):
        """Build a config from the current Django settings."""
        return cls(
            cache_dir=Path(settings.ARTCACHE_CACHE_DIR),
            published_uri=get_published_uri(),
            allowed_domains=tuple(settings.ARTCACHE_ALLOWED_DOMAINS),
            generation_mode=settings.ARTCACHE_GENERATION_MODE,
            wait_timeout=float(settings.ARTCACHE_WAIT_TIMEOUT),
            timeout_status=int(settings.ARTCACHE_TIMEOUT_STATUS),
            max_workers=int(settings.ARTCACHE_MAX_WORKERS),
            sync_retries=int(settings.ARTCACHE_SYNC_RETRIES),
            sync_retry_delay=float(settings.ARTCACHE_SYNC_RETRY_DELAY),
            min_rendition_width=int(settings.ARTCACHE_MIN_RENDITION_WIDTH),
            clip_preset=settings.ARTCACHE_CLIP_PRESET,
            clip_format=settings.ARTCACHE_CLIP_FORMAT,
            clip_width=int(settings.ARTCACHE_CLIP_WIDTH),
            square_size=int(settings.ARTCACHE_SQUARE_SIZE),
            resize_size=int(settings.ARTCACHE_RESIZE_SIZE),
            jpeg_quality=int(settings.ARTCACHE_JPEG_QUALITY),
            max_image_bytes=int(settings.ARTCACHE_MAX_IMAGE_BYTES),
            download_attempts=int(settings.ARTCACHE_DOWNLOAD_ATTEMPTS),
            download_retry_delay=float(settings.ARTCACHE_DOWNLOAD_RETRY_DELAY),
            http_timeout=float(settings.ARTCACHE_HTTP_TIMEOUT),
            transcode_timeout=float(settings.ARTCACHE_TRANSCODE_TIMEOUT),
            ffmpeg_binary=settings.ARTCACHE_FFMPEG_BINARY,
            cache_max_age=int(settings.ARTCACHE_CACHE_MAX_AGE),
        )

    @property
    def queue_lock_ttl(self):
        """
        Seconds a worker may hold a key before the lock is considered stale.

        Covers the worst case of every download attempt timing out (two
        playlist fetches or up to four images) followed by a full transcode.
        """
        fetches = MAX_COMPOSITE_IMAGES + 2
        per_fetch = self.download_attempts * (self.http_timeout + self.download_retry_delay)
        return fetches * per_fetch + self.transcode_timeout


def get_published_uri(config_path=None):
    """
    Resolve the public base URI used in generated artwork URLs.

    Lookup order:
    1. PUBLISHED_URI key in config.yml
    2. ARTCACHE_PUBLISHED_URI setting (PUBLISHED_URI environment variable)

    Returns:
        str or None: None means callers should build URLs from the request.
    """
    if config_path is None:
        config_path = settings.ARTCACHE_CONFIG_FILE

    config_path = Path(config_path)
    if config_path.is_file():
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError:
                data = {}
        uri = data.get('PUBLISHED_URI') if isinstance(data, dict) else None
        if uri:
            return uri.rstrip('/')

    uri = settings.ARTCACHE_PUBLISHED_URI or os.environ.get('PUBLISHED_URI')
    if uri:
        return uri.rstrip('/')
    return None
