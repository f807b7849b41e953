"""
Download service for source images.

Fetches image bytes over HTTP with retries, returning the payload together
with the transport-reported content type for the decoder chain.
"""
import time
from dataclasses import dataclass
from typing import Optional

import requests

from artwork.service.errors import FetchError

CHUNK_SIZE = 8192


@dataclass
class FetchedImage:
    """Raw bytes of a downloaded image"""
    url: str
    data: bytes
    content_type: Optional[str] = None


def get_content_type(url, timeout=30):
    """Content type reported by a HEAD request, or None."""
    try:
        response = requests.head(url, timeout=timeout, allow_redirects=True)
    except requests.RequestException:
        return None
    return response.headers.get('content-type') or None


def _read_limited(response, max_bytes):
    data = bytearray()
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        if not chunk:
            continue
        data.extend(chunk)
        if len(data) > max_bytes:
            raise FetchError(f'Image at {response.url} exceeds {max_bytes} bytes')
    return bytes(data)


def fetch_image(url, attempts=3, retry_delay=1.0, timeout=30,
                max_bytes=50 * 1024 * 1024, logger=None):
    """
    Download an image, retrying transport failures with exponential backoff.

    Args:
        url: Image URL
        attempts: Total number of GET attempts
        retry_delay: Delay before the second attempt, doubled after each failure
        timeout: HTTP timeout in seconds
        max_bytes: Maximum accepted body size
        logger: Optional callable(str) for logging

    Returns:
        FetchedImage

    Raises:
        FetchError: If every attempt fails, or the body is empty or too large
    """
    def log(message):
        if logger:
            logger(message)

    response = None
    last_error = None
    delay = retry_delay

    for attempt in range(1, attempts + 1):
        try:
            response = requests.get(url, stream=True, timeout=timeout)
            response.raise_for_status()
            break
        except requests.RequestException as e:
            last_error = e
            response = None
            log(f'Attempt {attempt}: Failed to download image from {url}: {e}')
            if attempt < attempts:
                time.sleep(delay)
                delay *= 2

    if response is None:
        raise FetchError(
            f'Failed to download image from {url} after {attempts} attempts: {last_error}'
        )

    try:
        content_type = response.headers.get('content-type')
        data = _read_limited(response, max_bytes)
    except requests.RequestException as e:
        raise FetchError(f'Failed to read image data from {url}: {e}') from e
    finally:
        response.close()

    if not data:
        raise FetchError(f'Downloaded image data from {url} is empty')

    if not content_type:
        content_type = get_content_type(url, timeout=timeout)

    log(f'Downloaded {len(data)} bytes from {url} ({content_type or "unknown type"})')
    return FetchedImage(url=url, data=data, content_type=content_type)
