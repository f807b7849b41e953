"""
HLS master playlist parsing and rendition selection.

Picks the widest H.264 rendition of an adaptive-streaming manifest so the
clip transcoder never has to deal with HEVC-only or tiny variants.
"""
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import requests

from artwork.service.constants import (
    EXCLUDED_CODEC_TAG,
    REQUIRED_CODEC_TAG,
    STREAM_INF_PREFIX,
)
from artwork.service.errors import FetchError, NoSuitableRenditionError

# KEY=VALUE pairs where VALUE may be a quoted string containing commas
ATTRIBUTE_RE = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^",]*)')


@dataclass
class Rendition:
    """One variant stream announced by an #EXT-X-STREAM-INF line"""
    average_bandwidth: int = 0
    bandwidth: int = 0
    codecs: tuple = ()
    frame_rate: float = 0.0
    width: int = 0
    height: int = 0
    uri: Optional[str] = None


def parse_stream_info(line):
    """
    Parse the attribute list of an #EXT-X-STREAM-INF line.

    Attributes that fail to parse are left at their defaults instead of
    aborting the whole line.

    Args:
        line: Full manifest line, including the tag prefix

    Returns:
        Rendition without a uri
    """
    info = Rendition()
    attributes = line[len(STREAM_INF_PREFIX):] if line.startswith(STREAM_INF_PREFIX) else line

    for key, raw_value in ATTRIBUTE_RE.findall(attributes):
        value = raw_value.strip('"')
        try:
            if key == 'AVERAGE-BANDWIDTH':
                info.average_bandwidth = int(value)
            elif key == 'BANDWIDTH':
                info.bandwidth = int(value)
            elif key == 'CODECS':
                info.codecs = tuple(c.strip() for c in value.split(',') if c.strip())
            elif key == 'FRAME-RATE':
                info.frame_rate = float(value)
            elif key == 'RESOLUTION':
                width, height = value.lower().split('x')
                info.width, info.height = int(width), int(height)
        except ValueError:
            continue

    return info


def is_admissible(rendition, min_width=450):
    """H.264, not HEVC, and at least min_width pixels wide."""
    has_excluded = any(c.startswith(EXCLUDED_CODEC_TAG) for c in rendition.codecs)
    has_required = any(c.startswith(REQUIRED_CODEC_TAG) for c in rendition.codecs)
    return not has_excluded and has_required and rendition.width >= min_width


def select_rendition(lines, min_width=450):
    """
    Choose the admissible rendition with the strictly largest width.

    Single forward pass: each #EXT-X-STREAM-INF line is paired with the next
    URI line. On equal widths the earliest rendition is kept.

    Returns:
        Rendition or None
    """
    best = None
    pending = None

    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if line.startswith(STREAM_INF_PREFIX):
            pending = parse_stream_info(line)
            continue
        if line.startswith('#'):
            continue
        if pending is None:
            continue

        pending.uri = line
        if is_admissible(pending, min_width) and (best is None or pending.width > best.width):
            best = pending
        pending = None

    return best


def fetch_manifest(manifest_url, timeout=30):
    """Fetch a manifest and return its lines."""
    try:
        response = requests.get(manifest_url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f'Failed to fetch master playlist {manifest_url}: {e}') from e

    return response.text.splitlines()


def select_best_rendition(manifest_url, min_width=450, timeout=30, logger=None):
    """
    Resolve a master playlist URL to the URL of its best rendition.

    Args:
        manifest_url: Absolute URL of the master playlist
        min_width: Minimum admissible rendition width
        timeout: HTTP timeout in seconds
        logger: Optional callable(str) for logging

    Returns:
        str: Absolute rendition URL

    Raises:
        FetchError: If the manifest cannot be retrieved
        NoSuitableRenditionError: If no rendition is admissible
    """
    def log(message):
        if logger:
            logger(message)

    log(f'Fetching master playlist: {manifest_url}')
    lines = fetch_manifest(manifest_url, timeout=timeout)

    best = select_rendition(lines, min_width=min_width)
    if best is None:
        raise NoSuitableRenditionError(f'No suitable stream found in {manifest_url}')

    resolved = urljoin(manifest_url, best.uri)
    log(f'Selected rendition {best.width}x{best.height} ({",".join(best.codecs)}): {resolved}')
    return resolved
