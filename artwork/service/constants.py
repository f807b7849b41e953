"""
Artifact class and format constants.

Centralized definitions of artifact kinds, their cache directories and the
file extensions each kind may be stored under.
"""
from enum import Enum


class ArtifactKind(Enum):
    """A class of generated artwork, each cached in its own directory."""

    ANIMATED_CLIP = 'animated-clip'
    COMPOSITE_SQUARE = 'composite-square'
    RESIZED_COPY = 'resized-copy'

    @property
    def directory(self):
        return ARTIFACT_DIRECTORIES[self]

    @property
    def extensions(self):
        """Allowed extensions, in lookup priority order."""
        return ARTIFACT_EXTENSIONS[self]

    @property
    def label(self):
        return ARTIFACT_LABELS[self]


ARTIFACT_DIRECTORIES = {
    ArtifactKind.ANIMATED_CLIP: 'animated-art',
    ArtifactKind.COMPOSITE_SQUARE: 'artist-squares',
    ArtifactKind.RESIZED_COPY: 'icloud-art',
}

ARTIFACT_EXTENSIONS = {
    ArtifactKind.ANIMATED_CLIP: ('gif', 'webp'),
    ArtifactKind.COMPOSITE_SQUARE: ('jpg',),
    ArtifactKind.RESIZED_COPY: ('jpg', 'jpeg', 'png', 'gif'),
}

ARTIFACT_LABELS = {
    ArtifactKind.ANIMATED_CLIP: 'Animated artwork',
    ArtifactKind.COMPOSITE_SQUARE: 'Artist square',
    ArtifactKind.RESIZED_COPY: 'iCloud art',
}

# Suffix marking an in-progress write; never served
TEMP_SUFFIX = '_temp'

CONTENT_TYPES = {
    'gif': 'image/gif',
    'webp': 'image/webp',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
}

# Manifest codec policy
EXCLUDED_CODEC_TAG = 'hvc1'
REQUIRED_CODEC_TAG = 'avc1'

STREAM_INF_PREFIX = '#EXT-X-STREAM-INF:'

# Composite square accepts this many source images
MIN_COMPOSITE_IMAGES = 2
MAX_COMPOSITE_IMAGES = 4

# Generation modes
MODE_SYNC = 'sync'
MODE_QUEUE = 'queue'
MODE_QUEUE_WAIT = 'queue-wait'
GENERATION_MODES = [MODE_SYNC, MODE_QUEUE, MODE_QUEUE_WAIT]

# ffmpeg filter presets for animated clips
CLIP_PRESET_PALETTE = 'palette'
CLIP_PRESET_FPS = 'fps'
CLIP_PRESETS = [CLIP_PRESET_PALETTE, CLIP_PRESET_FPS]
