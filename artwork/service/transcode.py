"""
Animated clip transcoding with ffmpeg.
"""
import subprocess
from pathlib import Path

from artwork.service.constants import CLIP_PRESET_FPS, CLIP_PRESET_PALETTE
from artwork.service.errors import TranscodeError


def build_clip_command(stream_url, output_path, preset=CLIP_PRESET_PALETTE, width=486,
                       ffmpeg_binary='ffmpeg'):
    """
    Build the ffmpeg command line for an animated clip.

    Presets:
        palette: Lanczos scale plus a generated palette, looping forever
        fps: 15 fps temporal subsampling at 500px wide

    Returns:
        list[str]
    """
    cmd = [ffmpeg_binary, '-hide_banner', '-loglevel', 'error', '-y']

    if preset == CLIP_PRESET_PALETTE:
        cmd += [
            '-multiple_requests', '1',
            '-i', str(stream_url),
            '-vf', (
                f'scale={width}:-1:flags=lanczos,'
                'split[s0][s1];[s0]palettegen[p];[s1][p]paletteuse'
            ),
            '-loop', '0',
            '-threads', '8',
        ]
    elif preset == CLIP_PRESET_FPS:
        cmd += [
            '-protocol_whitelist', 'file,http,https,tcp,tls,crypto',
            '-multiple_requests', '1',
            '-i', str(stream_url),
            '-vf', 'fps=15,scale=500:-1:flags=lanczos',
            '-threads', '8',
        ]
    else:
        raise ValueError(f'Unknown clip preset: {preset}')

    return cmd + [str(output_path)]


def transcode_clip(stream_url, output_path, preset=CLIP_PRESET_PALETTE, width=486,
                   ffmpeg_binary='ffmpeg', timeout=600, logger=None):
    """
    Transcode a stream into an animated image.

    Args:
        stream_url: Rendition URL (or local path) to read from
        output_path: File to write; its extension selects the container
        preset: Filter preset name
        width: Output width for the palette preset
        ffmpeg_binary: ffmpeg executable
        timeout: Seconds before ffmpeg is killed
        logger: Optional callable(str) for logging

    Returns:
        Path: output_path

    Raises:
        TranscodeError: On non-zero exit, timeout, missing binary or empty output
    """
    def log(message):
        if logger:
            logger(message)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_clip_command(stream_url, output_path, preset, width, ffmpeg_binary)
    log(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise TranscodeError(f'ffmpeg not found: {ffmpeg_binary}') from e
    except subprocess.TimeoutExpired as e:
        raise TranscodeError(f'ffmpeg timed out after {timeout}s') from e

    if result.returncode != 0:
        log(f'ffmpeg stderr: {result.stderr}')
        raise TranscodeError(f'ffmpeg failed with code {result.returncode}')

    if not output_path.is_file() or output_path.stat().st_size == 0:
        raise TranscodeError(f'ffmpeg failed to create output file {output_path}')

    log(f'Transcoding complete: {output_path.stat().st_size} bytes')
    return output_path


def validate_clip(path, ffmpeg_binary='ffmpeg', timeout=120):
    """
    Check that ffmpeg can decode a clip end to end.

    Returns:
        bool

    Raises:
        TranscodeError: If ffmpeg itself is missing
    """
    cmd = [ffmpeg_binary, '-v', 'error', '-i', str(path), '-f', 'null', '-']
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise TranscodeError(f'ffmpeg not found: {ffmpeg_binary}') from e
    except subprocess.TimeoutExpired:
        return False
    return result.returncode == 0
