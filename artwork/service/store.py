"""
Content-addressed artifact store.

Artifacts live in one directory per kind as {key}.{ext}. Writers stage output
as {key}_temp.{ext} in the same directory and rename it into place once it is
complete, so readers never see a partially written file.
"""
import logging
import os
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from artwork.service.constants import TEMP_SUFFIX, ArtifactKind
from artwork.service.errors import GenerationFailedError, NotFoundError

logger = logging.getLogger(__name__)

KEY_RE = re.compile(r'^[A-Za-z0-9_-]+$')


@dataclass
class Artifact:
    """A committed artifact read back from the store"""
    key: str
    kind: ArtifactKind
    path: Path
    format: str
    data: bytes


class ArtifactStore:
    """Maps (key, kind) to files under a cache root."""

    def __init__(self, root):
        self.root = Path(root)

    def ensure_directories(self):
        for kind in ArtifactKind:
            directory = self.directory(kind)
            directory.mkdir(parents=True, exist_ok=True)
            logger.info('%s directory: %s', kind.label, directory)

    def directory(self, kind):
        return self.root / kind.directory

    def _check(self, key, kind, ext):
        if not KEY_RE.match(key or ''):
            raise ValueError(f'Invalid cache key: {key!r}')
        if ext is None:
            ext = kind.extensions[0]
        if ext not in kind.extensions:
            raise GenerationFailedError(f'{kind.label} cannot be stored as .{ext}')
        return ext

    def path_for(self, key, kind, ext=None):
        ext = self._check(key, kind, ext)
        return self.directory(kind) / f'{key}.{ext}'

    def temp_path_for(self, key, kind, ext=None):
        ext = self._check(key, kind, ext)
        return self.directory(kind) / f'{key}{TEMP_SUFFIX}.{ext}'

    def find(self, key, kind):
        """
        Locate a committed artifact, trying allowed extensions in order.

        Returns:
            Path or None
        """
        for ext in kind.extensions:
            path = self.path_for(key, kind, ext)
            if path.is_file():
                return path
        return None

    def exists(self, key, kind):
        return self.find(key, kind) is not None

    def open(self, key, kind, ext=None):
        """
        Read a committed artifact.

        Looks only at the given extension when one is passed, otherwise
        tries the kind's extensions in order.

        Raises:
            NotFoundError: If nothing is committed under the key
        """
        path = self.find(key, kind) if ext is None else self.path_for(key, kind, ext)
        if path is None or not path.is_file():
            raise NotFoundError(f'{kind.label} not found for key {key}')
        return Artifact(
            key=key,
            kind=kind,
            path=path,
            format=path.suffix.lstrip('.'),
            data=path.read_bytes(),
        )

    @contextmanager
    def staging(self, key, kind, ext=None):
        """
        Yield a temporary path to write to; commit it on clean exit.

        The staged file must exist and be non-empty. On any failure the
        temporary file is removed and nothing appears under the final name.

        Raises:
            GenerationFailedError: If the staged output is missing or empty
        """
        temp_path = self.temp_path_for(key, kind, ext)
        final_path = self.path_for(key, kind, ext)
        temp_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            yield temp_path

            if not temp_path.is_file() or temp_path.stat().st_size == 0:
                raise GenerationFailedError(
                    f'Temporary file {temp_path} was not created or is empty'
                )
            os.replace(temp_path, final_path)
            logger.info('Committed %s', final_path)
        finally:
            if temp_path.exists():
                logger.info('Cleaning up temporary file %s', temp_path)
                temp_path.unlink()

    def commit(self, key, kind, data, ext=None):
        """
        Atomically store bytes under the key.

        Returns:
            Path: Final artifact path
        """
        with self.staging(key, kind, ext) as temp_path:
            temp_path.write_bytes(data)
        return self.path_for(key, kind, ext)

    def temp_files(self):
        """All in-progress files across every kind."""
        for kind in ArtifactKind:
            directory = self.directory(kind)
            if directory.is_dir():
                yield from sorted(directory.glob(f'*{TEMP_SUFFIX}.*'))

    def artifacts(self, kind):
        """Committed artifact paths for a kind."""
        directory = self.directory(kind)
        if not directory.is_dir():
            return []
        return sorted(
            path for path in directory.iterdir()
            if path.is_file()
            and path.suffix.lstrip('.') in kind.extensions
            and not path.stem.endswith(TEMP_SUFFIX)
        )
