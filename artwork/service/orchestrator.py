"""
In-process generation orchestrator.

Guarantees at most one in-flight generation per cache key, runs generations
on a bounded worker pool, and lets callers wait with a timeout. A caller whose
wait times out gets a pending outcome; the generation itself keeps running
and commits to the store whenever it finishes.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from artwork.service.constants import ArtifactKind
from artwork.service.errors import ArtworkError

logger = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    """What a caller learns about a key after asking for it"""

    STATE_CACHED = 'cached'
    STATE_GENERATED = 'generated'
    STATE_PENDING = 'pending'
    STATE_FAILED = 'failed'

    key: str
    kind: ArtifactKind
    state: str
    path: Optional[Path] = None
    error: Optional[BaseException] = None
    job_id: Optional[str] = None

    @property
    def ready(self):
        return self.state in (self.STATE_CACHED, self.STATE_GENERATED)

    @property
    def extension(self):
        return self.path.suffix.lstrip('.') if self.path else None


class GenerationOrchestrator:
    """
    Per-key single-flight generation over a thread pool.

    Args:
        store: ArtifactStore the generators commit to
        max_workers: Concurrent generation slots
        wait_timeout: Default seconds a caller waits before getting a pending outcome
        retries: Extra attempts for retryable errors (FetchError)
        retry_delay: Seconds between attempts
    """

    def __init__(self, store, max_workers=5, wait_timeout=30.0, retries=0, retry_delay=1.0):
        self.store = store
        self.wait_timeout = wait_timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='artwork-gen'
        )
        self._lock = threading.Lock()
        self._in_flight = {}

    def in_flight(self, key):
        with self._lock:
            return key in self._in_flight

    def submit(self, key, kind, generate):
        """
        Start generating key unless a generation is already in flight.

        Args:
            key: Cache key
            kind: ArtifactKind
            generate: Zero-argument callable that commits the artifact and
                returns its path

        Returns:
            concurrent.futures.Future resolving to the artifact path. Callers
            racing on the same key receive the same future.
        """
        with self._lock:
            future = self._in_flight.get(key)
            if future is not None:
                logger.info('Generation already in flight for %s %s', kind.label, key)
                return future
            future = self._executor.submit(self._execute, key, kind, generate)
            self._in_flight[key] = future
            return future

    def _execute(self, key, kind, generate):
        try:
            existing = self.store.find(key, kind)
            if existing is not None:
                logger.info('%s already exists for key %s', kind.label, key)
                return existing

            attempt = 0
            while True:
                attempt += 1
                try:
                    path = generate()
                    logger.info('%s generated for key %s: %s', kind.label, key, path)
                    return path
                except ArtworkError as e:
                    if not e.retryable or attempt > self.retries:
                        raise
                    logger.warning(
                        'Attempt %d for %s %s failed: %s. Retrying...', attempt, kind.label, key, e
                    )
                    time.sleep(self.retry_delay)
        except Exception:
            logger.exception('Failed to generate %s for key %s', kind.label, key)
            raise
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    def wait(self, key, kind, future, timeout=None):
        """
        Wait up to timeout seconds for a submitted generation.

        The timeout only ends the wait; the generation is never cancelled.

        Returns:
            GenerationOutcome: generated, pending or failed
        """
        if timeout is None:
            timeout = self.wait_timeout
        try:
            path = future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.info('%s %s still processing after %ss', kind.label, key, timeout)
            return GenerationOutcome(key, kind, GenerationOutcome.STATE_PENDING)
        except Exception as e:
            return GenerationOutcome(key, kind, GenerationOutcome.STATE_FAILED, error=e)
        return GenerationOutcome(key, kind, GenerationOutcome.STATE_GENERATED, path=path)

    def run(self, key, kind, generate, timeout=None):
        """
        Serve a key from the store, or generate it with a bounded wait.

        Returns:
            GenerationOutcome
        """
        existing = self.store.find(key, kind)
        if existing is not None:
            return GenerationOutcome(key, kind, GenerationOutcome.STATE_CACHED, path=existing)

        future = self.submit(key, kind, generate)
        return self.wait(key, kind, future, timeout)

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)
