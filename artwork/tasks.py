"""
Huey background tasks for artwork generation.

Each job re-checks the store before doing any network or transform work,
and holds an expiring per-key lock while generating, so duplicate
submissions for the same key converge on a single output.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Union

from django.conf import settings
from huey.contrib.djhuey import HUEY, task
from huey.exceptions import CancelExecution, TaskLockedException
from nanoid import generate

from artwork.apps import get_context
from artwork.service.constants import ArtifactKind
from artwork.service.errors import ArtworkError
from artwork.service.generators import run_generator

logger = logging.getLogger(__name__)

JOB_ID_ALPHABET = '0123456789abcdef'


def generate_job_id():
    """Short id used to correlate a job's log lines"""
    return generate(JOB_ID_ALPHABET, size=8)


class GenerationLock:
    """
    Per-key lock stored in huey's result store with an expiry timestamp.

    A worker killed mid-job leaves its entry behind; once the entry is older
    than ttl the next job for the key takes it over instead of being locked
    out for good.

    Raises:
        TaskLockedException: From acquire while a live holder exists
    """

    def __init__(self, huey, key, ttl):
        self.huey = huey
        self.key = key
        self.ttl = ttl
        self.name = f'{huey.name}.artwork-lock.{key}'

    def acquire(self, now=None):
        now = time.time() if now is None else now
        expires = now + self.ttl
        if self.huey.put_if_empty(self.name, expires):
            return

        held_until = self.huey.get(self.name, peek=True)
        if held_until is not None and held_until > now:
            raise TaskLockedException(f'{self.name} is locked')

        logger.warning('Taking over stale lock for key %s', self.key)
        self.huey.delete(self.name)
        if not self.huey.put_if_empty(self.name, expires):
            raise TaskLockedException(f'{self.name} is locked')

    def release(self):
        self.huey.delete(self.name)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


@dataclass
class GenerationJob:
    """A pending unit of queue work"""
    kind: ArtifactKind
    source: Union[str, List[str]]
    key: str
    job_id: str = field(default_factory=generate_job_id)


def run_job(job):
    """
    Execute a generation job inside a worker.

    Returns:
        str: Path of the committed artifact

    Raises:
        ArtworkError: Retryable failures, re-raised so huey retries them
        CancelExecution: Terminal failures, which are not retried
    """
    context = get_context()
    store = context.store
    kind = job.kind

    def log(message):
        logger.info('Job %s: %s', job.job_id, message)

    log(f'Starting {kind.label} generation for key {job.key}')

    existing = store.find(job.key, kind)
    if existing is not None:
        log(f'{kind.label} already exists for key {job.key}')
        return str(existing)

    # Raises TaskLockedException while another worker holds the key
    with GenerationLock(HUEY, job.key, context.config.queue_lock_ttl):
        existing = store.find(job.key, kind)
        if existing is not None:
            log(f'{kind.label} already exists for key {job.key}')
            return str(existing)

        try:
            path = run_generator(kind, job.source, job.key, store, context.config, logger=log)
        except ArtworkError as e:
            logger.error('Job %s: Failed to generate %s: %s', job.job_id, kind.label, e)
            if not e.retryable:
                raise CancelExecution(retry=False) from e
            raise

    log(f'{kind.label} created and saved for key {job.key}')
    return str(path)


@task(retries=settings.ARTCACHE_TASK_RETRIES, retry_delay=settings.ARTCACHE_TASK_RETRY_DELAY)
def generate_clip_task(manifest_url, key, job_id):
    """artwork:generate"""
    return run_job(GenerationJob(ArtifactKind.ANIMATED_CLIP, manifest_url, key, job_id))


@task(retries=settings.ARTCACHE_TASK_RETRIES, retry_delay=settings.ARTCACHE_TASK_RETRY_DELAY)
def create_composite_task(image_urls, key, job_id):
    """artwork:create_artist_square"""
    return run_job(GenerationJob(ArtifactKind.COMPOSITE_SQUARE, list(image_urls), key, job_id))


@task(retries=settings.ARTCACHE_TASK_RETRIES, retry_delay=settings.ARTCACHE_TASK_RETRY_DELAY)
def create_resized_task(image_url, key, job_id):
    """artwork:create_icloud_art"""
    return run_job(GenerationJob(ArtifactKind.RESIZED_COPY, image_url, key, job_id))


TASKS = {
    ArtifactKind.ANIMATED_CLIP: generate_clip_task,
    ArtifactKind.COMPOSITE_SQUARE: create_composite_task,
    ArtifactKind.RESIZED_COPY: create_resized_task,
}


def enqueue_generation(job):
    """
    Submit a job to the queue.

    Returns:
        huey Result handle
    """
    result = TASKS[job.kind](job.source, job.key, job.job_id)
    logger.info('Job %s: Added %s for key %s to the queue', job.job_id, job.kind.label, job.key)
    return result
