"""
High-level operations that can be used by views, tasks, and management commands.

This module provides testable functions that encapsulate the cache lookup and
the choice of response strategy, so they can be exercised without going
through Django views.
"""
import logging
from functools import partial
from pathlib import Path

from huey.exceptions import HueyException, TaskException

from artwork.apps import get_context
from artwork.service.constants import (
    GENERATION_MODES,
    MODE_QUEUE,
    MODE_SYNC,
    ArtifactKind,
)
from artwork.service.keys import derive_composite_key, derive_key
from artwork.service.generators import run_generator
from artwork.service.orchestrator import GenerationOutcome
from artwork.tasks import GenerationJob, enqueue_generation, generate_job_id

logger = logging.getLogger(__name__)


def artwork_key(kind, source):
    """Cache key for a request's identifying inputs."""
    if kind == ArtifactKind.COMPOSITE_SQUARE:
        return derive_composite_key(source)
    return derive_key(source)


def expected_extension(kind, config):
    """Extension a new artifact of this kind will get, if known before generating."""
    if kind == ArtifactKind.ANIMATED_CLIP:
        return config.clip_format
    if kind == ArtifactKind.COMPOSITE_SQUARE:
        return 'jpg'
    return None


def request_artwork(kind, source, context=None, mode=None, timeout=None):
    """
    Return a cached artifact or start generating it.

    Modes:
        sync: generate in-process, waiting up to the bounded timeout
        queue: enqueue a durable job and return a pending outcome immediately
        queue-wait: enqueue a durable job and wait up to the bounded timeout

    Args:
        kind: ArtifactKind
        source: URL, or list of URLs for a composite square
        context: ArtworkContext (default: the one built at startup)
        mode: Generation mode (default: from config)
        timeout: Seconds to wait (default: from config)

    Returns:
        GenerationOutcome
    """
    context = context or get_context()
    config = context.config
    store = context.store
    mode = mode or config.generation_mode
    if mode not in GENERATION_MODES:
        raise ValueError(f'Unknown generation mode: {mode}')
    if timeout is None:
        timeout = config.wait_timeout

    key = artwork_key(kind, source)

    existing = store.find(key, kind)
    if existing is not None:
        logger.info('Served existing %s for key %s', kind.label, key)
        return GenerationOutcome(key, kind, GenerationOutcome.STATE_CACHED, path=existing)

    job_id = generate_job_id()

    if mode == MODE_SYNC:
        def log(message):
            logger.info('Job %s: %s', job_id, message)

        log(f'Generating {kind.label} for key {key}')
        generate = partial(run_generator, kind, source, key, store, config, logger=log)
        outcome = context.orchestrator.run(key, kind, generate, timeout=timeout)
        outcome.job_id = job_id
        return outcome

    job = GenerationJob(kind, source, key, job_id)
    result = enqueue_generation(job)

    if mode == MODE_QUEUE:
        return GenerationOutcome(key, kind, GenerationOutcome.STATE_PENDING, job_id=job_id)

    return wait_for_job(job, result, store, timeout)


def wait_for_job(job, result, store, timeout):
    """
    Wait for a queued job, upgrading to a generated outcome if it finishes in time.

    Returns:
        GenerationOutcome
    """
    try:
        value = result.get(blocking=True, timeout=timeout)
    except TaskException as e:
        metadata = e.metadata or {}
        if metadata.get('retries'):
            # Intermediate failure; huey has another attempt scheduled
            logger.info('Job %s: Retrying after %s', job.job_id, metadata.get('error'))
            return GenerationOutcome(
                job.key, job.kind, GenerationOutcome.STATE_PENDING, job_id=job.job_id
            )
        logger.error('Job %s: Failed to generate %s: %s', job.job_id, job.kind.label, e)
        return GenerationOutcome(
            job.key, job.kind, GenerationOutcome.STATE_FAILED, error=e, job_id=job.job_id
        )
    except HueyException:
        # ResultTimeout: the job keeps running in the worker
        logger.info('Job %s: Still processing after %ss', job.job_id, timeout)
        return GenerationOutcome(
            job.key, job.kind, GenerationOutcome.STATE_PENDING, job_id=job.job_id
        )

    path = Path(value) if value else store.find(job.key, job.kind)
    if path is None:
        return GenerationOutcome(
            job.key, job.kind, GenerationOutcome.STATE_PENDING, job_id=job.job_id
        )
    return GenerationOutcome(
        job.key, job.kind, GenerationOutcome.STATE_GENERATED, path=path, job_id=job.job_id
    )


def get_artifact(kind, key, context=None, ext=None):
    """
    Read a committed artifact.

    Raises:
        NotFoundError
    """
    context = context or get_context()
    return context.store.open(key, kind, ext=ext)
