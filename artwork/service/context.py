"""
Process-wide artwork components, built once from an explicit config.
"""
from dataclasses import dataclass

from artwork.service.config import ArtworkConfig
from artwork.service.orchestrator import GenerationOrchestrator
from artwork.service.store import ArtifactStore


@dataclass
class ArtworkContext:
    config: ArtworkConfig
    store: ArtifactStore
    orchestrator: GenerationOrchestrator

    @classmethod
    def build(cls, config):
        store = ArtifactStore(config.cache_dir)
        orchestrator = GenerationOrchestrator(
            store,
            max_workers=config.max_workers,
            wait_timeout=config.wait_timeout,
            retries=config.sync_retries,
            retry_delay=config.sync_retry_delay,
        )
        return cls(config=config, store=store, orchestrator=orchestrator)

    def close(self):
        self.orchestrator.shutdown(wait=False)
