import atexit
import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ArtworkAppConfig(AppConfig):
    name = 'artwork'
    default_auto_field = 'django.db.models.BigAutoField'

    context = None

    def ready(self):
        """Build the shared artwork components and cache directories."""
        from artwork.service.config import ArtworkConfig
        from artwork.service.context import ArtworkContext

        config = ArtworkConfig.from_settings()
        self.context = ArtworkContext.build(config)

        logger.info('Cache directory: %s', config.cache_dir)
        self.context.store.ensure_directories()
        logger.info('Generation mode: %s', config.generation_mode)

        atexit.register(self.context.close)


def get_context():
    """The ArtworkContext built at startup."""
    from django.apps import apps

    return apps.get_app_config('artwork').context
