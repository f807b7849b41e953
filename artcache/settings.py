"""
Django settings for artcache project.

Every ARTCACHE_* value can be overridden from the environment. The service
layer reads them once at startup through artwork.service.config.ArtworkConfig.
"""
import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


TESTING = 'test' in sys.argv or 'pytest' in sys.modules

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-artcache-dev-key')

DEBUG = env_bool('DJANGO_DEBUG', False)

ALLOWED_HOSTS = env_list('DJANGO_ALLOWED_HOSTS', ['*'])

INSTALLED_APPS = [
    'huey.contrib.djhuey',
    'artwork.apps.ArtworkAppConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'artcache.urls'

WSGI_APPLICATION = 'artcache.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Artwork cache
ARTCACHE_CACHE_DIR = os.environ.get('ARTCACHE_CACHE_DIR', str(BASE_DIR / 'cache'))
ARTCACHE_CONFIG_FILE = os.environ.get('ARTCACHE_CONFIG_FILE', str(BASE_DIR / 'config.yml'))
ARTCACHE_PUBLISHED_URI = os.environ.get('ARTCACHE_PUBLISHED_URI', '')
ARTCACHE_ALLOWED_DOMAINS = env_list('ARTCACHE_ALLOWED_DOMAINS', ['.apple.com', '.mzstatic.com'])

# sync | queue | queue-wait
ARTCACHE_GENERATION_MODE = os.environ.get('ARTCACHE_GENERATION_MODE', 'sync')
ARTCACHE_WAIT_TIMEOUT = float(os.environ.get('ARTCACHE_WAIT_TIMEOUT', '30'))
ARTCACHE_TIMEOUT_STATUS = int(os.environ.get('ARTCACHE_TIMEOUT_STATUS', '202'))
ARTCACHE_MAX_WORKERS = int(os.environ.get('ARTCACHE_MAX_WORKERS', '5'))
ARTCACHE_SYNC_RETRIES = int(os.environ.get('ARTCACHE_SYNC_RETRIES', '0'))
ARTCACHE_SYNC_RETRY_DELAY = float(os.environ.get('ARTCACHE_SYNC_RETRY_DELAY', '1'))
ARTCACHE_TASK_RETRIES = int(os.environ.get('ARTCACHE_TASK_RETRIES', '3'))
ARTCACHE_TASK_RETRY_DELAY = int(os.environ.get('ARTCACHE_TASK_RETRY_DELAY', '10'))

ARTCACHE_MIN_RENDITION_WIDTH = int(os.environ.get('ARTCACHE_MIN_RENDITION_WIDTH', '450'))
ARTCACHE_CLIP_PRESET = os.environ.get('ARTCACHE_CLIP_PRESET', 'palette')
ARTCACHE_CLIP_FORMAT = os.environ.get('ARTCACHE_CLIP_FORMAT', 'gif')
ARTCACHE_CLIP_WIDTH = int(os.environ.get('ARTCACHE_CLIP_WIDTH', '486'))
ARTCACHE_SQUARE_SIZE = int(os.environ.get('ARTCACHE_SQUARE_SIZE', '500'))
ARTCACHE_RESIZE_SIZE = int(os.environ.get('ARTCACHE_RESIZE_SIZE', '1024'))
ARTCACHE_JPEG_QUALITY = int(os.environ.get('ARTCACHE_JPEG_QUALITY', '95'))
ARTCACHE_MAX_IMAGE_BYTES = int(os.environ.get('ARTCACHE_MAX_IMAGE_BYTES', str(50 * 1024 * 1024)))
ARTCACHE_DOWNLOAD_ATTEMPTS = int(os.environ.get('ARTCACHE_DOWNLOAD_ATTEMPTS', '3'))
ARTCACHE_DOWNLOAD_RETRY_DELAY = float(os.environ.get('ARTCACHE_DOWNLOAD_RETRY_DELAY', '1'))
ARTCACHE_HTTP_TIMEOUT = float(os.environ.get('ARTCACHE_HTTP_TIMEOUT', '30'))
ARTCACHE_TRANSCODE_TIMEOUT = float(os.environ.get('ARTCACHE_TRANSCODE_TIMEOUT', '600'))
ARTCACHE_FFMPEG_BINARY = os.environ.get('ARTCACHE_FFMPEG_BINARY', 'ffmpeg')
ARTCACHE_CACHE_MAX_AGE = int(os.environ.get('ARTCACHE_CACHE_MAX_AGE', str(7 * 24 * 60 * 60)))

# Huey task queue
REDIS_URL = os.environ.get('REDIS_URL')

if REDIS_URL:
    HUEY = {
        'huey_class': 'huey.RedisHuey',
        'name': 'artcache',
        'url': REDIS_URL,
        'immediate': TESTING or env_bool('HUEY_IMMEDIATE', False),
        # Only final failures reach the result store
        'store_intermediate_errors': False,
        'consumer': {'workers': ARTCACHE_MAX_WORKERS, 'worker_type': 'thread'},
    }
else:
    HUEY = {
        'huey_class': 'huey.SqliteHuey',
        'name': 'artcache',
        'filename': os.environ.get('HUEY_DB', str(BASE_DIR / 'huey.sqlite3')),
        'immediate': TESTING or env_bool('HUEY_IMMEDIATE', False),
        # Only final failures reach the result store
        'store_intermediate_errors': False,
        'consumer': {'workers': ARTCACHE_MAX_WORKERS, 'worker_type': 'thread'},
    }

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'artwork': {
            'handlers': ['console'],
            'level': os.environ.get('ARTCACHE_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'huey': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
