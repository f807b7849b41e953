"""
URL configuration for artcache project.

Specific generate routes come before the artifact routes so that
"artwork/artist-square" is never read as a clip key.
"""

from django.urls import path, re_path

from artwork.views import (
    artist_square_file_view,
    artist_square_view,
    clip_view,
    generate_clip_view,
    icloud_file_view,
    icloud_view,
)

urlpatterns = [
    path('artwork/generate', generate_clip_view, name='generate_clip'),
    path('artwork/artist-square', artist_square_view, name='artist_square'),
    path('artwork/icloud', icloud_view, name='icloud'),
    re_path(
        r'^artwork/artist-square/(?P<key>[A-Za-z0-9_-]+)\.jpg$',
        artist_square_file_view,
        name='artist_square_file',
    ),
    re_path(
        r'^artwork/icloud/(?P<key>[A-Za-z0-9_-]+?)(?:\.(?P<ext>jpg|jpeg|png|gif))?$',
        icloud_file_view,
        name='icloud_file',
    ),
    re_path(
        r'^artwork/(?P<key>[A-Za-z0-9_-]+)\.(?P<ext>gif|webp)$',
        clip_view,
        name='clip',
    ),
]
