"""URL configuration for media app."""

from django.urls import path

from server.apps.media.logic.media_operations import build_media_service
from server.apps.media.views import (
    MediaCollectionView,
    MediaDetailView,
    MediaUploadView,
)

app_name = 'media'

# One service instance shared by all media views
media_service = build_media_service()

urlpatterns = [
    path(
        'media',
        MediaCollectionView.as_view(service=media_service),
        name='list',
    ),
    path(
        'media/upload',
        MediaUploadView.as_view(service=media_service),
        name='upload',
    ),
    path(
        'media/<str:file_id>',
        MediaDetailView.as_view(service=media_service),
        name='detail',
    ),
]
