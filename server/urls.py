"""
Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.
"""

from django.urls import include, path
from drf_spectacular.views import (
    SpectacularJSONAPIView,
    SpectacularSwaggerView,
)

from server.apps.media.views import health

urlpatterns = [
    path('health', health, name='health'),
    path('', include('server.apps.media.urls', namespace='media')),

    # API docs:
    path(
        'api-docs/swagger.json',
        SpectacularJSONAPIView.as_view(),
        name='api-docs-json',
    ),
    path(
        'api-docs',
        SpectacularSwaggerView.as_view(url_name='api-docs-json'),
        name='api-docs',
    ),
]

handler404 = 'server.apps.media.views.page_not_found'
handler500 = 'server.apps.media.views.server_error'
