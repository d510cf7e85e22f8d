"""ASGI entrypoint for the media service.

Served by ``python manage.py run_media_server`` (uvicorn).
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'server.settings')

application = get_asgi_application()
