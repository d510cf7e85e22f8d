"""Django management command to run the media ASGI server."""

import logging
from typing import Any, final, override

import uvicorn
from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import connections

logger = logging.getLogger(__name__)

_ASGI_APP = 'server.asgi:application'


@final
class Command(BaseCommand):
    """Run the media service using the uvicorn ASGI server."""

    help = 'Run the media upload HTTP server'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--host',
            type=str,
            default=None,
            help='Host to bind to (default: from settings)',
        )
        parser.add_argument(
            '--port',
            type=int,
            default=None,
            help='Port to bind to (default: from settings)',
        )
        parser.add_argument(
            '--reload',
            action='store_true',
            default=False,
            help='Enable auto-reload on code changes (development only)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments.
            options: Keyword arguments from command line.
        """
        host = options['host'] or settings.MEDIA_SERVER_HOST
        port = options['port'] or settings.MEDIA_SERVER_PORT

        self.stdout.write(
            self.style.SUCCESS(f'Starting media server on {host}:{port}'),
        )
        logger.info('Media server starting on %s:%d', host, port)

        reload_options: dict[str, Any] = {}
        if options['reload']:
            reload_options = {
                'reload': True,
                'reload_dirs': [str(settings.BASE_DIR / 'server')],
            }

        try:
            uvicorn.run(
                _ASGI_APP,
                host=host,
                port=port,
                **reload_options,
                log_config=None,  # keep Django's LOGGING
                lifespan='off',
            )
        finally:
            # Metadata store connection is owned by this process
            connections.close_all()
            self.stdout.write(self.style.SUCCESS('Media server stopped'))
