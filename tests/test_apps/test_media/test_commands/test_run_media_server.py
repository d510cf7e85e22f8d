"""Tests for run_media_server management command."""

from io import StringIO
from unittest import mock

from django.core.management import call_command


@mock.patch('server.apps.media.management.commands.run_media_server.uvicorn')
def test_runs_uvicorn_with_settings_defaults(uvicorn, settings):
    """Test host and port fall back to settings."""
    settings.MEDIA_SERVER_HOST = '127.0.0.1'
    settings.MEDIA_SERVER_PORT = 3100

    out = StringIO()
    call_command('run_media_server', stdout=out)

    uvicorn.run.assert_called_once_with(
        'server.asgi:application',
        host='127.0.0.1',
        port=3100,
        log_config=None,
        lifespan='off',
    )
    assert 'Starting media server on 127.0.0.1:3100' in out.getvalue()
    assert 'Media server stopped' in out.getvalue()


@mock.patch('server.apps.media.management.commands.run_media_server.uvicorn')
def test_cli_options_override_settings(uvicorn):
    """Test --host, --port and --reload are passed through."""
    call_command(
        'run_media_server',
        '--host',
        '0.0.0.0',  # noqa: S104
        '--port',
        '8080',
        '--reload',
        stdout=StringIO(),
    )

    kwargs = uvicorn.run.call_args.kwargs
    assert kwargs['host'] == '0.0.0.0'  # noqa: S104
    assert kwargs['port'] == 8080
    assert kwargs['reload'] is True
    assert kwargs['reload_dirs'][0].endswith('server')
