"""HTTP boundary for the media app.

Views only translate between HTTP and ``MediaService``: they decode the
request, call one service operation and render the result. Every
``MediaError`` is rendered as a JSON error body with its status code.
"""

import asyncio
import logging
from http import HTTPStatus
from typing import Any

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.utils.http import content_disposition_header
from django.views import View

from server.apps.media.exceptions import ErrorKind, MediaError
from server.apps.media.infrastructure.multipart import (
    ParsedFile,
    adecode_multipart,
)
from server.apps.media.logic.media_operations import (
    MediaService,
    parse_file_id,
)

logger = logging.getLogger(__name__)

UPLOAD_FIELD_NAME = 'file'


def error_response(error: MediaError) -> JsonResponse:
    """Render a MediaError as a JSON response.

    Details of internal errors are logged, never sent to the client.
    """
    body: dict[str, Any] = {'error': error.message}
    if error.kind is ErrorKind.INTERNAL:
        logger.error('Request failed: %s %s', error.message, error.details)
    else:
        body.update(error.details)
    return JsonResponse(body, status=error.status_code)


def _log_background_outcome(task: 'asyncio.Task[HttpResponse]') -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error('Timed out request failed in background: %r', error)
    else:
        logger.info('Timed out request finished in background')


class MediaView(View):
    """Base view for media endpoints.

    ``service`` is injected through ``as_view(service=...)``. Handling is
    bounded by ``MEDIA_REQUEST_TIMEOUT``; on expiry the client gets 408
    while the handler keeps running so storage writes are not cut off.
    """

    service: MediaService | None = None
    request_timeout: float | None = None

    async def dispatch(
        self,
        request: HttpRequest,
        *args: Any,
        **kwargs: Any,
    ) -> HttpResponse:
        """Run the handler as a shielded task under the request timeout."""
        timeout = self.request_timeout or settings.MEDIA_REQUEST_TIMEOUT
        task = asyncio.ensure_future(self._handle(request, *args, **kwargs))
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except TimeoutError:
            task.add_done_callback(_log_background_outcome)
            logger.warning(
                'Request timed out after %ss: %s %s',
                timeout,
                request.method,
                request.path,
            )
            return JsonResponse(
                {'error': 'Request timed out'},
                status=HTTPStatus.REQUEST_TIMEOUT,
            )

    @property
    def media_service(self) -> MediaService:
        """The injected service."""
        if self.service is None:
            raise RuntimeError(
                f'{type(self).__name__} requires as_view(service=...)',
            )
        return self.service

    async def read_upload(self, request: HttpRequest) -> ParsedFile:
        """Decode the single ``file`` part of a multipart request.

        Raises:
            MediaError: BAD_REQUEST if the request is not multipart or has
                no file, PAYLOAD_TOO_LARGE if the file is too big.
        """
        if request.content_type != 'multipart/form-data':
            raise MediaError.bad_request(
                'Content-Type must be multipart/form-data',
            )

        parts = await adecode_multipart(
            request.META,
            request,
            max_file_size=self.media_service.validator.max_file_size,
            max_files=settings.MEDIA_MAX_FILES_PER_REQUEST,
        )
        for part in parts:
            if part.field_name == UPLOAD_FIELD_NAME:
                return part
        raise MediaError.bad_request('No file provided in the request')

    async def _handle(
        self,
        request: HttpRequest,
        *args: Any,
        **kwargs: Any,
    ) -> HttpResponse:
        try:
            return await super().dispatch(request, *args, **kwargs)
        except MediaError as error:
            return error_response(error)


class MediaCollectionView(MediaView):
    """GET /media."""

    async def get(self, request: HttpRequest) -> HttpResponse:
        """List metadata for all files, most recent first."""
        records = await self.media_service.list_files()
        return JsonResponse({
            'files': [record.to_dict() for record in records],
            'total': len(records),
        })


class MediaUploadView(MediaView):
    """POST /media/upload."""

    async def post(self, request: HttpRequest) -> HttpResponse:
        """Upload a new file."""
        parsed = await self.read_upload(request)
        record = await self.media_service.upload(parsed)
        return JsonResponse(
            {
                'message': 'File uploaded successfully',
                'file': record.to_dict(),
            },
            status=HTTPStatus.CREATED,
        )


class MediaDetailView(MediaView):
    """GET, PUT and DELETE /media/<id>."""

    async def get(self, request: HttpRequest, file_id: str) -> HttpResponse:
        """Return the raw file content."""
        retrieved = await self.media_service.retrieve(parse_file_id(file_id))
        response = HttpResponse(
            retrieved.data,
            content_type=retrieved.content_type,
        )
        response['Content-Disposition'] = content_disposition_header(
            as_attachment=False,
            filename=retrieved.record.original_name,
        )
        response['Content-Length'] = str(len(retrieved.data))
        return response

    async def put(self, request: HttpRequest, file_id: str) -> HttpResponse:
        """Replace the file content, keeping its id."""
        parsed_id = parse_file_id(file_id)
        parsed = await self.read_upload(request)
        record = await self.media_service.replace(parsed_id, parsed)
        return JsonResponse({
            'message': 'File replaced successfully',
            'file': record.to_dict(),
        })

    async def delete(self, request: HttpRequest, file_id: str) -> HttpResponse:
        """Delete the file and its metadata."""
        parsed_id = parse_file_id(file_id)
        await self.media_service.delete(parsed_id)
        return JsonResponse({
            'message': 'File deleted successfully',
            'id': str(parsed_id),
        })


async def health(request: HttpRequest) -> JsonResponse:
    """GET /health."""
    return JsonResponse({
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
    })


def page_not_found(request: HttpRequest, exception: Exception) -> JsonResponse:
    """JSON replacement for Django's 404 page."""
    return JsonResponse({'error': 'Not Found'}, status=HTTPStatus.NOT_FOUND)


def server_error(request: HttpRequest) -> JsonResponse:
    """JSON replacement for Django's 500 page."""
    return JsonResponse(
        {'error': 'Internal Server Error'},
        status=HTTPStatus.INTERNAL_SERVER_ERROR,
    )
