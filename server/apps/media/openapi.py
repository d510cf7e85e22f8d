"""OpenAPI document for the media endpoints.

The media views are plain async Django views, which drf-spectacular does
not enumerate. ``add_media_paths`` is a postprocessing hook that writes
their operations into the generated schema.
"""

from typing import Any, Final

_JSON: Final = 'application/json'

_FILE_ID_PARAMETER: Final = {
    'name': 'id',
    'in': 'path',
    'required': True,
    'description': 'File identifier.',
    'schema': {'type': 'string', 'format': 'uuid'},
}

_SCHEMAS: Final = {
    'FileMetadata': {
        'type': 'object',
        'properties': {
            'id': {'type': 'string', 'format': 'uuid'},
            'originalName': {'type': 'string'},
            'mimeType': {'type': 'string'},
            'size': {'type': 'integer', 'minimum': 0},
            'uploadedAt': {'type': 'string', 'format': 'date-time'},
        },
        'required': ['id', 'originalName', 'mimeType', 'size', 'uploadedAt'],
    },
    'FileList': {
        'type': 'object',
        'properties': {
            'files': {
                'type': 'array',
                'items': {'$ref': '#/components/schemas/FileMetadata'},
            },
            'total': {'type': 'integer'},
        },
        'required': ['files', 'total'],
    },
    'FileResult': {
        'type': 'object',
        'properties': {
            'message': {'type': 'string'},
            'file': {'$ref': '#/components/schemas/FileMetadata'},
        },
        'required': ['message', 'file'],
    },
    'Error': {
        'type': 'object',
        'properties': {
            'error': {'type': 'string'},
            'maxFileSize': {'type': 'integer'},
            'allowedTypes': {'type': 'array', 'items': {'type': 'string'}},
        },
        'required': ['error'],
    },
    'Health': {
        'type': 'object',
        'properties': {
            'status': {'type': 'string', 'example': 'healthy'},
            'timestamp': {'type': 'string', 'format': 'date-time'},
        },
        'required': ['status', 'timestamp'],
    },
}

_TAGS: Final = (
    {'name': 'Health', 'description': 'Service liveness.'},
    {
        'name': 'Media',
        'description': (
            'Upload, list, download, replace and delete validated files.'
        ),
    },
)


def _ref(schema: str) -> dict[str, str]:
    return {'$ref': f'#/components/schemas/{schema}'}


def _json_response(description: str, schema: str) -> dict[str, Any]:
    return {
        'description': description,
        'content': {_JSON: {'schema': _ref(schema)}},
    }


def _error(description: str) -> dict[str, Any]:
    return _json_response(description, 'Error')


_UPLOAD_BODY: Final = {
    'required': True,
    'content': {
        'multipart/form-data': {
            'schema': {
                'type': 'object',
                'properties': {
                    'file': {'type': 'string', 'format': 'binary'},
                },
                'required': ['file'],
            },
        },
    },
}

_UPLOAD_ERRORS: Final = {
    '400': _error('Missing file, empty file or malformed request.'),
    '413': _error('File exceeds the size limit.'),
    '415': _error('Type not allowed or content does not match it.'),
    '500': _error('Storage or database failure.'),
}


def _media_paths() -> dict[str, Any]:
    return {
        '/health': {
            'get': {
                'operationId': 'health',
                'summary': 'Health check',
                'tags': ['Health'],
                'responses': {
                    '200': _json_response('Service is up.', 'Health'),
                },
            },
        },
        '/media': {
            'get': {
                'operationId': 'media_list',
                'summary': 'List files',
                'description': 'Metadata of every file, most recent first.',
                'tags': ['Media'],
                'responses': {
                    '200': _json_response('File listing.', 'FileList'),
                    '500': _error('Database failure.'),
                },
            },
        },
        '/media/upload': {
            'post': {
                'operationId': 'media_upload',
                'summary': 'Upload a file',
                'tags': ['Media'],
                'requestBody': _UPLOAD_BODY,
                'responses': {
                    '201': _json_response('File stored.', 'FileResult'),
                    **_UPLOAD_ERRORS,
                },
            },
        },
        '/media/{id}': {
            'parameters': [_FILE_ID_PARAMETER],
            'get': {
                'operationId': 'media_download',
                'summary': 'Download a file',
                'description': 'Raw content served inline.',
                'tags': ['Media'],
                'responses': {
                    '200': {
                        'description': 'File content.',
                        'content': {
                            '*/*': {
                                'schema': {
                                    'type': 'string',
                                    'format': 'binary',
                                },
                            },
                        },
                    },
                    '400': _error('Invalid file id.'),
                    '404': _error('File not found.'),
                    '500': _error('Storage or database failure.'),
                },
            },
            'put': {
                'operationId': 'media_replace',
                'summary': 'Replace a file',
                'description': 'New content under the same id.',
                'tags': ['Media'],
                'requestBody': _UPLOAD_BODY,
                'responses': {
                    '200': _json_response('File replaced.', 'FileResult'),
                    '404': _error('File not found.'),
                    **_UPLOAD_ERRORS,
                },
            },
            'delete': {
                'operationId': 'media_delete',
                'summary': 'Delete a file',
                'tags': ['Media'],
                'responses': {
                    '200': {
                        'description': 'File deleted.',
                        'content': {
                            _JSON: {
                                'schema': {
                                    'type': 'object',
                                    'properties': {
                                        'message': {'type': 'string'},
                                        'id': {
                                            'type': 'string',
                                            'format': 'uuid',
                                        },
                                    },
                                },
                            },
                        },
                    },
                    '400': _error('Invalid file id.'),
                    '404': _error('File not found.'),
                    '500': _error('Storage or database failure.'),
                },
            },
        },
    }


def add_media_paths(result, generator, request, public):
    """Postprocessing hook that documents the media routes.

    Replaces the generated ``paths`` with the media and health operations
    and registers the schemas and tags they reference.
    """
    result['paths'] = _media_paths()
    components = result.setdefault('components', {})
    components.setdefault('schemas', {}).update(_SCHEMAS)
    result['tags'] = list(_TAGS)
    return result
