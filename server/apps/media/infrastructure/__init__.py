"""Infrastructure layer for media app.

This package contains integrations with external systems:
- Multipart request decoding with bounded per-file buffering
- Content validation (declared type, extension, magic bytes)
- Custom storage backend (S3/MinIO)
- Metadata persistence (SQLite via the Django ORM)

Keep infrastructure concerns separate from business logic.
"""
