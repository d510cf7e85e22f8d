"""Business logic layer for media app.

This package composes the infrastructure pieces into the user-facing
operations: upload, replace, retrieve, list and delete. It owns the
ordering rules that keep a stored object and its metadata row
consistent when a step fails half way.
"""
