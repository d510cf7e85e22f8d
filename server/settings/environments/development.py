"""
This file contains all the settings that defines the development server.

SECURITY WARNING: don't run with debug turned on in production!
"""

from server.settings.components import config

DEBUG = config('DJANGO_DEBUG', cast=bool, default=True)

SECRET_KEY = config(
    'DJANGO_SECRET_KEY',
    default='django-insecure-development-only-key',
)

ALLOWED_HOSTS = config(
    'DJANGO_ALLOWED_HOSTS',
    default='*',
    cast=lambda hosts: [host.strip() for host in hosts.split(',')],
)
