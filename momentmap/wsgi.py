"""
WSGI config for the momentmap project.

It exposes the WSGI callable as a module-level variable named ``application``.
HTTP only: WebSocket traffic needs the ASGI application in asgi.py.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "momentmap.settings")

application = get_wsgi_application()
