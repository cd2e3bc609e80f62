"""WSGI entry point: ``gunicorn -c gunicorn.conf.py`` from ``backend/``."""

from library_auth import create_app

app = create_app()
