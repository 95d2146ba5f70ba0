"""WSGI entry point (gunicorn wsgi:app)."""

from daily_reports import create_app

app = create_app()
