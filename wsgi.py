"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi init-db
    flask --app wsgi db upgrade
"""

from changedesk import create_app

app = create_app()
