"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-users
    gunicorn wsgi:app
"""

from dairy_portal import create_app

app = create_app()
