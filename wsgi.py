"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi seed-plans
    flask --app wsgi db upgrade
"""

from proposalhub import create_app

app = create_app()
