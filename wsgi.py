"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db init        # once; then db migrate / db upgrade
    flask --app wsgi seed-reference-data
    gunicorn wsgi:app
"""

from qa_hub import create_app

app = create_app()
