"""
WSGI entry point for the JobPulse web client.

Run with any WSGI server, e.g. ``gunicorn jobpulse.wsgi:app``.
"""

from jobpulse.app import app

# WSGI servers look for a callable named 'app'; the Flask app already is one
