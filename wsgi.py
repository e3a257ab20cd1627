"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask audit-links
"""

from eventdesk import create_app

app = create_app()
