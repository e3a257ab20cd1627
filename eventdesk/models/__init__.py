"""
EventDesk data layer.

``db`` is the Flask-SQLAlchemy extension backing ``SqlDocumentStore``; the
domain types in ``entities`` are plain dataclasses encoded to and from the
document store.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
