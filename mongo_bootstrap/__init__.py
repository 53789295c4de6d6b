"""
mongo-bootstrap - one-shot MongoDB initialization.

Creates the application database, collection and a database-scoped
application user at container startup.
"""

__version__ = "0.1.0"
