"""Order storage: validated order records, a database and Redis cache repository, a message consumer and a WSGI front end."""

__version__ = "0.1.0"