"""Account balance and money transfer service: REST API, storage, locking and commands."""

__version__ = "1.0.0"