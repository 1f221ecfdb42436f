"""
Database layer exceptions
"""


class RepositoryError(Exception):
    """Raised when the underlying SQLite database reports an error"""
