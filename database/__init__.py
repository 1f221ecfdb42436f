"""Database package"""
from .database_manager import DatabaseManager
from .errors import RepositoryError

__all__ = ['DatabaseManager', 'RepositoryError']
