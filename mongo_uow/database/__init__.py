from .base import BaseDatabaseDriver
from .manager import DatabaseManager
from .mongo_driver import MongoDriver

__all__ = ["BaseDatabaseDriver", "DatabaseManager", "MongoDriver"]
