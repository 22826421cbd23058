from typing import Optional
from mongo_uow.repository.factory import RepositoryFactory
from mongo_uow.repository.unit_of_work import UnitOfWork, UnitOfWorkOptions
from .mongo_driver import MongoDriver

class DatabaseManager:
    _instance = None

    def __init__(self, settings):
        self.mongo = MongoDriver(settings.MONGO_URL, settings.MONGO_DB)

    @classmethod
    def get_instance(cls, settings=None):
        if cls._instance is None:
            if settings is None:
                from mongo_uow.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    def create_unit_of_work(
        self, repository_factory: RepositoryFactory, options: Optional[UnitOfWorkOptions] = None
    ) -> UnitOfWork:
        """New unit of work on the shared client."""
        return UnitOfWork(self.mongo.get_client(), repository_factory, options)
