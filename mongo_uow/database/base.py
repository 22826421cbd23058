from abc import ABC, abstractmethod

class BaseDatabaseDriver(ABC):
    """Owns one store client; connect() verifies reachability, disconnect() releases it."""

    @abstractmethod
    async def connect(self):
        pass

    @abstractmethod
    async def disconnect(self):
        pass

    @abstractmethod
    def get_client(self):
        pass
