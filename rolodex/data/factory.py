from enum import Enum
from typing import Callable, Dict

from .base import DbAdapter
from .memory import MemoryAdapter


class DbBackend(str, Enum):
    MONGODB = 'mongodb'
    MEMORY = 'memory'

    def __str__(self):
        return str(self.value)


def _create_mongodb(config) -> DbAdapter:
    from .mongodb import MongoDBAdapter
    return MongoDBAdapter(config.get_env_var('MONGO_URI'), config.get_env_var('MONGO_DATABASE'))


def _create_memory(config) -> DbAdapter:
    return MemoryAdapter()


class DbAdapterFactory:
    def __init__(self):
        self._backends: Dict[DbBackend, Callable] = {}

    def register_backend(self, key: DbBackend, builder: Callable):
        self._backends[key] = builder

    def get(self, config) -> DbAdapter:
        key = DbBackend(config.get_env_var('DB_BACKEND'))
        builder = self._backends.get(key)
        if not builder:
            raise ValueError(key)
        return builder(config)


db_adapter_factory = DbAdapterFactory()

db_adapter_factory.register_backend(key=DbBackend.MONGODB, builder=_create_mongodb)
db_adapter_factory.register_backend(key=DbBackend.MEMORY, builder=_create_memory)


def get_db_adapter(config) -> DbAdapter:
    """Build the store handle once at start-up; it is then passed to every component."""
    return db_adapter_factory.get(config)
