from haulage.config import settings
from haulage.db.repository import GraphRepository
from haulage.db.memory import InMemoryGraphRepository
from typing import Optional
import logging

logger = logging.getLogger(__name__)

_repository: Optional[GraphRepository] = None

def create_repository() -> GraphRepository:
    """Build the repository for the configured backend"""
    if settings.store_backend == "firebase":
        from haulage.db.firebase import FirebaseGraphRepository, init_firebase_app
        return FirebaseGraphRepository(init_firebase_app())
    return InMemoryGraphRepository()

def get_repository() -> GraphRepository:
    """Dependency to get the graph repository"""
    global _repository
    if _repository is None:
        _repository = create_repository()
        logger.info(f"Using {_repository.name} store")
    return _repository

async def close_repository():
    """Close store connections"""
    global _repository
    if _repository is not None:
        await _repository.close()
        _repository = None
        logger.info("Store connections closed")
