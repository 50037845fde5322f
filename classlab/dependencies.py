from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from classlab import config

_client = None


def get_client() -> AsyncIOMotorClient:
    """Lazily create the shared Mongo client"""
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(config.MONGO_URL)
    return _client


def get_db_instance() -> AsyncIOMotorDatabase:
    return get_client()[config.MONGO_DB_NAME]


def close_client():
    global _client
    if _client is not None:
        _client.close()
        _client = None

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()
