import logging
from urllib.parse import urlparse

from mongoengine import connect, disconnect
from mongoengine.connection import get_db

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "shopping-mall"


def _db_name(mongo_uri: str) -> str:
    # Auto-detect DB name from URI
    parsed = urlparse(mongo_uri)
    return (parsed.path or "").lstrip("/") or DEFAULT_DB_NAME


def init_db(config, **connect_kwargs):
    """Connect the default mongoengine alias using the configured URI.

    Extra keyword arguments go straight to `mongoengine.connect`
    (tests pass `mongo_client_class=mongomock.MongoClient`).
    """
    mongo_uri = config["MONGODB_URI"]
    db_name = _db_name(mongo_uri)

    disconnect(alias="default")
    try:
        connect(
            db=db_name,
            host=mongo_uri,
            alias="default",
            **connect_kwargs
        )
        is_atlas = mongo_uri.startswith("mongodb+srv://") or "mongodb.net" in mongo_uri
        logger.info(f"✅ MongoDB connected → {db_name} ({'Atlas' if is_atlas else 'local'})")
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        raise
    return db_name


def get_connection_status() -> dict:
    """Report whether the default connection answers a ping."""
    try:
        db = get_db(alias="default")
        db.command("ping")
        return {
            "status": "connected",
            "message": "MongoDB is connected.",
            "database": db.name,
        }
    except Exception as e:
        logger.warning(f"⚠️ MongoDB health check failed: {e}")
        return {
            "status": "disconnected",
            "message": "MongoDB is not reachable.",
            "database": "N/A",
        }
