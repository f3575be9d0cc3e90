import logging

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient
from pymongo.errors import PyMongoError

import config

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(id_value: Any) -> Optional[ObjectId]:
    """Coerce a string id to an ObjectId; None when it is not a valid one."""
    if isinstance(id_value, ObjectId):
        return id_value
    try:
        return ObjectId(str(id_value))
    except (InvalidId, TypeError):
        return None


def _stringify_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc and '_id' in doc:
        doc['_id'] = str(doc['_id'])
    return doc


class DatabaseService(ABC):
    @abstractmethod
    def insert(self, data: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        pass

    @abstractmethod
    def find(self, query: Dict[str, Any], **kwargs) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def find_one(self, query: Dict[str, Any], **kwargs) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def count(self, query: Dict[str, Any]) -> int:
        pass

    @abstractmethod
    def update(self, query: Dict[str, Any], update_data: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        pass

    @abstractmethod
    def delete(self, query: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        pass


class MongoDBService(DatabaseService):
    """
    One MongoDB collection holding job records of a single tool.

    Documents carry `createdAt`/`updatedAt` timestamps which are maintained
    here, and `_id` is always handed back to callers as a string.
    """

    def __init__(self, database: str, collection: str, client: MongoClient):
        self.client = client
        self.db = self.client[database]
        self.collection = self.db[collection]

    def ensure_indexes(self) -> None:
        try:
            self.collection.create_index([('createdAt', DESCENDING)])
            self.collection.create_index('status')
            self.collection.create_index('userId')
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB index creation failed: {e}")

    def insert(self, data: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        try:
            now = utcnow()
            data.setdefault('createdAt', now)
            data.setdefault('updatedAt', now)
            result = self.collection.insert_one(data, **kwargs)
            return {'success': True, 'inserted_id': str(result.inserted_id)}
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB insert failed: {e}")

    def find(self, query: Dict[str, Any], **kwargs) -> List[Dict[str, Any]]:
        try:
            projection = kwargs.pop('projection', None)
            limit = kwargs.pop('limit', 0)
            skip = kwargs.pop('skip', 0)
            sort = kwargs.pop('sort', None)

            cursor = self.collection.find(query, projection, **kwargs)

            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)

            return [_stringify_id(doc) for doc in cursor]
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB find failed: {e}")

    def find_one(self, query: Dict[str, Any], **kwargs) -> Optional[Dict[str, Any]]:
        try:
            return _stringify_id(self.collection.find_one(query, **kwargs))
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB find_one failed: {e}")

    def count(self, query: Dict[str, Any]) -> int:
        try:
            return self.collection.count_documents(query)
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB count failed: {e}")

    def update(self, query: Dict[str, Any], update_data: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        try:
            if not any(k.startswith('$') for k in update_data.keys()):
                update_data = {'$set': update_data}
            update_data.setdefault('$set', {})['updatedAt'] = utcnow()

            result = self.collection.update_one(query, update_data, **kwargs)
            return {
                'success': True,
                'matched_count': result.matched_count,
                'modified_count': result.modified_count
            }
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB update failed: {e}")

    def delete(self, query: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        try:
            result = self.collection.delete_one(query, **kwargs)
            return {'success': True, 'deleted_count': result.deleted_count}
        except PyMongoError as e:
            raise RuntimeError(f"MongoDB delete failed: {e}")


@lru_cache()
def get_mongo_client() -> MongoClient:
    logger.info("Connecting to MongoDB database '%s'", config.DB_NAME)
    return MongoClient(
        config.MONGO_URL,
        maxPoolSize=5,
        maxIdleTimeMS=30000,
        serverSelectionTimeoutMS=5000,
        socketTimeoutMS=45000,
    )


@lru_cache()
def get_db_client(collection: str) -> DatabaseService:
    if not config.DB_NAME:
        raise Exception("DB_NAME not defined")
    return MongoDBService(
        database=config.DB_NAME,
        collection=collection,
        client=get_mongo_client(),
    )


# -------------------- FastAPI dependencies --------------------

def pdf_brainrot_db() -> DatabaseService:
    return get_db_client(config.PDF_BRAINROT_COLLECTION)


def text_brainrot_db() -> DatabaseService:
    return get_db_client(config.TEXT_BRAINROT_COLLECTION)


def tiktok_video_db() -> DatabaseService:
    return get_db_client(config.TIKTOK_VIDEO_COLLECTION)


def tweet_video_db() -> DatabaseService:
    return get_db_client(config.TWEET_VIDEO_COLLECTION)


def video_captions_db() -> DatabaseService:
    return get_db_client(config.VIDEO_CAPTIONS_COLLECTION)


def ensure_all_indexes() -> None:
    for dependency in (pdf_brainrot_db, text_brainrot_db, tiktok_video_db,
                       tweet_video_db, video_captions_db):
        service = dependency()
        if isinstance(service, MongoDBService):
            service.ensure_indexes()
