"""
Owner-scoped access to job records shared by the tool routers.
A record that does not exist and a record owned by someone else are
indistinguishable to the caller: both are 404.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from db import DatabaseService, to_object_id
from schema import serialize_record


def owner_query(record_id: Optional[str], user_id: str) -> Dict[str, Any]:
    object_id = to_object_id(record_id) if record_id else None
    if object_id is None:
        raise HTTPException(status_code=404, detail="Video not found or unauthorized")
    return {"_id": object_id, "userId": user_id}


def get_owned(db: DatabaseService, record_id: Optional[str], user_id: str) -> Dict[str, Any]:
    record = db.find_one(owner_query(record_id, user_id))
    if not record:
        raise HTTPException(status_code=404, detail="Video not found or unauthorized")
    return record


def delete_owned(db: DatabaseService, record_id: Optional[str], user_id: str) -> None:
    if not record_id:
        raise HTTPException(status_code=400, detail="Video ID is required")
    result = db.delete(owner_query(record_id, user_id))
    if not result.get("deleted_count"):
        raise HTTPException(status_code=404, detail="Video not found or unauthorized")


def list_owned(db: DatabaseService, user_id: str, status: Optional[str] = None,
               skip: int = 0, limit: int = 0) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"userId": user_id}
    if status:
        query["status"] = status
    docs = db.find(query, projection={"__v": 0}, sort=[("createdAt", -1)], skip=skip, limit=limit)
    return [serialize_record(doc) for doc in docs]
