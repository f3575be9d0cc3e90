import logging
from typing import Optional

from fastapi import APIRouter, Depends

from auth import get_current_user_id
from db import DatabaseService, text_brainrot_db
from routers.records import delete_owned, list_owned
from schema import JobStatus, TextBrainrotSave, envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/texttobrainrot", tags=["texttobrainrot"])


@router.post("/save", status_code=201)
def save_video(request: TextBrainrotSave,
               user_id: str = Depends(get_current_user_id),
               db: DatabaseService = Depends(text_brainrot_db)):
    doc = request.to_document()
    doc["userId"] = user_id
    result = db.insert(doc)
    logger.info("Saved text brainrot %s for user %s", result["inserted_id"], user_id)
    return envelope({"id": result["inserted_id"]}, message="Video saved successfully")


@router.get("/history")
def history(status: JobStatus = JobStatus.COMPLETED,
            user_id: str = Depends(get_current_user_id),
            db: DatabaseService = Depends(text_brainrot_db)):
    return envelope({"videos": list_owned(db, user_id, status.value)})


@router.delete("/delete")
def delete_video(id: Optional[str] = None,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(text_brainrot_db)):
    delete_owned(db, id, user_id)
    logger.info("Deleted text brainrot %s", id)
    return envelope(message="Video deleted successfully")
