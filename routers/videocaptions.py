import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query

from auth import get_current_user_id
from db import DatabaseService, video_captions_db
from routers.records import delete_owned, get_owned, list_owned, owner_query
from schema import (
    CaptionGenerateRequest,
    JobStatus,
    VideoUploadRequest,
    envelope,
    normalize_captions,
)
from speech_service import SpeechService, get_speech_service
from storage_service import StorageWrapper, get_storage_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/videocaptions", tags=["videocaptions"])

VIDEO_FOLDER = "video-captions"
WORD_BOOST = ["video", "caption"]


@router.post("/upload", status_code=201)
def upload_video(request: VideoUploadRequest,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(video_captions_db),
                 storage: StorageWrapper = Depends(get_storage_client)):
    video_url = request.video_url
    if request.upload_to_cloudinary:
        video_url = storage.upload(video_url, resource_type="video", folder=VIDEO_FOLDER)["secure_url"]
        logger.info("Video re-hosted at %s", video_url)

    doc = {
        "userId": user_id,
        "videoUrl": video_url,
        "title": request.title or "Untitled Video",
        "captions": [],
        "status": JobStatus.PENDING.value,
    }
    result = db.insert(doc)
    return envelope({
        "id": result["inserted_id"],
        "videoUrl": video_url,
        "status": doc["status"],
    }, message="Video uploaded successfully")


@router.post("/generate")
def generate_captions(request: CaptionGenerateRequest,
                      user_id: str = Depends(get_current_user_id),
                      db: DatabaseService = Depends(video_captions_db),
                      speech: SpeechService = Depends(get_speech_service)):
    if request.id:
        record_id = get_owned(db, request.id, user_id)["_id"]
        db.update(owner_query(record_id, user_id), {"status": JobStatus.PROCESSING.value})
    else:
        record_id = db.insert({
            "userId": user_id,
            "videoUrl": request.video_url,
            "title": "Untitled Video",
            "captions": [],
            "status": JobStatus.PROCESSING.value,
        })["inserted_id"]
    query = owner_query(record_id, user_id)

    logger.info("Transcribing video for caption record %s", record_id)
    try:
        transcript = speech.transcribe(request.video_url, word_boost=WORD_BOOST)
    except Exception:
        db.update(query, {"status": JobStatus.FAILED.value})
        logger.error("Transcription failed for caption record %s", record_id)
        raise

    db.update(query, {
        "captions": normalize_captions(transcript["words"]),
        "fullText": transcript["text"],
        "status": JobStatus.COMPLETED.value,
    })
    return envelope({
        "id": record_id,
        "words": transcript["words"],
        "text": transcript["text"],
        "status": JobStatus.COMPLETED.value,
    }, message="Captions generated successfully")


@router.get("/history")
def history(limit: int = Query(10, ge=1, le=100),
            page: int = Query(1, ge=1),
            status: JobStatus = JobStatus.COMPLETED,
            user_id: str = Depends(get_current_user_id),
            db: DatabaseService = Depends(video_captions_db)):
    videos = list_owned(db, user_id, status.value, skip=(page - 1) * limit, limit=limit)
    total = db.count({"userId": user_id, "status": status.value})
    return envelope({
        "videos": videos,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit),
        },
    })


@router.delete("/delete")
def delete_video(id: Optional[str] = None,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(video_captions_db)):
    delete_owned(db, id, user_id)
    logger.info("Deleted caption record %s", id)
    return envelope(message="Video deleted successfully")
