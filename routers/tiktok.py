"""
Router for the TikTok video generator.
Videos are composed from narration, timed captions and generated images and
rendered on Creatomate; the render is polled through check-render-status.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ai_service import AIService, get_ai_service
from auth import get_current_user_id
from db import DatabaseService, tiktok_video_db
from render_service import CreatomateClient, build_composition, get_creatomate_client
from routers.records import delete_owned, get_owned, list_owned, owner_query
from schema import (
    GenerateVideoRequest,
    ImageRequest,
    JobStatus,
    RenderStatusRequest,
    TikTokVideoCreate,
    envelope,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tik-tok-video-gen", tags=["tik-tok-video-gen"])

RENDER_SUCCEEDED = {"succeeded", "completed"}


@router.post("/getImages")
def get_images(request: ImageRequest,
               user_id: str = Depends(get_current_user_id),
               ai: AIService = Depends(get_ai_service)):
    image_url = ai.generate_image(request.image_prompt, request.preset, folder="tiktok-videos")
    return envelope({"imageUrl": image_url})


@router.post("/videos", status_code=201)
def create_video(request: TikTokVideoCreate,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(tiktok_video_db)):
    doc = request.to_document()
    doc.update({"userId": user_id, "status": JobStatus.PENDING.value})
    result = db.insert(doc)
    logger.info("Created TikTok video %s with %d images", result["inserted_id"], len(request.images))
    return envelope({"videoId": result["inserted_id"]}, message="Video saved successfully")


@router.get("/videos")
def list_videos(user_id: str = Depends(get_current_user_id),
                db: DatabaseService = Depends(tiktok_video_db)):
    return envelope({"videos": list_owned(db, user_id)})


@router.delete("/videos/{video_id}")
def delete_video(video_id: str,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(tiktok_video_db)):
    delete_owned(db, video_id, user_id)
    logger.info("Deleted TikTok video %s", video_id)
    return envelope(message="Video deleted successfully")


@router.post("/generate-video")
def generate_video(request: GenerateVideoRequest,
                   user_id: str = Depends(get_current_user_id),
                   db: DatabaseService = Depends(tiktok_video_db),
                   creatomate: CreatomateClient = Depends(get_creatomate_client)):
    video = get_owned(db, request.video_id, user_id)
    query = owner_query(request.video_id, user_id)

    if video.get("url") and video.get("status") == JobStatus.COMPLETED.value:
        return envelope({
            "videoId": video["_id"],
            "videoUrl": video["url"],
            "alreadyExists": True,
        }, message="Video already exists")

    if not video.get("audioUrl"):
        raise HTTPException(status_code=400, detail="Audio URL is missing")
    if not video.get("images"):
        raise HTTPException(status_code=400, detail="No images available for video generation")

    composition = build_composition(video["images"], video.get("captions") or [], video["audioUrl"])
    db.update(query, {"status": JobStatus.PROCESSING.value})

    try:
        render = creatomate.start_render(composition)
    except Exception:
        db.update(query, {"status": JobStatus.FAILED.value})
        raise

    db.update(query, {"renderId": render["id"]})
    logger.info("Render %s started for TikTok video %s", render["id"], video["_id"])
    return envelope({
        "videoId": video["_id"],
        "renderId": render["id"],
        "status": JobStatus.PROCESSING.value,
    }, message="Video generation started")


@router.post("/check-render-status")
def check_render_status(request: RenderStatusRequest,
                        user_id: str = Depends(get_current_user_id),
                        db: DatabaseService = Depends(tiktok_video_db),
                        creatomate: CreatomateClient = Depends(get_creatomate_client)):
    video = get_owned(db, request.video_id, user_id)
    query = owner_query(request.video_id, user_id)

    if video.get("url") and video.get("status") == JobStatus.COMPLETED.value:
        return envelope({
            "status": JobStatus.COMPLETED.value,
            "videoId": video["_id"],
            "videoUrl": video["url"],
        })

    render = creatomate.get_render(request.render_id)
    render_status = render.get("status")

    if render_status in RENDER_SUCCEEDED and render.get("url"):
        db.update(query, {"url": render["url"], "status": JobStatus.COMPLETED.value})
        logger.info("Render %s completed: %s", request.render_id, render["url"])
        return envelope({
            "status": JobStatus.COMPLETED.value,
            "videoId": video["_id"],
            "videoUrl": render["url"],
            "duration": render.get("duration"),
        })

    if render_status == "failed":
        db.update(query, {"status": JobStatus.FAILED.value})
        logger.error("Render %s failed: %s", request.render_id, render.get("error_message"))
        return envelope({
            "status": JobStatus.FAILED.value,
            "videoId": video["_id"],
            "error": render.get("error_message") or "Video generation failed",
        })

    return envelope({
        "status": JobStatus.PROCESSING.value,
        "videoId": video["_id"],
        "renderStatus": render_status,
    }, message="Video is still being generated")
