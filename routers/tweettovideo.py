"""
Router for the tweet to video tool.
Turns a tweet into a narrated, illustrated video: tweet text, script
segmentation, images, narration audio and the saved videos.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ai_service import AIService, get_ai_service
from auth import get_current_user_id
from content_service import ContentService, get_content_service, is_valid_tweet_url
from db import DatabaseService, tweet_video_db
from routers.records import delete_owned, get_owned, list_owned
from schema import (
    AudioRequest,
    ImageRequest,
    JobStatus,
    ScriptRequest,
    TweetContentRequest,
    TweetVideoCreate,
    envelope,
    serialize_record,
)
from speech_service import SpeechService, get_speech_service
from storage_service import StorageWrapper, get_storage_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tweettovideo", tags=["tweettovideo"])

AUDIO_FOLDER = "tweettovideo-audio"


@router.post("/tweetcontent")
def tweet_content(request: TweetContentRequest,
                  user_id: str = Depends(get_current_user_id),
                  content: ContentService = Depends(get_content_service)):
    if not is_valid_tweet_url(request.tweet_url):
        raise HTTPException(status_code=400, detail="Invalid Twitter URL")
    return envelope({"tweetContent": content.fetch_page_text(request.tweet_url)})


@router.post("/getScriptAndImagePrompts")
def script_and_image_prompts(request: ScriptRequest,
                             user_id: str = Depends(get_current_user_id),
                             ai: AIService = Depends(get_ai_service)):
    segments = ai.segment_script(request.script)
    logger.info("Script split into %d segments", len(segments))
    return envelope({"result": segments})


@router.post("/getImages")
def get_images(request: ImageRequest,
               user_id: str = Depends(get_current_user_id),
               ai: AIService = Depends(get_ai_service)):
    image_url = ai.generate_image(request.image_prompt, request.preset, request.screen_ratio,
                                  no_text=True, folder="tweettovideo-images")
    return envelope({"imageUrl": image_url})


@router.post("/getaudio")
def get_audio(request: AudioRequest,
              user_id: str = Depends(get_current_user_id),
              speech: SpeechService = Depends(get_speech_service),
              storage: StorageWrapper = Depends(get_storage_client)):
    audio = speech.synthesize(request.text, request.voice_id)
    uploaded = storage.upload(audio, resource_type="video", folder=AUDIO_FOLDER, mime_type="audio/mpeg")
    logger.info("Narration uploaded to %s", uploaded["secure_url"])
    return envelope({
        "audioUrl": uploaded["secure_url"],
        "duration": uploaded["duration"],
        "publicId": uploaded["public_id"],
        "format": uploaded["format"],
        "bytes": uploaded["bytes"],
        "originalFilename": uploaded["original_filename"],
    })


@router.get("/getaudio")
def list_voices(user_id: str = Depends(get_current_user_id),
                speech: SpeechService = Depends(get_speech_service)):
    return envelope({"voices": speech.list_voices()})


@router.post("/videos", status_code=201)
def create_video(request: TweetVideoCreate,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(tweet_video_db)):
    doc = request.to_document()
    doc.update({"userId": user_id, "status": JobStatus.COMPLETED.value})
    result = db.insert(doc)
    logger.info("Saved tweet video %s for user %s", result["inserted_id"], user_id)
    return envelope({"videoId": result["inserted_id"]}, message="Video saved successfully")


@router.get("/videos")
def get_videos(id: Optional[str] = None,
               user_id: str = Depends(get_current_user_id),
               db: DatabaseService = Depends(tweet_video_db)):
    if id:
        return envelope({"video": serialize_record(get_owned(db, id, user_id))})
    return envelope({"videos": list_owned(db, user_id)})


@router.delete("/videos")
def delete_video(id: Optional[str] = None,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(tweet_video_db)):
    delete_owned(db, id, user_id)
    logger.info("Deleted tweet video %s", id)
    return envelope(message="Video deleted successfully")
