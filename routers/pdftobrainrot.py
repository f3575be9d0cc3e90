"""
Router for the PDF to brainrot tool.
Handles PDF text extraction, script writing, captioning and the saved
video history.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ai_service import AIService, get_ai_service
from auth import get_current_user_id
from db import DatabaseService, pdf_brainrot_db
from errors import upstream_request
from routers.records import delete_owned, list_owned
from schema import (
    CaptionsRequest,
    JobStatus,
    PdfBrainrotSave,
    PdfContentRequest,
    VideoScriptRequest,
    envelope,
)
from speech_service import SpeechService, get_speech_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pdftobrainrot", tags=["pdftobrainrot"])


@router.post("/pdfcontent")
def pdf_content(request: PdfContentRequest,
                user_id: str = Depends(get_current_user_id),
                ai: AIService = Depends(get_ai_service)):
    logger.info("Extracting PDF %s for upload %s", request.file_name, request.identifier_id)
    pdf = upstream_request("PDF download", "GET", request.pdf_url)
    extracted_text = ai.extract_pdf_text(pdf.content)
    return envelope({"extractedText": extracted_text, "fileName": request.file_name})


@router.post("/videoscript")
def video_script(request: VideoScriptRequest,
                 user_id: str = Depends(get_current_user_id),
                 ai: AIService = Depends(get_ai_service)):
    return envelope({"script": ai.write_video_script(request.extracted_text)})


@router.post("/getcaptions")
def get_captions(request: CaptionsRequest,
                 user_id: str = Depends(get_current_user_id),
                 speech: SpeechService = Depends(get_speech_service)):
    transcript = speech.transcribe(request.audio_url)
    return envelope({"words": transcript["words"], "text": transcript["text"]})


@router.post("/save", status_code=201)
def save_video(request: PdfBrainrotSave,
               user_id: str = Depends(get_current_user_id),
               db: DatabaseService = Depends(pdf_brainrot_db)):
    doc = request.to_document()
    doc["userId"] = user_id
    result = db.insert(doc)
    logger.info("Saved PDF brainrot %s for user %s", result["inserted_id"], user_id)
    return envelope({"id": result["inserted_id"]}, message="Video saved successfully")


@router.get("/history")
def history(status: JobStatus = JobStatus.COMPLETED,
            user_id: str = Depends(get_current_user_id),
            db: DatabaseService = Depends(pdf_brainrot_db)):
    return envelope({"videos": list_owned(db, user_id, status.value)})


@router.delete("/delete")
def delete_video(id: Optional[str] = None,
                 user_id: str = Depends(get_current_user_id),
                 db: DatabaseService = Depends(pdf_brainrot_db)):
    delete_owned(db, id, user_id)
    logger.info("Deleted PDF brainrot %s", id)
    return envelope(message="Video deleted successfully")
