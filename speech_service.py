import logging
import time
from functools import lru_cache
from typing import Any, Dict, List, Optional

import requests
from fastapi import status

import config
from errors import ExternalServiceError, upstream_request

logger = logging.getLogger(__name__)


class SpeechService:
    """
    Narration and transcription.

    Text-to-speech goes through ElevenLabs, word-level transcription through
    AssemblyAI. Transcripts are created and then polled until AssemblyAI
    reports them ``completed`` or ``error``; word timings come back in
    milliseconds.
    """

    TTS_MODEL = "eleven_multilingual_v2"
    TTS_OUTPUT_FORMAT = "mp3_44100_128"

    def __init__(self, eleven_lab_api_key: Optional[str] = None,
                 assembly_ai_api_key: Optional[str] = None,
                 eleven_lab_base_url: str = config.ELEVEN_LAB_BASE_URL,
                 assembly_ai_base_url: str = config.ASSEMBLY_AI_BASE_URL,
                 poll_interval: float = 3.0,
                 transcription_timeout: float = config.TRANSCRIPTION_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.eleven_lab_api_key = eleven_lab_api_key
        self.assembly_ai_api_key = assembly_ai_api_key
        self.eleven_lab_base_url = eleven_lab_base_url.rstrip("/")
        self.assembly_ai_base_url = assembly_ai_base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.transcription_timeout = transcription_timeout
        self.session = session or requests.Session()

    # -------------------- ElevenLabs --------------------

    def _eleven_lab_headers(self) -> Dict[str, str]:
        if not self.eleven_lab_api_key:
            raise ExternalServiceError("ElevenLabs", "ELEVEN_LAB_API_KEY is not configured",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return {"xi-api-key": self.eleven_lab_api_key}

    def synthesize(self, text: str, voice_id: str = config.DEFAULT_VOICE_ID) -> bytes:
        logger.info("Synthesizing %d characters with voice %s", len(text), voice_id)
        response = upstream_request(
            "ElevenLabs", "POST",
            f"{self.eleven_lab_base_url}/text-to-speech/{voice_id}",
            session=self.session,
            headers={**self._eleven_lab_headers(), "Accept": "audio/mpeg"},
            params={"output_format": self.TTS_OUTPUT_FORMAT},
            json={"text": text, "model_id": self.TTS_MODEL},
        )
        audio = response.content
        if not audio:
            raise ExternalServiceError("ElevenLabs", "Failed to generate audio (empty buffer)",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info("Received %d bytes of audio", len(audio))
        return audio

    def list_voices(self) -> List[Dict[str, Any]]:
        response = upstream_request(
            "ElevenLabs", "GET", f"{self.eleven_lab_base_url}/voices",
            session=self.session, headers=self._eleven_lab_headers(),
        )
        return response.json().get("voices", [])

    # -------------------- AssemblyAI --------------------

    def _assembly_ai_headers(self) -> Dict[str, str]:
        if not self.assembly_ai_api_key:
            raise ExternalServiceError("AssemblyAI", "ASSEMBLY_AI_API_KEY is not configured",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return {"authorization": self.assembly_ai_api_key}

    def transcribe(self, media_url: str, word_boost: Optional[List[str]] = None) -> Dict[str, Any]:
        headers = self._assembly_ai_headers()
        payload = {
            "audio_url": media_url,
            "punctuate": True,
            "format_text": True,
        }
        if word_boost:
            payload["word_boost"] = word_boost

        created = upstream_request(
            "AssemblyAI", "POST", f"{self.assembly_ai_base_url}/transcript",
            session=self.session, headers=headers, json=payload,
        ).json()
        transcript_id = created.get("id")
        if not transcript_id:
            raise ExternalServiceError("AssemblyAI", "Failed to generate transcript",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info("Started transcript %s", transcript_id)

        deadline = time.monotonic() + self.transcription_timeout
        transcript = created
        while transcript.get("status") not in ("completed", "error"):
            if time.monotonic() > deadline:
                raise ExternalServiceError("AssemblyAI", f"Transcript {transcript_id} timed out",
                                           status.HTTP_504_GATEWAY_TIMEOUT)
            time.sleep(self.poll_interval)
            transcript = upstream_request(
                "AssemblyAI", "GET", f"{self.assembly_ai_base_url}/transcript/{transcript_id}",
                session=self.session, headers=headers,
            ).json()

        if transcript["status"] == "error":
            raise ExternalServiceError("AssemblyAI", transcript.get("error") or "Transcription failed",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)

        words = transcript.get("words") or []
        if not words:
            raise ExternalServiceError("AssemblyAI", "No words detected in the audio",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)

        logger.info("Transcript %s completed with %d words", transcript_id, len(words))
        return {"text": transcript.get("text") or "", "words": words}


@lru_cache()
def get_speech_service() -> SpeechService:
    return SpeechService(
        eleven_lab_api_key=config.ELEVEN_LAB_API_KEY,
        assembly_ai_api_key=config.ASSEMBLY_AI_API_KEY,
    )
