import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import status
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from openai import OpenAI, OpenAIError

import config
from errors import ExternalServiceError
from storage_service import StorageWrapper, get_storage_client

logger = logging.getLogger(__name__)

SCRIPT_SYSTEM_PROMPT = (
    "You are a professional video script writer. Turn the provided content into an "
    "engaging narration script for a short-form video. The script must be not more "
    "than 400 words and written in the same language as the content. Return only the "
    "text that will be narrated as it is, without scene directions, headings or notes."
)

SEGMENT_SYSTEM_PROMPT = (
    "Split the video script into short consecutive segments and write an image prompt "
    "illustrating each one. Respond with a JSON object of the form "
    '{"result": [{"ContextText": "<segment of the script>", "ImagePrompt": "<image prompt>"}]}. '
    "The ContextText values joined together must reproduce the whole script."
)

PDF_EXTRACTION_PROMPT = (
    "Extract all the text content from this PDF document. Preserve the reading order "
    "and paragraphs. Return only the extracted text, without any commentary."
)


class AIService:
    """OpenAI (scripts, segmentation, images) and Gemini (PDF text) calls."""

    def __init__(self, openai_api_key: Optional[str] = None, gemini_api_key: Optional[str] = None,
                 storage: Optional[StorageWrapper] = None,
                 script_model: str = config.OPENAI_SCRIPT_MODEL,
                 image_model: str = config.OPENAI_IMAGE_MODEL,
                 gemini_model: str = config.GEMINI_MODEL):
        self.openai_api_key = openai_api_key
        self.gemini_api_key = gemini_api_key
        self.script_model = script_model
        self.image_model = image_model
        self.gemini_model = gemini_model
        self._storage = storage
        self._openai = None
        self._gemini = None

    @property
    def openai(self) -> OpenAI:
        if self._openai is None:
            if not self.openai_api_key:
                raise ExternalServiceError("OpenAI", "OPENAI_API_KEY is not configured",
                                           status.HTTP_500_INTERNAL_SERVER_ERROR)
            self._openai = OpenAI(api_key=self.openai_api_key, timeout=config.HTTP_TIMEOUT)
        return self._openai

    @property
    def gemini(self) -> genai.Client:
        if self._gemini is None:
            if not self.gemini_api_key:
                raise ExternalServiceError("Gemini", "GEMINI_API_KEY is not configured",
                                           status.HTTP_500_INTERNAL_SERVER_ERROR)
            self._gemini = genai.Client(api_key=self.gemini_api_key)
        return self._gemini

    @property
    def storage(self) -> StorageWrapper:
        if self._storage is None:
            self._storage = get_storage_client()
        return self._storage

    def _chat(self, messages: List[Dict[str, str]], **kwargs) -> str:
        try:
            completion = self.openai.chat.completions.create(
                model=self.script_model,
                messages=messages,
                **kwargs,
            )
        except OpenAIError as e:
            raise ExternalServiceError("OpenAI", str(e))
        content = (completion.choices[0].message.content or "").strip() if completion.choices else ""
        if not content:
            raise ExternalServiceError("OpenAI", "Empty response from model",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return content

    def write_video_script(self, text: str) -> str:
        logger.info("Writing video script from %d characters of text", len(text))
        return self._chat(
            [
                {"role": "system", "content": SCRIPT_SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            temperature=0.7,
            max_tokens=1500,
        )

    def segment_script(self, script: str) -> List[Dict[str, Any]]:
        content = self._chat(
            [
                {"role": "system", "content": SEGMENT_SYSTEM_PROMPT},
                {"role": "user", "content": script},
            ],
            response_format={"type": "json_object"},
        )
        try:
            result = json.loads(content).get("result")
        except (ValueError, AttributeError):
            result = None
        if not isinstance(result, list) or not result:
            raise ExternalServiceError("OpenAI", "Model returned no script segments",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return result

    @staticmethod
    def image_prompt(prompt: str, preset: Optional[str] = None, screen_ratio: Optional[str] = None,
                     no_text: bool = False) -> str:
        text = f"A {preset} image of {prompt}" if preset else prompt
        if no_text:
            text += ", and make sure the image do not have any text on it."
        if screen_ratio:
            text += f" The image should be suitable for a {screen_ratio} screen ratio."
        return text

    def generate_image(self, prompt: str, preset: Optional[str] = None,
                       screen_ratio: Optional[str] = None, no_text: bool = False,
                       folder: str = "tiktok-videos") -> str:
        """Generate an image with DALL-E and return the URL it is re-hosted at."""
        try:
            response = self.openai.images.generate(
                model=self.image_model,
                prompt=self.image_prompt(prompt, preset, screen_ratio, no_text),
                size="1024x1024",
                quality="standard",
                n=1,
            )
        except OpenAIError as e:
            raise ExternalServiceError("OpenAI", str(e))

        url = response.data[0].url if response.data else None
        if not url:
            raise ExternalServiceError("OpenAI", "No image returned",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)

        uploaded = self.storage.upload(url, resource_type="image", folder=folder)
        return uploaded["secure_url"]

    def extract_pdf_text(self, pdf_bytes: bytes) -> str:
        logger.info("Extracting text from %d byte PDF", len(pdf_bytes))
        try:
            response = self.gemini.models.generate_content(
                model=self.gemini_model,
                contents=[
                    types.Part.from_bytes(data=pdf_bytes, mime_type="application/pdf"),
                    PDF_EXTRACTION_PROMPT,
                ],
            )
        except genai_errors.APIError as e:
            raise ExternalServiceError("Gemini", str(e))

        text = (response.text or "").strip()
        if not text:
            raise ExternalServiceError("Gemini", "No text could be extracted from the PDF",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return text


@lru_cache()
def get_ai_service() -> AIService:
    return AIService(openai_api_key=config.OPENAI_API_KEY, gemini_api_key=config.GEMINI_API_KEY)
