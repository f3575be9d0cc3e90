from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

import config

NonEmptyStr = Annotated[str, Field(min_length=1)]


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CaptionPreset(str, Enum):
    BASIC = "BASIC"
    REVID = "REVID"
    HORMOZI = "HORMOZI"
    WRAP_1 = "WRAP 1"
    WRAP_2 = "WRAP 2"
    FACELESS = "FACELESS"
    ALL = "ALL"


class CaptionAlignment(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class ScreenRatio(str, Enum):
    SQUARE = "1/1"
    LANDSCAPE = "16/9"
    PORTRAIT = "9/16"
    AUTO = "auto"


class CamelModel(BaseModel):
    """Fields are snake_case in Python and camelCase on the wire and in MongoDB."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# -------------------- Shared record parts --------------------

class CaptionWord(BaseModel):
    """A transcript token; offsets are milliseconds."""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: NonEmptyStr
    start: float
    end: float

    @model_validator(mode='after')
    def check_order(self):
        if self.end <= self.start:
            raise ValueError("End time must be greater than start time")
        return self


class ImageSegment(CamelModel):
    context_text: NonEmptyStr = Field(
        validation_alias=AliasChoices("contextText", "ContextText", "context_text"),
        serialization_alias="contextText",
    )
    image_url: NonEmptyStr = Field(
        validation_alias=AliasChoices("imageUrl", "image_url"),
        serialization_alias="imageUrl",
    )


def normalize_captions(raw: Any) -> List[Dict[str, Any]]:
    """
    Accept caption words as produced by the transcription service or the
    client (``word`` instead of ``text``, missing offsets) and map them onto
    the stored ``{text, start, end}`` shape. Anything that is not a list
    yields no captions.
    """
    if not isinstance(raw, list):
        return []
    words = []
    for word in raw:
        if isinstance(word, BaseModel):
            word = word.model_dump()
        if not isinstance(word, dict):
            continue
        words.append({
            "text": word.get("text") or word.get("word") or "",
            "start": word.get("start") or 0,
            "end": word.get("end") or 0,
        })
    return words


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def serialize_record(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc.pop("__v", None)
    if "_id" in doc:
        doc["id"] = str(doc["_id"])
    return doc


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def _require_http_url(value: str, message: str) -> str:
    if not value.startswith("http"):
        raise ValueError(message)
    return value


# -------------------- PDF / text brainrot --------------------

class PdfContentRequest(CamelModel):
    pdf_url: NonEmptyStr
    file_name: Optional[str] = None
    identifier_id: NonEmptyStr


class VideoScriptRequest(CamelModel):
    extracted_text: NonEmptyStr


class CaptionsRequest(CamelModel):
    audio_url: NonEmptyStr

    @field_validator("audio_url")
    @classmethod
    def audio_url_is_http(cls, value: str) -> str:
        return _require_http_url(value, "Valid audio URL is required")


class BrainrotSave(CamelModel):
    script: NonEmptyStr
    audio_url: NonEmptyStr
    voice_id: NonEmptyStr
    captions: List[CaptionWord] = []
    status: JobStatus = JobStatus.COMPLETED
    disable_captions: StrictBool
    screen_ratio: NonEmptyStr
    bg_video: NonEmptyStr
    video_url: Optional[str] = None

    @field_validator("captions", mode="before")
    @classmethod
    def normalize(cls, value: Any) -> List[Dict[str, Any]]:
        return normalize_captions(value)


class PdfBrainrotSave(BrainrotSave):
    pdf_url: NonEmptyStr
    pdf_name: NonEmptyStr
    extracted_text: NonEmptyStr


class TextBrainrotSave(BrainrotSave):
    input_text: NonEmptyStr
    text_name: NonEmptyStr
    caption_preset: CaptionPreset = CaptionPreset.BASIC
    caption_alignment: CaptionAlignment = CaptionAlignment.BOTTOM


# -------------------- Images / scripts --------------------

class ImageRequest(CamelModel):
    image_prompt: NonEmptyStr
    preset: Optional[str] = None
    screen_ratio: Optional[str] = None


class ScriptRequest(CamelModel):
    script: NonEmptyStr


# -------------------- TikTok video generator --------------------

class TikTokVideoCreate(CamelModel):
    script: NonEmptyStr
    audio_url: NonEmptyStr
    title: str = "Untitled Video"
    images: Annotated[List[ImageSegment], Field(min_length=1)]
    captions: List[CaptionWord]


class GenerateVideoRequest(CamelModel):
    video_id: NonEmptyStr


class RenderStatusRequest(CamelModel):
    video_id: NonEmptyStr
    render_id: NonEmptyStr


# -------------------- Tweet to video --------------------

class TweetContentRequest(CamelModel):
    tweet_url: NonEmptyStr


class AudioRequest(CamelModel):
    text: NonEmptyStr
    voice_id: NonEmptyStr = config.DEFAULT_VOICE_ID


class TweetVideoCreate(CamelModel):
    title: NonEmptyStr
    script: NonEmptyStr
    audio_url: NonEmptyStr
    duration: float = Field(gt=0)
    images: Annotated[List[ImageSegment], Field(min_length=1)]
    captions: List[Dict[str, Any]] = []
    disable_captions: bool = False
    caption_preset: CaptionPreset = CaptionPreset.BASIC
    caption_alignment: CaptionAlignment = CaptionAlignment.BOTTOM
    screen_ratio: ScreenRatio = ScreenRatio.PORTRAIT

    @field_validator("captions", mode="before")
    @classmethod
    def normalize_caption_words(cls, value: Any) -> List[Dict[str, Any]]:
        return normalize_captions(value)

    @model_validator(mode="after")
    def check_captions(self):
        # Caption text is only enforced when captions are displayed.
        if self.disable_captions:
            self.captions = [w for w in self.captions
                             if str(w["text"]).strip() and _as_float(w["end"]) > _as_float(w["start"])]
            return self
        if any(not str(w["text"]).strip() for w in self.captions):
            raise ValueError("Caption text is required when captions are enabled")
        try:
            self.captions = [CaptionWord.model_validate(w).model_dump() for w in self.captions]
        except ValidationError as e:
            error = e.errors()[0]
            raise ValueError(str(error.get("ctx", {}).get("error") or error["msg"]))
        return self

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["audioDuration"] = doc.pop("duration")
        return doc


# -------------------- Video captions --------------------

class VideoUploadRequest(CamelModel):
    video_url: NonEmptyStr
    title: Optional[str] = None
    upload_to_cloudinary: bool = False

    @field_validator("video_url")
    @classmethod
    def video_url_is_http(cls, value: str) -> str:
        return _require_http_url(value, "Valid video URL is required")


class CaptionGenerateRequest(CamelModel):
    id: Optional[str] = None
    video_url: NonEmptyStr

    @field_validator("video_url")
    @classmethod
    def video_url_is_http(cls, value: str) -> str:
        return _require_http_url(value, "Valid video URL is required")


# -------------------- Remotion Lambda --------------------

class LambdaRenderRequest(CamelModel):
    id: NonEmptyStr
    input_props: Dict[str, Any] = {}


class LambdaProgressRequest(CamelModel):
    id: NonEmptyStr
