"""
Clients for the managed rendering backends.

Remotion Lambda renders the Remotion compositions: a render is started by
invoking the deployed render function with a ``start`` payload and its
progress is read back with a ``status`` payload. Creatomate renders the
slideshow-style TikTok videos from a JSON composition.
"""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import status

import config
from errors import ExternalServiceError, RenderThrottled, upstream_request

logger = logging.getLogger(__name__)

MAX_DURATION_SECONDS = 600
DEFAULT_DURATION_SECONDS = 30

# Values the Remotion client fills in for options left unset; the render
# function validates every one of them.
START_DEFAULTS: Dict[str, Any] = {
    "rendererFunctionName": None,
    "imageFormat": "jpeg",
    "crf": None,
    "envVariables": {},
    "pixelFormat": None,
    "proResProfile": None,
    "x264Preset": None,
    "jpegQuality": 80,
    "maxRetries": 1,
    "privacy": "public",
    "logLevel": "info",
    "frameRange": None,
    "outName": None,
    "timeoutInMilliseconds": 30000,
    "chromiumOptions": {},
    "scale": 1,
    "numberOfGifLoops": 0,
    "everyNthFrame": 1,
    "concurrencyPerLambda": 1,
    "muted": False,
    "overwrite": False,
    "audioBitrate": None,
    "videoBitrate": None,
    "encodingBufferSize": None,
    "encodingMaxRate": None,
    "forceHeight": None,
    "forceWidth": None,
    "bucketName": None,
    "audioCodec": None,
    "offthreadVideoCacheSizeInBytes": None,
    "deleteAfter": None,
    "colorSpace": None,
    "preferLossless": False,
    "forcePathStyle": False,
    "metadata": None,
    "apiKey": None,
}

STATUS_DEFAULTS: Dict[str, Any] = {
    "logLevel": "info",
    "s3OutputProvider": None,
    "forcePathStyle": False,
}

CONCURRENCY_LIMIT_DETAILS = (
    "You need to wait for some of your existing renders to complete, or increase your "
    "AWS Lambda concurrency limit. See https://www.remotion.dev/docs/lambda/troubleshooting/rate-limit "
    "for more information."
)


def lambda_function_name(version: str, memory_size_in_mb: int, disk_size_in_mb: int,
                         timeout_in_seconds: int) -> str:
    return (
        f"remotion-render-{version.replace('.', '-')}"
        f"-mem{memory_size_in_mb}mb-disk{disk_size_in_mb}mb-{timeout_in_seconds}sec"
    )


def throttling_error(message: str, code: Optional[str] = None,
                     status_code: Optional[int] = None) -> Optional[RenderThrottled]:
    """Map a Lambda failure onto RenderThrottled when it is a throttling one."""
    if "Concurrency limit reached" in message:
        return RenderThrottled(
            "concurrency-limit",
            "AWS Lambda concurrency limit reached. This means too many render jobs are running simultaneously.",
            retry_after=30,
            details=CONCURRENCY_LIMIT_DETAILS,
        )
    if ("Rate Exceeded" in message or code in ("ThrottlingException", "TooManyRequestsException")
            or status_code == 429):
        return RenderThrottled(
            "rate-limited",
            "Rate limit exceeded. Please slow down your requests.",
            retry_after=10,
        )
    return None


def progress_from_status(render_status: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not render_status:
        raise ExternalServiceError(
            "Remotion Lambda",
            "Received empty response from AWS. The render may have been terminated.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if render_status.get("fatalErrorEncountered"):
        errors = render_status.get("errors") or []
        message = errors[0].get("message") if errors and isinstance(errors[0], dict) else None
        return {"type": "error", "message": message or "An unknown error occurred during rendering"}

    if render_status.get("done"):
        return {
            "type": "done",
            "url": render_status.get("outputFile"),
            "size": render_status.get("outputSizeInBytes"),
        }

    overall = render_status.get("overallProgress")
    progress = max(0.03, overall) if isinstance(overall, (int, float)) else 0.03
    return {"type": "progress", "progress": progress}


class RemotionLambdaClient:
    def __init__(self, region_name: str, bucket_name: Optional[str], serve_url: Optional[str],
                 version: str, memory_size_in_mb: int, disk_size_in_mb: int, timeout_in_seconds: int,
                 frames_per_lambda: int = 10, webhook_url: Optional[str] = None, **config):
        self.region_name = region_name
        self.bucket_name = bucket_name
        self.serve_url = serve_url
        self.version = version
        self.memory_size_in_mb = memory_size_in_mb
        self.disk_size_in_mb = disk_size_in_mb
        self.timeout_in_seconds = timeout_in_seconds
        self.frames_per_lambda = frames_per_lambda
        self.webhook_url = webhook_url
        self.client = boto3.client("lambda", region_name=region_name, **config)

    @property
    def function_name(self) -> str:
        return lambda_function_name(self.version, self.memory_size_in_mb,
                                    self.disk_size_in_mb, self.timeout_in_seconds)

    def _invoke(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.invoke(
                FunctionName=self.function_name,
                InvocationType="RequestResponse",
                Payload=json.dumps(payload).encode("utf-8"),
            )
        except ClientError as e:
            error = e.response.get("Error", {})
            throttled = throttling_error(
                error.get("Message", str(e)), error.get("Code"),
                e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
            )
            if throttled:
                raise throttled
            raise ExternalServiceError("Remotion Lambda", str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
        except BotoCoreError as e:
            raise ExternalServiceError("Remotion Lambda", str(e))

        raw = response["Payload"].read()
        try:
            result = json.loads(raw) if raw else None
        except ValueError:
            raise ExternalServiceError(
                "Remotion Lambda",
                "Received invalid response from AWS. The render job may have terminated unexpectedly.",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        if isinstance(result, dict) and (response.get("FunctionError") or result.get("type") == "error"):
            message = result.get("errorMessage") or result.get("message") or "Render function failed"
            throttled = throttling_error(message)
            if throttled:
                raise throttled
            raise ExternalServiceError("Remotion Lambda", message, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return result

    def start_render(self, composition: str, input_props: Dict[str, Any]) -> Dict[str, str]:
        if not self.serve_url:
            raise ExternalServiceError("Remotion Lambda", "REMOTION_LAMBDA_SERVE_URL is not configured",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        payload = {
            **START_DEFAULTS,
            "type": "start",
            "version": self.version,
            "serveUrl": self.serve_url,
            "composition": composition,
            "inputProps": {"type": "payload", "payload": json.dumps(input_props)},
            "codec": "h264",
            "framesPerLambda": self.frames_per_lambda,
            "downloadBehavior": {"type": "download", "fileName": "output.mp4"},
            "webhook": {"url": self.webhook_url, "secret": None} if self.webhook_url else None,
        }
        logger.info("Starting Lambda render of composition %s via %s", composition, self.function_name)
        result = self._invoke(payload)
        if not result or not result.get("renderId"):
            raise ExternalServiceError("Remotion Lambda", "Render function returned no render id",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return {"renderId": result["renderId"], "bucketName": result.get("bucketName")}

    def get_progress(self, render_id: str) -> Dict[str, Any]:
        if not self.bucket_name:
            raise ExternalServiceError("Remotion Lambda",
                                       "Missing REMOTION_LAMBDA_BUCKET_NAME environment variable",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info("Checking progress for render %s in bucket %s", render_id, self.bucket_name)
        return progress_from_status(self._invoke({
            **STATUS_DEFAULTS,
            "type": "status",
            "version": self.version,
            "bucketName": self.bucket_name,
            "renderId": render_id,
        }))


def _caption_text_element(text: str) -> Dict[str, Any]:
    return {
        "type": "text",
        "text": text,
        "y": "85%",
        "width": "90%",
        "x": "50%",
        "background_color": "rgba(0, 0, 0, 0.5)",
        "background_border_radius": 10,
        "padding": 15,
        "text_align": "center",
        "color": "#FFFFFF",
        "font_family": "Roboto",
        "font_weight": "bold",
        "font_size": "40px",
    }


def build_composition(images: List[Dict[str, Any]], captions: List[Dict[str, Any]],
                      audio_url: str) -> Dict[str, Any]:
    """
    Build a portrait Creatomate composition: the narration as the audio track
    and one full-screen scene per image, each taking an equal share of the
    audio's length with its context text as a caption at the bottom.
    """
    if not images:
        raise ValueError("At least one image is required for video composition")

    total_duration = captions[-1]["end"] / 1000 if captions else DEFAULT_DURATION_SECONDS
    if total_duration <= 0 or total_duration > MAX_DURATION_SECONDS:
        logger.warning("Invalid duration %ss, using %ss", total_duration, DEFAULT_DURATION_SECONDS)
        total_duration = DEFAULT_DURATION_SECONDS

    share = 1 / len(images)
    scenes = [
        {
            "type": "composition",
            "track": 1,
            "duration_percentage": share,
            "time_percentage": index * share,
            "elements": [
                {
                    "type": "image",
                    "source": image["imageUrl"],
                    "width": "100%",
                    "height": "100%",
                    "fit": "cover",
                },
                _caption_text_element(image["contextText"]),
            ],
        }
        for index, image in enumerate(images)
    ]

    return {
        "output_format": "mp4",
        "width": 1080,
        "height": 1920,
        "frame_rate": 30,
        "snapshot_time": total_duration / 2,
        "duration": "auto",
        "elements": [
            {
                "type": "audio",
                "source": audio_url,
                "duration": "auto",
                "audio_fade_out": 0.5,
            },
            *scenes,
        ],
    }


class CreatomateClient:
    def __init__(self, api_key: Optional[str], base_url: str = config.CREATOMATE_BASE_URL,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ExternalServiceError("Creatomate", "Creatomate API key is not configured",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        return {"Authorization": f"Bearer {self.api_key}"}

    def start_render(self, source: Dict[str, Any]) -> Dict[str, Any]:
        response = upstream_request(
            "Creatomate", "POST", f"{self.base_url}/renders",
            session=self.session, headers=self._headers(), json={"source": source},
        )
        renders = response.json()
        render = renders[0] if isinstance(renders, list) and renders else renders
        if not isinstance(render, dict) or not render.get("id"):
            raise ExternalServiceError("Creatomate", "Render was not created",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info("Creatomate render %s created with status %s", render["id"], render.get("status"))
        return render

    def get_render(self, render_id: str) -> Dict[str, Any]:
        response = upstream_request(
            "Creatomate", "GET", f"{self.base_url}/renders/{render_id}",
            session=self.session, headers=self._headers(),
        )
        return response.json()


@lru_cache()
def get_lambda_client() -> RemotionLambdaClient:
    if not config.REMOTION_AWS_ACCESS_KEY_ID or not config.REMOTION_AWS_SECRET_ACCESS_KEY:
        raise ExternalServiceError("Remotion Lambda", "AWS credentials not found",
                                   status.HTTP_500_INTERNAL_SERVER_ERROR)
    return RemotionLambdaClient(
        region_name=config.REMOTION_LAMBDA_REGION,
        bucket_name=config.REMOTION_LAMBDA_BUCKET_NAME,
        serve_url=config.REMOTION_LAMBDA_SERVE_URL,
        version=config.REMOTION_LAMBDA_VERSION,
        memory_size_in_mb=config.REMOTION_LAMBDA_MEMORY_SIZE_IN_MB,
        disk_size_in_mb=config.REMOTION_LAMBDA_DISK_SIZE_IN_MB,
        timeout_in_seconds=config.REMOTION_LAMBDA_TIMEOUT_IN_SECONDS,
        frames_per_lambda=config.REMOTION_FRAMES_PER_LAMBDA,
        webhook_url=config.REMOTION_WEBHOOK_URL,
        aws_access_key_id=config.REMOTION_AWS_ACCESS_KEY_ID,
        aws_secret_access_key=config.REMOTION_AWS_SECRET_ACCESS_KEY,
    )


@lru_cache()
def get_creatomate_client() -> CreatomateClient:
    return CreatomateClient(api_key=config.CREATOMATE_API_KEY)
