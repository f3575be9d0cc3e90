import base64
import hashlib
import logging
import mimetypes
import os
import time
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

import config
from errors import ExternalServiceError, upstream_request

logger = logging.getLogger(__name__)

Source = Union[str, bytes]


def is_remote(source: Source) -> bool:
    return isinstance(source, str) and (
        source.startswith("http://") or source.startswith("https://") or source.startswith("data:")
    )


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class MediaStorage(ABC):
    """
    Hosts generated media (images, narration audio, videos) and returns
    publicly reachable URLs.

    ``upload`` accepts a remote URL, a local file path or raw bytes and
    returns a dict with ``secure_url``, ``public_id``, ``format``,
    ``resource_type``, ``bytes``, ``duration`` and ``original_filename``.
    """

    @abstractmethod
    def upload(self, source: Source, resource_type: str = "auto", folder: str = "uploads",
               mime_type: Optional[str] = None, **options) -> Dict[str, Any]:
        pass


class CloudinaryStorage(MediaStorage):
    API_URL = "https://api.cloudinary.com/v1_1"
    UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name"}

    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 timeout: float = 120, session: Optional[requests.Session] = None):
        if not cloud_name or not api_key or not api_secret:
            raise ValueError("Cloudinary environment variables are not properly configured")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def sign(self, params: Dict[str, Any]) -> str:
        to_sign = "&".join(
            f"{key}={self._param_value(value)}"
            for key, value in sorted(params.items())
            if key not in self.UNSIGNED_PARAMS and value is not None and value != ""
        )
        return hashlib.sha1((to_sign + self.api_secret).encode("utf-8")).hexdigest()

    @staticmethod
    def _param_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        return str(value)

    def _signed_params(self, **params) -> Dict[str, str]:
        params = {k: v for k, v in params.items() if v is not None}
        params["timestamp"] = int(time.time())
        signed = {k: self._param_value(v) for k, v in params.items()}
        signed["signature"] = self.sign(params)
        signed["api_key"] = self.api_key
        return signed

    def _post(self, path: str, data: Dict[str, str], files=None) -> Dict[str, Any]:
        url = f"{self.API_URL}/{self.cloud_name}/{path}"
        try:
            response = self.session.post(url, data=data, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            raise ExternalServiceError("Cloudinary", f"Network error: {e}")
        if not response.ok:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            raise ExternalServiceError("Cloudinary", message, response.status_code)
        return response.json()

    def upload(self, source: Source, resource_type: str = "auto", folder: str = "uploads",
               mime_type: Optional[str] = None, **options) -> Dict[str, Any]:
        params = self._signed_params(
            folder=folder,
            use_filename=options.get("use_filename", True),
            unique_filename=options.get("unique_filename", True),
            overwrite=options.get("overwrite", False),
            tags=options.get("tags"),
        )

        if isinstance(source, bytes):
            params["file"] = to_data_uri(source, mime_type or "application/octet-stream")
            result = self._post(f"{resource_type}/upload", params)
        elif is_remote(source):
            params["file"] = source
            result = self._post(f"{resource_type}/upload", params)
        else:
            with open(source, "rb") as fh:
                result = self._post(f"{resource_type}/upload", params,
                                    files={"file": (os.path.basename(source), fh)})

        logger.info("Uploaded %s to Cloudinary as %s", resource_type, result.get("public_id"))
        return {
            "secure_url": result.get("secure_url"),
            "public_id": result.get("public_id"),
            "format": result.get("format"),
            "resource_type": result.get("resource_type", resource_type),
            "bytes": result.get("bytes"),
            "duration": result.get("duration"),
            "original_filename": result.get("original_filename"),
        }


class S3Storage(MediaStorage):
    def __init__(self, bucket: str, region_name: str = "us-east-2",
                 session: Optional[requests.Session] = None, **config):
        if not bucket:
            raise ValueError("MEDIA_BUCKET is not configured")
        self.bucket = bucket
        self.region_name = region_name
        self.session = session
        self.client = boto3.client("s3", region_name=region_name, **config)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region_name}.amazonaws.com/{key}"

    def upload(self, source: Source, resource_type: str = "auto", folder: str = "uploads",
               mime_type: Optional[str] = None, **options) -> Dict[str, Any]:
        if isinstance(source, bytes):
            body, original = source, None
        elif source.startswith("data:"):
            header, encoded = source.split(",", 1)
            mime_type = mime_type or header[5:].split(";")[0]
            body, original = base64.b64decode(encoded), None
        elif is_remote(source):
            response = upstream_request("S3 source", "GET", source, session=self.session)
            body = response.content
            mime_type = mime_type or response.headers.get("Content-Type")
            original = os.path.basename(urlparse(source).path) or None
        else:
            with open(source, "rb") as fh:
                body = fh.read()
            original = os.path.basename(source)

        mime_type = (mime_type or (mimetypes.guess_type(original or "")[0]) or "application/octet-stream").split(";")[0]
        ext = os.path.splitext(original or "")[1] or mimetypes.guess_extension(mime_type) or ""
        public_id = f"{folder}/{uuid.uuid4()}"
        key = f"{public_id}{ext}"

        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=mime_type)
        except (ClientError, BotoCoreError) as e:
            raise ExternalServiceError("S3", f"Upload failed: {e}")

        logger.info("Uploaded %d bytes to s3://%s/%s", len(body), self.bucket, key)
        return {
            "secure_url": self.public_url(key),
            "public_id": public_id,
            "format": ext.lstrip("."),
            "resource_type": resource_type,
            "bytes": len(body),
            "duration": None,
            "original_filename": os.path.splitext(original)[0] if original else None,
        }


class StorageWrapper:
    def __init__(self, service_type: str, **config):
        if service_type.lower() == 'cloudinary':
            self.storage = CloudinaryStorage(**config)
        elif service_type.lower() == 's3':
            self.storage = S3Storage(**config)
        else:
            raise ValueError(f"Unknown service type: {service_type}")

    def upload(self, source: Source, resource_type: str = "auto", folder: str = "uploads",
               mime_type: Optional[str] = None, **options) -> Dict[str, Any]:
        return self.storage.upload(source, resource_type=resource_type, folder=folder,
                                   mime_type=mime_type, **options)


@lru_cache()
def get_storage_client() -> StorageWrapper:
    logger.info("STORAGE_BACKEND: %s", config.STORAGE_BACKEND)
    if config.STORAGE_BACKEND == "cloudinary":
        return StorageWrapper(
            "cloudinary",
            cloud_name=config.CLOUDINARY_CLOUD_NAME,
            api_key=config.CLOUDINARY_API_KEY,
            api_secret=config.CLOUDINARY_API_SECRET,
        )
    elif config.STORAGE_BACKEND == "s3":
        return StorageWrapper("s3", bucket=config.MEDIA_BUCKET, region_name=config.AWS_REGION)
    raise ValueError(f"Unknown STORAGE_BACKEND: {config.STORAGE_BACKEND}")
