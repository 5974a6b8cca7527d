"""
Upload Grant Service

Issues time-limited S3 write grants (presigned PUT URLs) for course images
and lecture videos, together with the public CDN URL the object will have
once the client finished the upload. The service never performs or verifies
the upload itself.

Key layout:
    course-images/<uuid>/<file name>   for image/* content types
    videos/<uuid>/<file name>          for video/mp4

Author: Marketplace Development Team
Version: 1.0.0
"""

import logging
import posixpath
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from ...exceptions import StorageUnavailable, UnsupportedMediaType, ValidationError

logger = logging.getLogger(__name__)

IMAGE_CATEGORY = "course-images"
VIDEO_CATEGORY = "videos"
VIDEO_CONTENT_TYPE = "video/mp4"


@dataclass
class UploadGrant:
    """A presigned write grant plus the resulting public URL."""

    upload_url: str
    public_url: str
    key: str
    category: str
    content_type: str
    expires_in: int

    def to_dict(self) -> Dict[str, Any]:
        """Response payload; images expose `imageUrl`, videos `videoUrl`."""
        data = {
            "uploadUrl": self.upload_url,
            "publicUrl": self.public_url,
            "key": self.key,
            "expiresIn": self.expires_in,
        }
        if self.category == IMAGE_CATEGORY:
            data["imageUrl"] = self.public_url
        else:
            data["videoUrl"] = self.public_url
        return data


def classify_content_type(content_type: Optional[str]) -> str:
    """
    Map a MIME type to its storage category.

    Raises:
        UnsupportedMediaType: For anything but image/* and video/mp4
    """
    normalized = (content_type or "").strip().lower()
    if normalized.startswith("image/") and len(normalized) > len("image/"):
        return IMAGE_CATEGORY
    if normalized == VIDEO_CONTENT_TYPE:
        return VIDEO_CATEGORY
    raise UnsupportedMediaType(
        "Only MP4 videos and images are supported",
        details={"content_type": content_type},
    )


class UploadGrantService:
    """
    Service for issuing storage write grants.

    Args:
        client: Optional preconfigured boto3 S3 client
        bucket: Target bucket (defaults to settings.S3_BUCKET_NAME)
        public_domain: CDN base URL (defaults to settings.CLOUDFRONT_DOMAIN)
        expires_in: Grant lifetime in seconds (defaults to 60)
        id_factory: Callable returning the unique key namespace
    """

    def __init__(
        self,
        client=None,
        bucket: Optional[str] = None,
        public_domain: Optional[str] = None,
        expires_in: Optional[int] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.bucket = bucket if bucket is not None else settings.S3_BUCKET_NAME
        self.public_domain = (
            public_domain if public_domain is not None else settings.CLOUDFRONT_DOMAIN
        )
        self.expires_in = (
            expires_in if expires_in is not None else settings.UPLOAD_URL_EXPIRES_SECONDS
        )
        self.id_factory = id_factory
        self._client = client

    def get_s3_client(self):
        """Creates (once) a boto3 S3 client with bounded timeouts and no retries."""
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                region_name=settings.S3_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                config=Config(
                    signature_version="s3v4",
                    connect_timeout=settings.S3_TIMEOUT_SECONDS,
                    read_timeout=settings.S3_TIMEOUT_SECONDS,
                    retries={"max_attempts": 1},
                ),
            )
        return self._client

    def build_key(self, category: str, file_name: str) -> str:
        return f"{category}/{self.id_factory()}/{file_name}"

    def public_url_for(self, key: str) -> str:
        return f"{self.public_domain.rstrip('/')}/{quote(key, safe='/')}"

    def issue_upload_grant(
        self, file_name: Optional[str], content_type: Optional[str]
    ) -> UploadGrant:
        """
        Issue a write grant for one object.

        Args:
            file_name: Original file name; directories are stripped
            content_type: MIME type the client will upload with

        Returns:
            UploadGrant with presigned PUT URL and public URL

        Raises:
            ValidationError: If file name or content type is missing
            UnsupportedMediaType: If the content type is not allowed
            StorageUnavailable: If storage is not configured or signing fails
        """
        if not file_name or not content_type:
            raise ValidationError("File name and type are required")

        base_name = posixpath.basename(str(file_name).replace("\\", "/")).strip()
        if not base_name:
            raise ValidationError(
                "File name is invalid", details={"file_name": file_name}
            )

        category = classify_content_type(content_type)
        if not self.bucket:
            logger.error("S3_BUCKET_NAME is not configured")
            raise StorageUnavailable("Upload storage is not configured")

        key = self.build_key(category, base_name)

        try:
            upload_url = self.get_s3_client().generate_presigned_url(
                ClientMethod="put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to sign upload URL for key %s", key)
            raise StorageUnavailable(
                "Could not generate upload URL", details={"key": key}
            ) from exc

        grant = UploadGrant(
            upload_url=upload_url,
            public_url=self.public_url_for(key),
            key=key,
            category=category,
            content_type=content_type,
            expires_in=self.expires_in,
        )
        logger.info("Issued %s upload grant for key %s", category, key)
        return grant
