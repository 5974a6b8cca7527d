"""
Upload Grant Tests

Presigning is a local computation in botocore, so a client with dummy
credentials is enough; nothing is sent to S3.
"""

from unittest import mock

import boto3
from botocore.config import Config
from botocore.exceptions import NoCredentialsError
from django.contrib.auth.models import Group, User
from django.test import SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from marketplace.exceptions import StorageUnavailable, UnsupportedMediaType, ValidationError
from marketplace.uploads.services.upload_grant_service import (
    IMAGE_CATEGORY,
    VIDEO_CATEGORY,
    UploadGrantService,
    classify_content_type,
)

S3_TEST_SETTINGS = {
    "S3_BUCKET_NAME": "test-bucket",
    "S3_REGION": "us-east-1",
    "S3_ENDPOINT_URL": None,
    "AWS_ACCESS_KEY_ID": "testing",
    "AWS_SECRET_ACCESS_KEY": "testing",
    "CLOUDFRONT_DOMAIN": "https://cdn.example.com",
}


def dummy_s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4"),
    )


class ClassifyContentTypeTests(SimpleTestCase):
    def test_images_and_mp4_are_supported(self):
        self.assertEqual(classify_content_type("image/png"), IMAGE_CATEGORY)
        self.assertEqual(classify_content_type("image/jpeg"), IMAGE_CATEGORY)
        self.assertEqual(classify_content_type("video/mp4"), VIDEO_CATEGORY)

    def test_other_types_are_rejected(self):
        for content_type in ("text/plain", "video/webm", "application/pdf", "image/", ""):
            with self.subTest(content_type=content_type):
                with self.assertRaises(UnsupportedMediaType):
                    classify_content_type(content_type)


class UploadGrantServiceTests(SimpleTestCase):
    def setUp(self):
        self.service = UploadGrantService(
            client=dummy_s3_client(),
            bucket="test-bucket",
            public_domain="https://cdn.example.com/",
            expires_in=60,
            id_factory=lambda: "fixed-id",
        )

    def test_image_grant(self):
        grant = self.service.issue_upload_grant("a.png", "image/png")

        self.assertEqual(grant.key, "course-images/fixed-id/a.png")
        self.assertEqual(grant.public_url, "https://cdn.example.com/course-images/fixed-id/a.png")
        self.assertIn("course-images/fixed-id/a.png", grant.upload_url)
        self.assertIn("X-Amz-Expires=60", grant.upload_url)
        self.assertEqual(grant.to_dict()["imageUrl"], grant.public_url)
        self.assertNotIn("videoUrl", grant.to_dict())

    def test_video_grant(self):
        grant = self.service.issue_upload_grant("lesson.mp4", "video/mp4")

        self.assertTrue(grant.key.startswith("videos/"))
        self.assertTrue(grant.key.endswith("/lesson.mp4"))
        self.assertEqual(grant.to_dict()["videoUrl"], grant.public_url)

    def test_directories_are_stripped_from_file_name(self):
        grant = self.service.issue_upload_grant("../../etc/a.png", "image/png")

        self.assertEqual(grant.key, "course-images/fixed-id/a.png")

    def test_public_url_quotes_special_characters(self):
        grant = self.service.issue_upload_grant("my photo.png", "image/png")

        self.assertEqual(
            grant.public_url, "https://cdn.example.com/course-images/fixed-id/my%20photo.png"
        )

    def test_every_grant_gets_its_own_namespace(self):
        service = UploadGrantService(
            client=dummy_s3_client(), bucket="test-bucket", public_domain="https://cdn"
        )

        first = service.issue_upload_grant("a.png", "image/png")
        second = service.issue_upload_grant("a.png", "image/png")

        self.assertNotEqual(first.key, second.key)

    def test_unsupported_type_is_rejected(self):
        with self.assertRaises(UnsupportedMediaType):
            self.service.issue_upload_grant("notes.txt", "text/plain")

    def test_missing_input_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.issue_upload_grant("", "image/png")
        with self.assertRaises(ValidationError):
            self.service.issue_upload_grant("a.png", None)

    def test_missing_bucket_means_storage_unavailable(self):
        service = UploadGrantService(client=dummy_s3_client(), bucket="", public_domain="x")

        with self.assertRaises(StorageUnavailable):
            service.issue_upload_grant("a.png", "image/png")

    def test_signing_failure_means_storage_unavailable(self):
        client = mock.Mock()
        client.generate_presigned_url.side_effect = NoCredentialsError()
        service = UploadGrantService(client=client, bucket="test-bucket", public_domain="x")

        with self.assertRaises(StorageUnavailable):
            service.issue_upload_grant("a.png", "image/png")


@override_settings(**S3_TEST_SETTINGS)
class UploadGrantViewTests(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.teacher = User.objects.create_user(username="ada", password="pw")
        cls.teacher.groups.add(Group.objects.create(name="teacher"))
        cls.student = User.objects.create_user(username="linus", password="pw")

    def test_teacher_receives_video_grant(self):
        self.client.force_authenticate(user=self.teacher)

        response = self.client.post(
            "/api/uploads/grant/",
            {"fileName": "intro.mp4", "fileType": "video/mp4"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["message"], "Upload URL for video generated successfully")
        self.assertTrue(body["data"]["videoUrl"].startswith("https://cdn.example.com/videos/"))
        self.assertIn("X-Amz-Expires=60", body["data"]["uploadUrl"])

    def test_teacher_receives_image_grant(self):
        self.client.force_authenticate(user=self.teacher)

        response = self.client.post(
            "/api/uploads/grant/",
            {"fileName": "cover.jpg", "fileType": "image/jpeg"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("/course-images/", response.json()["data"]["imageUrl"])

    def test_unsupported_type_returns_415(self):
        self.client.force_authenticate(user=self.teacher)

        response = self.client.post(
            "/api/uploads/grant/",
            {"fileName": "notes.txt", "fileType": "text/plain"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

    def test_students_cannot_request_grants(self):
        self.client.force_authenticate(user=self.student)

        response = self.client.post(
            "/api/uploads/grant/",
            {"fileName": "intro.mp4", "fileType": "video/mp4"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
