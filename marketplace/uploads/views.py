from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from ..authorization import IsTeacher
from .services.upload_grant_service import IMAGE_CATEGORY, UploadGrantService


class UploadGrantView(APIView):
    """
    Issue a presigned upload URL for a course image or lecture video.

    POST /api/uploads/grant/  {"fileName": "intro.mp4", "fileType": "video/mp4"}
    """

    permission_classes = [permissions.IsAuthenticated, IsTeacher]

    def post(self, request):
        grant = UploadGrantService().issue_upload_grant(
            request.data.get("fileName"), request.data.get("fileType")
        )
        kind = "image" if grant.category == IMAGE_CATEGORY else "video"
        return Response(
            {
                "message": f"Upload URL for {kind} generated successfully",
                "data": grant.to_dict(),
            }
        )
