from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from ..authorization import caller_id, ensure_same_user
from ..exceptions import NotFound
from .models import UserCourseProgress
from .serializers import UserCourseProgressSerializer


class UserCourseProgressView(APIView):
    """Read-only access to the caller's own progress record for one course."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, user_id, course_id):
        ensure_same_user(caller_id(request), user_id)
        try:
            progress = UserCourseProgress.objects.get(user_id=user_id, course_id=course_id)
        except UserCourseProgress.DoesNotExist:
            raise NotFound(
                "Course progress not found",
                details={"user_id": user_id, "course_id": course_id},
            ) from None
        return Response(
            {
                "message": "Course progress retrieved successfully",
                "data": UserCourseProgressSerializer(progress).data,
            }
        )
