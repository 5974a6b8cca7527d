"""
Course Views

Endpoints
---------
1. CourseListCreateView
   - URL: /api/courses/
   - GET:  list courses, optional ?category= (the sentinel "all" disables the filter)
   - POST: {"teacherId": "...", "teacherName": "..."} creates an empty Draft course
           (teacher role required, teacherId must be the caller)

2. CourseDetailView
   - URL: /api/courses/<course_id>/
   - GET:    public course detail
   - PUT/PATCH: owner-only partial update (JSON or multipart; `sections`
                may be a JSON string, `price` is in whole dollars)
   - DELETE: owner-only delete, returns the deleted course

Responses use the envelope {"message": ..., "data": ...}.
"""

from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from ..authorization import IsTeacher, caller_id, ensure_same_user
from .serializers import CourseSerializer
from .services.course_service import CourseService

course_service = CourseService()


def _request_fields(request) -> dict:
    # QueryDict (form/multipart) -> plain dict with single values
    data = request.data
    if hasattr(data, "dict"):
        return data.dict()
    return dict(data)


class CourseListCreateView(APIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), IsTeacher()]
        return [permissions.AllowAny()]

    def get(self, request):
        courses = course_service.list_courses(request.query_params.get("category"))
        return Response(
            {
                "message": "Courses retrieved successfully",
                "data": CourseSerializer(courses, many=True).data,
            }
        )

    def post(self, request):
        teacher_id = request.data.get("teacherId")
        teacher_name = request.data.get("teacherName")
        if teacher_id and teacher_name:
            ensure_same_user(caller_id(request), str(teacher_id))

        course = course_service.create_course(teacher_id, teacher_name)
        return Response(
            {
                "message": "Course created successfully",
                "data": CourseSerializer(course).data,
            },
            status=201,
        )


class CourseDetailView(APIView):
    def get_permissions(self):
        if self.request.method in permissions.SAFE_METHODS:
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsTeacher()]

    def get(self, request, course_id):
        course = course_service.get_course(course_id)
        return Response(
            {
                "message": "Course retrieved successfully",
                "data": CourseSerializer(course).data,
            }
        )

    def put(self, request, course_id):
        course = course_service.update_course(
            course_id, caller_id(request), _request_fields(request)
        )
        return Response(
            {
                "message": "Course updated successfully",
                "data": CourseSerializer(course).data,
            }
        )

    def patch(self, request, course_id):
        return self.put(request, course_id)

    def delete(self, request, course_id):
        course = course_service.delete_course(course_id, caller_id(request))
        return Response(
            {
                "message": "Course deleted successfully",
                "data": CourseSerializer(course).data,
            }
        )
