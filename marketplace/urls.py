"""
Marketplace URL Configuration

URL Structure:
- /api/courses/:      Course catalogue and owner-only course management
- /api/uploads/:      Presigned upload grants for images and videos
- /api/transactions/: Payment intents, enrollment and transaction history
- /api/progress/:     Learner progress records

Author: Marketplace Development Team
Version: 1.0.0
"""

from typing import List

from django.urls import URLPattern, include, path

from .courses import views as course_views
from .payments import views as payment_views
from .progress import views as progress_views
from .uploads import views as upload_views

app_name = "marketplace"

# --- Courses ---

courses_urlpatterns: List[URLPattern] = [
    path("", course_views.CourseListCreateView.as_view(), name="course-list"),
    path("<str:course_id>/", course_views.CourseDetailView.as_view(), name="course-detail"),
]

# --- Uploads ---

uploads_urlpatterns: List[URLPattern] = [
    path("grant/", upload_views.UploadGrantView.as_view(), name="upload-grant"),
]

# --- Transactions & Stripe ---

transactions_urlpatterns: List[URLPattern] = [
    path("", payment_views.TransactionListCreateView.as_view(), name="transaction-list"),
    path(
        "stripe/payment-intent/",
        payment_views.CreatePaymentIntentView.as_view(),
        name="stripe-payment-intent",
    ),
    path("stripe/config/", payment_views.GetStripeConfigView.as_view(), name="stripe-config"),
    path("stripe/webhook/", payment_views.StripeWebhookView.as_view(), name="stripe-webhook"),
]

# --- Progress ---

progress_urlpatterns: List[URLPattern] = [
    path(
        "<str:user_id>/<str:course_id>/",
        progress_views.UserCourseProgressView.as_view(),
        name="course-progress",
    ),
]

urlpatterns: List[URLPattern] = [
    path("courses/", include((courses_urlpatterns, "courses"))),
    path("uploads/", include((uploads_urlpatterns, "uploads"))),
    path("transactions/", include((transactions_urlpatterns, "transactions"))),
    path("progress/", include((progress_urlpatterns, "progress"))),
]
