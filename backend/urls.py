"""
Root URL configuration for the course marketplace backend.

- /admin/: Django admin (jazzmin theme)
- /api/:   marketplace REST API (courses, uploads, transactions, progress)
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("marketplace.urls")),
]
