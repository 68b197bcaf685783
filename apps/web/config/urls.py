"""
URL configuration for Platter.
"""

from django.urls import include, path

urlpatterns = [
    path("", include("apps.web.ordering.urls")),
]
