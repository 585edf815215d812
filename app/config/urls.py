"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/chat/                  - Chat endpoints
        groups/                    - My groups (list) / create group
        groups/{id}/               - Group detail/rename/delete
        groups/{id}/members/       - Add member / remove member
        groups/{id}/admins/        - Promote / demote admin
        groups/{id}/leave/         - Leave group
        groups/{id}/read/          - Mark group as read
        groups/{id}/messages/      - Message list/post
        messages/{id}/             - Message delete
        messages/{id}/seen/        - Mark message as seen
        members/{id}/groups/       - A member's group directory

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Chat
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Group Chat Admin"
admin.site.site_title = "Group Chat Admin"
admin.site.index_title = "Groups, messages and directories"
