"""
URL configuration for chat API.

URL Structure:
    Groups:
        /groups/                                GET, POST
        /groups/{id}/                           GET, PATCH, DELETE
        /groups/{id}/leave/                     POST
        /groups/{id}/read/                      POST

    Members and admins:
        /groups/{id}/members/                   POST
        /groups/{id}/members/{member_id}/       DELETE
        /groups/{id}/admins/                    POST
        /groups/{id}/admins/{member_id}/        DELETE

    Messages:
        /groups/{group_pk}/messages/            GET, POST
        /messages/{id}/                         DELETE
        /messages/{id}/seen/                    POST

    Directory:
        /members/{member_id}/groups/            GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import (
    GroupMessageViewSet,
    GroupViewSet,
    MemberGroupsView,
    MessageViewSet,
)

router = DefaultRouter()
router.register(r"groups", GroupViewSet, basename="group")
router.register(r"messages", MessageViewSet, basename="message")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    # Nested routes for messages
    path(
        "groups/<int:group_pk>/messages/",
        GroupMessageViewSet.as_view({"get": "list", "post": "create"}),
        name="group-message-list",
    ),
    # Member directory
    path(
        "members/<int:member_id>/groups/",
        MemberGroupsView.as_view(),
        name="member-groups",
    ),
]
