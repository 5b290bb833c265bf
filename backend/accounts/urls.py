"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and designed to be included
in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/register/               → RegisterView
    POST   /auth/login/                  → LoginView
    POST   /auth/token/refresh/          → TokenRefreshView (SimpleJWT)

Current User Profile ("Me")
    GET    /me/                          → MeView  (retrieve)
    PATCH  /me/                          → MeView  (partial update)

User Management (administrators)
    GET    /users/                       → UserViewSet.list
    GET    /users/{id}/                  → UserViewSet.retrieve
    DELETE /users/{id}/                  → UserViewSet.destroy
    GET    /users/pending-approvals/     → UserViewSet.pending_approvals
    POST   /users/{id}/approve/          → UserViewSet.approve
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    LoginView,
    MeView,
    RegisterView,
    UserViewSet,
)

app_name = "accounts"

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path(
        "auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token-refresh",
    ),

    # ── Current User (Me) ───────────────────────────────────────────
    path("me/", MeView.as_view(), name="me"),

    # ── Router-registered viewsets (users/) ──────────────────────────
    path("", include(router.urls)),
]
