"""
Rescues app URL configuration.

Included from ``backend.urls`` under ``/api/``.

Route Hierarchy
---------------
  GET    /api/rescues/                            → list
  POST   /api/rescues/                            → submit
  GET    /api/rescues/{id}/                       → detail
  DELETE /api/rescues/{id}/                       → delete (admin)
  POST   /api/rescues/{id}/accept/
  POST   /api/rescues/{id}/decline/
  POST   /api/rescues/{id}/assign-carrier/
  POST   /api/rescues/{id}/advance/
  POST   /api/rescues/{id}/override/
  POST   /api/rescues/{id}/retry-refund/
  GET    /api/rescues/nearby/
  GET    /api/rescues/escalated/
  GET    /api/rescues/my-assignments/
  GET    /api/rescues/active-task/
  GET    /api/rescues/history/
  GET    /api/rescues/carriers/

  ── Nested: Status logs ─────────────────────────────────────────
  GET    /api/rescues/{rescue_pk}/status-logs/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_nested.routers import NestedDefaultRouter

from .views import RescueStatusLogViewSet, RescueViewSet

app_name = "rescues"

# ── Primary Router ──────────────────────────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"rescues",
    viewset=RescueViewSet,
    basename="rescue",
)

# ── Nested Router (under /rescues/{rescue_pk}/) ─────────────────────
rescues_router = NestedDefaultRouter(
    parent_router=router,
    parent_prefix=r"rescues",
    lookup="rescue",
)
rescues_router.register(
    prefix=r"status-logs",
    viewset=RescueStatusLogViewSet,
    basename="rescue-status-log",
)

urlpatterns = [
    path("", include(router.urls)),
    path("", include(rescues_router.urls)),
]
