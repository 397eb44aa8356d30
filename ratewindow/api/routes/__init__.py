from __future__ import annotations

from ratewindow.api.routes.health import router as health_router
from ratewindow.api.routes.quota import router as quota_router

__all__ = ["health_router", "quota_router"]
