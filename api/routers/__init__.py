"""API Routers Package.

Each router handles one area of the client:
- auth.py: sign up/in/out, popup sign in, password reset, session state
- tasks.py: dashboard listing, task and subtask CRUD
- analytics.py: chart data
- settings.py: theme preference and account details

Usage in main.py:
    from api.routers import auth_router, tasks_router, analytics_router, settings_router

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
"""

from .analytics import router as analytics_router
from .auth import router as auth_router
from .settings import router as settings_router
from .tasks import router as tasks_router

__all__ = [
    "analytics_router",
    "auth_router",
    "settings_router",
    "tasks_router",
]
