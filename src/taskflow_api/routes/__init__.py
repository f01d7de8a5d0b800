from taskflow_api.routes.auth import jwks_router
from taskflow_api.routes.auth import router as auth_router
from taskflow_api.routes.sessions import router as sessions_router
from taskflow_api.routes.tasks import router as tasks_router
from taskflow_api.routes.workspaces import router as workspaces_router

__all__ = [
    "auth_router",
    "jwks_router",
    "sessions_router",
    "tasks_router",
    "workspaces_router",
]
