from fastapi import APIRouter

from app.api.routes import admin, catalog, health, notifications, project_requests, projects, users, verification

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(project_requests.router, prefix="/project-requests", tags=["project-requests"])
api_router.include_router(verification.router, prefix="/verification", tags=["verification"])
api_router.include_router(admin.router, tags=["admin"])
