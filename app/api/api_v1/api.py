from fastapi import APIRouter

from app.api.api_v1.endpoints import (
    auth, cases, clients, health, invites, messages, permissions, realtime, users,
)

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(cases.router, prefix="/cases", tags=["cases"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
api_router.include_router(invites.router, tags=["invites"])
api_router.include_router(realtime.router, tags=["realtime"])
