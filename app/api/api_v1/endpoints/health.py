from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_connections, get_scheduler
from app.core.database import get_db
from app.realtime.manager import ConnectionManager
from app.services.notifications import NotificationScheduler

router = APIRouter()

@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connections),
    scheduler: NotificationScheduler = Depends(get_scheduler),
):
    try:
        # Try to execute a simple query
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        db_status = "error"

    return {
        "status": "ok",
        "message": "API is running",
        "database": db_status,
        "realtime": connections.stats(),
        "pending_notifications": scheduler.pending_count,
    }
