from typing import Callable

from fastapi.requests import HTTPConnection
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email import EmailNotifier
from app.realtime.manager import ConnectionManager
from app.services.messaging import MessagingService
from app.services.notifications import NotificationScheduler

# Shared services are built in the application lifespan and kept on app.state

def get_messaging(conn: HTTPConnection) -> MessagingService:
    return conn.app.state.messaging

def get_connections(conn: HTTPConnection) -> ConnectionManager:
    return conn.app.state.connections

def get_scheduler(conn: HTTPConnection) -> NotificationScheduler:
    return conn.app.state.scheduler

def get_notifier(conn: HTTPConnection) -> EmailNotifier:
    return conn.app.state.notifier

def get_session_factory(conn: HTTPConnection) -> Callable[[], AsyncSession]:
    return conn.app.state.session_factory
