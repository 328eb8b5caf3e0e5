"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes, and the
startup factory for the notification clients.
"""

from fastapi import Request
from psycopg_pool import ConnectionPool

from src.adapters.directory import GraphUserDirectory, StaticUserDirectory
from src.adapters.graph import GraphClient
from src.adapters.mail import ConsoleNotificationSender, GraphMailSender
from src.adapters.repository.postgres import PostgresRegistrationLedger
from src.config.settings import Settings, get_settings
from src.domain.dispatcher import CommandDispatcher
from src.domain.notifications import NotificationTrigger


def build_notifications(settings: Settings) -> tuple[NotificationTrigger, GraphClient | None]:
    """
    Build the notification trigger once at startup.

    Uses Microsoft Graph when fully configured, otherwise the static
    directory and console sender.

    Returns:
        The trigger, and the Graph client to close on shutdown (if any)
    """
    if not settings.graph_enabled:
        trigger = NotificationTrigger(
            directory=StaticUserDirectory(settings.static_user_emails),
            sender=ConsoleNotificationSender(),
        )
        return trigger, None

    client = GraphClient.from_client_secret(
        tenant_id=settings.graph_tenant_id,
        client_id=settings.graph_client_id,
        client_secret=settings.graph_client_secret,
        base_url=settings.graph_base_url,
        authority=settings.graph_authority,
        timeout=settings.http_timeout_seconds,
    )
    trigger = NotificationTrigger(
        directory=GraphUserDirectory(client),
        sender=GraphMailSender(client, settings.from_email),
    )
    return trigger, client


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_ledger(request: Request) -> PostgresRegistrationLedger:
    """Create ledger with connection pool from app state."""
    settings = get_settings()
    return PostgresRegistrationLedger(
        get_pool(request),
        transaction_timeout_ms=settings.transaction_timeout_ms,
        lock_timeout_ms=settings.lock_timeout_ms,
    )


def get_notifications(request: Request) -> NotificationTrigger:
    """Get the notification trigger built at startup."""
    return request.app.state.notifications


def get_dispatcher(request: Request) -> CommandDispatcher:
    """
    Create command dispatcher with injected dependencies.

    Wires together the ledger, the notification trigger and the
    acknowledgment policy from settings.
    """
    settings = get_settings()
    return CommandDispatcher(
        ledger=get_ledger(request),
        notifications=get_notifications(request),
        acknowledge_decode_errors=settings.ack_decode_errors,
        acknowledge_missing_events=settings.ack_missing_events,
    )
