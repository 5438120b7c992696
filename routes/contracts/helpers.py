# routes/contracts/helpers.py
"""
Shared helpers for contract routes.

Services are built from app config on each request. An app can
pre-register instances in ``app.extensions`` (keys below) to replace
them, which is how the tests inject fakes.
"""

from flask import current_app

from services.contracts import (
    NullEventStore,
    NotificationService,
    PandaDocClient,
    PollPolicy,
    WebhookRouter,
)

OPENAI_CLIENT_KEY = 'contracts.openai_client'
PANDADOC_CLIENT_KEY = 'contracts.pandadoc_client'
NOTIFIER_KEY = 'contracts.notifier'
EVENT_STORE_KEY = 'contracts.event_store'


def get_openai_client():
    """Pre-registered OpenAI client, or None to let the stream relay build one."""
    return current_app.extensions.get(OPENAI_CLIENT_KEY)


def get_pandadoc_client():
    client = current_app.extensions.get(PANDADOC_CLIENT_KEY)
    if client is not None:
        return client
    config = current_app.config
    return PandaDocClient(
        api_key=config.get('PANDADOC_API_KEY'),
        base_url=config.get('PANDADOC_API_URL'),
        poll_policy=PollPolicy(
            interval=config.get('PANDADOC_POLL_INTERVAL', 6),
            timeout=config.get('PANDADOC_POLL_TIMEOUT', 60),
        ),
    )


def get_notifier():
    notifier = current_app.extensions.get(NOTIFIER_KEY)
    if notifier is not None:
        return notifier
    return NotificationService.from_config(current_app.config)


def get_event_store():
    """Pre-registered event store (e.g. InMemoryEventStore), else one that keeps nothing."""
    return current_app.extensions.get(EVENT_STORE_KEY) or NullEventStore()


def get_webhook_router():
    return WebhookRouter(
        get_notifier(),
        event_store=get_event_store(),
        notify_next_signer=current_app.config.get('SIGNER_EMAILS_ENABLED', False),
    )


def signer_emails_enabled() -> bool:
    return bool(current_app.config.get('SIGNER_EMAILS_ENABLED', False))
