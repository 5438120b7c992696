# routes/contracts/webhook.py
"""
PandaDoc webhook endpoint.

Configure this URL in PandaDoc: https://yourdomain.com/api/webhook/pandadoc
with a shared key; PandaDoc signs each delivery in X-PandaDoc-Signature.
"""

import json

from flask import current_app, request

from services.contracts import ValidationError, WebhookEvent, verify_webhook_signature
from services.contracts.webhook_router import SIGNATURE_HEADER
from . import contracts_bp
from .helpers import get_webhook_router


def _text(body, status):
    return body, status, {'Content-Type': 'text/plain; charset=utf-8'}


@contracts_bp.route('/webhook/pandadoc', methods=['POST'])
def pandadoc_webhook():
    """
    Receive recipient_completed events and send the follow-up emails.

    Responses are plain text: 401 Unauthorized, 400 Bad Request,
    200 OK, or 500 Internal Server Error when a send fails.
    """
    raw_body = request.get_data(cache=False)
    signature = request.headers.get(SIGNATURE_HEADER, '')

    if not verify_webhook_signature(raw_body, signature, current_app.config.get('PANDADOC_WEBHOOK_SECRET')):
        current_app.logger.warning("[webhook/pandadoc] Invalid signature")
        return _text('Unauthorized', 401)

    try:
        events = json.loads(raw_body)
    except ValueError as e:
        current_app.logger.warning(f"[webhook/pandadoc] Invalid JSON body: {e}")
        return _text('Bad Request', 400)

    if not isinstance(events, list):
        current_app.logger.warning("[webhook/pandadoc] Body is not an event array")
        return _text('Bad Request', 400)

    try:
        parsed = [WebhookEvent.from_dict(entry) for entry in events]
    except ValidationError as e:
        current_app.logger.warning(f"[webhook/pandadoc] Malformed event: {e}")
        return _text('Bad Request', 400)

    try:
        sent = get_webhook_router().handle_events(parsed)
    except Exception as e:
        current_app.logger.error(f"[webhook/pandadoc] Error: {e}", exc_info=True)
        return _text('Internal Server Error', 500)

    current_app.logger.info(f"[webhook/pandadoc] Processed {len(events)} event(s), {sent} email(s) sent")
    return _text('OK', 200)
