"""
PandaDoc Webhook Router

Turns PandaDoc ``recipient_completed`` events into the signing-chain
notifications:

    Broker signed  -> agent ping (and buyer "ready to sign" when enabled)
    Buyer signed   -> agent ping (and seller "offer received" when enabled)
    All signed     -> "fully executed" to every party, then agent ping

Events are handled one at a time, in array order. A failed send aborts
the batch; sends that already went out stay sent.
"""

import hashlib
import hmac
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .formatting import closing_date, format_long_date, to_decimal
from .pandadoc_client import document_link
from .types import SigningRole, WebhookEvent, WebhookRecipient

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = 'X-PandaDoc-Signature'

DEFAULT_AGENT_NAME = 'Your Agent'
DEFAULT_LOAN_TYPE = 'Conventional'
DEFAULT_DOWN_PAYMENT_PERCENT = 20


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Check the HMAC-SHA256 hex digest PandaDoc sends over the raw body.

    Returns False when no secret is configured, so unauthenticated
    webhooks are never processed. Never raises.
    """
    if not secret:
        logger.warning("PANDADOC_WEBHOOK_SECRET not configured, rejecting webhook")
        return False
    if not signature:
        return False
    if isinstance(raw_body, str):
        raw_body = raw_body.encode('utf-8')

    expected = hmac.new(secret.encode('utf-8'), raw_body or b'', hashlib.sha256).hexdigest()
    try:
        return hmac.compare_digest(expected, signature.strip().lower())
    except TypeError:
        # non-ASCII signature
        return False


class NullEventStore:
    """Event store that keeps nothing."""

    def record(self, document_id: str, event: str, recipient_id: Optional[str]) -> None:
        pass


class InMemoryEventStore:
    """Keeps handled event keys for inspection. Never used to skip replays."""

    def __init__(self):
        self.keys: List[Tuple[str, str, Optional[str]]] = []

    def record(self, document_id: str, event: str, recipient_id: Optional[str]) -> None:
        self.keys.append((document_id, event, recipient_id))

    def seen(self) -> Set[Tuple[str, str, Optional[str]]]:
        return set(self.keys)


def _name_or(recipient: Optional[WebhookRecipient], fallback: str) -> str:
    if recipient is None:
        return fallback
    return recipient.full_name or fallback


def _metadata_number(metadata: Dict[str, Any], key: str, default: Decimal) -> Decimal:
    """Numeric metadata value, or ``default`` when missing or not a finite number."""
    value = to_decimal(metadata.get(key))
    if value is None or not value.is_finite():
        return default
    return value


class WebhookRouter:
    """
    Decides who to email for each webhook event and sends through the
    NotificationService, sequentially.

    Args:
        notifier: NotificationService (or anything with the same send_* methods)
        agent_name: Fallback when the document metadata has no agentName
        event_store: Receives a record() call for each handled event
        notify_next_signer: Also email the next signer ourselves. PandaDoc
            already does this on a non-silent send, so it is off by default.
        today: Fixed date for the closing-date calculation (tests)
    """

    def __init__(
        self,
        notifier,
        agent_name: str = DEFAULT_AGENT_NAME,
        event_store=None,
        notify_next_signer: bool = False,
        today: Optional[date] = None
    ):
        self.notifier = notifier
        self.agent_name = agent_name
        self.event_store = event_store or NullEventStore()
        self.notify_next_signer = notify_next_signer
        self.today = today

    def handle_events(self, events: Iterable[Any]) -> int:
        """
        Handle a webhook array in order.

        Returns:
            Number of emails sent
        """
        sent = 0
        for raw in events:
            event = raw if isinstance(raw, WebhookEvent) else WebhookEvent.from_dict(raw)
            sent += self.handle_event(event)
        return sent

    def handle_event(self, event: WebhookEvent) -> int:
        """Handle one event. Returns the number of emails sent."""
        if not event.is_recipient_completed:
            logger.debug(f"Ignoring webhook event {event.event!r} for document {event.document_id}")
            return 0

        completed = [r for r in event.recipients if r.has_completed]
        pending = [r for r in event.recipients if not r.has_completed]
        if not completed:
            logger.info(f"recipient_completed for {event.document_id} with no completed recipients, ignoring")
            return 0

        just_signed = max(completed, key=lambda r: r.order_key)
        context = self._context(event)
        logger.info(
            f"Document {event.document_id}: {just_signed.full_name or just_signed.id} "
            f"({just_signed.role or just_signed.signing_order}) signed, {len(pending)} pending"
        )

        sent = 0
        role = just_signed.signing_role
        if role is SigningRole.BROKER:
            sent += self._broker_signed(event, just_signed, context)
        elif role is SigningRole.BUYER:
            sent += self._buyer_signed(event, just_signed, context)

        if not pending:
            sent += self._fully_executed(event, context)

        self.event_store.record(event.document_id, event.event, just_signed.id)
        return sent

    def _context(self, event: WebhookEvent) -> Dict[str, Any]:
        metadata = event.metadata
        return {
            'agent_email': metadata.get('agentEmail') or '',
            'agent_name': metadata.get('agentName') or self.agent_name,
            'property_address': event.property_address,
            'offer_price': _metadata_number(metadata, 'offerPrice', Decimal(0)),
            'loan_type': metadata.get('loanType') or DEFAULT_LOAN_TYPE,
            'down_payment_percent': _metadata_number(
                metadata, 'downPaymentPercent', Decimal(DEFAULT_DOWN_PAYMENT_PERCENT)),
            'signing_link': document_link(event.document_id),
        }

    def _broker_signed(self, event: WebhookEvent, broker: WebhookRecipient, ctx: Dict[str, Any]) -> int:
        sent = 0
        buyer = event.recipient_for(SigningRole.BUYER)

        if self.notify_next_signer and buyer and buyer.email:
            self.notifier.send_buyer_sign_request(
                to_email=buyer.email,
                buyer_name=buyer.full_name,
                agent_name=ctx['agent_name'],
                property_address=ctx['property_address'],
                offer_price=ctx['offer_price'],
                loan_type=ctx['loan_type'],
                down_payment_percent=ctx['down_payment_percent'],
                signing_link=ctx['signing_link'],
            )
            sent += 1

        if ctx['agent_email']:
            if buyer:
                next_step = f"Contract sent to {buyer.full_name} (buyer) for signature."
            else:
                next_step = "Buyer will be notified shortly."
            self.notifier.send_agent_status(
                to_email=ctx['agent_email'],
                headline="Broker Signed",
                agent_name=ctx['agent_name'],
                property_address=ctx['property_address'],
                status_message="Broker has signed",
                signer_name=broker.full_name,
                signer_role=SigningRole.BROKER.label,
                next_step_message=next_step,
            )
            sent += 1
        return sent

    def _buyer_signed(self, event: WebhookEvent, buyer: WebhookRecipient, ctx: Dict[str, Any]) -> int:
        sent = 0
        seller = event.recipient_for(SigningRole.SELLER)

        if self.notify_next_signer and seller and seller.email:
            self.notifier.send_seller_sign_request(
                to_email=seller.email,
                seller_name=seller.full_name,
                buyer_name=_name_or(buyer, SigningRole.BUYER.label),
                agent_name=ctx['agent_name'],
                property_address=ctx['property_address'],
                offer_price=ctx['offer_price'],
                loan_type=ctx['loan_type'],
                down_payment_percent=ctx['down_payment_percent'],
                signing_link=ctx['signing_link'],
            )
            sent += 1

        if ctx['agent_email']:
            if seller:
                next_step = f"Contract sent to {seller.full_name} (seller) for signature."
            else:
                next_step = "Seller will be notified shortly."
            self.notifier.send_agent_status(
                to_email=ctx['agent_email'],
                headline="Buyer Signed",
                agent_name=ctx['agent_name'],
                property_address=ctx['property_address'],
                status_message="Buyer has signed",
                signer_name=buyer.full_name,
                signer_role=SigningRole.BUYER.label,
                next_step_message=next_step,
            )
            sent += 1
        return sent

    def _fully_executed(self, event: WebhookEvent, ctx: Dict[str, Any]) -> int:
        target_closing = format_long_date(closing_date(self.today))
        parties = {role: event.recipient_for(role) for role in SigningRole}

        shared = {
            'buyer_name': _name_or(parties[SigningRole.BUYER], SigningRole.BUYER.label),
            'seller_name': _name_or(parties[SigningRole.SELLER], SigningRole.SELLER.label),
            'broker_name': _name_or(parties[SigningRole.BROKER], SigningRole.BROKER.label),
            'agent_name': ctx['agent_name'],
            'property_address': ctx['property_address'],
            'offer_price': ctx['offer_price'],
            'closing_date': target_closing,
        }

        sent = 0
        for role in SigningRole:
            party = parties[role]
            if party is None or not party.email:
                logger.warning(f"Document {event.document_id}: no {role.label} email, skipping executed copy")
                continue
            self.notifier.send_fully_executed(
                to_email=party.email,
                recipient_name=party.full_name,
                **shared
            )
            sent += 1

        if ctx['agent_email']:
            self.notifier.send_agent_status(
                to_email=ctx['agent_email'],
                headline="Fully Executed",
                agent_name=ctx['agent_name'],
                property_address=ctx['property_address'],
                status_message="All parties have signed. Contract fully executed",
                signer_name=shared['seller_name'],
                signer_role=SigningRole.SELLER.label,
                next_step_message=(
                    f"The Purchase Agreement for {ctx['property_address']} is now fully executed. "
                    f"All parties have received a copy. Target closing: {target_closing}."
                ),
            )
            sent += 1

        logger.info(f"Document {event.document_id} fully executed, target closing {target_closing}")
        return sent
