"""
Shared fixtures for the contract test suite.

Run with: python -m pytest tests/ -v
"""

import hashlib
import hmac
import json
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from routes.contracts.helpers import NOTIFIER_KEY
from services.contracts import NotificationService


WEBHOOK_SECRET = "test-webhook-secret"


class FakeClock:
    """Virtual clock: sleeping advances time instantly."""

    def __init__(self, start=1000.0):
        self.time = start
        self.sleeps = []

    def now(self):
        return self.time

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.time += seconds


def sendgrid_response(status_code=202, message_id="msg-123", body=""):
    response = Mock()
    response.status_code = status_code
    response.headers = {'X-Message-Id': message_id}
    response.body = body
    return response


def sent_messages(sendgrid_client):
    """JSON form of every Mail handed to the mock SendGrid client."""
    return [c.args[0].get() for c in sendgrid_client.send.call_args_list]


def recipient_of(message):
    return message['personalizations'][0]['to'][0]['email']


def sign_body(body, secret=WEBHOOK_SECRET):
    if isinstance(body, str):
        body = body.encode('utf-8')
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()


def make_recipient(order, completed, email=True, first_name=None, last_name="Person"):
    role = {1: "Broker", 2: "Buyer", 3: "Seller"}[order]
    return {
        'id': f"rcpt-{order}",
        'email': f"{role.lower()}@example.com" if email else "",
        'first_name': first_name or role,
        'last_name': last_name,
        'role': role,
        'has_completed': completed,
        'signing_order': order,
    }


def make_event(completed_orders, missing_email=(), metadata=None, event="recipient_completed",
               address="123 Main St, Austin, TX 78701"):
    """A PandaDoc webhook event for the standard three-recipient document."""
    if metadata is None:
        metadata = {
            'propertyAddress': address,
            'agentEmail': "agent@example.com",
            'agentName': "Alex Agent",
            'offerPrice': "450000",
            'loanType': "FHA",
            'downPaymentPercent': "10",
        }
    return {
        'event': event,
        'data': {
            'id': "doc-abc123",
            'name': f"Purchase Agreement — {address}",
            'status': "document.sent",
            'metadata': metadata,
            'recipients': [
                make_recipient(order, order in completed_orders, email=order not in missing_email)
                for order in (1, 2, 3)
            ],
        },
    }


@pytest.fixture
def form_payload():
    """Valid camelCase contract form body."""
    return {
        'brokerName': "Bea Broker",
        'brokerEmail': "broker@example.com",
        'agentName': "Alex Agent",
        'agentEmail': "agent@example.com",
        'buyerName': "Jane Smith",
        'buyerEmail': "buyer@example.com",
        'sellerName': "Sam Seller",
        'sellerEmail': "seller@example.com",
        'propertyAddress': "123 Main St, Austin, TX 78701",
        'offerPrice': 450000,
        'downPaymentPercent': 20,
        'loanType': "Conventional",
        'specialRequests': "",
        'addendums': {},
    }


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sendgrid_client():
    client = Mock()
    client.send.return_value = sendgrid_response()
    return client


@pytest.fixture
def notifier(sendgrid_client):
    return NotificationService(
        api_key="SG.test",
        from_email="contracts@deed.test",
        app_url="https://deed.test",
        client=sendgrid_client,
    )


@pytest.fixture
def app(notifier):
    app = create_app({
        'TESTING': True,
        'OPENAI_API_KEY': "sk-test-0000000000000000",
        'PANDADOC_API_KEY': "pd-test",
        'PANDADOC_WEBHOOK_SECRET': WEBHOOK_SECRET,
        'SENDGRID_API_KEY': "SG.test",
        'APP_URL': "https://deed.test",
        'SIGNER_EMAILS_ENABLED': False,
    })
    app.extensions[NOTIFIER_KEY] = notifier
    return app


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def post_webhook(client):
    """POST a signed webhook body."""
    def _post(events, secret=WEBHOOK_SECRET, signature=None):
        body = events if isinstance(events, (bytes, str)) else json.dumps(events)
        if isinstance(body, str):
            body = body.encode('utf-8')
        headers = {'X-PandaDoc-Signature': signature if signature is not None else sign_body(body, secret)}
        return client.post('/api/webhook/pandadoc', data=body, headers=headers,
                           content_type='application/json')
    return _post
