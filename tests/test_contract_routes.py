"""
Tests for the /api contract endpoints using the Flask test client.
"""

import json
from types import SimpleNamespace
from unittest.mock import Mock

import openai
import pytest

from routes.contracts.helpers import EVENT_STORE_KEY, OPENAI_CLIENT_KEY, PANDADOC_CLIENT_KEY
from services.contracts import DocumentTimeoutError, InMemoryEventStore, SendResult
from services.contracts.pandadoc_client import document_link
from conftest import make_event, recipient_of, sent_messages


def chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


@pytest.fixture
def openai_client(app):
    client = Mock()
    client.chat.completions.create.return_value = iter([chunk("RESIDENTIAL "), chunk("PURCHASE AGREEMENT")])
    app.extensions[OPENAI_CLIENT_KEY] = client
    return client


@pytest.fixture
def pandadoc(app):
    client = Mock()
    client.create_and_send_contract.return_value = SendResult(
        document_id="doc-77",
        sandbox_skipped=False,
        broker_link=document_link("doc-77"),
        buyer_link=document_link("doc-77"),
        seller_link=document_link("doc-77"),
    )
    app.extensions[PANDADOC_CLIENT_KEY] = client
    return client


class TestHealth:

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}


class TestGenerate:
    """POST /api/generate"""

    def test_streams_plain_text(self, client, openai_client, form_payload):
        response = client.post('/api/generate', json=form_payload)

        assert response.status_code == 200
        assert response.headers['Content-Type'] == "text/plain; charset=utf-8"
        assert response.headers['Cache-Control'] == "no-cache"
        assert response.headers['X-Accel-Buffering'] == "no"
        assert response.get_data(as_text=True) == "RESIDENTIAL PURCHASE AGREEMENT"

    def test_uses_configured_model(self, app, client, openai_client, form_payload):
        app.config['CONTRACT_MODEL'] = "gpt-test"

        client.post('/api/generate', json=form_payload).get_data()

        assert openai_client.chat.completions.create.call_args.kwargs['model'] == "gpt-test"

    def test_invalid_body(self, client, openai_client, form_payload):
        form_payload['offerPrice'] = -1

        response = client.post('/api/generate', json=form_payload)

        assert response.status_code == 400
        assert "offerPrice" in response.get_json()['error']
        openai_client.chat.completions.create.assert_not_called()

    def test_non_json_body(self, client, openai_client):
        response = client.post('/api/generate', data="not json", content_type='text/plain')

        assert response.status_code == 400

    def test_stream_start_failure(self, client, openai_client, form_payload):
        openai_client.chat.completions.create.side_effect = openai.OpenAIError("quota exceeded")

        response = client.post('/api/generate', json=form_payload)

        assert response.status_code == 500
        assert response.get_json() == {'error': "Failed to generate contract"}


class TestSendContract:
    """POST /api/send-contract"""

    def test_send(self, client, pandadoc, sendgrid_client, form_payload):
        response = client.post('/api/send-contract', json={
            'formData': form_payload,
            'contractText': "# AGREEMENT\nTerms.",
        })

        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'pandaDocId': "doc-77", 'sandboxSkipped': False}

        form_data, contract_text = pandadoc.create_and_send_contract.call_args.args
        assert form_data.buyer_name == "Jane Smith"
        assert contract_text == "# AGREEMENT\nTerms."

        messages = sent_messages(sendgrid_client)
        assert len(messages) == 1
        assert recipient_of(messages[0]) == "agent@example.com"
        assert messages[0]['subject'] == "Sent to Broker — Purchase Agreement — 123 Main St, Austin, TX 78701"

    def test_sandbox_skip_reported(self, client, pandadoc, form_payload):
        pandadoc.create_and_send_contract.return_value = SendResult(
            document_id="doc-78", sandbox_skipped=True,
            broker_link="", buyer_link="", seller_link="",
        )

        response = client.post('/api/send-contract', json={'formData': form_payload, 'contractText': "Terms."})

        assert response.status_code == 200
        assert response.get_json()['sandboxSkipped'] is True

    def test_broker_email_when_signer_emails_enabled(self, app, client, pandadoc, sendgrid_client, form_payload):
        app.config['SIGNER_EMAILS_ENABLED'] = True

        client.post('/api/send-contract', json={'formData': form_payload, 'contractText': "Terms."})

        assert [recipient_of(m) for m in sent_messages(sendgrid_client)] == [
            "broker@example.com",
            "agent@example.com",
        ]

    @pytest.mark.parametrize("body", [
        {'contractText': "Terms."},
        {'formData': {}, 'contractText': "Terms."},
        {'formData': None, 'contractText': "Terms."},
        ["not", "an", "object"],
    ])
    def test_invalid_body(self, client, pandadoc, form_payload, body):
        response = client.post('/api/send-contract', json=body)

        assert response.status_code == 400
        pandadoc.create_and_send_contract.assert_not_called()

    def test_missing_contract_text(self, client, pandadoc, form_payload):
        response = client.post('/api/send-contract', json={'formData': form_payload, 'contractText': "  "})

        assert response.status_code == 400

    def test_pandadoc_failure_is_generic(self, client, pandadoc, sendgrid_client, form_payload):
        pandadoc.create_and_send_contract.side_effect = DocumentTimeoutError("still uploaded")

        response = client.post('/api/send-contract', json={'formData': form_payload, 'contractText': "Terms."})

        assert response.status_code == 500
        assert response.get_json() == {'error': "Failed to send contract"}
        sendgrid_client.send.assert_not_called()


class TestPandaDocWebhook:
    """POST /api/webhook/pandadoc"""

    def test_valid_event(self, post_webhook, sendgrid_client):
        response = post_webhook([make_event({1})])

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "OK"
        assert response.mimetype == "text/plain"
        assert sendgrid_client.send.call_count == 1

    def test_fully_executed_counts(self, post_webhook, sendgrid_client):
        post_webhook([make_event({1, 2, 3})])

        assert sendgrid_client.send.call_count == 4

    def test_bad_signature(self, post_webhook, sendgrid_client):
        response = post_webhook([make_event({1})], signature="0" * 64)

        assert response.status_code == 401
        assert response.get_data(as_text=True) == "Unauthorized"
        sendgrid_client.send.assert_not_called()

    def test_missing_signature(self, client, sendgrid_client):
        response = client.post('/api/webhook/pandadoc', data=json.dumps([make_event({1})]))

        assert response.status_code == 401

    def test_secret_not_configured_rejects(self, app, post_webhook, sendgrid_client):
        app.config['PANDADOC_WEBHOOK_SECRET'] = None

        response = post_webhook([make_event({1})])

        assert response.status_code == 401
        sendgrid_client.send.assert_not_called()

    @pytest.mark.parametrize("body", [b"{not json", b'{"event": "recipient_completed"}', b"[1, 2]"])
    def test_malformed_body(self, post_webhook, body):
        response = post_webhook(body)

        assert response.status_code == 400
        assert response.get_data(as_text=True) == "Bad Request"

    @pytest.mark.parametrize("bad_entry", [
        1,
        {'event': "recipient_completed", 'data': "doc-abc123"},
    ])
    def test_malformed_entry_rejects_whole_batch(self, post_webhook, sendgrid_client, bad_entry):
        response = post_webhook([make_event({1}), bad_entry])

        assert response.status_code == 400
        assert response.get_data(as_text=True) == "Bad Request"
        sendgrid_client.send.assert_not_called()

    def test_send_failure_is_500(self, post_webhook, sendgrid_client):
        sendgrid_client.send.side_effect = RuntimeError("SendGrid down")

        response = post_webhook([make_event({1})])

        assert response.status_code == 500
        assert response.get_data(as_text=True) == "Internal Server Error"

    def test_replay_in_one_batch_doubles(self, app, post_webhook, sendgrid_client):
        store = InMemoryEventStore()
        app.extensions[EVENT_STORE_KEY] = store
        event = make_event({1, 2, 3})

        response = post_webhook([event, event])

        assert response.status_code == 200
        assert sendgrid_client.send.call_count == 8
        assert len(store.keys) == 2
