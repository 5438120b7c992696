"""
PandaDoc Client

Drives a single document through PandaDoc:

    create (upload PDF) -> poll until ready -> send (start signing chain)

PandaDoc emails each recipient in signing order once the document
is sent; everything after that is reported back through webhooks.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

import requests

from .exceptions import (
    DocumentCreateError,
    DocumentSendError,
    PandaDocAPIError,
)
from .field_adapter import fields_payload
from .pdf_builder import build_contract_pdf
from .polling import PollPolicy
from .types import ContractFormData, RemoteDocument, SendResult

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://api.pandadoc.com/public/v1'
DOCUMENT_APP_URL = 'https://app.pandadoc.com/a/#/documents'

# Request timeouts
DEFAULT_TIMEOUT = 30
UPLOAD_TIMEOUT = 60  # Longer timeout for PDF upload

DOCUMENT_TAGS = ['deed-app', 'purchase-agreement']

# Sandbox workspaces refuse to send to recipients outside the organization
SANDBOX_RESTRICTION_STATUS = 403
SANDBOX_RESTRICTION_MARKER = 'outside of your organization'


def document_link(document_id: str) -> str:
    """Document-level PandaDoc link, shared by all three parties."""
    return f"{DOCUMENT_APP_URL}/{document_id}"


class PandaDocClient:
    """
    Client for the PandaDoc documents API.

    Provides methods for:
        - Creating a document from the contract PDF
        - Polling a document until it can be sent
        - Sending a document to start the signing chain
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        poll_policy: PollPolicy = None,
        clock=None,
        session: requests.Session = None
    ):
        self.api_key = api_key or os.getenv('PANDADOC_API_KEY')
        self.base_url = (base_url or os.getenv('PANDADOC_API_URL') or DEFAULT_API_URL).rstrip('/')
        self.poll_policy = poll_policy or PollPolicy()
        self.clock = clock
        self.session = session or requests.Session()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ValueError("PANDADOC_API_KEY not configured")
        return {'Authorization': f'API-Key {self.api_key}'}

    def _json_headers(self) -> Dict[str, str]:
        headers = self._auth_headers()
        headers['Content-Type'] = 'application/json'
        return headers

    @staticmethod
    def build_document_data(form_data: ContractFormData) -> Dict[str, Any]:
        """Create-document payload sent alongside the PDF upload."""
        return {
            'name': form_data.document_name,
            'recipients': [party.to_recipient() for party in form_data.signing_parties()],
            'metadata': form_data.document_metadata(),
            'tags': DOCUMENT_TAGS,
            'fields': fields_payload(),
            'parse_form_fields': True,
        }

    def create_document(self, form_data: ContractFormData, pdf_bytes: bytes) -> RemoteDocument:
        """
        Upload the contract PDF with its recipients and metadata.

        Raises:
            DocumentCreateError: On any non-success response. Not retried.
        """
        document_data = self.build_document_data(form_data)

        try:
            response = self.session.post(
                f"{self.base_url}/documents",
                headers=self._auth_headers(),
                files={'file': ('contract.pdf', pdf_bytes, 'application/pdf')},
                data={'data': json.dumps(document_data)},
                timeout=UPLOAD_TIMEOUT
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"PandaDoc create request failed: {e}")
            raise DocumentCreateError(f"PandaDoc create failed: {e}") from e

        if not response.ok:
            logger.error(f"PandaDoc create failed: {response.status_code}")
            logger.error(f"Response body: {response.text}")
            raise DocumentCreateError(
                f"PandaDoc create failed: {response.status_code} — {response.text}",
                status_code=response.status_code,
                response_body=response.text
            )

        document = RemoteDocument.from_dict(response.json())
        logger.info(f"Created PandaDoc document {document.id} ({document.status}) for {form_data.property_address}")
        return document

    def get_document(self, document_id: str) -> RemoteDocument:
        """
        Fetch the current document state.

        Raises:
            PandaDocAPIError: On any non-success response
        """
        response = self._get_document_response(document_id)
        if not response.ok:
            raise PandaDocAPIError(
                f"PandaDoc status check failed: {response.status_code}",
                status_code=response.status_code,
                response_body=response.text
            )
        return RemoteDocument.from_dict(response.json())

    def _get_document_response(self, document_id: str) -> requests.Response:
        try:
            return self.session.get(
                f"{self.base_url}/documents/{document_id}",
                headers=self._auth_headers(),
                timeout=DEFAULT_TIMEOUT
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"PandaDoc status request failed for {document_id}: {e}")
            raise PandaDocAPIError(f"PandaDoc status check failed: {e}") from e

    def _poll_document(self, document_id: str) -> Optional[RemoteDocument]:
        response = self._get_document_response(document_id)
        if not response.ok:
            logger.warning(f"PandaDoc status check for {document_id} returned {response.status_code}")
            return None
        data = response.json()
        data.setdefault('id', document_id)
        return RemoteDocument.from_dict(data)

    def wait_until_ready(self, document_id: str) -> RemoteDocument:
        """
        Block until the document can be sent.

        Raises:
            DocumentProcessingError: PandaDoc reported document.error
            DocumentTimeoutError: Still processing when the ceiling passed
        """
        return self.poll_policy.wait_until_ready(
            document_id,
            fetch=lambda: self._poll_document(document_id),
            status_of=lambda document: document.status,
            clock=self.clock
        )

    def send_document(self, document_id: str, property_address: str) -> bool:
        """
        Send the document, starting the signing chain with the Broker.

        Returns:
            True if sending was skipped because of the sandbox
            recipient restriction (the document still exists), else False

        Raises:
            DocumentSendError: On any other non-success response
        """
        payload = {
            'subject': f"Signature Required: Purchase Agreement — {property_address}",
            'message': f"Please review and sign the Purchase Agreement for {property_address}.",
            'silent': False,
        }

        try:
            response = self.session.post(
                f"{self.base_url}/documents/{document_id}/send",
                headers=self._json_headers(),
                json=payload,
                timeout=DEFAULT_TIMEOUT
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"PandaDoc send request failed for {document_id}: {e}")
            raise DocumentSendError(f"PandaDoc send failed: {e}") from e

        if response.ok:
            logger.info(f"Sent PandaDoc document {document_id} to start signing")
            return False

        body = response.text
        if response.status_code == SANDBOX_RESTRICTION_STATUS and SANDBOX_RESTRICTION_MARKER in body:
            logger.warning(
                f"PandaDoc document {document_id} created but not sent: "
                f"recipients are outside the sandbox organization"
            )
            return True

        logger.error(f"PandaDoc send failed for {document_id}: {response.status_code}")
        logger.error(f"Response body: {body}")
        raise DocumentSendError(
            f"PandaDoc send failed: {response.status_code} — {body}",
            status_code=response.status_code,
            response_body=body
        )

    def create_and_send_contract(self, form_data: ContractFormData, contract_text: str) -> SendResult:
        """
        Assemble the PDF and take it through create, poll, and send.

        Returns:
            SendResult with the document id, the sandbox-skip flag,
            and per-party links
        """
        pdf_bytes = build_contract_pdf(contract_text, form_data.property_address)
        document = self.create_document(form_data, pdf_bytes)
        self.wait_until_ready(document.id)
        sandbox_skipped = self.send_document(document.id, form_data.property_address)

        link = document_link(document.id)
        return SendResult(
            document_id=document.id,
            sandbox_skipped=sandbox_skipped,
            broker_link=link,
            buyer_link=link,
            seller_link=link,
        )
