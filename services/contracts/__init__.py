"""
Purchase Agreement Contracts

Drafts a residential purchase agreement with an LLM, renders it to a
PDF with signature fields, runs it through PandaDoc's signing chain
(Broker -> Buyer -> Seller), and emails everyone as signatures land.

Usage:
    from services.contracts import ContractFormData, open_contract_stream, relay_text_deltas
    from services.contracts import PandaDocClient, WebhookRouter, NotificationService

    # Drafting (streamed)
    form_data = ContractFormData.from_dict(request.get_json())
    for chunk in relay_text_deltas(open_contract_stream(form_data)):
        ...

    # Signing
    result = PandaDocClient().create_and_send_contract(form_data, contract_text)

    # Webhooks
    WebhookRouter(NotificationService()).handle_events(events)
"""

from .types import (
    LoanType,
    SigningRole,
    DocumentStatus,
    Addendums,
    SigningParty,
    ContractFormData,
    RemoteDocument,
    SendResult,
    SignatureField,
    WebhookRecipient,
    WebhookEvent,
)

from .exceptions import (
    ContractError,
    ValidationError,
    PdfAssemblyError,
    ContractGenerationError,
    StreamRelayError,
    NotificationError,
    PandaDocAPIError,
    DocumentCreateError,
    DocumentSendError,
    DocumentProcessingError,
    DocumentTimeoutError,
)

from .prompt_builder import build_contract_prompt
from .stream_relay import open_contract_stream, relay_text_deltas
from .pdf_builder import ContractPdfBuilder, build_contract_pdf
from .polling import PollPolicy, SystemClock
from .pandadoc_client import PandaDocClient, document_link
from .notifications import NotificationService
from .webhook_router import (
    WebhookRouter,
    NullEventStore,
    InMemoryEventStore,
    verify_webhook_signature,
)

__all__ = [
    # Types
    'LoanType',
    'SigningRole',
    'DocumentStatus',
    'Addendums',
    'SigningParty',
    'ContractFormData',
    'RemoteDocument',
    'SendResult',
    'SignatureField',
    'WebhookRecipient',
    'WebhookEvent',

    # Exceptions
    'ContractError',
    'ValidationError',
    'PdfAssemblyError',
    'ContractGenerationError',
    'StreamRelayError',
    'NotificationError',
    'PandaDocAPIError',
    'DocumentCreateError',
    'DocumentSendError',
    'DocumentProcessingError',
    'DocumentTimeoutError',

    # Drafting
    'build_contract_prompt',
    'open_contract_stream',
    'relay_text_deltas',

    # Signing
    'ContractPdfBuilder',
    'build_contract_pdf',
    'PollPolicy',
    'SystemClock',
    'PandaDocClient',
    'document_link',

    # Notifications
    'NotificationService',
    'WebhookRouter',
    'NullEventStore',
    'InMemoryEventStore',
    'verify_webhook_signature',
]
