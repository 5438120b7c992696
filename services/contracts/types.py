"""
Contract System Type Definitions

Dataclasses for the purchase agreement form, the signing parties,
and the PandaDoc documents and webhook events built from them.
Form data is immutable once parsed; webhook events are rebuilt
from the payload on every call.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import ValidationError
from .formatting import join_name, round_whole, split_name, to_decimal


DOCUMENT_NAME_PREFIX = "Purchase Agreement — "

EVENT_RECIPIENT_COMPLETED = "recipient_completed"


class LoanType(Enum):
    """Financing types offered on the form."""
    CONVENTIONAL = "Conventional"
    FHA = "FHA"
    VA = "VA"
    CASH = "Cash"
    USDA = "USDA"


@total_ordering
class SigningRole(Enum):
    """
    The three signers, valued by their fixed position in the signing chain.

    Comparison follows signing order, so ``max()`` over roles picks
    the party furthest along the chain.
    """
    BROKER = 1
    BUYER = 2
    SELLER = 3

    def __lt__(self, other):
        if not isinstance(other, SigningRole):
            return NotImplemented
        return self.value < other.value

    @property
    def label(self) -> str:
        return self.name.title()

    @property
    def next(self) -> Optional['SigningRole']:
        return SigningRole.from_order(self.value + 1)

    @classmethod
    def from_order(cls, order: Optional[int]) -> Optional['SigningRole']:
        try:
            return cls(order)
        except ValueError:
            return None


class DocumentStatus:
    """PandaDoc document status vocabulary."""
    UPLOADED = "document.uploaded"
    PROCESSING = "document.processing"
    DRAFT = "document.draft"
    SENT = "document.sent"
    WAITING_APPROVAL = "document.waiting_approval"
    COMPLETED = "document.completed"
    ERROR = "document.error"


@dataclass(frozen=True)
class Addendums:
    """The ten optional addendum flags on the purchase agreement form."""
    home_inspection: bool = False
    financing_contingency: bool = False
    appraisal_contingency: bool = False
    sale_of_buyers_home: bool = False
    hoa_disclosure: bool = False
    as_is: bool = False
    lead_based_paint: bool = False
    well_septic: bool = False
    radon_testing: bool = False
    seller_concessions: bool = False

    # attribute -> (form key, human-readable label)
    LABELS = {
        'home_inspection': ('homeInspection', "Home Inspection Contingency"),
        'financing_contingency': ('financingContingency', "Financing Contingency"),
        'appraisal_contingency': ('appraisalContingency', "Appraisal Contingency"),
        'sale_of_buyers_home': ('saleOfBuyersHome', "Sale of Buyer's Current Home Contingency"),
        'hoa_disclosure': ('hoaDisclosure', "HOA / Condo Association Disclosure"),
        'as_is': ('asIs', "As-Is Sale Addendum"),
        'lead_based_paint': ('leadBasedPaint', "Lead-Based Paint Disclosure"),
        'well_septic': ('wellSeptic', "Well & Septic Inspection Addendum"),
        'radon_testing': ('radonTesting', "Radon Testing Addendum"),
        'seller_concessions': ('sellerConcessions', "Seller Concessions / Closing Cost Assistance"),
    }

    def selected_labels(self) -> List[str]:
        """Labels of the selected addendums, in form order."""
        return [
            label for attr, (_, label) in self.LABELS.items()
            if getattr(self, attr)
        ]

    @classmethod
    def all_selected(cls) -> 'Addendums':
        return cls(**{f.name: True for f in fields(cls)})

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Addendums':
        """Build from the camelCase form payload. Missing keys are unselected."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("addendums must be an object", field='addendums')

        values = {}
        for attr, (key, _) in cls.LABELS.items():
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise ValidationError(f"addendums.{key} must be a boolean", field=f'addendums.{key}')
            values[attr] = value
        return cls(**values)


@dataclass(frozen=True)
class SigningParty:
    """
    A signer on the PandaDoc document.

    The signing order is the role's value, so it can never disagree
    with the role.
    """
    role: SigningRole
    email: str
    first_name: str
    last_name: str = ""

    @property
    def signing_order(self) -> int:
        return self.role.value

    @property
    def full_name(self) -> str:
        return join_name(self.first_name, self.last_name)

    @classmethod
    def from_full_name(cls, role: SigningRole, name: str, email: str) -> 'SigningParty':
        first_name, last_name = split_name(name)
        return cls(role=role, email=email, first_name=first_name, last_name=last_name)

    def to_recipient(self) -> Dict[str, Any]:
        """Convert to PandaDoc recipient format."""
        return {
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'role': self.role.label,
            'signing_order': self.signing_order,
        }


@dataclass(frozen=True)
class ContractFormData:
    """
    Snapshot of the agent's form submission.

    Created once per request from the JSON body and never mutated.
    """
    broker_name: str
    broker_email: str
    agent_name: str
    agent_email: str
    buyer_name: str
    buyer_email: str
    seller_name: str
    seller_email: str
    property_address: str
    offer_price: Decimal
    down_payment_percent: Decimal
    loan_type: LoanType
    special_requests: str = ""
    addendums: Addendums = field(default_factory=Addendums)

    # attribute -> form key
    REQUIRED_STRINGS = {
        'broker_name': 'brokerName',
        'broker_email': 'brokerEmail',
        'agent_name': 'agentName',
        'agent_email': 'agentEmail',
        'buyer_name': 'buyerName',
        'buyer_email': 'buyerEmail',
        'seller_name': 'sellerName',
        'seller_email': 'sellerEmail',
        'property_address': 'propertyAddress',
    }

    @property
    def down_payment_amount(self) -> Decimal:
        return self.offer_price * self.down_payment_percent / 100

    @property
    def loan_amount(self) -> Decimal:
        return self.offer_price * (1 - self.down_payment_percent / 100)

    @property
    def earnest_money(self) -> int:
        return round_whole(self.offer_price * Decimal("0.01"))

    @property
    def document_name(self) -> str:
        return f"{DOCUMENT_NAME_PREFIX}{self.property_address}"

    def signing_parties(self) -> Tuple[SigningParty, SigningParty, SigningParty]:
        """The three signers in chain order."""
        return (
            SigningParty.from_full_name(SigningRole.BROKER, self.broker_name, self.broker_email),
            SigningParty.from_full_name(SigningRole.BUYER, self.buyer_name, self.buyer_email),
            SigningParty.from_full_name(SigningRole.SELLER, self.seller_name, self.seller_email),
        )

    def document_metadata(self) -> Dict[str, str]:
        """
        Flat string map attached to the PandaDoc document.

        This is the only way the webhook handler recovers the contract
        context, so every value is stringified.
        """
        return {
            'propertyAddress': self.property_address,
            'agentEmail': self.agent_email,
            'agentName': self.agent_name,
            'offerPrice': _plain_number(self.offer_price),
            'loanType': self.loan_type.value,
            'downPaymentPercent': _plain_number(self.down_payment_percent),
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'ContractFormData':
        """
        Parse and validate the camelCase JSON form body.

        Raises:
            ValidationError: naming the first invalid field
        """
        if not isinstance(data, dict):
            raise ValidationError("Form data must be a JSON object")

        values = {}
        for attr, key in cls.REQUIRED_STRINGS.items():
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{key} is required", field=key)
            values[attr] = value.strip()

        offer_price = to_decimal(data.get('offerPrice'))
        if offer_price is None or not offer_price.is_finite() or offer_price <= 0:
            raise ValidationError("offerPrice must be a positive number", field='offerPrice')

        percent = to_decimal(data.get('downPaymentPercent'))
        if percent is None or not percent.is_finite() or not 0 <= percent <= 100:
            raise ValidationError("downPaymentPercent must be between 0 and 100", field='downPaymentPercent')

        try:
            loan_type = LoanType(data.get('loanType'))
        except (ValueError, TypeError):
            raise ValidationError(
                f"loanType must be one of {', '.join(t.value for t in LoanType)}",
                field='loanType'
            )

        special_requests = data.get('specialRequests') or ""
        if not isinstance(special_requests, str):
            raise ValidationError("specialRequests must be a string", field='specialRequests')

        return cls(
            offer_price=offer_price,
            down_payment_percent=percent,
            loan_type=loan_type,
            special_requests=special_requests.strip(),
            addendums=Addendums.from_dict(data.get('addendums')),
            **values
        )


@dataclass(frozen=True)
class RemoteDocument:
    """PandaDoc's view of an uploaded document."""
    id: str
    status: str
    name: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RemoteDocument':
        return cls(
            id=str(data.get('id', '')),
            status=data.get('status', ''),
            name=data.get('name', ''),
            metadata=dict(data.get('metadata') or {}),
        )


@dataclass(frozen=True)
class SendResult:
    """Outcome of create-and-send. ``sandbox_skipped`` is a degraded success."""
    document_id: str
    sandbox_skipped: bool
    broker_link: str
    buyer_link: str
    seller_link: str


@dataclass(frozen=True)
class SignatureField:
    """
    A signature placeholder on the generated PDF, in PDF points.

    ``x``/``y`` are the lower-left corner; ``page`` is 1-based.
    """
    name: str
    role: SigningRole
    page: int
    x: float
    y: float
    width: float
    height: float

    def overlaps(self, other: 'SignatureField') -> bool:
        if self.page != other.page:
            return False
        return not (
            self.x + self.width <= other.x
            or other.x + other.width <= self.x
            or self.y + self.height <= other.y
            or other.y + other.height <= self.y
        )


@dataclass(frozen=True)
class WebhookRecipient:
    """A recipient entry from a PandaDoc webhook payload."""
    id: str
    first_name: str
    last_name: str
    role: str
    has_completed: bool
    email: Optional[str] = None
    signing_order: Optional[int] = None

    @property
    def full_name(self) -> str:
        return join_name(self.first_name, self.last_name)

    @property
    def signing_role(self) -> Optional[SigningRole]:
        return SigningRole.from_order(self.signing_order)

    @property
    def order_key(self) -> int:
        return self.signing_order or 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WebhookRecipient':
        order = data.get('signing_order')
        if order is not None:
            try:
                order = int(order)
            except (TypeError, ValueError):
                raise ValidationError("Recipient signing_order must be an integer", field='signing_order')
        return cls(
            id=str(data.get('id', '')),
            email=data.get('email') or None,
            first_name=data.get('first_name') or '',
            last_name=data.get('last_name') or '',
            role=data.get('role') or '',
            has_completed=bool(data.get('has_completed')),
            signing_order=order,
        )


@dataclass(frozen=True)
class WebhookEvent:
    """One entry of the PandaDoc webhook array. Consumed once, never stored."""
    event: str
    document_id: str
    name: str
    status: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)
    recipients: Tuple[WebhookRecipient, ...] = ()

    @property
    def is_recipient_completed(self) -> bool:
        return self.event == EVENT_RECIPIENT_COMPLETED

    @property
    def property_address(self) -> str:
        if self.name.startswith(DOCUMENT_NAME_PREFIX):
            return self.name[len(DOCUMENT_NAME_PREFIX):]
        return self.name

    def recipient_for(self, role: SigningRole) -> Optional[WebhookRecipient]:
        return next((r for r in self.recipients if r.signing_order == role.value), None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WebhookEvent':
        if not isinstance(data, dict):
            raise ValidationError("Webhook event must be a JSON object")
        payload = data.get('data') or {}
        if not isinstance(payload, dict):
            raise ValidationError("Webhook event data must be a JSON object", field='data')
        metadata = payload.get('metadata') or {}
        if not isinstance(metadata, dict):
            raise ValidationError("Webhook event metadata must be a JSON object", field='data.metadata')
        recipients = payload.get('recipients') or []
        if not isinstance(recipients, list) or not all(isinstance(r, dict) for r in recipients):
            raise ValidationError("Webhook event recipients must be a list of objects", field='data.recipients')
        return cls(
            event=data.get('event') or '',
            document_id=str(payload.get('id', '')),
            name=payload.get('name') or '',
            status=payload.get('status') or '',
            metadata=dict(metadata),
            recipients=tuple(WebhookRecipient.from_dict(r) for r in recipients),
        )


def _plain_number(value: Decimal) -> str:
    """450000 -> "450000", 3.5 -> "3.5" (no exponent, no trailing zeros)."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), 'f')
