"""
PandaDoc Field Adapter

Owns PandaDoc's conventions for PDF signature fields so the PDF
builder only deals in roles and rectangles.

PandaDoc binds an uploaded PDF's form fields to recipients through
the ``fields`` map of the create-document payload:
    {"signature_broker": {"role": "Broker"}, ...}
"""

from typing import Any, Dict, Iterable

from .types import SigningRole

FIELD_PREFIX = "signature_"


def signature_field_name(role: SigningRole) -> str:
    """Stable field name for a role's signature, e.g. ``signature_buyer``."""
    return f"{FIELD_PREFIX}{role.name.lower()}"


def role_for_field(name: str):
    """Inverse of signature_field_name. Returns None for foreign fields."""
    if not name.startswith(FIELD_PREFIX):
        return None
    try:
        return SigningRole[name[len(FIELD_PREFIX):].upper()]
    except KeyError:
        return None


def fields_payload(roles: Iterable[SigningRole] = tuple(SigningRole)) -> Dict[str, Dict[str, Any]]:
    """Field -> recipient role map for the create-document request."""
    return {
        signature_field_name(role): {'value': '', 'role': role.label}
        for role in roles
    }
