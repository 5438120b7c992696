"""
Contract Prompt Builder

Turns a ContractFormData snapshot into the instruction text sent
to the LLM. Pure: the only input besides the form is today's date,
which callers may pass explicitly.

Usage:
    from services.contracts.prompt_builder import build_contract_prompt, CONTRACT_SYSTEM_PROMPT

    prompt = build_contract_prompt(form_data)
"""

from datetime import date
from typing import Optional

from .formatting import closing_date, format_long_date, format_percent, format_usd, number_to_words, round_whole
from .types import ContractFormData

CONTRACT_SYSTEM_PROMPT = (
    "You are an expert real estate attorney drafting a Residential Purchase Agreement. "
    "Write complete, professional, legally sound contract language. Use formal language "
    "throughout. Never use placeholder brackets or [INSERT] markers — use the actual data "
    "provided. Write every section in full."
)

SPECIAL_REQUESTS_HEADER = "SPECIAL REQUESTS:"

_LEADING_SECTIONS = """PARTIES:
[Full parties section — buyer, seller, agents, broker with all contact info]

PROPERTY:
[Property description section]

PURCHASE PRICE AND TERMS:
[Price, earnest money, financing details]

FINANCING:
[Loan type, down payment, financing contingency if selected]

CLOSING:
[Closing date, possession, closing costs]

CONDITION OF PROPERTY:
[Seller representations, as-is language if selected]

INCLUSIONS AND EXCLUSIONS:
[Standard fixtures and appliances language]

TITLE:
[Title commitment, title insurance, transfer]

DEFAULT AND REMEDIES:
[Earnest money forfeiture, specific performance rights]"""

_TRAILING_SECTIONS = """ENTIRE AGREEMENT:
[Integration clause]

GOVERNING LAW:
[Governing law clause]

COUNTERPARTS AND ELECTRONIC SIGNATURES:
[Electronic signature acceptance clause]

SIGNATURES:
[Signature blocks for Broker, Buyer, and Seller/Seller's Agent with name, title, date lines]"""


def addendum_block(label: str) -> str:
    """Section asking the model to write out one selected addendum."""
    return f"{label.upper()}:\n[Full addendum text for {label}]"


def build_contract_prompt(data: ContractFormData, today: Optional[date] = None) -> str:
    """
    Build the user prompt for drafting a purchase agreement.

    Args:
        data: Validated form snapshot
        today: Effective date (defaults to the current date)

    Returns:
        The full instruction text
    """
    today = today or date.today()
    selected = data.addendums.selected_labels()
    offer_whole = round_whole(data.offer_price)

    contract_data = "\n".join([
        f"- Effective Date: {format_long_date(today)}",
        f"- Property Address: {data.property_address}",
        f"- Buyer: {data.buyer_name} ({data.buyer_email})",
        f"- Seller / Seller's Agent: {data.seller_name} ({data.seller_email})",
        f"- Selling Agent (Buyer's Agent): {data.agent_name} ({data.agent_email})",
        f"- Broker: {data.broker_name} ({data.broker_email})",
        f"- Offer Price: {format_usd(data.offer_price)} ({number_to_words(offer_whole)} dollars)",
        f"- Down Payment: {format_percent(data.down_payment_percent)} ({format_usd(data.down_payment_amount)})",
        f"- Loan Amount: {format_usd(data.loan_amount)}",
        f"- Loan Type: {data.loan_type.value}",
        f"- Earnest Money Deposit: {format_usd(data.earnest_money)}",
        f"- Proposed Closing Date: {format_long_date(closing_date(today))}",
        f"- Selected Addendums: {', '.join(selected) if selected else 'None'}",
        f"- Special Requests: {data.special_requests or 'None'}",
    ])

    sections = [_LEADING_SECTIONS]
    sections.extend(addendum_block(label) for label in selected)
    if data.special_requests:
        sections.append(f"{SPECIAL_REQUESTS_HEADER}\n{data.special_requests}")
    sections.append(_TRAILING_SECTIONS)

    return (
        "You are drafting a formal Residential Purchase Agreement. Write the complete, "
        "professional contract below. Use formal legal language throughout. Fill in every "
        "blank with the provided information. Do not use placeholder brackets — every field "
        "should contain real data from the inputs provided.\n\n"
        f"CONTRACT DATA:\n{contract_data}\n\n"
        "Write the full contract with these exact sections in order. Use clear section "
        "headers in ALL CAPS followed by a colon.\n\n"
        "RESIDENTIAL PURCHASE AGREEMENT\n\n"
        + "\n\n".join(sections)
        + "\n\nWrite the complete contract now. Be thorough and professional. Each section "
        "should contain complete, legally sound language appropriate for a residential real "
        "estate purchase agreement."
    )
