"""
Tests for contract PDF assembly.

Generated PDFs are read back with pypdf to check the signature page
and its form fields.
"""

import io

import pytest
from pypdf import PdfReader

from services.contracts import PdfAssemblyError, SigningRole
from services.contracts.field_adapter import fields_payload, role_for_field, signature_field_name
from services.contracts.pdf_builder import (
    ContractPdfBuilder,
    LineKind,
    build_contract_pdf,
    parse_contract_lines,
    signature_layout,
)

ADDRESS = "123 Main St, Austin, TX 78701"

SAMPLE_CONTRACT = """# RESIDENTIAL PURCHASE AGREEMENT

**PARTIES:**
This agreement is made between **Jane Smith** (Buyer) and Sam Seller (Seller).

## Purchase Price
- Offer price: $450,000
* Earnest money: $4,500
---
Terms & conditions apply to <all> parties."""


def _field_annotations(reader):
    """(page number, field name, rect) for every widget annotation."""
    found = []
    for page_number, page in enumerate(reader.pages, start=1):
        annots = page.get('/Annots')
        for annot in (annots.get_object() if annots is not None else []):
            obj = annot.get_object()
            name = obj.get('/T')
            if name is None and '/Parent' in obj:
                name = obj['/Parent'].get_object().get('/T')
            if name is not None:
                found.append((page_number, str(name), [float(v) for v in obj['/Rect']]))
    return found


class TestParseContractLines:
    """Markup interpretation."""

    def test_line_kinds(self):
        kinds = [line.kind for line in parse_contract_lines(SAMPLE_CONTRACT)]

        assert kinds == [
            LineKind.HEADING,
            LineKind.BREAK,
            LineKind.BOLD,
            LineKind.BODY,
            LineKind.BREAK,
            LineKind.SUBHEADING,
            LineKind.BODY,
            LineKind.BODY,
            LineKind.BREAK,
            LineKind.BODY,
        ]

    def test_markup_is_stripped(self):
        lines = parse_contract_lines(SAMPLE_CONTRACT)

        assert lines[0].text == "RESIDENTIAL PURCHASE AGREEMENT"
        assert lines[2].text == "PARTIES:"
        assert lines[3].text == "This agreement is made between Jane Smith (Buyer) and Sam Seller (Seller)."
        assert lines[5].text == "Purchase Price"
        assert lines[6].text == "• Offer price: $450,000"
        assert lines[7].text == "• Earnest money: $4,500"

    def test_short_bold_marker_is_body(self):
        assert parse_contract_lines("****")[0].kind == LineKind.BODY


class TestSignatureLayout:
    """Field geometry on the signature page."""

    def test_fixed_role_order(self):
        layout = signature_layout(page=3)

        assert [f.role for f in layout] == [SigningRole.BROKER, SigningRole.BUYER, SigningRole.SELLER]
        assert [f.name for f in layout] == ["signature_broker", "signature_buyer", "signature_seller"]
        assert all(f.page == 3 for f in layout)

    def test_fields_do_not_overlap(self):
        layout = signature_layout(page=1)

        for i, a in enumerate(layout):
            for b in layout[i + 1:]:
                assert not a.overlaps(b)

    def test_fields_fit_on_page(self):
        for f in signature_layout(page=1):
            assert f.x >= 0 and f.y >= 0
            assert f.x + f.width <= 612
            assert f.y + f.height <= 792


class TestFieldAdapter:
    """PandaDoc field naming."""

    def test_round_trip_names(self):
        for role in SigningRole:
            assert role_for_field(signature_field_name(role)) is role

    def test_foreign_fields_ignored(self):
        assert role_for_field("initials_buyer") is None
        assert role_for_field("signature_notary") is None

    def test_payload_binds_fields_to_roles(self):
        assert fields_payload() == {
            'signature_broker': {'value': '', 'role': 'Broker'},
            'signature_buyer': {'value': '', 'role': 'Buyer'},
            'signature_seller': {'value': '', 'role': 'Seller'},
        }


class TestBuildContractPdf:
    """End-to-end PDF rendering."""

    @pytest.mark.parametrize("text", [
        "",
        SAMPLE_CONTRACT,
        "\n".join(f"## Section {i}\nClause text for section {i}. " * 3 for i in range(120)),
    ])
    def test_single_signature_page_with_three_fields(self, text):
        reader = PdfReader(io.BytesIO(build_contract_pdf(text, ADDRESS)))
        annotations = _field_annotations(reader)
        last_page = len(reader.pages)

        assert last_page >= 2
        assert [name for _, name, _ in annotations] == [
            "signature_broker", "signature_buyer", "signature_seller"
        ]
        assert {page for page, _, _ in annotations} == {last_page}
        assert "SIGNATURES" in reader.pages[-1].extract_text()

    def test_field_regions_do_not_overlap(self):
        reader = PdfReader(io.BytesIO(build_contract_pdf(SAMPLE_CONTRACT, ADDRESS)))
        rects = [rect for _, _, rect in _field_annotations(reader)]

        for i, (ax1, ay1, ax2, ay2) in enumerate(rects):
            for bx1, by1, bx2, by2 in rects[i + 1:]:
                assert ax2 <= bx1 or bx2 <= ax1 or ay2 <= by1 or by2 <= ay1

    def test_form_fields_exposed(self):
        reader = PdfReader(io.BytesIO(build_contract_pdf(SAMPLE_CONTRACT, ADDRESS)))

        assert set(reader.get_fields()) == {"signature_broker", "signature_buyer", "signature_seller"}

    def test_builder_records_final_page(self):
        builder = ContractPdfBuilder()
        pdf = builder.build(SAMPLE_CONTRACT, ADDRESS)
        pages = len(PdfReader(io.BytesIO(pdf)).pages)

        assert [f.page for f in builder.signature_fields] == [pages] * 3

    def test_title_and_address_on_first_page(self):
        reader = PdfReader(io.BytesIO(build_contract_pdf(SAMPLE_CONTRACT, ADDRESS)))
        text = reader.pages[0].extract_text()

        assert "RESIDENTIAL PURCHASE AGREEMENT" in text
        assert ADDRESS in text

    def test_render_failure_wrapped(self, monkeypatch):
        def broken_story(self, contract_text, property_address):
            raise RuntimeError("font missing")

        monkeypatch.setattr(ContractPdfBuilder, "_story", broken_story)

        with pytest.raises(PdfAssemblyError):
            build_contract_pdf(SAMPLE_CONTRACT, ADDRESS)
