"""
Contract PDF Builder

Renders drafted contract text into a US Letter PDF and appends a
single signature page with named signature fields for Broker,
Buyer, and Seller.

The contract text uses a light markdown dialect:
    # Heading           -> section heading
    ## Sub-heading      -> sub-section heading
    **Whole line**      -> bold line
    ---  or blank       -> paragraph break
    - item / * item     -> bullet
Inline **bold** markers are stripped.

Usage:
    from services.contracts.pdf_builder import build_contract_pdf

    pdf_bytes = build_contract_pdf(contract_text, "123 Main St, Austin, TX")
"""

import io
import logging
import re
from dataclasses import dataclass
from typing import List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import BaseDocTemplate, Frame, NextPageTemplate, PageBreak, PageTemplate, Paragraph, Spacer

from .exceptions import PdfAssemblyError
from .field_adapter import signature_field_name
from .types import SignatureField, SigningRole

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = LETTER
MARGIN = 60

DOCUMENT_TITLE = "RESIDENTIAL PURCHASE AGREEMENT"

# Signature page geometry (points). Signature on the left, date on the right.
SIGNATURE_LINE_WIDTH = 300
DATE_LINE_X = 400
DATE_LINE_WIDTH = PAGE_WIDTH - MARGIN - DATE_LINE_X
SIGNATURE_FIELD_HEIGHT = 36
FIRST_LINE_Y = PAGE_HEIGHT - MARGIN - 140
BLOCK_SPACING = 170

_INLINE_BOLD = re.compile(r"\*\*(.*?)\*\*")
_BULLET = re.compile(r"^[-*]\s")


class LineKind:
    HEADING = "heading"
    SUBHEADING = "subheading"
    BOLD = "bold"
    BREAK = "break"
    BODY = "body"


@dataclass(frozen=True)
class ContractLine:
    """One line of contract text after markup has been interpreted."""
    kind: str
    text: str = ""


def parse_contract_lines(text: str) -> List[ContractLine]:
    """Classify each line of contract text, stripping markup."""
    lines = []
    for raw in (text or "").split("\n"):
        line = raw.rstrip("\r")
        stripped = line.strip()
        if line.startswith("## "):
            lines.append(ContractLine(LineKind.SUBHEADING, line[3:].strip()))
        elif line.startswith("# "):
            lines.append(ContractLine(LineKind.HEADING, line[2:].strip()))
        elif len(line) > 4 and line.startswith("**") and line.endswith("**"):
            lines.append(ContractLine(LineKind.BOLD, line.replace("**", "")))
        elif stripped == "" or stripped == "---":
            lines.append(ContractLine(LineKind.BREAK))
        else:
            clean = _BULLET.sub("• ", _INLINE_BOLD.sub(r"\1", line))
            lines.append(ContractLine(LineKind.BODY, clean))
    return lines


def signature_layout(page: int) -> List[SignatureField]:
    """
    Signature field rectangles for the signature page.

    One block per role in chain order, each field sitting on its
    signature line.
    """
    fields = []
    for index, role in enumerate(SigningRole):
        line_y = FIRST_LINE_Y - index * BLOCK_SPACING
        fields.append(SignatureField(
            name=signature_field_name(role),
            role=role,
            page=page,
            x=MARGIN,
            y=line_y,
            width=SIGNATURE_LINE_WIDTH,
            height=SIGNATURE_FIELD_HEIGHT,
        ))
    return fields


def _build_styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            "ContractTitle",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=14,
            leading=18,
            alignment=TA_CENTER,
            spaceAfter=4,
        ),
        'subtitle': ParagraphStyle(
            "ContractSubtitle",
            parent=styles["Normal"],
            fontName="Helvetica",
            fontSize=10,
            leading=13,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#666666"),
            spaceAfter=18,
        ),
        LineKind.HEADING: ParagraphStyle(
            "SectionHeader",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=12,
            leading=15,
            spaceBefore=6,
            spaceAfter=2,
            textColor=colors.HexColor("#1a1a1a"),
        ),
        LineKind.SUBHEADING: ParagraphStyle(
            "SubSectionHeader",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=10,
            leading=13,
            spaceBefore=6,
            spaceAfter=2,
            textColor=colors.HexColor("#1a1a1a"),
        ),
        LineKind.BOLD: ParagraphStyle(
            "BoldLine",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=10,
            leading=12,
            textColor=colors.HexColor("#1a1a1a"),
        ),
        LineKind.BODY: ParagraphStyle(
            "ContractBody",
            parent=styles["Normal"],
            fontName="Helvetica",
            fontSize=10,
            leading=12,
            textColor=colors.HexColor("#1a1a1a"),
        ),
    }


class ContractPdfBuilder:
    """
    Builds the contract PDF.

    After ``build()`` returns, ``signature_fields`` holds the placed
    signature fields with their final page number.
    """

    def __init__(self):
        self.styles = _build_styles()
        self.signature_fields: List[SignatureField] = []

    def build(self, contract_text: str, property_address: str) -> bytes:
        """
        Render the full document.

        Raises:
            PdfAssemblyError: If anything fails while rendering. No
                partial document is returned.
        """
        self.signature_fields = []
        buffer = io.BytesIO()
        try:
            doc = BaseDocTemplate(
                buffer,
                pagesize=LETTER,
                leftMargin=MARGIN,
                rightMargin=MARGIN,
                topMargin=MARGIN,
                bottomMargin=MARGIN,
                title=DOCUMENT_TITLE,
                subject=property_address,
            )
            frame = Frame(doc.leftMargin, doc.bottomMargin, doc.width, doc.height, id='body')
            doc.addPageTemplates([
                PageTemplate(id='body', frames=[frame]),
                PageTemplate(id='signature', frames=[frame], onPage=self._draw_signature_page),
            ])
            doc.build(self._story(contract_text, property_address))
        except Exception as e:
            logger.error(f"Contract PDF assembly failed for {property_address}: {e}", exc_info=True)
            raise PdfAssemblyError(f"Failed to assemble contract PDF: {e}") from e

        if len(self.signature_fields) != len(SigningRole):
            raise PdfAssemblyError("Signature page was not rendered")

        pdf_bytes = buffer.getvalue()
        logger.debug(f"Assembled contract PDF ({len(pdf_bytes)} bytes) for {property_address}")
        return pdf_bytes

    def _story(self, contract_text: str, property_address: str) -> list:
        story = [
            Paragraph(DOCUMENT_TITLE, self.styles['title']),
            Paragraph(escape(f"Property: {property_address}"), self.styles['subtitle']),
        ]

        for line in parse_contract_lines(contract_text):
            if line.kind == LineKind.BREAK:
                story.append(Spacer(1, 6))
            else:
                story.append(Paragraph(escape(line.text), self.styles[line.kind]))

        story.append(NextPageTemplate('signature'))
        story.append(PageBreak())
        story.append(Paragraph("SIGNATURES", self.styles[LineKind.HEADING]))
        story.append(Paragraph(
            "By signing below, each party agrees to the terms of this Residential Purchase Agreement.",
            self.styles[LineKind.BODY]
        ))
        return story

    def _draw_signature_page(self, canvas, doc):
        page = canvas.getPageNumber()
        layout = signature_layout(page)

        canvas.saveState()
        canvas.setStrokeColor(colors.HexColor("#1a1a1a"))
        canvas.setLineWidth(0.75)
        for sig in layout:
            label_y = sig.y + SIGNATURE_FIELD_HEIGHT + 16
            canvas.setFont("Helvetica-Bold", 11)
            canvas.setFillColor(colors.HexColor("#1a1a1a"))
            canvas.drawString(MARGIN, label_y, sig.role.label.upper())

            canvas.line(sig.x, sig.y, sig.x + sig.width, sig.y)
            canvas.line(DATE_LINE_X, sig.y, DATE_LINE_X + DATE_LINE_WIDTH, sig.y)

            canvas.setFont("Helvetica", 8)
            canvas.setFillColor(colors.HexColor("#666666"))
            canvas.drawString(sig.x, sig.y - 11, f"{sig.role.label} Signature")
            canvas.drawString(DATE_LINE_X, sig.y - 11, "Date")

            canvas.acroForm.textfield(
                name=sig.name,
                tooltip=f"{sig.role.label} Signature",
                x=sig.x,
                y=sig.y,
                width=sig.width,
                height=sig.height,
                borderWidth=0,
                fillColor=colors.white,
                forceBorder=False,
            )
        canvas.restoreState()
        self.signature_fields = layout


def build_contract_pdf(contract_text: str, property_address: str) -> bytes:
    """Render contract text and the signature page into PDF bytes."""
    return ContractPdfBuilder().build(contract_text, property_address)
