"""
Proposal PDF rendering (reportlab canvas).

Produces a single-document summary: header, client block, service details
and a pricing table when ``pricing_data`` carries line items. Templates only
change the accent colour and heading style.
"""

from __future__ import annotations

import io
import logging
import re

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "professional"

TEMPLATES = {
    "professional": {"accent": HexColor("#1F3A5F"), "heading_font": "Helvetica-Bold"},
    "modern": {"accent": HexColor("#0E9F6E"), "heading_font": "Helvetica-Bold"},
    "classic": {"accent": HexColor("#5B3A29"), "heading_font": "Times-Bold"},
    "minimal": {"accent": HexColor("#333333"), "heading_font": "Helvetica"},
}

BLACK = HexColor("#000000")
GREY = HexColor("#666666")


def safe_pdf_filename(title: str | None) -> str:
    """``"Office Deep Clean!"`` → ``"office_deep_clean_.pdf"``."""
    base = re.sub(r"[^a-zA-Z0-9]", "_", title or "proposal").lower()
    return f"{base or 'proposal'}.pdf"


def _line_items(pricing: dict) -> list[tuple[str, str]]:
    rows = []
    for item in pricing.get("line_items") or pricing.get("items") or []:
        if not isinstance(item, dict):
            continue
        label = str(item.get("description") or item.get("name") or "")
        amount = item.get("amount", item.get("price"))
        rows.append((label, _money(amount)))
    return rows


def _money(value) -> str:
    try:
        return f"${float(value):,.2f}"
    except (TypeError, ValueError):
        return "" if value is None else str(value)


def render_proposal_pdf(proposal, template: str | None = None) -> bytes:
    """Render ``proposal`` to PDF bytes. Unknown templates fall back to the default."""
    if not isinstance(template, str) or template not in TEMPLATES:
        template = DEFAULT_TEMPLATE
    style = TEMPLATES[template]

    W, H = letter
    ML, MR = 54, W - 54
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle(proposal.title or "Proposal")
    c.setSubject(f"Proposal #{proposal.id}")

    y = H - 72

    def text(x, txt, font="Helvetica", size=10, color=BLACK, align="left"):
        c.setFont(font, size)
        c.setFillColor(color)
        s = "" if txt is None else str(txt)
        if align == "right":
            c.drawRightString(x, y, s)
        else:
            c.drawString(x, y, s)

    def new_line(step=14):
        nonlocal y
        y -= step
        if y < 72:
            c.showPage()
            y = H - 72

    # ── Header ────────────────────────────────────────────────────────────
    for line in simpleSplit(proposal.title or "Proposal", style["heading_font"], 20, MR - ML):
        text(ML, line, style["heading_font"], 20, style["accent"])
        new_line(24)
    c.setStrokeColor(style["accent"])
    c.setLineWidth(1.5)
    c.line(ML, y + 10, MR, y + 10)
    new_line(10)

    # ── Client ────────────────────────────────────────────────────────────
    text(ML, "Prepared for", style["heading_font"], 12, style["accent"])
    new_line(16)
    for value in (proposal.client_name, proposal.client_company, proposal.client_email,
                  proposal.contact_phone, proposal.service_location):
        if value:
            text(ML, value)
            new_line()
    new_line(8)

    # ── Service ───────────────────────────────────────────────────────────
    text(ML, "Service details", style["heading_font"], 12, style["accent"])
    new_line(16)
    details = (
        ("Service type", (proposal.service_type or "").title()),
        ("Frequency", proposal.service_frequency),
        ("Facility size", f"{proposal.facility_size:,} sq ft" if proposal.facility_size else None),
    )
    for label, value in details:
        if value:
            text(ML, f"{label}:", "Helvetica-Bold")
            text(ML + 110, value)
            new_line()
    new_line(8)

    # ── Pricing ───────────────────────────────────────────────────────────
    pricing = proposal.pricing_data or {}
    rows = _line_items(pricing)
    total = pricing.get("total")
    if rows or total is not None:
        text(ML, "Pricing", style["heading_font"], 12, style["accent"])
        new_line(16)
        for label, amount in rows:
            for i, chunk in enumerate(simpleSplit(label, "Helvetica", 10, MR - ML - 120) or [""]):
                text(ML, chunk)
                if i == 0:
                    text(MR, amount, align="right")
                new_line()
        if total is not None:
            c.setStrokeColor(GREY)
            c.setLineWidth(0.5)
            c.line(MR - 160, y + 10, MR, y + 10)
            text(MR - 160, "Total", "Helvetica-Bold")
            text(MR, _money(total), "Helvetica-Bold", align="right")
            new_line()

    c.showPage()
    c.save()
    data = buf.getvalue()
    logger.debug("Rendered proposal %s with template %s (%d bytes)", proposal.id, template, len(data),
                 extra={"proposal_id": proposal.id})
    return data
