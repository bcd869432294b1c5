"""Outbound message composition for SMS/dial handoff.

Only builds text and URIs. Sending is left to the device's messaging app.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

if TYPE_CHECKING:
    from reporter.core.models import AuthorityContact, Report

# Description length kept in a message body.
MAX_DESCRIPTION_CHARS = 140

# Decimal places for a rounded location (~110 m at the equator).
ROUNDED_DECIMALS = 3


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)].rstrip() + "..."


def compose_message(
    report: Report,
    *,
    exact: bool = False,
    max_description: int = MAX_DESCRIPTION_CHARS,
) -> str:
    """Build a prefilled message body for the report.

    With ``exact=False`` the true location is rounded to ROUNDED_DECIMALS.
    """
    loc = report.exact_location
    if exact:
        where = f"{loc.lat:.6f},{loc.lon:.6f}"
    else:
        where = f"{loc.lat:.{ROUNDED_DECIMALS}f},{loc.lon:.{ROUNDED_DECIMALS}f} (approx.)"

    category = report.category or ", ".join(report.checklist)
    lines = [
        f"INCIDENT: {category}",
        f"Time: {report.created_at.strftime('%Y-%m-%d %H:%M')} UTC",
        f"Location: {where}",
        f"Details: {_truncate(report.description, max_description)}",
        f"Ref: {report.short_id}",
    ]
    return "\n".join(lines)


def sms_uri(contact: AuthorityContact, body: str) -> str:
    """``sms:`` URI for the authority's SMS number with a prefilled body."""
    if not contact.sms:
        raise ValueError("no authority SMS number configured")
    return f"sms:{contact.sms}?body={quote(body, safe='')}"


def dial_uri(contact: AuthorityContact) -> str:
    """``tel:`` URI for the authority's USSD/short code (``#`` must be escaped)."""
    if not contact.ussd:
        raise ValueError("no authority USSD code configured")
    return f"tel:{quote(contact.ussd, safe='*+')}"
