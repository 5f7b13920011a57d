from __future__ import annotations

from xml.sax.saxutils import escape

TWIML_CONTENT_TYPE = "text/xml"


def build_message_response(text: str) -> str:
    """TwiML envelope answering the inbound WhatsApp message with ``text``."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Response><Message>{escape(text)}</Message></Response>"
    )
