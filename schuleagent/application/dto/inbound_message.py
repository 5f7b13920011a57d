from __future__ import annotations

from pydantic import BaseModel

WHATSAPP_PREFIX = "whatsapp:"


def normalize_sender(raw_from: str) -> str:
    """``whatsapp:+573001234567`` -> ``573001234567``."""
    sender = raw_from.strip()
    if sender.startswith(WHATSAPP_PREFIX):
        sender = sender[len(WHATSAPP_PREFIX):]
    return sender.replace("+", "")


class InboundMessageDTO(BaseModel):
    """Twilio WhatsApp webhook form fields the bot reads."""

    From: str
    Body: str = ""

    @property
    def identity(self) -> str:
        return normalize_sender(self.From)

    @property
    def text(self) -> str:
        return self.Body.strip()
