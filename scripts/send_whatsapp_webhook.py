#!/usr/bin/env python3
from __future__ import annotations

import argparse

import httpx
from httpx import ConnectError


def build_form(sender: str, text: str) -> dict[str, str]:
    """Fields Twilio posts for an inbound WhatsApp message."""
    return {
        "From": f"whatsapp:+{sender.lstrip('+')}",
        "To": "whatsapp:+14155238886",
        "Body": text,
        "NumMedia": "0",
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a test Twilio WhatsApp webhook POST")
    parser.add_argument("--url", default="http://127.0.0.1:3000/webhook/whatsapp")
    parser.add_argument("--sender", default="573001234567")
    parser.add_argument("--text", default="Hola")
    args = parser.parse_args()

    try:
        resp = httpx.post(args.url, data=build_form(args.sender, args.text), timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn schuleagent.main:app --reload --port 3000")
        return

    print(resp.status_code)
    if resp.text:
        print(resp.text)


if __name__ == "__main__":
    main()
