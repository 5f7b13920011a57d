#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no Twilio).

Usage:
  python3 scripts/chat_local.py

What it does:
- Keeps a stable sender number for the session
- Sends your typed messages through the same HandleIncomingMessageUseCase as the webhook
- Prints the bot reply and, on request, the stored conversation state
"""
from __future__ import annotations

import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schuleagent.wiring.dependencies import get_handle_incoming_message_use_case, get_store


def _print_header(identity: str) -> None:
    print("\nLocal Chat Harness")
    print("-" * 60)
    print(f"sender: {identity}")
    print("Type your message and press Enter.")
    print("Commands: /new (new sender), /state, /quit, /help")
    print("-" * 60)


def _print_state(identity: str) -> None:
    conversation = get_store().get_latest_conversation(identity)
    if conversation is None:
        print("(no conversation yet)")
        return
    print("\n--- State ---")
    print(f"step: {conversation.step.value}")
    print(f"service: {conversation.service.value if conversation.service else None}")
    print(f"date: {conversation.appointment_date}  time: {conversation.appointment_time}")
    for key, value in conversation.data.items():
        print(f"  {key}: {value}")


def main() -> None:
    identity = os.getenv("CHAT_SENDER", "573000000001")
    use_case = get_handle_incoming_message_use_case()
    _print_header(identity)

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue

        cmd = user_text.lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            return
        if cmd == "/help":
            print("Commands:")
            print("  /new   -> start over with a new sender number")
            print("  /state -> show the stored conversation")
            print("  /quit  -> exit")
            continue
        if cmd == "/new":
            identity = f"57300{int(time.time()) % 10_000_000:07d}"
            print(f"New sender: {identity}")
            continue
        if cmd == "/state":
            _print_state(identity)
            continue

        reply = use_case.handle(identity, user_text)
        print("\n--- Reply ---")
        print(reply)
        print("-" * 60)


if __name__ == "__main__":
    main()
