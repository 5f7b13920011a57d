from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.application.use_cases.conversation_flow import ConversationFlow
from schuleagent.application.utils.state_helpers import apply_turn, is_stale


class HandleIncomingMessageUseCase:
    """Runs one inbound message through the sender's conversation and returns the reply text."""

    def __init__(
        self,
        store: ClinicStorePort,
        flow: ConversationFlow,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._flow = flow
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def handle(self, identity: str, text: str) -> str:
        now = self._clock()
        conversation = self._store.get_latest_conversation(identity)

        if conversation is None:
            conversation = self._store.create_conversation(identity, now)
            self._logger.info("Conversation started", extra={"identity": identity, "reason": "first_message"})
        elif is_stale(conversation, now):
            self._logger.info(
                "Stale conversation replaced",
                extra={"identity": identity, "step": conversation.step.value, "reason": "inactive_24h"},
            )
            conversation = self._store.create_conversation(identity, now)

        self._logger.info("Message received", extra={"identity": identity, "step": conversation.step.value})

        result = self._flow.step(conversation, text)
        self._store.update_conversation(apply_turn(conversation, result, now))

        self._logger.info(
            "Step transition",
            extra={"identity": identity, "step": conversation.step.value, "next_step": result.next_step.value},
        )
        return result.reply
