from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from schuleagent.application.use_cases.conversation_flow import TurnResult
from schuleagent.domain.entities.conversation import Conversation, ConversationStep

STALE_AFTER = timedelta(hours=24)


def is_stale(conversation: Conversation, now: datetime) -> bool:
    """A conversation untouched for more than 24 hours is abandoned."""
    last_activity = conversation.updated_at or conversation.created_at
    if last_activity is None:
        return False
    return now - last_activity > STALE_AFTER


def apply_turn(conversation: Conversation, result: TurnResult, now: datetime) -> Conversation:
    """Fold a turn result into the conversation. Returning to INICIO clears the booking in progress."""
    if result.next_step == ConversationStep.INICIO:
        return replace(
            conversation,
            step=ConversationStep.INICIO,
            service=None,
            appointment_date=None,
            appointment_time=None,
            data={},
            updated_at=now,
        )

    return replace(
        conversation,
        step=result.next_step,
        service=result.service if result.service is not None else conversation.service,
        appointment_date=(
            result.appointment_date if result.appointment_date is not None else conversation.appointment_date
        ),
        appointment_time=(
            result.appointment_time if result.appointment_time is not None else conversation.appointment_time
        ),
        data=dict(result.data) if result.data is not None else dict(conversation.data),
        updated_at=now,
    )
