"""AI Agents package."""

from mywallet.agents.advisor import (
    AdvisorAgent,
    AdvisorMessage,
    AdvisorRole,
    Conversation,
    fallback_message,
)

__all__ = [
    "AdvisorAgent",
    "AdvisorMessage",
    "AdvisorRole",
    "Conversation",
    "fallback_message",
]
