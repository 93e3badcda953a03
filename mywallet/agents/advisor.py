"""
Financial Advisor Agent

DESIGN DECISION: The advisor is a thin wrapper around Gemini. It sees a
context string built from the read models and nothing else.

BOUNDARIES:
- CAN: Explain the user's numbers and suggest next steps
- CANNOT: Mutate the ledger (it only reads reports)
- CANNOT: Break the conversation; every failure becomes one fallback
  assistant message

Requests are independent: two overlapping ask() calls each append their
own messages and are not queued or deduplicated.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field

from mywallet.audit import AuditLogger, get_logger
from mywallet.config import GeminiSettings, get_settings
from mywallet.models.audit import AuditEventBuilder
from mywallet.models.ledger import format_currency
from mywallet.queries import LedgerReports
from mywallet.queries.reports import StateSource

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a senior personal finance advisor. Address the user respectfully "
    "and answer with confidence using only the figures in the provided context. "
    "Structure advice as a short report in Markdown: start with an "
    "**Executive summary**, list the **Key points** as bullets, and finish with "
    "**Recommended next steps**."
)

NOT_CONFIGURED_MESSAGE = (
    "The advisor is not configured yet. Set GEMINI_API_KEY in the environment "
    "or .env file to enable it."
)
PERMISSION_DENIED_MESSAGE = (
    "The advisor was refused access by the AI service.\n\n"
    "**Please check:**\n"
    "- The API key is valid.\n"
    "- The Generative Language API is enabled in Google Cloud.\n"
    "- A billing account is linked to the project."
)
INVALID_KEY_MESSAGE = "The configured API key is not valid. Please check GEMINI_API_KEY."
GENERIC_FAILURE_MESSAGE = "Something went wrong while contacting the advisor. Please try again later."


class AdvisorRole(str, Enum):
    USER = "user"
    MODEL = "model"


class AdvisorMessage(BaseModel):
    role: AdvisorRole
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_fallback: bool = False


class Conversation(BaseModel):
    """An advisor chat. Messages are only ever appended."""

    messages: list[AdvisorMessage] = Field(default_factory=list)

    def append(self, role: AdvisorRole, text: str, is_fallback: bool = False) -> AdvisorMessage:
        message = AdvisorMessage(role=role, text=text, is_fallback=is_fallback)
        self.messages.append(message)
        return message


def fallback_message(error: Exception) -> str:
    """User-facing text for a failed service call."""
    text = str(error)
    if "PERMISSION_DENIED" in text or "403" in text:
        return PERMISSION_DENIED_MESSAGE
    if "API key not valid" in text or "API_KEY_INVALID" in text:
        return INVALID_KEY_MESSAGE
    return GENERIC_FAILURE_MESSAGE


class AdvisorAgent:
    """
    Answers free-text questions about the user's finances.

    Usage:
        advisor = AdvisorAgent(store)
        conversation = Conversation()
        reply = await advisor.ask("How can I save more?", conversation)
    """

    def __init__(
        self,
        source: StateSource,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = source
        self._reports = LedgerReports(source)
        self._settings = settings or get_settings().gemini
        self._audit = audit_logger
        self._model = model
        if self._model is None and self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    def build_context(self) -> str:
        """Financial summary the model answers from."""
        state = self._source.state
        currency = state.settings.currency

        def money(amount: float) -> str:
            return format_currency(amount, currency)

        totals = self._reports.totals()
        lines = [
            f"Financial data (currency: {currency}):",
            f"- Balance: {money(totals.balance)}",
            f"- Income: {money(totals.income)}",
            f"- Expenses: {money(totals.expense)}",
            f"- Savings rate: {totals.savings_rate:.1f}%",
        ]

        top = self._reports.top_categories(limit=3)
        if top:
            lines.append("- Top expenses: " + ", ".join(f"{c.name} {money(c.value)}" for c in top))

        debts = self._reports.debt_summary()
        lines.append(
            f"- Debts: owed to me {money(debts.owed_to_me)}, I owe {money(debts.i_owe)}, "
            f"{debts.open_debts} open"
        )

        goals = self._reports.goal_progress()
        if goals:
            lines.append(
                "- Goals: " + ", ".join(f"{g.name} {g.progress * 100:.0f}%" for g in goals)
            )

        segments = ", ".join(f"{s.name}: {s.ratio:g}%" for s in state.budget.segments)
        lines.append(f"- Budget (monthly income {money(state.budget.monthly_income)}): {segments}")
        return "\n".join(lines)

    async def ask(self, question: str, conversation: Conversation) -> AdvisorMessage:
        """
        Send a question with the current context and append the reply.

        Never raises for service errors: a fallback assistant message is
        appended instead.
        """
        conversation.append(AdvisorRole.USER, question)

        if self._model is None:
            logger.warning("advisor_not_configured")
            return conversation.append(AdvisorRole.MODEL, NOT_CONFIGURED_MESSAGE, is_fallback=True)

        prompt = f"{self.build_context()}\n\nUser request: {question}"
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text.strip()
        except Exception as e:
            logger.error("advisor_request_failed", error=str(e))
            if self._audit:
                self._audit.log(AuditEventBuilder.advisor_failed(str(e)))
            return conversation.append(AdvisorRole.MODEL, fallback_message(e), is_fallback=True)

        return conversation.append(AdvisorRole.MODEL, text)
