"""Tests for the advisor agent (no network: fake model objects)."""

from types import SimpleNamespace

from mywallet.agents import AdvisorAgent, AdvisorRole, Conversation, fallback_message
from mywallet.agents.advisor import (
    GENERIC_FAILURE_MESSAGE,
    INVALID_KEY_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
)
from mywallet.config import GeminiSettings
from mywallet.models import AuditEventType, Goal, TransactionType


class FakeModel:
    """Records prompts and returns a canned reply."""

    def __init__(self, reply="Save more.", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=f"  {self.reply}  ")


def unconfigured():
    return GeminiSettings(api_key=None)


class TestAdvisorContext:
    """Tests for the context string."""

    def test_context_contains_summary(self, store, make_transaction):
        """Test totals, top expenses, goals and budget appear in the context."""
        store.update_settings(currency="USD")
        store.add_transaction(make_transaction(2000, type=TransactionType.INCOME, category="Salary & Income"))
        store.add_transaction(make_transaction(500, category="Transport"))
        store.add_goal(Goal(name="Car", target_amount=1000, current_amount=500))

        context = AdvisorAgent(store, settings=unconfigured(), model=FakeModel()).build_context()

        assert "currency: USD" in context
        assert "Balance: 1,500 USD" in context
        assert "Transport 500 USD" in context
        assert "Car 50%" in context
        assert "Essentials: 50%" in context


class TestAdvisorAsk:
    """Tests for question handling."""

    async def test_reply_is_appended(self, store):
        """Test a successful round trip."""
        model = FakeModel()
        advisor = AdvisorAgent(store, settings=unconfigured(), model=model)
        conversation = Conversation()

        reply = await advisor.ask("How am I doing?", conversation)

        assert reply.text == "Save more."
        assert [m.role for m in conversation.messages] == [AdvisorRole.USER, AdvisorRole.MODEL]
        assert model.prompts[0].endswith("User request: How am I doing?")

    async def test_service_failure_appends_one_fallback(self, store, audit_logger):
        """Test failures never raise and keep the conversation."""
        advisor = AdvisorAgent(
            store,
            settings=unconfigured(),
            model=FakeModel(error=RuntimeError("503 unavailable")),
            audit_logger=audit_logger,
        )
        conversation = Conversation()
        conversation.append(AdvisorRole.USER, "earlier")

        reply = await advisor.ask("Help", conversation)

        assert reply.is_fallback
        assert reply.text == GENERIC_FAILURE_MESSAGE
        assert len(conversation.messages) == 3
        assert audit_logger.recent(1)[0].event_type == AuditEventType.ADVISOR_FAILED

    async def test_unconfigured_key_skips_network(self, store):
        """Test the configuration fallback without a model."""
        advisor = AdvisorAgent(store, settings=unconfigured())
        assert not advisor.is_available

        conversation = Conversation()
        reply = await advisor.ask("Hi", conversation)
        assert reply.text == NOT_CONFIGURED_MESSAGE
        assert len(conversation.messages) == 2


class TestFallbackMessages:
    """Tests for error classification."""

    def test_permission_errors(self):
        """Test permission failures get the specific hint."""
        assert fallback_message(Exception("403 PERMISSION_DENIED")) == PERMISSION_DENIED_MESSAGE

    def test_invalid_key(self):
        """Test invalid keys get their own hint."""
        assert fallback_message(Exception("API key not valid. Please pass a valid API key.")) == INVALID_KEY_MESSAGE

    def test_other_errors(self):
        """Test everything else gets the generic message."""
        assert fallback_message(TimeoutError("timed out")) == GENERIC_FAILURE_MESSAGE

    def test_placeholder_key_is_not_configured(self):
        """Test blank and placeholder keys count as missing."""
        assert not GeminiSettings(api_key="undefined").is_configured
        assert not GeminiSettings(api_key="   ").is_configured
        assert GeminiSettings(api_key="abc").is_configured
