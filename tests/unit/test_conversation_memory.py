import pytest

from pipeline.conversation_memory import ConversationMemoryStore
from pipeline.models import CollectedData, Intent, WaitingFor


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory(clock):
    return ConversationMemoryStore(ttl_seconds=480, clock=clock)


class TestConversationMemoryStore:

    def test_get_unknown_or_empty_id_returns_none(self, memory):
        assert memory.get("missing") is None
        assert memory.get(None) is None
        assert memory.get("") is None

    def test_set_creates_context(self, memory, clock):
        context = memory.set(
            "conv-1",
            active_intent=Intent.ORDER_TRACKING,
            waiting_for=WaitingFor.EMAIL,
        )

        assert context.active_intent == Intent.ORDER_TRACKING
        assert context.waiting_for == WaitingFor.EMAIL
        assert context.message_count == 1
        assert context.timestamp == clock.now

    def test_set_without_id_is_ignored(self, memory):
        assert memory.set(None, active_intent=Intent.ORDER_TRACKING) is None
        assert len(memory) == 0

    def test_email_survives_later_update_without_email(self, memory, clock):
        memory.set("conv-1", collected_data=CollectedData(email="a@b.com"))
        clock.advance(60)
        memory.set("conv-1", collected_data=CollectedData(order_numbers=["10045"]))

        context = memory.get("conv-1")
        assert context.collected_data.email == "a@b.com"
        assert context.collected_data.order_numbers == ["10045"]
        assert context.message_count == 2

    def test_empty_order_numbers_do_not_clear_stored_ones(self, memory):
        memory.set("conv-1", collected_data=CollectedData(order_numbers=["10045"]))
        memory.set("conv-1", collected_data=CollectedData(order_numbers=[]))

        assert memory.get("conv-1").collected_data.order_numbers == ["10045"]

    def test_explicit_none_clears_waiting_for(self, memory):
        memory.set("conv-1", waiting_for=WaitingFor.EMAIL)
        memory.set("conv-1", waiting_for=None)

        assert memory.get("conv-1").waiting_for is None

    def test_omitted_fields_are_preserved(self, memory):
        memory.set("conv-1", active_intent=Intent.ORDER_TRACKING, waiting_for=WaitingFor.EMAIL)
        memory.set("conv-1", collected_data=CollectedData(email="a@b.com"))

        context = memory.get("conv-1")
        assert context.active_intent == Intent.ORDER_TRACKING
        assert context.waiting_for == WaitingFor.EMAIL

    def test_expired_context_is_unreachable(self, memory, clock):
        memory.set("conv-1", collected_data=CollectedData(email="a@b.com"))
        clock.advance(481)

        assert memory.get("conv-1") is None
        assert "conv-1" not in memory

    def test_context_within_ttl_is_reachable(self, memory, clock):
        memory.set("conv-1", collected_data=CollectedData(email="a@b.com"))
        clock.advance(479)

        assert memory.get("conv-1").collected_data.email == "a@b.com"

    def test_set_sweeps_expired_contexts_of_other_conversations(self, memory, clock):
        memory.set("stale", active_intent=Intent.ORDER_TRACKING)
        clock.advance(500)
        memory.set("fresh", active_intent=Intent.PRODUCT_SEARCH)

        assert "stale" not in memory
        assert "fresh" in memory

    def test_set_on_expired_context_starts_fresh(self, memory, clock):
        memory.set("conv-1", collected_data=CollectedData(email="a@b.com"))
        clock.advance(600)
        context = memory.set("conv-1", active_intent=Intent.CART_INQUIRY)

        assert context.collected_data.email is None
        assert context.message_count == 1

    def test_get_returns_copy(self, memory):
        memory.set("conv-1", collected_data=CollectedData(email="a@b.com"))

        context = memory.get("conv-1")
        context.collected_data.email = "changed@example.com"

        assert memory.get("conv-1").collected_data.email == "a@b.com"

    def test_delete(self, memory):
        memory.set("conv-1", active_intent=Intent.ORDER_TRACKING)

        assert memory.delete("conv-1") is True
        assert memory.delete("conv-1") is False

    def test_to_dict(self, memory):
        memory.set(
            "conv-1",
            active_intent=Intent.ORDER_TRACKING,
            waiting_for=WaitingFor.ORDER_NUMBER,
            collected_data=CollectedData(email="a@b.com"),
        )

        data = memory.get("conv-1").to_dict()
        assert data["active_intent"] == "orderTracking"
        assert data["waiting_for"] == "order_number"
        assert data["collected_data"] == {"email": "a@b.com", "order_numbers": []}
