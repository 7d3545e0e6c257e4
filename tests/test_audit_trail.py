"""Tests for history recording and the merged ticket timeline."""

import json

import pytest

from helpdesk_agent.core import ResourceNotFoundException
from helpdesk_agent.config import AI_ACTOR_NAME, UNKNOWN_ACTOR_NAME, ActivityType, HistoryAction
from helpdesk_agent.tickets.infrastructure.models import (
    TicketCommentModel,
    TicketConversationModel,
    TicketHistoryModel,
)


@pytest.mark.asyncio
async def test_empty_diff_writes_nothing(audit, uow_factory, seed):
    async with uow_factory() as uow:
        entry = await audit.record(uow, seed.ticket_id, None, True, HistoryAction.UPDATE, {})

    assert entry is None
    async with uow_factory() as uow:
        assert await uow.history.list_for_ticket(seed.ticket_id) == []


@pytest.mark.asyncio
async def test_record_is_atomic_with_caller(audit, uow_factory, seed):
    with pytest.raises(RuntimeError):
        async with uow_factory() as uow:
            await uow.tickets.update_fields(seed.ticket_id, {"title": "Changed"})
            await audit.record(
                uow, seed.ticket_id, None, True, HistoryAction.UPDATE,
                {"title": {"from": "New ticket", "to": "Changed"}}
            )
            raise RuntimeError("abort")

    async with uow_factory() as uow:
        assert await uow.history.list_for_ticket(seed.ticket_id) == []
        assert (await uow.tickets.get(seed.ticket_id)).title == "New ticket"


@pytest.mark.asyncio
async def test_timeline_merges_chronologically(audit, session_maker, seed, later):
    changes = {"status_id": {"from": seed.open_status, "to": seed.closed_status}}
    async with session_maker() as session:
        session.add_all([
            TicketConversationModel(
                ticket_id=seed.ticket_id, text="My VPN keeps dropping",
                profile_id=seed.customer, created_at=later(1)
            ),
            TicketCommentModel(
                ticket_id=seed.ticket_id, content="Looking into it", is_internal=True,
                author_id=seed.alice, created_at=later(5)
            ),
            TicketHistoryModel(
                ticket_id=seed.ticket_id, action=HistoryAction.UPDATE, changes=changes,
                from_ai=True, created_at=later(10)
            ),
            TicketConversationModel(
                ticket_id=seed.ticket_id, text="Anyone there?", profile_id=None, created_at=later(20)
            ),
        ])
        await session.commit()

    timeline = await audit.timeline(seed.ticket_id)

    assert [item.type for item in timeline] == [
        ActivityType.CONVERSATION, ActivityType.COMMENT, ActivityType.HISTORY, ActivityType.CONVERSATION
    ]
    assert [item.actor for item in timeline] == [
        "Carol Customer", "Alice Anders", AI_ACTOR_NAME, UNKNOWN_ACTOR_NAME
    ]
    assert json.loads(timeline[2].content) == changes
    assert timeline[2].action == HistoryAction.UPDATE

    serialized = timeline[0].to_dict()
    assert "action" not in serialized
    assert serialized["content"] == "My VPN keeps dropping"


@pytest.mark.asyncio
async def test_mutations_appear_in_timeline(audit, mutations, seed):
    await mutations.update_title(seed.ticket_id, "VPN drops hourly")
    await mutations.add_internal_comment(seed.ticket_id, "Escalated to network team")

    timeline = await audit.timeline(seed.ticket_id)

    assert [item.type for item in timeline] == [ActivityType.HISTORY, ActivityType.COMMENT]
    assert all(item.actor == AI_ACTOR_NAME for item in timeline)


@pytest.mark.asyncio
async def test_timeline_of_missing_ticket_is_rejected(audit, seed):
    with pytest.raises(ResourceNotFoundException):
        await audit.timeline("t-missing")
