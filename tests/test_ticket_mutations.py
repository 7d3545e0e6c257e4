"""Tests for ticket mutations: no-op suppression, catalog checks, assignment upsert and locking."""

import asyncio

import pytest

from helpdesk_agent.config import HistoryAction
from helpdesk_agent.core import ResourceNotFoundException, ValidationException


async def _history(uow_factory, ticket_id):
    async with uow_factory() as uow:
        return await uow.history.list_for_ticket(ticket_id)


async def _ticket(uow_factory, ticket_id):
    async with uow_factory() as uow:
        return await uow.tickets.get(ticket_id)


# =============================================================================
# Status and priority
# =============================================================================

@pytest.mark.asyncio
async def test_closing_ticket_records_one_status_diff(mutations, uow_factory, seed):
    result = await mutations.update_status(seed.ticket_id, status_id=seed.closed_status)

    assert result.changed is True
    assert "status" in result.message

    history = await _history(uow_factory, seed.ticket_id)
    assert len(history) == 1
    assert history[0].action == HistoryAction.UPDATE
    assert history[0].from_ai is True
    assert history[0].actor_id is None
    assert history[0].changes == {"status_id": {"from": seed.open_status, "to": seed.closed_status}}

    ticket = await _ticket(uow_factory, seed.ticket_id)
    assert ticket.status_id == seed.closed_status


@pytest.mark.asyncio
async def test_unchanged_status_is_suppressed(mutations, uow_factory, seed):
    result = await mutations.update_status(
        seed.ticket_id, status_id=seed.open_status, priority_id=seed.low_priority
    )

    assert result.changed is False
    assert result.message.startswith("No changes needed")
    assert await _history(uow_factory, seed.ticket_id) == []


@pytest.mark.asyncio
async def test_status_and_priority_in_one_entry(mutations, uow_factory, seed):
    result = await mutations.update_status(
        seed.ticket_id, status_id=seed.progress_status, priority_id=seed.high_priority
    )

    assert result.message == "Successfully updated ticket status and priority"
    history = await _history(uow_factory, seed.ticket_id)
    assert len(history) == 1
    assert set(history[0].changes) == {"status_id", "priority_id"}


@pytest.mark.asyncio
async def test_invalid_status_skips_only_that_field(mutations, uow_factory, seed):
    result = await mutations.update_status(
        seed.ticket_id, status_id="st-missing", priority_id=seed.high_priority
    )

    assert result.changed is True
    assert "Invalid or inactive status ID provided: st-missing" in result.message
    assert "priority" in result.message

    ticket = await _ticket(uow_factory, seed.ticket_id)
    assert ticket.status_id == seed.open_status
    assert ticket.priority_id == seed.high_priority
    history = await _history(uow_factory, seed.ticket_id)
    assert list(history[0].changes) == ["priority_id"]


@pytest.mark.asyncio
async def test_inactive_catalog_entries_are_rejected(mutations, uow_factory, seed):
    result = await mutations.update_status(
        seed.ticket_id, status_id=seed.archived_status, priority_id=seed.legacy_priority
    )

    assert result.changed is False
    assert "status ID provided: st-archived" in result.message
    assert "priority ID provided: pr-legacy" in result.message
    assert result.message.endswith(mutations.NO_CHANGES)
    assert await _history(uow_factory, seed.ticket_id) == []


@pytest.mark.asyncio
async def test_missing_ticket_raises(mutations, seed):
    with pytest.raises(ResourceNotFoundException):
        await mutations.update_status("t-missing", status_id=seed.closed_status)


# =============================================================================
# Title and description
# =============================================================================

@pytest.mark.asyncio
async def test_title_update_and_noop(mutations, uow_factory, seed):
    first = await mutations.update_title(seed.ticket_id, "VPN disconnects hourly")
    second = await mutations.update_title(seed.ticket_id, "VPN disconnects hourly")

    assert first.message == "Updated ticket title to: VPN disconnects hourly"
    assert second.changed is False
    history = await _history(uow_factory, seed.ticket_id)
    assert len(history) == 1
    assert history[0].changes == {"title": {"from": "New ticket", "to": "VPN disconnects hourly"}}


@pytest.mark.asyncio
async def test_description_update(mutations, uow_factory, seed):
    result = await mutations.update_description(seed.ticket_id, "VPN drops every hour on Wi-Fi")

    assert result.message == "Updated ticket description"
    ticket = await _ticket(uow_factory, seed.ticket_id)
    assert ticket.description == "VPN drops every hour on Wi-Fi"


# =============================================================================
# Assignment
# =============================================================================

@pytest.mark.asyncio
async def test_assigning_twice_keeps_one_row(mutations, uow_factory, seed):
    first = await mutations.assign_employee(seed.ticket_id, seed.bob)
    second = await mutations.assign_employee(seed.ticket_id, seed.bob)

    assert first.changed is True
    assert second.changed is False
    assert "already assigned" in second.message

    async with uow_factory() as uow:
        assignments = await uow.assignments.list_for_ticket(seed.ticket_id)
    assert [a.profile_id for a in assignments] == [seed.bob]

    history = await _history(uow_factory, seed.ticket_id)
    assert len(history) == 1
    assert history[0].changes == {"assignees": {"removed": [], "added": [seed.bob]}}


@pytest.mark.asyncio
async def test_reassignment_replaces_assignee(mutations, uow_factory, seed):
    await mutations.assign_employee(seed.ticket_id, seed.bob)
    await mutations.assign_employee(seed.ticket_id, seed.bobby)

    async with uow_factory() as uow:
        assignments = await uow.assignments.list_for_ticket(seed.ticket_id)
    assert [a.profile_id for a in assignments] == [seed.bobby]

    history = await _history(uow_factory, seed.ticket_id)
    assert history[-1].changes == {"assignees": {"removed": [seed.bob], "added": [seed.bobby]}}


@pytest.mark.asyncio
@pytest.mark.parametrize("who", ["customer", "admin", "inactive"])
async def test_only_active_staff_can_be_assigned(mutations, seed, who):
    with pytest.raises(ValidationException):
        await mutations.assign_employee(seed.ticket_id, getattr(seed, who))


@pytest.mark.asyncio
async def test_concurrent_assignments_are_serialized(mutations, uow_factory, seed):
    await asyncio.gather(
        mutations.assign_employee(seed.ticket_id, seed.bob),
        mutations.assign_employee(seed.ticket_id, seed.bobby),
    )

    async with uow_factory() as uow:
        assignments = await uow.assignments.list_for_ticket(seed.ticket_id)
    assert len(assignments) == 1

    history = await _history(uow_factory, seed.ticket_id)
    assert len(history) == 2
    # The second writer saw the first one's assignee
    assert history[0].changes["assignees"]["removed"] == []
    assert history[1].changes["assignees"]["removed"] == history[0].changes["assignees"]["added"]


# =============================================================================
# Comments and conversation
# =============================================================================

@pytest.mark.asyncio
async def test_internal_comment_has_no_history(mutations, uow_factory, seed):
    result = await mutations.add_internal_comment(seed.ticket_id, "Customer on macOS 14")

    assert result.message == "Added internal comment to ticket"
    async with uow_factory() as uow:
        comments = await uow.comments.list_for_ticket(seed.ticket_id)
    assert len(comments) == 1
    assert comments[0].is_internal is True
    assert comments[0].from_ai is True
    assert await _history(uow_factory, seed.ticket_id) == []


@pytest.mark.asyncio
async def test_conversation_message_requires_ticket(mutations, seed):
    with pytest.raises(ResourceNotFoundException):
        await mutations.add_conversation_message("t-missing", "hello")
