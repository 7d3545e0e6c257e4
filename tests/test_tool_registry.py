"""Tests for the closed tool registry and the tool handlers."""

import dataclasses
import json

import pytest

from helpdesk_agent.agent.application import ToolRegistry
from helpdesk_agent.agent.domain import OutcomeKind, ToolKind, ToolName, ToolRequest
from helpdesk_agent.core import ConfigurationException


def _call(name, arguments=None):
    return ToolRequest(id=f"call-{name}", name=name, arguments={} if arguments is None else arguments)


# =============================================================================
# Registry shape
# =============================================================================

def test_registry_covers_every_tool(registry):
    declarations = registry.declarations()

    assert len(registry) == 12
    assert [d["name"] for d in declarations] == [name.value for name in ToolName]


def test_declarations_use_camel_case_fields(registry):
    by_name = {d["name"]: d["parameters"] for d in registry.declarations()}

    assert by_name["findEmployee"]["required"] == ["searchTerm"]
    assert set(by_name["assignEmployee"]["properties"]) == {"ticketId", "profileId"}
    assert set(by_name["updateTicketStatus"]["properties"]) == {"ticketId", "statusId", "priorityId"}
    assert by_name["updateTicketStatus"]["required"] == ["ticketId"]
    assert by_name["getStatusOptions"]["properties"] == {}


def test_kinds(registry):
    assert registry.kind_of("getTicketDetails") == ToolKind.QUERY
    assert registry.kind_of("assignEmployee") == ToolKind.MUTATION
    assert registry.kind_of("deleteTicket") is None


def test_incomplete_registry_is_rejected(toolbox):
    specs = [s for s in toolbox.specs() if s.name != ToolName.ADD_INTERNAL_COMMENT]
    with pytest.raises(ConfigurationException, match="addInternalComment"):
        ToolRegistry(specs)


def test_duplicate_specs_are_rejected(toolbox):
    specs = toolbox.specs()
    with pytest.raises(ConfigurationException):
        ToolRegistry(specs + specs[:1])


# =============================================================================
# Soft errors
# =============================================================================

@pytest.mark.asyncio
async def test_unknown_tool_is_soft(registry):
    outcome = await registry.invoke(_call("deleteTicket"))

    assert outcome.kind == OutcomeKind.SOFT_ERROR
    assert "Tool not found: deleteTicket" in outcome.text


@pytest.mark.asyncio
async def test_non_object_arguments_are_soft(registry):
    outcome = await registry.invoke(_call("getTicketDetails", "t-1"))

    assert outcome.kind == OutcomeKind.SOFT_ERROR
    assert "expected a JSON object" in outcome.text


@pytest.mark.asyncio
async def test_schema_violation_is_soft(registry, seed):
    outcome = await registry.invoke(_call("assignEmployee", {"ticketId": seed.ticket_id}))

    assert outcome.kind == OutcomeKind.SOFT_ERROR
    assert "profileId" in outcome.text


@pytest.mark.asyncio
async def test_missing_ticket_is_soft(registry, seed):
    outcome = await registry.invoke(_call("getTicketDetails", {"ticketId": "t-missing"}))

    assert outcome.kind == OutcomeKind.SOFT_ERROR
    assert "t-missing" in outcome.text


@pytest.mark.asyncio
async def test_assigning_a_customer_is_soft(registry, seed):
    outcome = await registry.invoke(
        _call("assignEmployee", {"ticketId": seed.ticket_id, "profileId": seed.customer})
    )

    assert outcome.kind == OutcomeKind.SOFT_ERROR
    assert "not an active employee" in outcome.text


@pytest.mark.asyncio
async def test_unexpected_failure_is_hard(toolbox):
    async def broken(args):
        raise RuntimeError("database on fire")

    specs = [
        dataclasses.replace(s, handler=broken) if s.name == ToolName.GET_STATUS_OPTIONS else s
        for s in toolbox.specs()
    ]
    outcome = await ToolRegistry(specs).invoke(_call("getStatusOptions"))

    assert outcome.is_hard
    assert isinstance(outcome.cause, RuntimeError)


# =============================================================================
# Query tools
# =============================================================================

@pytest.mark.asyncio
async def test_find_employee_single_match(registry, seed):
    outcome = await registry.invoke(_call("findEmployee", {"searchTerm": "smith"}))
    data = json.loads(outcome.text)

    assert data["found"] is True
    assert data["employee"]["user_id"] == seed.bob


@pytest.mark.asyncio
async def test_find_employee_never_guesses(registry, seed):
    outcome = await registry.invoke(_call("findEmployee", {"searchTerm": "Bob"}))
    data = json.loads(outcome.text)

    assert data["found"] is False
    assert data["message"].startswith('Multiple employees found matching "Bob"')


@pytest.mark.asyncio
async def test_find_employee_ignores_customers_and_admins(registry, seed):
    for term in ("Carol", "Dana", "Eve"):
        data = json.loads((await registry.invoke(_call("findEmployee", {"searchTerm": term}))).text)
        assert data["found"] is False
        assert "least loaded" in data["message"]


@pytest.mark.asyncio
async def test_find_least_loaded_employee(registry, seed):
    data = json.loads((await registry.invoke(_call("findLeastLoadedEmployee"))).text)

    assert data == {
        "found": True,
        "employee": {"user_id": seed.bob, "first_name": "Bob", "last_name": "Smith", "email": "bob.smith@example.com"},
        "ticket_count": 0
    }


@pytest.mark.asyncio
async def test_ticket_details(registry, mutations, seed):
    await mutations.assign_employee(seed.ticket_id, seed.alice)

    data = json.loads((await registry.invoke(_call("getTicketDetails", {"ticketId": seed.ticket_id}))).text)

    assert data["title"] == "New ticket"
    assert data["status"]["name"] == "Open"
    assert data["priority"]["name"] == "Low"
    assert [a["profile_id"] for a in data["assignments"]] == [seed.alice]


@pytest.mark.asyncio
async def test_status_options_are_active_and_sorted(registry, seed):
    data = json.loads((await registry.invoke(_call("getStatusOptions"))).text)

    assert [s["name"] for s in data] == ["Closed", "In Progress", "Open"]
    assert data[0]["is_counted_open"] is False


@pytest.mark.asyncio
async def test_priority_options(registry, seed):
    data = json.loads((await registry.invoke(_call("getPriorityOptions"))).text)

    assert [p["name"] for p in data] == ["High", "Low"]


@pytest.mark.asyncio
async def test_empty_knowledge_base(registry):
    outcome = await registry.invoke(_call("searchKnowledgeBase", {"query": "vpn"}))

    assert outcome.kind == OutcomeKind.OK
    assert outcome.text == "No relevant knowledge base articles found for this query."


# =============================================================================
# Mutation tools
# =============================================================================

@pytest.mark.asyncio
async def test_update_status_tool(registry, seed):
    outcome = await registry.invoke(
        _call("updateTicketStatus", {"ticketId": seed.ticket_id, "statusId": seed.closed_status})
    )

    assert outcome.kind == OutcomeKind.OK
    assert "status" in outcome.text

    history = json.loads((await registry.invoke(_call("getTicketHistory", {"ticketId": seed.ticket_id}))).text)
    assert len(history) == 1
    assert json.loads(history[0]["content"]) == {
        "status_id": {"from": seed.open_status, "to": seed.closed_status}
    }


@pytest.mark.asyncio
async def test_update_title_tool_on_missing_ticket(registry, seed):
    outcome = await registry.invoke(_call("updateTicketTitle", {"ticketId": "t-missing", "title": "x"}))

    assert outcome.kind == OutcomeKind.SOFT_ERROR


@pytest.mark.asyncio
async def test_history_tool_on_missing_ticket(registry, seed):
    outcome = await registry.invoke(_call("getTicketHistory", {"ticketId": "t-missing"}))

    assert outcome.kind == OutcomeKind.SOFT_ERROR
    assert "t-missing" in outcome.text
