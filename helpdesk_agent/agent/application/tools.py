"""
Agent Tools
===========

The closed catalog of tools offered to the model.

- Input models: pydantic schemas with the camelCase field names the
  model sees; validation failures become observations, not errors
- TicketToolbox: handlers over the ticket and knowledge services
- ToolRegistry: one ToolSpec per ToolName, checked for completeness,
  producing declarations and ToolOutcomes
"""

import functools
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from helpdesk_agent.agent.domain import ToolKind, ToolName, ToolOutcome, ToolRequest
from helpdesk_agent.core import (
    ConfigurationException,
    ResourceNotFoundException,
    ToolException,
    ValidationException,
)
from helpdesk_agent.knowledge.application import KnowledgeSearchService
from helpdesk_agent.shared.infrastructure.logging import get_logger, log_latency
from helpdesk_agent.tickets.application import (
    AssignmentBalancer,
    AuditTrailService,
    TicketMutationService,
    TicketQueryService,
)

logger = get_logger(__name__)


# ========== Tool Input Models ==========

class ToolInput(BaseModel):
    """Base for tool arguments; unknown keys are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NoArguments(ToolInput):
    pass


class FindEmployeeInput(ToolInput):
    search_term: str = Field(
        ..., alias="searchTerm", min_length=1,
        description="Name or email fragment to search for (e.g. 'Robert', 'Bob Smith')"
    )


class TicketInput(ToolInput):
    ticket_id: str = Field(..., alias="ticketId", min_length=1, description="The ID of the ticket")


class SearchKnowledgeBaseInput(ToolInput):
    query: str = Field(..., min_length=1, description="The search term or topic to find articles about")


class UpdateTicketTitleInput(TicketInput):
    title: str = Field(..., min_length=1, description="The new title for the ticket")


class UpdateTicketDescriptionInput(TicketInput):
    description: str = Field(..., description="The new description for the ticket")


class AssignEmployeeInput(TicketInput):
    profile_id: str = Field(..., alias="profileId", min_length=1, description="The ID of the employee to assign")


class UpdateTicketStatusInput(TicketInput):
    status_id: Optional[str] = Field(None, alias="statusId", description="The new status ID")
    priority_id: Optional[str] = Field(None, alias="priorityId", description="The new priority ID")


class AddInternalCommentInput(TicketInput):
    content: str = Field(..., min_length=1, description="The content of the internal comment")


# ========== Tool Specs ==========

ToolHandler = Callable[[Any], Awaitable[str]]


@dataclass(frozen=True)
class ToolSpec:
    """A tool as offered to the model."""

    name: ToolName
    description: str
    input_model: Type[ToolInput]
    kind: ToolKind
    handler: ToolHandler

    def declaration(self) -> Dict[str, Any]:
        """Name, description and JSON schema of the arguments."""
        schema = self.input_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return {
            "name": self.name.value,
            "description": self.description,
            "parameters": schema,
        }


def recoverable(tool_name: ToolName):
    """Report missing records and rejected values to the model instead of failing."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (ResourceNotFoundException, ValidationException) as e:
                raise ToolException(tool_name.value, e.message, e.details) from e
        return wrapper
    return decorator


def _dump(data: Any) -> str:
    return json.dumps(data, default=str)


class TicketToolbox:
    """Tool handlers; each returns the observation text for the model."""

    def __init__(
        self,
        queries: TicketQueryService,
        mutations: TicketMutationService,
        balancer: AssignmentBalancer,
        audit: AuditTrailService,
        knowledge: KnowledgeSearchService
    ):
        self._queries = queries
        self._mutations = mutations
        self._balancer = balancer
        self._audit = audit
        self._knowledge = knowledge

    # ----- queries -----

    async def find_employee(self, args: FindEmployeeInput) -> str:
        """Never guesses between several matches."""
        matches = await self._queries.find_staff(args.search_term)
        if not matches:
            return _dump({
                "found": False,
                "message": f'No employee found matching "{args.search_term}". Will assign to least loaded employee.'
            })
        if len(matches) > 1:
            return _dump({
                "found": False,
                "message": (
                    f'Multiple employees found matching "{args.search_term}". '
                    "Please be more specific or I will assign to least loaded employee."
                )
            })
        return _dump({"found": True, "employee": matches[0].to_dict()})

    async def find_least_loaded_employee(self, args: NoArguments) -> str:
        load = await self._balancer.least_loaded()
        if load is None:
            return _dump({"found": False, "message": "No available employees found"})
        return _dump({
            "found": True,
            "employee": load.employee.to_dict(),
            "ticket_count": load.open_count
        })

    @recoverable(ToolName.GET_TICKET_DETAILS)
    async def get_ticket_details(self, args: TicketInput) -> str:
        details = await self._queries.get_details(args.ticket_id)
        return _dump(details.to_dict())

    async def get_status_options(self, args: NoArguments) -> str:
        return _dump([option.to_dict() for option in await self._queries.status_options()])

    async def get_priority_options(self, args: NoArguments) -> str:
        return _dump([option.to_dict() for option in await self._queries.priority_options()])

    async def search_knowledge_base(self, args: SearchKnowledgeBaseInput) -> str:
        results = await self._knowledge.search(args.query)
        if results.is_empty:
            return "No relevant knowledge base articles found for this query."
        return _dump(results.to_dict())

    @recoverable(ToolName.GET_TICKET_HISTORY)
    async def get_ticket_history(self, args: TicketInput) -> str:
        timeline = await self._audit.timeline(args.ticket_id)
        return _dump([item.to_dict() for item in timeline])

    # ----- mutations -----

    @recoverable(ToolName.UPDATE_TICKET_TITLE)
    async def update_ticket_title(self, args: UpdateTicketTitleInput) -> str:
        return (await self._mutations.update_title(args.ticket_id, args.title)).message

    @recoverable(ToolName.UPDATE_TICKET_DESCRIPTION)
    async def update_ticket_description(self, args: UpdateTicketDescriptionInput) -> str:
        return (await self._mutations.update_description(args.ticket_id, args.description)).message

    @recoverable(ToolName.ASSIGN_EMPLOYEE)
    async def assign_employee(self, args: AssignEmployeeInput) -> str:
        return (await self._mutations.assign_employee(args.ticket_id, args.profile_id)).message

    @recoverable(ToolName.UPDATE_TICKET_STATUS)
    async def update_ticket_status(self, args: UpdateTicketStatusInput) -> str:
        result = await self._mutations.update_status(
            args.ticket_id, status_id=args.status_id, priority_id=args.priority_id
        )
        return result.message

    @recoverable(ToolName.ADD_INTERNAL_COMMENT)
    async def add_internal_comment(self, args: AddInternalCommentInput) -> str:
        return (await self._mutations.add_internal_comment(args.ticket_id, args.content)).message

    def specs(self) -> List[ToolSpec]:
        """The twelve tools, queries first."""
        q, m = ToolKind.QUERY, ToolKind.MUTATION
        return [
            ToolSpec(
                ToolName.FIND_EMPLOYEE,
                "Find an employee by name or email to get their profile ID",
                FindEmployeeInput, q, self.find_employee
            ),
            ToolSpec(
                ToolName.FIND_LEAST_LOADED_EMPLOYEE,
                "Find the employee with the fewest open tickets for automatic assignment",
                NoArguments, q, self.find_least_loaded_employee
            ),
            ToolSpec(
                ToolName.GET_TICKET_DETAILS,
                "Get complete details about a ticket including assignments, status, and priority",
                TicketInput, q, self.get_ticket_details
            ),
            ToolSpec(
                ToolName.GET_STATUS_OPTIONS,
                "Get list of available ticket status options",
                NoArguments, q, self.get_status_options
            ),
            ToolSpec(
                ToolName.GET_PRIORITY_OPTIONS,
                "Get list of available ticket priority options",
                NoArguments, q, self.get_priority_options
            ),
            ToolSpec(
                ToolName.SEARCH_KNOWLEDGE_BASE,
                "Search public knowledge base articles by semantic similarity. Results are split into "
                "highly_relevant (similarity >= 0.85) and possibly_relevant (similarity >= 0.70).",
                SearchKnowledgeBaseInput, q, self.search_knowledge_base
            ),
            ToolSpec(
                ToolName.GET_TICKET_HISTORY,
                "Get the complete history of a ticket including comments, conversations, and changes",
                TicketInput, q, self.get_ticket_history
            ),
            ToolSpec(
                ToolName.UPDATE_TICKET_TITLE,
                "Update the title of a ticket when it has a placeholder or needs improvement",
                UpdateTicketTitleInput, m, self.update_ticket_title
            ),
            ToolSpec(
                ToolName.UPDATE_TICKET_DESCRIPTION,
                "Update the description of a ticket to better reflect the issue",
                UpdateTicketDescriptionInput, m, self.update_ticket_description
            ),
            ToolSpec(
                ToolName.ASSIGN_EMPLOYEE,
                "Assign or reassign an employee to a ticket",
                AssignEmployeeInput, m, self.assign_employee
            ),
            ToolSpec(
                ToolName.UPDATE_TICKET_STATUS,
                "Update the status and/or priority of a ticket",
                UpdateTicketStatusInput, m, self.update_ticket_status
            ),
            ToolSpec(
                ToolName.ADD_INTERNAL_COMMENT,
                "Add an internal comment to a ticket that only employees can see",
                AddInternalCommentInput, m, self.add_internal_comment
            ),
        ]


# ========== Registry ==========

def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


class ToolRegistry:
    """
    Closed map from ToolName to ToolSpec.

    Construction fails unless every ToolName has exactly one spec.
    """

    def __init__(self, specs: Iterable[ToolSpec]):
        specs = list(specs)
        self._specs: Dict[ToolName, ToolSpec] = {spec.name: spec for spec in specs}

        if len(self._specs) != len(specs):
            raise ConfigurationException("Duplicate tool specs registered")
        missing = [name.value for name in ToolName if name not in self._specs]
        if missing:
            raise ConfigurationException(f"Tools without a handler: {', '.join(missing)}")

    @classmethod
    def from_toolbox(cls, toolbox: TicketToolbox) -> "ToolRegistry":
        return cls(toolbox.specs())

    def __len__(self) -> int:
        return len(self._specs)

    def spec(self, name: ToolName) -> ToolSpec:
        return self._specs[name]

    def kind_of(self, raw_name: str) -> Optional[ToolKind]:
        """Kind of a requested tool, None when the name is unknown."""
        name = ToolName.parse(raw_name)
        return self._specs[name].kind if name else None

    def declarations(self) -> List[Dict[str, Any]]:
        """Declarations in ToolName order."""
        return [self._specs[name].declaration() for name in ToolName]

    async def invoke(self, request: ToolRequest) -> ToolOutcome:
        """
        Validate and run one tool request.

        Never raises: unknown names, malformed arguments and ToolException
        give soft errors; any other exception is returned as a hard error.
        """
        name = ToolName.parse(request.name)
        if name is None:
            logger.warning("Unknown tool requested", extra={"tool": str(request.name), "tool_call_id": request.id})
            return ToolOutcome.soft_error(
                f"Tool not found: {request.name}. Available tools: {', '.join(n.value for n in ToolName)}"
            )

        if not isinstance(request.arguments, dict):
            return ToolOutcome.soft_error(f"Invalid arguments for {name.value}: expected a JSON object")

        spec = self._specs[name]
        try:
            args = spec.input_model.model_validate(request.arguments)
        except ValidationError as e:
            return ToolOutcome.soft_error(f"Invalid arguments for {name.value}: {_describe_validation_error(e)}")

        try:
            with log_latency(logger, "tool_call", tool=name.value, tool_call_id=request.id, kind=spec.kind.value):
                text = await spec.handler(args)
        except ToolException as e:
            logger.info("Tool reported a recoverable error", extra={"tool": name.value, "error": e.message})
            return ToolOutcome.soft_error(e.message)
        except Exception as e:
            logger.error(
                "Tool failed",
                extra={"tool": name.value, "tool_call_id": request.id, "error_type": type(e).__name__, "error": str(e)}
            )
            return ToolOutcome.hard_error(e)

        return ToolOutcome.ok(text)
