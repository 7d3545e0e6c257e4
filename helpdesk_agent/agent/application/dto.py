"""
Agent Application DTOs
======================

Pydantic models for the agent API. Field names follow the camelCase
wire format the help desk client already sends.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# ========== Request DTOs ==========

class ResolveRequest(BaseModel):
    """A customer message to handle for one ticket."""
    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(..., alias="ticketId", min_length=1, description="Ticket to work on")
    user_message: str = Field(..., alias="userMessage", min_length=1, description="Customer message text")
    request_id: Optional[str] = Field(
        None, alias="requestId", max_length=128,
        description="Idempotency key; a retry with the same key replays the first reply"
    )


# ========== Response DTOs ==========

class ResolveResponse(BaseModel):
    """The customer-facing reply and how the run ended."""
    model_config = ConfigDict(populate_by_name=True)

    output: str
    status: str = Field(..., description="completed or exhausted")
    round_trips: int = Field(..., alias="roundTrips")
    replayed: bool = False


class ToolDeclaration(BaseModel):
    """A tool as declared to the model."""
    name: str
    description: str
    parameters: Dict[str, Any]


class ConfirmationResponse(BaseModel):
    success: bool
    message: str
    status: str
