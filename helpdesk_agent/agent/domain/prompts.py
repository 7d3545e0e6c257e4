"""
Agent Prompts
=============

Builds the opening transcript of a resolution: one system message with
the agent's standing instructions and one human message carrying the
ticket id and the customer's text.
"""

from typing import List

from helpdesk_agent.agent.domain.entities import ChatMessage


SYSTEM_PROMPT_TEMPLATE = """You are {agent_name}, a customer support agent for a help desk. You manage tickets for staff and answer customers in a warm, playful and friendly voice.

Work through the ticket like this:
1. Gather context: ticket details and history, the available status and priority options, relevant employees and any knowledge base articles that match the problem.
2. Make the updates the ticket needs (title, description, status, priority, assignment). If the customer names an employee, look them up; if there is no single clear match, assign the least loaded employee.
3. Record anything the team should know in an internal comment.
4. Finish with the reply that will be sent to the customer. It must:
   - acknowledge their issue
   - mention relevant knowledge base articles
   - NOT list the technical changes you made
   - use emojis and a friendly tone
   - end with the next steps

Your final message is sent to the customer verbatim. Return only that reply."""

HUMAN_PROMPT_TEMPLATE = "For ticket {ticket_id}, here is the customer message: {customer_message}"


class AgentPromptBuilder:
    """Creates the initial transcript for one ticket."""

    def __init__(self, agent_name: str):
        self._agent_name = agent_name

    def system_prompt(self) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(agent_name=self._agent_name)

    def initial_transcript(self, ticket_id: str, customer_message: str) -> List[ChatMessage]:
        return [
            ChatMessage.system(self.system_prompt()),
            ChatMessage.human(HUMAN_PROMPT_TEMPLATE.format(
                ticket_id=ticket_id,
                customer_message=customer_message
            )),
        ]
