"""Default state key names for LangGraph integration."""

# Standard state keys used by PromptGate nodes
USER_INPUT = "user_input"
ROUTING_CONTEXT = "routing_context"
PROMPTGATE_ABUSE = "promptgate_abuse"
PROMPTGATE_ROUTE = "promptgate_route"
