"""
PromptGate - Policy & routing layer for outbound LLM prompts.

Scores prompts for safety and abuse, checks them against previously flagged
prompts, and decides which region, endpoint and model tier they go to.
Embedding, organization-profile, feature-flag and audit collaborators are
injected by the host process.
"""

__version__ = "0.1.0"
