"""
HTTP adapter for roundtable conversations.

The FastAPI application defined here is a thin presentation layer: it turns
requests into orchestrator intents and returns immutable snapshots.
"""

from .registry import ConversationRegistry, describe_conversation

__all__ = ["ConversationRegistry", "describe_conversation"]
