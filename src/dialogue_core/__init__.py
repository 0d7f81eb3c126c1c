"""
Core provider primitives for the persona dialogue runtime.

Modules under ``dialogue_core`` resolve providers from credentials, hold the
per-agent chat sessions, and perform the single external generation call.
"""

__all__ = ["llm", "provider_catalog", "provider_router", "session_store", "response_generator"]
