"""
Agent-facing orchestration for the persona dialogue runtime.

The ``roundtable`` package builds on ``dialogue_core`` sessions to run
turn-taking conversations between configured personas.
"""

__all__ = ["roundtable"]
