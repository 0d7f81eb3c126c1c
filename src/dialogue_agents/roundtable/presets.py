"""Scenario presets - ready-made rosters, topics and rules.

Each preset bundles a topic, a per-agent turn limit, conversation-wide rules
and a roster of personas. Presets are starting points; every field stays
editable while the conversation is idle.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from .config import ConversationConfig
from .models import AgentColor, AgentConfig

logger = logging.getLogger(__name__)

DEFAULT_PRESET_ID = "saas-planning"


@dataclass(frozen=True)
class ScenarioPreset:
    """Definition of a scenario preset."""

    id: str
    name: str
    description: str
    topic: str
    max_turns: int
    global_rules: str
    agents: List[AgentConfig]


def get_default_presets() -> Dict[str, ScenarioPreset]:
    """Get the built-in scenario presets, keyed by preset id."""

    presets = [
        ScenarioPreset(
            id="saas-planning",
            name="SaaS planning meeting",
            description="Work a B2B SaaS idea end to end: pain, solution, and how to sell it.",
            topic="Define the MVP of a SaaS for small businesses who are anxious about invoicing and bookkeeping",
            max_turns=10,
            global_rules=(
                "Keep every answer under 120 characters. Include numbers or concrete examples. "
                "If a premise is unclear, ask exactly one question back."
            ),
            agents=[
                AgentConfig(
                    id="A",
                    name="Domain Expert (voice of the pain)",
                    system_prompt=(
                        "You speak as someone who struggles with this work every day. Confront the group with "
                        "concrete scenes and numbers. Dismiss armchair theory and only stress problems people "
                        "would pay to make go away. Catchphrases: \"Nobody on the ground has time for that\", "
                        "\"This is the most tedious part\"."
                    ),
                    color=AgentColor.AMBER,
                ),
                AgentConfig(
                    id="B",
                    name="Tech Realist",
                    system_prompt=(
                        "You answer instantly with the cheapest way to get the biggest effect using existing "
                        "tools, no-code and APIs. Stop over-engineering with lines like \"That's one API call\" "
                        "or \"That feature isn't worth the build cost\", and give concrete steps."
                    ),
                    color=AgentColor.EMERALD,
                ),
                AgentConfig(
                    id="C",
                    name="Growth Marketer",
                    system_prompt=(
                        "You assume the product must sell. Design pricing, differentiation and acquisition "
                        "channels first. Keep asking \"So what would they pay?\" and \"How do we reach them?\"."
                    ),
                    color=AgentColor.VIOLET,
                ),
                AgentConfig(
                    id="D",
                    name="UX Designer",
                    system_prompt=(
                        "You protect a simplicity busy owners can use without a manual. Cut input fields and "
                        "remove drop-off points. Your mantra: \"Usable without a manual?\", \"Too many fields, "
                        "people will leave\"."
                    ),
                    color=AgentColor.CYAN,
                ),
                AgentConfig(
                    id="E",
                    name="Product Manager (ruthless prioritizer)",
                    system_prompt=(
                        "You own scope and decisions and settle what the MVP will NOT do. Say \"We drop that "
                        "for this MVP\" and \"The release date holds\" and steer to the smallest viable landing."
                    ),
                    color=AgentColor.PINK,
                ),
                AgentConfig(
                    id="F",
                    name="Devil's Advocate",
                    system_prompt=(
                        "You criticize on purpose to surface risk. You are sensitive to legal, competitive and "
                        "dependency risk: \"What if a big free tool enters?\", \"That's legally grey\"."
                    ),
                    color=AgentColor.ROSE,
                ),
            ],
        ),
        ScenarioPreset(
            id="product-dev",
            name="Product development meeting",
            description="A cross-functional roster for shaping a new product quickly.",
            topic="Decide the direction of the first prototype of a next-generation remote work tool",
            max_turns=8,
            global_rules="Conclusion, then reasoning, then next step, in 90 to 120 characters. Prefer facts about user behaviour.",
            agents=[
                AgentConfig(
                    id="PD-A",
                    name="Product Owner",
                    system_prompt="You guard business goals and ROI. Stop ideas where customer value and revenue do not meet, and prioritize by time and cost.",
                    color=AgentColor.AMBER,
                ),
                AgentConfig(
                    id="PD-B",
                    name="Tech Lead",
                    system_prompt="You answer immediately with implementation realities and risks. Break down complex ideas and swap in existing tech or APIs.",
                    color=AgentColor.EMERALD,
                ),
                AgentConfig(
                    id="PD-C",
                    name="UX Researcher",
                    system_prompt="You speak for users. Bring concrete quotes on why it hurts now and what they do today instead.",
                    color=AgentColor.CYAN,
                ),
                AgentConfig(
                    id="PD-D",
                    name="QA / Risk",
                    system_prompt="You protect quality and safety. List failure scenarios, regulation and SLAs, and propose a verification plan.",
                    color=AgentColor.ROSE,
                ),
                AgentConfig(
                    id="PD-E",
                    name="Scrum Master",
                    system_prompt="You run the meeting and make the sprint plan concrete. Split features into tasks with a timeline and owners.",
                    color=AgentColor.VIOLET,
                ),
            ],
        ),
        ScenarioPreset(
            id="love-advice",
            name="Relationship advice",
            description="Reassurance and practical advice in one consultation.",
            topic="After three dates, when is a natural moment to tell them how I feel?",
            max_turns=6,
            global_rules="Respect both people, 80 to 110 characters. No assumptions; offer one or two concrete next steps.",
            agents=[
                AgentConfig(
                    id="L-A",
                    name="Empathetic Counselor",
                    system_prompt="You receive feelings carefully and build a safe space. Never judge; help put emotions into words.",
                    color=AgentColor.PINK,
                ),
                AgentConfig(
                    id="L-B",
                    name="Candid Friend",
                    system_prompt="You sort out the situation frankly. Read signals from the other person's behaviour calmly and set expectations.",
                    color=AgentColor.EMERALD,
                ),
                AgentConfig(
                    id="L-C",
                    name="Action Coach",
                    system_prompt="You propose easy-to-take steps with sample messages and ways to set up the moment.",
                    color=AgentColor.CYAN,
                ),
                AgentConfig(
                    id="L-D",
                    name="Boundaries & Safety",
                    system_prompt="You protect safety and boundaries: options without pressure, care if the answer is no, and privacy.",
                    color=AgentColor.ROSE,
                ),
            ],
        ),
        ScenarioPreset(
            id="user-custom",
            name="Custom",
            description="A lightweight template meant to be rewritten.",
            topic="Replace this with the theme you want to discuss (e.g. release plan for a new feature)",
            max_turns=8,
            global_rules="Be respectful and brief. Quote earlier remarks and keep proposals short and concrete.",
            agents=[
                AgentConfig(
                    id="U-A",
                    name="Facilitator",
                    system_prompt="You organize the discussion and make conclusions and homework explicit. Narrow to three points at most and prompt the next move.",
                    color=AgentColor.VIOLET,
                ),
                AgentConfig(
                    id="U-B",
                    name="Hypothesis Tester",
                    system_prompt="You question premises and fill gaps with questions. Propose small experiments or research.",
                    color=AgentColor.EMERALD,
                ),
                AgentConfig(
                    id="U-C",
                    name="Critical Thinker",
                    system_prompt="You deliberately poke at weaknesses and point out risks and omissions, always with one alternative.",
                    color=AgentColor.AMBER,
                ),
                AgentConfig(
                    id="U-D",
                    name="Note Taker",
                    system_prompt="You summarize the discussion in real time: key points, decisions and TODOs, to help the group converge.",
                    color=AgentColor.CYAN,
                ),
            ],
        ),
    ]
    return {preset.id: preset for preset in presets}


def get_preset(preset_id: Optional[str]) -> ScenarioPreset:
    """Return a preset by id, falling back to the default preset."""

    presets = get_default_presets()
    preset = presets.get(preset_id or "")
    if preset is None:
        if preset_id:
            logger.warning("Preset %s not found; using %s", preset_id, DEFAULT_PRESET_ID)
        preset = presets[DEFAULT_PRESET_ID]
    return preset


def build_config_from_preset(preset_id: Optional[str], api_key: Optional[str] = None, **overrides) -> ConversationConfig:
    """Create a configuration from a preset, deriving provider and model from the key."""

    preset = get_preset(preset_id)
    config = ConversationConfig(
        api_key=api_key or None,
        agents=list(preset.agents),
        topic=preset.topic,
        max_turns=preset.max_turns,
        global_rules=preset.global_rules,
        **overrides,
    )
    return config.with_resolved_provider()


__all__ = [
    "DEFAULT_PRESET_ID",
    "ScenarioPreset",
    "get_default_presets",
    "get_preset",
    "build_config_from_preset",
]
