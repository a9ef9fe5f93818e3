"""
Transform service contract and shared prompt helpers.

The transform itself is external; this module defines what the creation
state machine needs from it.
"""

import re
from dataclasses import dataclass
from typing import Optional, Protocol

COMPONENT_INJECTION_PROMPT = "component-injection"

VISUAL_BLUEPRINT_NAME = "Visual Blueprint"
REPOSITORY_NAME = "GitHub MVP"
CONCEPT_NAME = "Neural Artifact"

_ACTION_INSTRUCTIONS = {
    "remix": "Completely remix the architecture while keeping the core purpose.",
    "edit": "Enable 'High-Fidelity' mode: refine spacing, typography and interaction states.",
    "analyze": "Perform an audit of the artifact and embed the findings as an analysis panel.",
    "roadmap": "Build a roadmap HUD: a 10-step progress tracker for turning this into a SaaS.",
}

_LEADING_FENCE = re.compile(r"^```[a-zA-Z]*\s*")
_TRAILING_FENCE = re.compile(r"\s*```\s*$")


@dataclass(frozen=True)
class ImageInput:
    """Reference image sent with a generate request."""
    data: str  # base64
    mime: str = "image/png"


class TransformService(Protocol):
    """Asynchronous artifact transform.

    generate returns "" when no artifact was produced; refine raises
    TransformFailure for absent or suspiciously short results.
    """

    async def generate(self, prompt: str, image: Optional[ImageInput] = None) -> str:
        ...

    async def refine(self, current_content: str, instruction: str) -> str:
        ...

    async def generate_component(self, description: str) -> str:
        ...


def is_repository_url(prompt: str) -> bool:
    return "github.com" in prompt or prompt.startswith("http")


def derive_artifact_name(prompt: str, image: Optional[ImageInput] = None) -> str:
    """Name a newly created artifact after the kind of input it came from."""
    if image is not None:
        return VISUAL_BLUEPRINT_NAME
    if "github.com" in prompt:
        return REPOSITORY_NAME
    return CONCEPT_NAME


def action_instruction(action: str) -> str:
    """Map a named archive action to a refine instruction."""
    return _ACTION_INSTRUCTIONS.get(action, f"Optimize {action}.")


def component_instruction(snippet: str) -> str:
    return (
        "Intelligently integrate the following component into the existing layout, "
        "matching its visual language and wiring up any interactivity.\n\n"
        f"COMPONENT:\n{snippet}"
    )


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence, if present."""
    text = _LEADING_FENCE.sub("", text, count=1)
    return _TRAILING_FENCE.sub("", text, count=1)
