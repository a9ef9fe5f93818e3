"""
OpenAI-backed transform service.

Generates and refines single-page web artifacts through chat completions.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from ..core.errors import TransformFailure
from ..core.transform import ImageInput, is_repository_url, strip_code_fences

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """You are a senior product engineer who builds polished single-page web apps.

DESIGN:
- Dark backgrounds, 1px precision borders, subtle teal-to-indigo gradients.
- Inter for UI text, JetBrains Mono for data readouts.
- Smooth transitions, hover glows and reactive component states.
- Use <canvas> for data visualizations.

IMAGES:
If an image is provided, deconstruct its layout and palette, rebuild it with
Tailwind CSS and make every control it shows interactive.

OUTPUT RULES:
- Return ONLY raw HTML/CSS/JS unless another format is requested.
- No markdown wrappers outside the code block.
- Use ONLY vanilla JS (no React/Vue).
- Include a 'Download App' button that exports the current state as index.html."""

FLUTTER_INSTRUCTION = "You are an expert Flutter architect."


class OpenAITransformService:
    """Transform service that calls OpenAI chat completions.

    Every provider error is wrapped in TransformFailure so the creation
    state machine only has one failure type to handle.
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.1,
        min_refine_length: int = 100,
        client: Optional[AsyncOpenAI] = None
    ):
        """Initialize the transform service.

        Args:
            model: OpenAI model name (required)
            temperature: Sampling temperature for artifact generation
            min_refine_length: Refined results shorter than this are rejected
            client: Preconfigured client (defaults to AsyncOpenAI())

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.temperature = temperature
        self.min_refine_length = min_refine_length
        self.client = client or AsyncOpenAI()

    async def _complete(
        self,
        content: Any,
        system: str = SYSTEM_INSTRUCTION,
        temperature: Optional[float] = None
    ) -> str:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": content},
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature
            )
        except Exception as e:
            logger.warning("Transform request failed: %s", e)
            raise TransformFailure(f"Transform service error: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate(self, prompt: str, image: Optional[ImageInput] = None) -> str:
        """Generate a new artifact from a prompt, URL or screenshot.

        Returns:
            Artifact markup, or "" when the model produced nothing
        """
        if image is not None:
            intention = prompt or "Build a high-end interactive SaaS version of this visual layout."
            content: Any = [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime};base64,{image.data}"}
                },
                {
                    "type": "text",
                    "text": (
                        "VISUAL BLUEPRINT ANALYSIS: Reconstruct this GUI with absolute precision.\n"
                        f"Core intention: {intention}"
                    )
                },
            ]
        elif is_repository_url(prompt):
            content = (
                f"ARCHITECT REPO: {prompt}. Build a sales-ready SaaS front end "
                "with functional visualizers."
            )
        else:
            content = f"CONCEPT: {prompt}. Build an MVP with professional telemetry components."

        text = await self._complete(content)
        return strip_code_fences(text)

    async def refine(self, current_content: str, instruction: str) -> str:
        """Apply an instruction to existing artifact content.

        Raises:
            TransformFailure: If the result is absent or too short to be a
                complete artifact
        """
        content = (
            f"CURRENT CODE:\n{current_content}\n\n"
            f"REFINE REQUEST: {instruction}\n\n"
            "IMPORTANT: Return the FULL revised HTML."
        )
        text = strip_code_fences(await self._complete(content) or "")
        if len(text) < self.min_refine_length:
            raise TransformFailure("Incomplete engine response.")
        return text

    async def generate_component(self, description: str) -> str:
        """Generate a standalone component snippet for insertion."""
        content = (
            "TASK: Generate a standalone UI component.\n"
            f"Component description: {description}\n"
            "Tech: Tailwind CSS.\n"
            "Output: ONLY the <div> snippet with its internal <script> or <style> if needed. "
            "No <html> or <body> tags."
        )
        text = await self._complete(content, temperature=0.2)
        if not text:
            raise TransformFailure("Component generation returned no content.")
        return strip_code_fences(text)

    async def convert_to_flutter(self, content: str) -> str:
        """Translate an artifact into a Flutter main.dart source."""
        request = (
            f"WEB ARTIFACT:\n{content}\n\n"
            "TASK: Translate this web application into a complete Flutter mobile project. "
            "Output main.dart."
        )
        text = await self._complete(request, system=FLUTTER_INSTRUCTION)
        if not text:
            raise TransformFailure("Flutter conversion returned no content.")
        return strip_code_fences(text)
