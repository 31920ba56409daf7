import logging
import re
from typing import Protocol

from fastapi import Request
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from app.core.errors import GeneratorError

logger = logging.getLogger(__name__)

FENCE = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")


class TextGenerator(Protocol):
    """Stateless text-in / text-out generation service."""

    async def complete(
        self, system: str, prompt: str, temperature: float, max_output_tokens: int
    ) -> str: ...


def strip_code_fences(text: str) -> str:
    """Drop a surrounding ```sql ... ``` block the model may have added."""
    return FENCE.sub("", (text or "").strip()).strip()


def _message_text(content) -> str:
    # Gemini may answer with a list of content parts instead of one string
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class GeminiGenerator:
    """TextGenerator backed by Google Gemini through langchain-google-genai."""

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        self.api_key = api_key
        self.model = model

    def _chat_model(self, temperature: float, max_output_tokens: int) -> ChatGoogleGenerativeAI:
        # Sampling parameters change per call, so each call gets its own model
        return ChatGoogleGenerativeAI(
            model=self.model,
            google_api_key=self.api_key,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    async def complete(
        self, system: str, prompt: str, temperature: float, max_output_tokens: int
    ) -> str:
        llm = self._chat_model(temperature, max_output_tokens)
        try:
            response = await llm.ainvoke(
                [SystemMessage(content=system), HumanMessage(content=prompt)]
            )
        except Exception as error:
            logger.error(f"Gemini request failed: {error}")
            raise GeneratorError(f"Gemini error: {error}") from error

        text = strip_code_fences(_message_text(response.content))
        logger.debug(f"Gemini returned {len(text)} characters")
        return text


# Bridge between routes and the generator owned by the app lifespan
def get_generator(request: Request) -> TextGenerator:
    return request.app.state.generator
