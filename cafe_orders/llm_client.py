"""
Text generation for conversational checkout copy.

The conversational checkout asks a text generator to phrase its prompts.
The generator is advisory only: it receives the canned message for the
current step and may reword it, but its output is never parsed and never
decides what happens next. Numbers (totals, order numbers) are appended by
the caller outside the generated text.

Two generators:
- CannedCopy returns the canned message unchanged. Used when no API key is
  configured, when LLM_COPY_ENABLED is false, and in tests.
- OpenAICopyWriter asks the OpenAI chat-completions API for a friendlier
  version and falls back to the canned message on any API error or empty
  response.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from . import config

logger = logging.getLogger(__name__)

# Log configuration at DEBUG level (no sensitive data in INFO or higher)
logger.debug("OpenAI API key configured: %s", "Yes" if config.OPENAI_API_KEY else "No")
logger.debug("Using model: %s", config.OPENAI_MODEL)

SYSTEM_PROMPT = """
You are the friendly checkout assistant of a small cafe.

You will be given the message the checkout system wants to show the customer.
Rewrite it in one or two short, warm sentences.

Rules:
- Keep every option the message lists (payment methods, tip choices, yes/no).
- Never add prices, totals, discounts, order numbers or options of your own.
- Never say the order is placed, paid or cancelled unless the message says so.
- Reply with the rewritten message only.
""".strip()

USER_PROMPT_TEMPLATE = """
Checkout step: {step}
Message to rewrite:
{default_text}
""".strip()


class CannedCopy:
    """Returns the canned message as-is."""

    def generate(self, context: Dict[str, Any]) -> str:
        return context["default_text"]


class OpenAICopyWriter:
    """
    Rephrases checkout prompts with an OpenAI chat model.

    Args:
        api_key: OpenAI API key (defaults to OPENAI_API_KEY)
        model: Model name (defaults to OPENAI_MODEL)
        client: Pre-built OpenAI client, mainly for tests
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[OpenAI] = None):
        self.api_key = api_key or config.OPENAI_API_KEY
        self.model = model or config.OPENAI_MODEL
        self._client = client

    @property
    def client(self) -> OpenAI:
        # Built on first use so importing this module never needs a key
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def build_messages(self, context: Dict[str, Any]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        for msg in context.get("history", [])[-6:]:
            messages.append({"role": msg["role"], "content": msg["content"]})
        messages.append({
            "role": "user",
            "content": USER_PROMPT_TEMPLATE.format(
                step=context.get("step", ""),
                default_text=context["default_text"],
            ),
        })
        return messages

    def generate(self, context: Dict[str, Any]) -> str:
        default_text = context["default_text"]
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(context),
                temperature=0.3,
                max_tokens=config.LLM_MAX_TOKENS,
            )
        except OpenAIError as e:
            logger.warning("Copy generation failed, using canned text: %s", str(e))
            return default_text

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            logger.debug("Empty completion for step %s, using canned text", context.get("step"))
            return default_text
        return content.strip()


@lru_cache(maxsize=1)
def get_text_generator():
    """Generator used by the app: OpenAI when configured, canned copy otherwise."""
    if config.LLM_COPY_ENABLED and config.OPENAI_API_KEY:
        logger.info("Using %s for checkout copy", config.OPENAI_MODEL)
        return OpenAICopyWriter()
    return CannedCopy()
