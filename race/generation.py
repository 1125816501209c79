"""Answer generation bound to retrieved context."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import openai
from openai import OpenAI

from .config import config
from .errors import ProviderError, from_openai_error, mask_key
from .models import AnswerResult, ConversationTurn, LanguageVariant

logger = config.get_logger(__name__)

PROVIDER_NAME = "completion"

REFUSAL_SENTENCE = "I cannot answer that based on the document."

SYSTEM_PROMPT_TEMPLATE = """\
You are a professional assistant. Answer the user's question STRICTLY using the context below.
If the answer isn't in the context, say "{refusal}"
{language_instruction}

--- CONTEXT START ---
{context}
--- CONTEXT END ---"""

LANGUAGE_INSTRUCTIONS: dict[LanguageVariant, str] = {
    LanguageVariant.ORIGINAL: "Answer in the same language as the user's question.",
    LanguageVariant.TRANSLATED: (
        "The context is a translation of the original material. "
        "Answer in the language of the context."
    ),
}

HistoryItem = ConversationTurn | Mapping[str, Any]


def recent_history(
    history: Iterable[HistoryItem] | None, limit: int
) -> list[ConversationTurn]:
    """Normalise stored messages and keep the most recent ``limit`` of them.

    Returns:
        Valid turns in chronological order.
    """
    if not history or limit <= 0:
        return []
    turns = [turn for item in history if (turn := ConversationTurn.coerce(item))]
    return turns[-limit:]


class AnswerGenerator:
    """Calls the completion provider with the assembled context."""

    def __init__(  # noqa: PLR0913
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_history_turns: int | None = None,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the AnswerGenerator.

        Args:
            api_key: Completion provider key. If None, uses
                config.get_completion_api_key().
            model: Model identifier. If None, uses config.COMPLETION_MODEL.
            base_url: Provider URL. If None, uses config.COMPLETION_BASE_URL.
            timeout: Request timeout in seconds. If None, uses
                config.PROVIDER_TIMEOUT.
            max_history_turns: History bound. If None, uses
                config.HISTORY_MAX_TURNS.
            client: Pre-built client, mainly for tests.
        """
        self.api_key = api_key or config.get_completion_api_key()
        self.timeout = timeout if timeout is not None else config.PROVIDER_TIMEOUT
        default_headers = config.get_api_headers()
        self.client = client or OpenAI(
            api_key=self.api_key,
            base_url=base_url or config.COMPLETION_BASE_URL,
            default_headers=default_headers or None,
            timeout=self.timeout,
            max_retries=0,
        )
        self.model = model or config.COMPLETION_MODEL
        self.max_history_turns = (
            max_history_turns
            if max_history_turns is not None
            else config.HISTORY_MAX_TURNS
        )

    @staticmethod
    def build_system_prompt(context_text: str, variant: LanguageVariant) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(
            refusal=REFUSAL_SENTENCE,
            language_instruction=LANGUAGE_INSTRUCTIONS[LanguageVariant(variant)],
            context=context_text,
        )

    def build_messages(
        self,
        question: str,
        context_text: str,
        history: Iterable[HistoryItem] | None,
        variant: LanguageVariant,
    ) -> list[dict[str, str]]:
        """Assemble system prompt, bounded history, then the question.

        Returns:
            Chat messages in provider order.
        """
        messages = [
            {
                "role": "system",
                "content": self.build_system_prompt(context_text, variant),
            }
        ]
        messages.extend(
            turn.to_message()
            for turn in recent_history(history, self.max_history_turns)
        )
        messages.append({"role": "user", "content": question})
        return messages

    def generate(
        self,
        question: str,
        context_text: str,
        history: Iterable[HistoryItem] | None = None,
        variant: LanguageVariant = LanguageVariant.ORIGINAL,
    ) -> AnswerResult:
        """Ask the completion provider for an answer.

        Returns:
            AnswerResult carrying the answer text. References are attached by
            the caller.

        Raises:
            ProviderError: On upstream failure or an empty completion;
                RateLimitError and ProviderTimeoutError for 429 and timeouts.
        """
        messages = self.build_messages(question, context_text, history, variant)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=config.COMPLETION_MAX_TOKENS,
                temperature=config.COMPLETION_TEMPERATURE,
            )
        except openai.OpenAIError as exc:
            error = from_openai_error(exc, provider=PROVIDER_NAME, api_key=self.api_key)
            logger.exception(
                "Completion request failed (%s, status=%s, key=%s)",
                error.kind,
                error.status_code,
                error.key_hint,
            )
            raise error from exc

        answer = self._extract_text(response)
        if not answer:
            logger.error("Completion provider returned no content")
            msg = "Completion provider returned an empty answer"
            raise ProviderError(
                msg, provider=PROVIDER_NAME, key_hint=mask_key(self.api_key)
            )

        logger.info("Generated answer with %d history turn(s)", len(messages) - 2)
        return AnswerResult(answer=answer)

    @staticmethod
    def _extract_text(response: object) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            return ""
        content = getattr(getattr(choices[0], "message", None), "content", None)
        if not isinstance(content, str):
            return ""
        return content.strip()
