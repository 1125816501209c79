"""Advisory text-to-speech for answers.

Audio is a convenience on top of an answer. Callers treat any failure here
as non-fatal; the answer text is returned regardless.
"""

import openai
from openai import OpenAI

from .config import config
from .errors import ValidationError, from_openai_error
from .models import LanguageVariant

logger = config.get_logger(__name__)

PROVIDER_NAME = "speech"


class SpeechSynthesizer:
    """Wraps the OpenAI-compatible ``audio.speech`` endpoint."""

    def __init__(  # noqa: PLR0913
        self,
        api_key: str | None = None,
        model: str | None = None,
        voice: str | None = None,
        base_url: str | None = None,
        max_chars: int | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.api_key = api_key or config.get_completion_api_key()
        default_headers = config.get_api_headers()
        self.client = client or OpenAI(
            api_key=self.api_key,
            base_url=base_url or config.COMPLETION_BASE_URL,
            default_headers=default_headers or None,
            timeout=config.PROVIDER_TIMEOUT,
            max_retries=0,
        )
        self.model = model or config.TTS_MODEL
        self.voice = voice or config.TTS_VOICE
        self.max_chars = max_chars if max_chars is not None else config.TTS_MAX_CHARS

    def synthesize(
        self, text: str, variant: LanguageVariant = LanguageVariant.ORIGINAL
    ) -> bytes:
        """Convert text to audio bytes, truncating overly long input.

        Returns:
            Encoded audio as returned by the provider.

        Raises:
            ValidationError: If text is empty.
            ProviderError: On upstream failure.
        """
        if not text or not text.strip():
            msg = "Text for speech synthesis must not be empty"
            raise ValidationError(msg)

        if len(text) > self.max_chars:
            logger.info(
                "Truncating %d chars to %d for speech synthesis",
                len(text),
                self.max_chars,
            )
            text = text[: self.max_chars]

        try:
            response = self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,  # type: ignore[arg-type]
                input=text,
            )
        except openai.OpenAIError as exc:
            raise from_openai_error(
                exc, provider=PROVIDER_NAME, api_key=self.api_key
            ) from exc

        audio = response.read()
        logger.info(
            "Synthesized %d bytes of audio (%s variant)",
            len(audio),
            LanguageVariant(variant).value,
        )
        return audio
