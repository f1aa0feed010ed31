"""
AI-powered image moderation using Gemini Flash.

Asks a vision model one question about the uploaded photo and reduces the
answer to allow / reject before any costly provider call is made.
"""

import logging

from google import genai
from google.genai import types

from core.exceptions import ConfigurationError, ContentRejectedError, ExternalServiceError

logger = logging.getLogger(__name__)


class ContentModerator:
    """
    Single-call image classifier.

    Only an unambiguous "YES" allows the image; "NO", empty answers, blocked
    responses and anything else reject it. Answers are never retried.
    """

    MODERATION_PROMPT = """You are a content safety classifier for a professional headshot service.

Look at the attached photo and answer whether it is acceptable input.

Acceptable (answer YES) only if ALL of these hold:
1. It is a real photograph showing at least one clearly visible human face
2. The person appears to be an adult
3. There is no nudity, sexual content, violence or gore
4. It is not a screenshot, document, meme, drawing or illustration

Respond with ONLY ONE WORD:
- "YES" if the photo is acceptable
- "NO" otherwise

Answer:"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-2.5-flash",
        enabled: bool = True,
        client: genai.Client | None = None,
    ):
        self.enabled = enabled
        self.model = model
        self._client = client
        if self._client is None and self.enabled:
            if not api_key:
                raise ConfigurationError(message="Moderation provider is not configured")
            self._client = genai.Client(api_key=api_key)

    @staticmethod
    def _is_allowed(answer: str | None) -> bool:
        """Normalise the model's answer; only a bare YES counts as allow."""
        if not answer:
            return False
        normalised = answer.strip().strip(".!\"'").upper()
        return normalised == "YES"

    async def check_image(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> None:
        """
        Classify the image once.

        Raises:
            ContentRejectedError: If the classifier does not clearly allow it
            ExternalServiceError: If the classification call itself fails
        """
        if not self.enabled:
            return

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    self.MODERATION_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    temperature=0,  # Deterministic results
                    max_output_tokens=5,  # Just need "YES" or "NO"
                ),
            )
        except Exception as e:
            logger.error(f"Moderation call failed: {e}")
            raise ExternalServiceError(
                message="Content moderation unavailable",
                details={"error": str(e)[:200]},
            )

        answer = getattr(response, "text", None)
        if not self._is_allowed(answer):
            logger.warning(f"Image rejected by moderation (answer={answer!r})")
            raise ContentRejectedError()


# Global singleton instance
_moderator: ContentModerator | None = None


def get_content_moderator() -> ContentModerator:
    """Get or create the global content moderator instance."""
    global _moderator
    if _moderator is None:
        from core.config import get_settings

        settings = get_settings()
        if not settings.moderation_enabled:
            logger.warning("Content moderation is disabled; all images will be allowed")
        _moderator = ContentModerator(
            api_key=settings.google_api_key,
            model=settings.moderation_model,
            enabled=settings.moderation_enabled,
        )
    return _moderator
