"""
Text generation for mood analysis using Google Generative AI (Gemini).

The analyzer only needs a `generate(prompt) -> text` callable; this module
provides one backed by Gemini with a cascade of models: if a model errors
or returns an empty response, the next one is tried. When every model
fails, GeminiAPIError is raised and nothing gets persisted upstream.
"""

import os
import logging
from typing import List, Optional

import google.generativeai as genai

from mood_diary.core.errors import TextGenerationError

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

# Model preference order for cascade fallback
PREFERRED_MODELS: List[str] = [
    'gemini-2.5-flash',
    'gemini-2.0-flash',
    'gemini-2.0-flash-lite',
    'gemini-flash-latest',
]

MAX_OUTPUT_TOKENS = 300
REQUEST_TIMEOUT_SECONDS = 60


# ============================================================================
# EXCEPTIONS
# ============================================================================

class GeminiAPIError(TextGenerationError):
    """Raised when no Gemini model produced a usable response."""
    code = "GEMINI_API_ERROR"


# ============================================================================
# GENERATOR
# ============================================================================

class GeminiTextGenerator:
    """Callable prompt -> text generator with model cascade."""

    def __init__(self, api_key: Optional[str] = None,
                 models: Optional[List[str]] = None,
                 max_output_tokens: int = MAX_OUTPUT_TOKENS,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        """
        Initialize generator.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY env var)
            models: Model names to try, in order.
            max_output_tokens: Response length cap.
            timeout: Per-request timeout in seconds.

        Raises:
            ValueError: If no API key is available.
        """
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY environment variable not set")

        self.models = models or PREFERRED_MODELS
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self._configured = False

    def _configure(self) -> None:
        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True

    def __call__(self, prompt: str) -> str:
        return self.generate(prompt)

    def generate(self, prompt: str) -> str:
        """
        Sends the prompt to the first model that answers.

        Args:
            prompt: Full prompt text.

        Returns:
            Raw response text.

        Raises:
            GeminiAPIError: If every model failed or returned empty text.
        """
        self._configure()
        failures: List[str] = []

        for model_name in self.models:
            try:
                logger.info(f"Generating with model: {model_name}")
                model = genai.GenerativeModel(model_name)
                response = model.generate_content(
                    prompt,
                    generation_config={"max_output_tokens": self.max_output_tokens},
                    request_options={"timeout": self.timeout},
                )
                text = (response.text or "").strip()

                if text:
                    logger.info(f"[OK] Model {model_name} responded ({len(text)} chars)")
                    return text

                logger.warning(f"Model {model_name} returned an empty response")
                failures.append(f"{model_name}: empty response")

            except Exception as e:
                logger.warning(f"Model {model_name} failed: {e}")
                failures.append(f"{model_name}: {e}")
                continue

        logger.error("All models failed.")
        raise GeminiAPIError(
            "AI analysis failed: all models failed",
            details={"failures": failures},
        )
