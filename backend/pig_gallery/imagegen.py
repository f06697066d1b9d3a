"""Proxy to Gemini for turning a drawing (or a prompt) into a new image."""

import base64
import re
from typing import Optional, Tuple

import structlog
from google import genai
from google.genai import types

from .errors import InvalidImageFormat, NotConfigured, UpstreamError

logger = structlog.get_logger()

DATA_URI_PREFIX = re.compile(r"^data:image/\w+;base64,")
STYLE_SUFFIX = ". Keep the same minimal line drawing style."


class ImageGenerator:
    def __init__(self, api_key: Optional[str], model: str):
        self.api_key = api_key
        self.model = model
        self._client = None

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise NotConfigured("GEMINI_API_KEY is not configured on this server")

    @property
    def client(self):
        self.ensure_configured()
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def build_contents(self, prompt: str, base_image: Optional[str] = None) -> list:
        if not base_image:
            return [prompt]
        try:
            data = base64.b64decode(DATA_URI_PREFIX.sub("", base_image), validate=True)
        except ValueError as e:
            raise InvalidImageFormat() from e
        return [
            types.Part.from_bytes(data=data, mime_type="image/png"),
            f"{prompt}{STYLE_SUFFIX}",
        ]

    def generate(self, prompt: str, base_image: Optional[str] = None) -> Tuple[str, Optional[str]]:
        """Return ``(message, image)`` where image is base64 PNG data or None."""
        client = self.client
        contents = self.build_contents(prompt, base_image)
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
            )
        except Exception as e:
            logger.error("image_generation_failed", model=self.model, error=str(e))
            raise UpstreamError("Image generation failed") from e

        message = ""
        image = None
        candidates = response.candidates or []
        if candidates and candidates[0].content and candidates[0].content.parts:
            for part in candidates[0].content.parts:
                if part.text:
                    message = part.text
                elif part.inline_data and part.inline_data.data:
                    image = base64.b64encode(part.inline_data.data).decode("ascii")
        return message, image
