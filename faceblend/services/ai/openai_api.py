"""
Helper for generating images with the OpenAI Images API.
"""

import logging

from openai import AsyncOpenAI, OpenAIError

from .prompt_builder import fold_negative_prompt

logger = logging.getLogger(__name__)

__all__ = ["OpenAIAPIError", "generate_image"]


class OpenAIAPIError(RuntimeError):
    """Raised when the OpenAI API cannot be contacted or returns an error."""


async def generate_image(
        prompt: str,
        api_key: str,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        negative_prompt: str | None = None,
        timeout: float = 120,
) -> str:
    """
    Generate one image and return its URL.

    Args:
        prompt: Text prompt for the image
        api_key: OpenAI API key
        model: Image model that returns hosted URLs
        size: Image size, e.g. "1024x1024"
        negative_prompt: Things to avoid; folded into the prompt text
        timeout: Request timeout in seconds

    Returns:
        URL of the generated image

    Raises:
        OpenAIAPIError: If API key is missing or API call fails
    """
    if not api_key:
        raise OpenAIAPIError("OPENAI_API_KEY environment variable must be set")

    try:
        client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        response = await client.images.generate(
            model=model,
            prompt=fold_negative_prompt(prompt, negative_prompt),
            size=size,
            n=1,
        )
    except OpenAIError as exc:
        raise OpenAIAPIError(f"OpenAI API error: {exc}") from exc

    if not response.data:
        raise OpenAIAPIError("OpenAI API returned no images")

    url = response.data[0].url
    if not url or not url.strip():
        logger.warning(f"OpenAI returned an image without a URL. Model: {model}")
        raise OpenAIAPIError("OpenAI API returned an image without a URL")

    return url.strip()
