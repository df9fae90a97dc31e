"""
Image generation service for fused daily portraits.

Wraps the configured synthesis provider (Replicate or OpenAI) behind two
calls: resolving a model version identifier and generating one image. Both
may be slow and cost money; callers are expected to gate them.
"""

import logging

from faceblend.config import Settings, get_settings
from faceblend.services.ai.openai_api import OpenAIAPIError, generate_image as openai_generate_image
from faceblend.services.ai.replicate_api import ReplicateAPIError, ReplicateClient

logger = logging.getLogger(__name__)


class ImageServiceError(RuntimeError):
    """Raised when image generation fails or no provider is usable."""


class ImageGenerationService:
    """
    Service for generating fused portraits with one of several providers.

    The configured provider is used when its credentials are present;
    otherwise the other provider is tried, mirroring how AI providers are
    picked elsewhere.
    """

    def __init__(self, settings: Settings | None = None, replicate_client: ReplicateClient | None = None):
        self.settings = settings or get_settings()
        self.provider = self._determine_provider()
        self._replicate = replicate_client
        if self.provider == "replicate" and self._replicate is None:
            self._replicate = ReplicateClient(
                api_token=self.settings.replicate_api_token,
                base_url=self.settings.replicate_base_url,
                poll_interval=self.settings.replicate_poll_interval_seconds,
            )

    def _determine_provider(self) -> str | None:
        """
        Determine which image provider to use based on configuration and API keys.

        Returns:
            Provider name: "replicate", "openai", or None when nothing is configured
        """
        if self.settings.image_provider == "replicate" and self.settings.replicate_api_token:
            logger.debug("Using Replicate as image provider")
            return "replicate"
        elif self.settings.image_provider == "openai" and self.settings.openai_api_key:
            logger.debug("Using OpenAI as image provider")
            return "openai"

        # Fallback logic
        if self.settings.replicate_api_token:
            logger.warning(f"Configured provider '{self.settings.image_provider}' not available, falling back to Replicate")
            return "replicate"
        elif self.settings.openai_api_key:
            logger.warning(f"Configured provider '{self.settings.image_provider}' not available, falling back to OpenAI")
            return "openai"

        logger.error("No image provider API keys found (REPLICATE_API_TOKEN or OPENAI_API_KEY)")
        return None

    def _require_provider(self) -> str:
        if self.provider is None:
            raise ImageServiceError("No image provider configured - set REPLICATE_API_TOKEN or OPENAI_API_KEY")
        return self.provider

    async def resolve_model_version(self) -> str:
        """Return the identifier of the model version that will generate today's image."""
        provider = self._require_provider()
        if provider == "openai":
            return self.settings.openai_image_model

        logger.info(f"Fetching latest model version of {self.settings.replicate_model} from Replicate...")
        try:
            return await self._replicate.get_latest_version(self.settings.replicate_model)
        except ReplicateAPIError as exc:
            raise ImageServiceError(str(exc)) from exc

    async def generate(self, model_version: str, prompt: str, negative_prompt: str | None = None) -> str:
        """
        Generate one image and return its reference.

        Raises:
            ImageServiceError: If the provider fails or returns no output
        """
        provider = self._require_provider()
        logger.info(f"Sending prompt to image provider {provider} ({model_version})")
        try:
            if provider == "openai":
                return await openai_generate_image(
                    prompt,
                    api_key=self.settings.openai_api_key,
                    model=model_version,
                    size=self.settings.openai_image_size,
                    negative_prompt=negative_prompt,
                    timeout=self.settings.generation_timeout_seconds,
                )
            model_input = {"prompt": prompt}
            if negative_prompt:
                model_input["negative_prompt"] = negative_prompt
            return await self._replicate.run_prediction(model_version, model_input)
        except (ReplicateAPIError, OpenAIAPIError) as exc:
            raise ImageServiceError(str(exc)) from exc

    async def close(self) -> None:
        if self._replicate is not None:
            await self._replicate.close()
