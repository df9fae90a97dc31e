"""External image synthesis providers."""
from faceblend.services.ai.image_service import ImageGenerationService, ImageServiceError
from faceblend.services.ai.prompt_builder import NEGATIVE_PROMPT, build_fusion_prompt

__all__ = ["ImageGenerationService", "ImageServiceError", "NEGATIVE_PROMPT", "build_fusion_prompt"]
