"""
Prompt construction for fused portrait generation.

The prompt only depends on the two answer names, so every attempt for a day
asks the provider for the same picture.
"""

NEGATIVE_PROMPT = "cartoon, drawing, anime, ugly, disfigured, cropped head"


def build_fusion_prompt(first_name: str, second_name: str) -> str:
    """
    Build the text prompt for a portrait blending two people.

    Args:
        first_name: Display name of the first answer identity
        second_name: Display name of the second answer identity

    Returns:
        Prompt text for the image provider
    """
    return (
        "photorealistic, studio portrait of a single person who is a perfect genetic blend of "
        f"{first_name} and {second_name}, 4k, high detail"
    )


def fold_negative_prompt(prompt: str, negative_prompt: str | None) -> str:
    """Append the negative prompt for providers without a dedicated field."""
    if not negative_prompt:
        return prompt
    return f"{prompt}. Avoid: {negative_prompt}"
