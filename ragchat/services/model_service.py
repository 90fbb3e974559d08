"""
Model service for completion model selection.
"""
from typing import Dict, List

from ..config import Settings


def get_available_models(settings: Settings) -> Dict[str, List[str]]:
    """
    Completion models grouped by capability.

    Example response:
    {
        "text": ["microsoft/phi-3-medium-128k-instruct"],
        "vision": ["google/gemini-flash-1.5"]
    }
    """
    return {
        "text": [settings.text_model],
        "vision": [settings.vision_model],
    }


def select_model(settings: Settings, has_images: bool) -> str:
    """Vision-capable model when the final turn carries images, the faster text model otherwise."""
    return settings.vision_model if has_images else settings.text_model
