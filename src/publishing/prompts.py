# src/publishing/prompts.py - v1
"""Prompt text used by the scheduled image job."""

IMAGE_PROMPT_TEMPLATE = """
Create a detailed, vivid, and engaging image description that would work well for an AI image generator.
Create a scene that is striking and appropriate for social media platforms.
Use descriptive language that creates a clear mental image with details about setting, mood, and composition.
The description should be 2-3 sentences long and focus on a single coherent scene.
"""

FALLBACK_IMAGE_PROMPT = (
    "A lone lighthouse on a rocky coast at dusk, backlit with golden light, "
    "waves breaking below. The composition has a cinematic quality with "
    "dramatic shadows and a sense of anticipation."
)

PROMPT_TEMPERATURE = 0.8
PROMPT_MAX_TOKENS = 200
