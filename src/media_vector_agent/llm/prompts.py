"""
Промпты для vision- и текстовой модели.
"""

from __future__ import annotations

from media_vector_agent.domain.enums import MediaKind

IMAGE_PROMPT = (
    "Tell me what's happening in this image and figure out the context in natural language, "
    "always respond using the markdown syntax"
)

VIDEO_PROMPT = (
    "Tell me what's happening in this video and figure out the context in natural language, "
    "always respond using the markdown syntax"
)

SEQUENCE_PROMPT = (
    "These images form one sequence in chronological order. Describe what happens across "
    "the whole sequence as a single coherent story: the setting, the people or objects, "
    "and how the situation changes from the first image to the last. "
    "Always respond using the markdown syntax"
)

CHUNK_PROMPT = (
    "These images are part {part} of {total} of one longer sequence, in chronological order. "
    "Describe what happens in this part as a continuous narrative and mention details that "
    "may connect it to the previous and the next parts. "
    "Always respond using the markdown syntax"
)

SYNTHESIS_PROMPT = (
    "Below are descriptions of consecutive parts of one sequence of images, in order. "
    "Merge them into a single coherent narrative of the whole sequence. Remove repetition, "
    "keep the chronological order and the important details. "
    "Always respond using the markdown syntax"
)


def media_prompt(kind: MediaKind) -> str:
    return VIDEO_PROMPT if kind == MediaKind.video else IMAGE_PROMPT


def chunk_prompt(part: int, total: int) -> str:
    """part считается с 1."""
    return CHUNK_PROMPT.format(part=part, total=total)


def synthesis_prompt(chunk_texts: list[str]) -> str:
    total = len(chunk_texts)
    parts = [f"## Part {i} of {total}\n\n{text.strip()}" for i, text in enumerate(chunk_texts, 1)]
    return SYNTHESIS_PROMPT + "\n\n" + "\n\n".join(parts)
