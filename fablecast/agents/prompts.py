"""
Prompt builders for story text, illustrations and topic suggestions.

Stories target young children (roughly 3-8) and are read aloud, so every
prompt asks for simple vocabulary and short sentences.
"""

from fablecast.pipeline.models import LengthClass

STYLE_LOCK = (
    "Children's storybook illustration, flat vector cartoon style with bold dark outlines, "
    "solid matte colors, bright and cheerful"
)

TOPIC_COUNT = 9


def build_title_prompt(protagonist: str, topic: str) -> str:
    return f"""Write a short, captivating title for a children's story.

Main character: {protagonist}
Topic: {topic}

Respond with ONLY the title on a single line. No quotes, no explanation."""


def build_plan_prompt(protagonist: str, topic: str, length_class: LengthClass, section_count: int) -> str:
    return f"""Create a simple story plan for a children's story.

Topic: "{topic}"
Main character: {protagonist}
Length: {length_class.value}

The plan must have exactly {section_count} simple scenes forming a beginning, middle and end.
Each scene is one or two sentences describing what happens.

Respond ONLY with a JSON object containing a "plan" key with an array of {section_count} strings.
Example: {{"plan": ["The hero finds a map...", "They set off across the hills..."]}}"""


def build_section_text_prompt(
    protagonist: str,
    topic: str,
    brief: str,
    index: int,
    total: int,
    prior_text: str,
) -> str:
    previous = prior_text.strip() or "(this is the first part of the story)"
    ending = (
        "This is the final part: bring the story to a warm, satisfying ending."
        if index == total - 1
        else "Leave the story open so the next part can continue it."
    )
    return f"""Continue the children's story based on this scene: "{brief}"

Story so far:
{previous}

Main character: {protagonist}
Topic: {topic}
This is part {index + 1} of {total}. {ending}

Write 2-4 simple, engaging sentences appropriate for a 3-8 year old.
Do not start with a label like "Scene 1:" or "Part 2." and do not repeat earlier text."""


def build_image_prompt(protagonist: str, scene: str, has_previous_image: bool = False) -> str:
    continuity = (
        " Keep the characters, palette and art style consistent with the input image."
        if has_previous_image
        else ""
    )
    return (
        f"{STYLE_LOCK}. Scene depicting: {scene}. Characters: {protagonist}. "
        "Widescreen 16:9, single frame, show the main character only once, "
        f"no text, letters or numbers in the image.{continuity}"
    )


def build_topic_prompt(age: int, gender: str) -> str:
    return f"""Suggest {TOPIC_COUNT} creative and fun story topic ideas suitable for a {age}-year-old {gender}.
Each suggestion should be a short phrase (1-6 words).
For each suggestion, provide the text and a string with 1-2 relevant emojis.

Return ONLY a single, valid JSON object with this structure:
{{
  "topics": [
    {{"text": "A talking squirrel's big secret", "emojis": "🐿️🤫"}},
    ...
  ]
}}
The "topics" array must contain exactly {TOPIC_COUNT} objects. No text outside the JSON."""
