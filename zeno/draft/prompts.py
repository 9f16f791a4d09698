"""Draft generation prompt templates and response-length styles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Prompt-size bound for the message being answered
MAX_BODY_CHARS = 3000


class ResponseStyle(str, Enum):
    CONCISE = "concise"
    BALANCED = "balanced"
    DETAILED = "detailed"


@dataclass(frozen=True)
class StyleConfig:
    temperature: float
    length_instruction: str
    max_tokens: int


STYLE_CONFIGS = {
    ResponseStyle.CONCISE: StyleConfig(
        temperature=0.3,
        length_instruction=(
            "Keep your response SHORT and DIRECT - aim for 2-4 sentences maximum. "
            "Get straight to the point without filler or unnecessary pleasantries."
        ),
        max_tokens=300,
    ),
    ResponseStyle.BALANCED: StyleConfig(
        temperature=0.5,
        length_instruction=(
            "Write a natural-length response appropriate to the context. "
            "Be helpful but don't over-explain."
        ),
        max_tokens=600,
    ),
    ResponseStyle.DETAILED: StyleConfig(
        temperature=0.7,
        length_instruction=(
            "Provide a thorough, comprehensive response that fully addresses "
            "all aspects of the email."
        ),
        max_tokens=1000,
    ),
}


def style_from_temperature(temperature: float) -> ResponseStyle:
    """The user-facing "temperature" slider picks a length bucket."""
    if temperature <= 0.4:
        return ResponseStyle.CONCISE
    if temperature <= 0.6:
        return ResponseStyle.BALANCED
    return ResponseStyle.DETAILED


def build_draft_prompt(
    from_: str,
    subject: str,
    body: str,
    style: StyleConfig,
    writing_style: str = "",
    thread_context: str = "",
) -> str:
    style_instruction = (
        f"\n- IMPORTANT: Match this writing style: {writing_style}" if writing_style else ""
    )
    thread_section = (
        f"\n{thread_context}\n=== LATEST MESSAGE (reply to this) ===\n" if thread_context else ""
    )
    thread_instruction = (
        "\n- Consider the FULL conversation history above when crafting your response"
        if thread_context
        else ""
    )

    return f"""Write a professional email reply to this message.
{thread_section}
From: {from_}
Subject: {subject}
Body:
{(body or "")[:MAX_BODY_CHARS]}

Instructions:
- {style.length_instruction}
- Write a helpful, professional response
- Match the tone of the original email{style_instruction}{thread_instruction}
- Only write the email body text
- Do NOT include a subject line
- Do NOT include a greeting like "Dear..." (start with the content)
- Do NOT include a sign-off or signature (that will be added separately)
- Do NOT make up information you don't know - if you need info from the user, indicate that clearly

Write ONLY the email body text:"""


# Writing-style analysis over the user's own sent mail
STYLE_SAMPLE_MIN_CHARS = 50
STYLE_SAMPLE_MAX_CHARS = 1000
STYLE_SAMPLE_COUNT = 10


def build_style_samples(emails: list[tuple[str, str]]) -> list[str]:
    """Format ``(subject, body)`` pairs, skipping very short bodies."""
    samples = []
    for subject, body in emails:
        if not body or len(body) <= STYLE_SAMPLE_MIN_CHARS:
            continue
        index = len(samples) + 1
        samples.append(
            f"--- Email {index} ---\nSubject: {subject}\nBody:\n{body[:STYLE_SAMPLE_MAX_CHARS]}"
        )
        if len(samples) == STYLE_SAMPLE_COUNT:
            break
    return samples


def build_style_prompt(samples: list[str]) -> str:
    email_samples = "\n\n".join(samples)
    return f"""Analyze the writing style of these sent emails and create a concise writing style profile.

{email_samples}

Based on these emails, create a short writing style summary (3-5 sentences) that describes:
1. Tone (formal, casual, friendly, professional, etc.)
2. Typical greeting and sign-off patterns
3. Sentence structure preferences (short/long, simple/complex)
4. Any distinctive vocabulary or phrases
5. Overall communication style

Format your response as a single paragraph that could be used to instruct an AI to mimic this writing style. Start directly with the description, no preamble."""
