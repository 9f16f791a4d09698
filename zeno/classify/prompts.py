"""Classification prompts — single-shot and tiered."""

from __future__ import annotations

from zeno.categories import CategorySet
from zeno.classify.threads import ThreadSignals, analyze_thread_state
from zeno.context.sender import SenderContext, format_sender_context_for_prompt

# Prompt-size bound for the email body
MAX_BODY_CHARS = 2000

_OTHER_LINE = "- Use \"Other\" if email doesn't clearly fit any category"


def build_category_list(categories: CategorySet) -> str:
    """Numbered list of enabled categories in the set's display order."""
    return "\n".join(f"{c.id}. {c.prompt_context()}" for c in categories.enabled)


def build_simple_prompt(from_: str, subject: str, body: str, categories: CategorySet) -> str:
    """Plain category list; the model answers with the number only."""
    other_line = _OTHER_LINE if categories.has_other else ""
    return f"""Classify this email into exactly ONE category. Respond with ONLY the category number.

Categories:
{build_category_list(categories)}

IMPORTANT:
- Be strict about "Respond" - only genuine personal emails needing a reply
- Marketing emails often look personal (using names, company references) - check sender domain
- Cold sales outreach is Marketing/Spam, never Respond
- Automated notifications are never Respond
- If unsure, prefer a less important category over Respond
{other_line}

Email:
From: {from_}
Subject: {subject}
Body: {(body or "")[:MAX_BODY_CHARS]}

Category number (1-{categories.max_id}):"""


def build_thread_context(thread_signals: ThreadSignals, body: str, subject: str) -> str:
    if not thread_signals.is_thread:
        return ""
    thread_state = analyze_thread_state(body, subject)
    return f"""
THREAD CONTEXT (Tier 0 - Check First):
- This is a REPLY or FORWARDED email
- Thread signals detected: {", ".join(thread_signals.signals)}
- Thread confidence: {thread_signals.confidence * 100:.0f}%
- Thread state analysis: {thread_state.value}
- CRITICAL: Reply threads should NEVER be classified as Marketing/Spam
- Classify based on the conversation state, not promotional-sounding content
"""


def build_tiered_prompt(
    from_: str,
    subject: str,
    body: str,
    sender_context: SenderContext,
    thread_signals: ThreadSignals,
    categories: CategorySet,
) -> str:
    """Tiered prompt: thread context outranks every content heuristic."""
    body = body or ""
    other_line = _OTHER_LINE if categories.has_other else ""
    context_section = build_thread_context(thread_signals, body, subject)
    context_section += "\n" + format_sender_context_for_prompt(sender_context, categories)

    return f"""Classify this email using TIERED analysis. Respond in this exact format:
CATEGORY: [number]
CONFIDENCE: [0.0-1.0]
REASONING: [one sentence explanation]

ANALYSIS TIERS (check in order, stop at first match):

TIER 0 - THREAD CONTEXT (highest priority):
Is this part of an existing conversation thread?
- If YES and it's a reply thread: NEVER classify as Marketing/Spam
- Analyze based on conversation state (question asked, answer given, etc.)

TIER 1 - STRUCTURAL SIGNALS:
- Calendar invite attachment or meeting request → Calendar
- @mention or direct question to you → Respond
- Automated system notification (receipts, alerts) → Notification

TIER 2 - CONVERSATION STATE:
- Waiting on someone else → Pending
- Matter is resolved/complete → Complete
- Just a "thanks" or acknowledgment → Complete

TIER 3 - CONTENT ANALYSIS:
- Requires your reply/action → Respond
- FYI/informational → Update
- Thread mention/discussion → Comment

TIER 4 - CATCH-ALL:
- Marketing/Spam ONLY if ALL of these are true:
  1. NOT a reply thread (no Re:/Fwd: prefix, no quoted content)
  2. First contact OR bulk sender
  3. Has 2+ marketing signals: unsubscribe link, promotional language, mass-send format
{other_line}

Categories:
{build_category_list(categories)}
{context_section}

UNCERTAINTY HANDLING:
If confidence < 70% between two categories, prefer:
- Marketing vs Update → Known contact = Update, Unknown = Marketing
- Respond vs Update → If any question exists = Respond
- Notification vs Calendar → If specific date/time to attend = Calendar
- Pending vs Complete → If open loop remains = Pending

Default hierarchy when truly uncertain:
Respond > Calendar > Pending > Comment > Update > Notification > Complete > Marketing/Spam > Other
(Better to surface something that might need action than bury it in Marketing/Spam)

Email:
From: {from_}
Subject: {subject}
Body: {body[:MAX_BODY_CHARS]}

Respond with CATEGORY, CONFIDENCE, and REASONING:"""
