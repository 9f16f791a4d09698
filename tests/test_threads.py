"""Tests for thread signal detection and thread state analysis."""

from __future__ import annotations

import pytest

from zeno.classify.threads import ThreadState, analyze_thread_state, detect_thread_signals


class TestDetectThreadSignals:
    @pytest.mark.parametrize("prefix", ["Re:", "RE:", "Fwd:", "FW:", "Fw:", "re:", "fwd:"])
    def test_subject_prefix(self, prefix):
        signals = detect_thread_signals(f"{prefix} Project update", "Plain body")
        assert signals.is_thread is True
        assert "subject_prefix" in signals.signals
        assert signals.confidence == 0.25

    def test_prefix_without_space(self):
        signals = detect_thread_signals("Re:Project update", "")
        assert "subject_prefix" in signals.signals

    def test_prefix_must_be_at_start(self):
        signals = detect_thread_signals("About Re: your question", "Plain body")
        assert signals.is_thread is False
        assert signals.signals == []
        assert signals.confidence == 0.0

    def test_both_headers_only(self):
        signals = detect_thread_signals(
            "Project update",
            "Plain body",
            references="<abc@mail.example.com>",
            in_reply_to="<abc@mail.example.com>",
        )
        assert signals.is_thread is True
        assert set(signals.signals) == {"references_header", "in_reply_to_header"}
        assert signals.confidence == 0.70

    def test_blank_headers_ignored(self):
        signals = detect_thread_signals("Hello", "Body", references="  ", in_reply_to="")
        assert signals.is_thread is False

    def test_quoted_reply_example(self):
        body = (
            "Sounds good, see you then.\n\n"
            "> On Mon, Alice wrote: can we meet?\n"
            "> I have a few questions\n"
            "> about the roadmap\n"
            "> and the budget"
        )
        signals = detect_thread_signals("Re: Project update", body)
        assert signals.is_thread is True
        assert "subject_prefix" in signals.signals
        assert "quoted_content" in signals.signals
        assert "wrote_attribution" not in signals.signals
        assert signals.confidence == 0.40

    def test_single_quoted_line_not_enough(self):
        signals = detect_thread_signals("Hello", "> just one quoted line\nand text")
        assert "quoted_content" not in signals.signals

    def test_wrote_attribution(self):
        body = "Thanks!\n\nOn Tue, Jun 4, 2024 at 9:00 AM Bob Smith wrote:\nOriginal"
        signals = detect_thread_signals("Hello", body)
        assert signals.signals == ["wrote_attribution"]
        assert signals.confidence == 0.10

    def test_forwarded_banner(self):
        body = "FYI\n\n---------- Forwarded message ---------\nFrom: Bob <bob@x.com>\nDate: Mon"
        signals = detect_thread_signals("Fwd: Invoice", body)
        assert "forwarded_attribution" in signals.signals
        assert "forwarded_from_block" in signals.signals
        assert "subject_prefix" in signals.signals
        assert signals.confidence == 0.55

    def test_outlook_from_sent_block(self):
        body = "See below\n\nFrom: Carol <carol@x.com>\nSent: Monday, June 3, 2024\nTo: me"
        signals = detect_thread_signals("Hello", body)
        assert signals.signals == ["forwarded_from_block"]

    def test_confidence_capped_at_one(self):
        body = (
            "Reply\n"
            "On Mon, Jun 3, 2024 Alice Example wrote:\n"
            "> one\n> two\n"
            "---------- Forwarded message ---------\n"
            "From: Bob <bob@x.com>\nDate: Mon\n"
        )
        signals = detect_thread_signals("Re: x", body, references="<a>", in_reply_to="<a>")
        assert signals.confidence == 1.0
        assert len(signals.signals) == 7

    def test_none_inputs(self):
        signals = detect_thread_signals(None, None)
        assert signals.is_thread is False


class TestAnalyzeThreadState:
    def test_meeting_subject_wins_over_body(self):
        state = analyze_thread_state("Thanks!\nCan you send the file?", "Team meeting notes")
        assert state == ThreadState.CALENDAR_DISCUSSION

    def test_calendar_phrase_in_body(self):
        assert analyze_thread_state("Please accept the calendar invite", "Hi") == (
            ThreadState.CALENDAR_DISCUSSION
        )

    def test_rsvp_word(self):
        assert analyze_thread_state("Please RSVP by Friday", "Party") == (
            ThreadState.CALENDAR_DISCUSSION
        )

    def test_just_thanks(self):
        assert analyze_thread_state("Thanks!\n\n> earlier text", "Re: report") == (
            ThreadState.JUST_THANKS
        )

    def test_sounds_good(self):
        assert analyze_thread_state("Sounds good.", "Re: plan") == ThreadState.JUST_THANKS

    def test_thanks_with_more_on_first_line_is_not_thanks(self):
        state = analyze_thread_state("Thanks, can you also send the slides?", "Re: deck")
        assert state == ThreadState.AWAITING_YOUR_REPLY

    def test_they_will_follow_up(self):
        state = analyze_thread_state("Noted. I'll get back to you tomorrow.", "Re: quote")
        assert state == ThreadState.THEY_WILL_FOLLOW_UP

    def test_let_me_check(self):
        assert analyze_thread_state("Let me check with finance.", "Re: budget") == (
            ThreadState.THEY_WILL_FOLLOW_UP
        )

    def test_question_mark(self):
        assert analyze_thread_state("Is this still on track?", "Re: launch") == (
            ThreadState.AWAITING_YOUR_REPLY
        )

    def test_politeness_phrase(self):
        assert analyze_thread_state("Please review the draft", "Re: draft") == (
            ThreadState.AWAITING_YOUR_REPLY
        )

    def test_they_answered(self):
        assert analyze_thread_state("Here is the report you wanted.", "Re: report") == (
            ThreadState.THEY_ANSWERED
        )

    def test_unknown(self):
        assert analyze_thread_state("Noted.", "Re: status") == ThreadState.UNKNOWN
