"""Tests for operator confirmation gates."""

import threading

import pytest

from usagi_installer.gate import AssumeYesGate, ConfirmationGate


class TestConfirmationGate:
    """Tests for ConfirmationGate.confirm."""

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", " YES \n"])
    def test_affirmative(self, answer):
        assert ConfirmationGate(ask=lambda prompt: answer).confirm("Continue?")

    @pytest.mark.parametrize("answer", ["n", "no", "", "yep", "maybe"])
    def test_anything_else_declines(self, answer):
        assert not ConfirmationGate(ask=lambda prompt: answer).confirm("Continue?")

    def test_end_of_input_declines(self):
        def ask(prompt):
            raise EOFError

        assert not ConfirmationGate(ask=ask).confirm("Continue?")

    def test_prompt_shows_choices(self):
        seen = []

        ConfirmationGate(ask=lambda prompt: seen.append(prompt) or "y").confirm("Format now?")

        assert seen == ["Format now? (y/n): "]

    def test_timeout_declines(self):
        release = threading.Event()

        def ask(prompt):
            release.wait(5)
            return "y"

        try:
            assert not ConfirmationGate(ask=ask, timeout=0.05).confirm("Continue?")
        finally:
            release.set()

    def test_answer_within_timeout(self):
        assert ConfirmationGate(ask=lambda prompt: "y", timeout=5).confirm("Continue?")


class TestAssumeYesGate:
    def test_accepts_and_remembers_prompts(self):
        gate = AssumeYesGate()

        assert gate.confirm("one")
        assert gate.confirm("two")
        assert gate.prompts == ["one", "two"]
