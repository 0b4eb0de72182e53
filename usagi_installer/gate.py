from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

AFFIRMATIVE = {"y", "yes"}


class ConfirmationGate:
    """Blocking operator checkpoint.

    confirm() returns True only for an explicit y/yes. Any other answer,
    end of input, or an elapsed timeout counts as a refusal.
    """

    def __init__(self, ask: Callable[[str], str] = input, *, timeout: Optional[float] = None) -> None:
        self._ask = ask
        self._timeout = timeout

    def confirm(self, prompt: str) -> bool:
        answer = self._read(f"{prompt} (y/n): ")
        accepted = answer is not None and answer.strip().lower() in AFFIRMATIVE
        logger.info("Gate %r -> %s", prompt, "accepted" if accepted else "declined")
        return accepted

    def _read(self, prompt: str) -> Optional[str]:
        if self._timeout is None:
            try:
                return self._ask(prompt)
            except EOFError:
                return None

        answer: List[Optional[str]] = [None]

        def worker() -> None:
            try:
                answer[0] = self._ask(prompt)
            except EOFError:
                answer[0] = None

        t = threading.Thread(target=worker, name="confirmation-gate", daemon=True)
        t.start()
        t.join(self._timeout)
        if t.is_alive():
            logger.warning("No answer within %ss; treating as declined", self._timeout)
            return None
        return answer[0]


class AssumeYesGate:
    """Unattended gate: accepts every prompt, but still records it."""

    def __init__(self) -> None:
        self.prompts: List[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        logger.warning("Auto-accepting: %s", prompt)
        return True
