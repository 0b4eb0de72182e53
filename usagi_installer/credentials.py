"""Secrets the run needs: disk passphrase and account passwords.

Purposes used by the steps:
- "luks": passphrase for the encrypted volume
- "root": administrator password on the target
- "user:<name>": password for the unprivileged account
"""

from __future__ import annotations

import getpass
import logging
from typing import Callable, Mapping, Protocol

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    def secret(self, purpose: str) -> str:
        ...


class PromptCredentialProvider:
    """Ask the operator on the terminal, twice, until both entries match."""

    def __init__(self, prompt: Callable[[str], str] = getpass.getpass, *, attempts: int = 3) -> None:
        self._prompt = prompt
        self._attempts = attempts

    def secret(self, purpose: str) -> str:
        for _ in range(self._attempts):
            first = self._prompt(f"Enter secret for {purpose}: ")
            second = self._prompt(f"Repeat secret for {purpose}: ")
            if not first:
                logger.warning("Empty secret for %s; try again", purpose)
                continue
            if first != second:
                logger.warning("Secrets for %s did not match; try again", purpose)
                continue
            return first
        raise RuntimeError(f"No usable secret entered for {purpose}")


class StaticCredentialProvider:
    """Fixed secrets, for headless runs and tests."""

    def __init__(self, secrets: Mapping[str, str], *, default: str | None = None) -> None:
        self._secrets = dict(secrets)
        self._default = default

    def secret(self, purpose: str) -> str:
        value = self._secrets.get(purpose, self._default)
        if value is None:
            raise KeyError(f"No secret configured for {purpose}")
        return value
