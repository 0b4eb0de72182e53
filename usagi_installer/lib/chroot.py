from __future__ import annotations

import logging
from typing import Callable, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

Runner = Callable[..., CmdResult]


def chroot_cmd(
    target_root: str,
    argv: Sequence[str],
    *,
    runner: Runner = run_cmd,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command inside target root.

    arch-chroot sets up /dev, /proc, /sys and resolv.conf itself, so no
    separate bind-mount bookkeeping is needed.
    """

    return runner(["arch-chroot", target_root, *argv], input_text=input_text, dry_run=dry_run)
