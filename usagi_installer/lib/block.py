from __future__ import annotations

import logging
from typing import Callable

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)


def get_blkid_tag(
    dev: str,
    tag: str,
    *,
    runner: Callable[..., CmdResult] = run_cmd,
    dry_run: bool = False,
) -> str:
    """Return a blkid tag (UUID, PARTUUID, ...) for a block device."""

    r = runner(["blkid", "-s", tag, "-o", "value", dev], dry_run=dry_run)
    value = (r.stdout or "").strip()
    if not value:
        if dry_run:
            return f"<{tag.lower()}-of-{dev}>"
        raise RuntimeError(f"Unable to determine {tag} for {dev}")
    return value


def get_uuid(dev: str, **kwargs) -> str:
    return get_blkid_tag(dev, "UUID", **kwargs)


def get_partuuid(dev: str, **kwargs) -> str:
    return get_blkid_tag(dev, "PARTUUID", **kwargs)
