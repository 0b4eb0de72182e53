from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from .credentials import CredentialProvider
from .install_config import InstallConfig
from .lib.chroot import chroot_cmd
from .lib.command import CmdResult, run_cmd
from .lib.env import Environment
from .lib.storage import PartitionPlan
from .models import DeviceSpec, HardwareProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    """Everything a step may read. Fixed before the first stage runs."""

    cfg: InstallConfig
    env: Environment
    hardware: HardwareProfile
    device: DeviceSpec
    plan: PartitionPlan
    credentials: CredentialProvider
    runner: Callable[..., CmdResult] = field(default=run_cmd)

    @property
    def dry_run(self) -> bool:
        return self.cfg.dry_run

    @property
    def target_root(self) -> str:
        return self.cfg.target_root

    @property
    def esp_part(self) -> str:
        return self.device.partition(1)

    @property
    def swap_part(self) -> str:
        return self.device.partition(2)

    @property
    def crypt_part(self) -> str:
        return self.device.partition(3)

    def run(self, argv: Sequence[str], **kwargs) -> CmdResult:
        return self.runner(argv, dry_run=self.dry_run, **kwargs)

    def chroot(self, argv: Sequence[str], *, input_text: str | None = None) -> CmdResult:
        return chroot_cmd(self.target_root, argv, runner=self.runner, input_text=input_text, dry_run=self.dry_run)

    def target_path(self, rel: str) -> Path:
        return Path(self.target_root) / rel.lstrip("/")

    def write_file(self, rel: str, contents: str, *, append: bool = False) -> None:
        p = self.target_path(rel)
        if self.dry_run:
            logger.info("Would write %s", str(p))
            return
        p.parent.mkdir(parents=True, exist_ok=True)
        if append:
            with p.open("a", encoding="utf-8") as fh:
                fh.write(contents)
        else:
            p.write_text(contents, encoding="utf-8")
        logger.info("Wrote %s", str(p))

    def edit_file(self, rel: str, edit: Callable[[str], str]) -> None:
        """Rewrite a file that the base system installed."""

        p = self.target_path(rel)
        if self.dry_run:
            logger.info("Would edit %s", str(p))
            return
        p.write_text(edit(p.read_text(encoding="utf-8")), encoding="utf-8")
        logger.info("Edited %s", str(p))
