from __future__ import annotations

import logging

from ..context import StepContext
from ..models import StageRecord

logger = logging.getLogger(__name__)

LUKS_FORMAT_OPTS = [
    "--type", "luks2",
    "--cipher", "aes-xts-plain64",
    "--key-size", "512",
    "--hash", "sha512",
]


class EncryptStep:
    step_id = "20_encrypt"
    name = "Encrypt"
    requires = ("Partition",)

    def prompt(self, ctx: StepContext) -> str:
        return "Partitions created. Continue with encryption setup?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        part = ctx.crypt_part
        passphrase = ctx.credentials.secret("luks")

        # --batch-mode: the operator already confirmed at the gate.
        ctx.run(
            ["cryptsetup", "luksFormat", *LUKS_FORMAT_OPTS, "--batch-mode", "--key-file=-", part],
            input_text=passphrase,
        )
        record.record(f"luks:{part}")

        ctx.run(["cryptsetup", "open", "--key-file=-", part, ctx.cfg.mapper_name], input_text=passphrase)
        record.record(ctx.cfg.mapper_path)
        logger.info("Opened %s as %s", part, ctx.cfg.mapper_path)
