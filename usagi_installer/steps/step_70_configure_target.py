from __future__ import annotations

import logging
import re
from typing import Callable, List, Tuple

from ..context import StepContext
from ..lib import target_config as tc
from ..lib.block import get_partuuid, get_uuid
from ..lib.confwriter import Artifact, render
from ..models import StageRecord

logger = logging.getLogger(__name__)


def write_artifact(ctx: StepContext, artifact: Artifact | None) -> None:
    if artifact is None:
        return
    ctx.write_file(artifact.path, render(artifact))


def set_password(ctx: StepContext, account: str, purpose: str) -> None:
    secret = ctx.credentials.secret(purpose)
    ctx.chroot(["chpasswd"], input_text=f"{account}:{secret}\n")


def configure_clock(ctx: StepContext) -> None:
    ctx.chroot(["ln", "-sf", f"/usr/share/zoneinfo/{ctx.cfg.timezone}", "/etc/localtime"])
    ctx.chroot(["hwclock", "--systohc"])


def configure_locale(ctx: StepContext) -> None:
    locale = ctx.cfg.locale
    charset = locale.split(".", 1)[1] if "." in locale else "UTF-8"
    ctx.write_file("/etc/locale.gen", f"{locale} {charset}\n", append=True)
    ctx.chroot(["locale-gen"])
    ctx.write_file("/etc/locale.conf", f"LANG={locale}\n")


def configure_keymap(ctx: StepContext) -> None:
    ctx.write_file("/etc/vconsole.conf", f"KEYMAP={ctx.cfg.keymap}\n")


def configure_hostname(ctx: StepContext) -> None:
    ctx.write_file("/etc/hostname", ctx.cfg.hostname + "\n")
    write_artifact(ctx, tc.hosts_file(ctx.cfg.hostname))


def configure_root_password(ctx: StepContext) -> None:
    set_password(ctx, "root", "root")


def configure_network(ctx: StepContext) -> None:
    write_artifact(ctx, tc.network_unit(ctx.hardware.network_medium))
    ctx.chroot(["ln", "-sf", "/run/systemd/resolve/stub-resolv.conf", "/etc/resolv.conf"])


def configure_bootloader(ctx: StepContext) -> None:
    ctx.chroot(["bootctl", "install"])
    write_artifact(ctx, tc.loader_conf())

    partuuid = get_partuuid(ctx.crypt_part, runner=ctx.runner, dry_run=ctx.dry_run)
    options = tc.kernel_options(
        ctx.hardware,
        crypt_partuuid=partuuid,
        mapper=ctx.cfg.mapper_name,
        root_dev=ctx.cfg.lv_path("root"),
    )
    write_artifact(ctx, tc.boot_entry(ctx.hardware, options=options))


def configure_environment(ctx: StepContext) -> None:
    write_artifact(ctx, tc.environment_file(ctx.hardware))


def configure_initramfs(ctx: StepContext) -> None:
    modules = " ".join(tc.INITRAMFS_MODULES.get(ctx.hardware.gpu_vendor, []))
    hooks = " ".join(tc.INITRAMFS_HOOKS)

    def edit(text: str) -> str:
        text = re.sub(r"(?m)^MODULES=\(.*\)$", f"MODULES=({modules})", text)
        return re.sub(r"(?m)^HOOKS=\(.*\)$", f"HOOKS=({hooks})", text)

    ctx.edit_file("/etc/mkinitcpio.conf", edit)
    ctx.chroot(["mkinitcpio", "-P"])


def configure_tuning(ctx: StepContext) -> None:
    write_artifact(ctx, tc.cpupower_conf())
    write_artifact(ctx, tc.sysctl_conf())
    write_artifact(ctx, tc.io_scheduler_rule())
    write_artifact(ctx, tc.thermal_tmpfiles(ctx.hardware))
    # Re-asserts the dirty write-back values independently of sysctl.d.
    write_artifact(ctx, tc.disk_performance_service())


def configure_services(ctx: StepContext) -> None:
    for unit in tc.services_for(ctx.hardware):
        ctx.chroot(["systemctl", "enable", unit])


def configure_package_manager(ctx: StepContext) -> None:
    write_artifact(ctx, tc.initramfs_hook(ctx.hardware))

    def pacman(text: str) -> str:
        text = re.sub(r"(?m)^#?ParallelDownloads\s*=\s*\d+", f"ParallelDownloads = {tc.PACMAN_PARALLEL_DOWNLOADS}", text)
        return re.sub(r"(?m)^#\[multilib\]\n#Include", "[multilib]\nInclude", text)

    def makepkg(text: str) -> str:
        text = re.sub(r'(?m)^#?MAKEFLAGS=".*"', 'MAKEFLAGS="-j$(nproc)"', text)
        return text.replace("COMPRESSXZ=(xz -c -z -)", "COMPRESSXZ=(xz -c -z - --threads=0)")

    ctx.edit_file("/etc/pacman.conf", pacman)
    ctx.edit_file("/etc/makepkg.conf", makepkg)


def configure_crypttab(ctx: StepContext) -> None:
    crypt_uuid = get_uuid(ctx.crypt_part, runner=ctx.runner, dry_run=ctx.dry_run)
    ctx.write_file("/etc/crypttab", tc.crypttab_line(ctx.cfg.mapper_name, crypt_uuid), append=True)


def configure_user(ctx: StepContext) -> None:
    user = ctx.cfg.username
    ctx.chroot(["useradd", "-m", "-G", "wheel,video,audio", "-s", "/bin/bash", user])
    set_password(ctx, user, f"user:{user}")
    ctx.write_file("/etc/sudoers.d/wheel", "%wheel ALL=(ALL) ALL\n")
    ctx.chroot(["chmod", "0440", "/etc/sudoers.d/wheel"])


TASKS: List[Tuple[str, Callable[[StepContext], None]]] = [
    ("clock", configure_clock),
    ("locale", configure_locale),
    ("keymap", configure_keymap),
    ("hostname", configure_hostname),
    ("root-password", configure_root_password),
    ("network", configure_network),
    ("bootloader", configure_bootloader),
    ("environment", configure_environment),
    ("initramfs", configure_initramfs),
    ("tuning", configure_tuning),
    ("services", configure_services),
    ("package-manager", configure_package_manager),
    ("crypttab", configure_crypttab),
    ("user", configure_user),
]


class ConfigureTargetStep:
    """Configure the installed system from inside the staged root.

    Runs without further confirmation. Writes files only, so nothing is
    added to the side-effect log.
    """

    step_id = "70_configure_target"
    name = "Configure"
    requires = ("Bootstrap",)

    def prompt(self, ctx: StepContext) -> str:
        return "Base system installed and fstab generated. Continue with system configuration?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        for task_id, task in TASKS:
            logger.info("Configuring %s", task_id)
            try:
                task(ctx)
            except Exception:
                logger.error("Configuration task %s failed", task_id)
                raise
