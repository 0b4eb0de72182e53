"""
Pytest configuration and shared fixtures for usagi-installer tests.

Nothing here touches the real host: the environment, the command runner and
the credential source are all fakes.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from usagi_installer.context import StepContext
from usagi_installer.credentials import StaticCredentialProvider
from usagi_installer.install_config import InstallConfig
from usagi_installer.lib.command import CmdResult, CommandError
from usagi_installer.lib.storage import plan_layout
from usagi_installer.models import (
    CpuVendor,
    DeviceSpec,
    FirmwareMode,
    GpuVendor,
    HardwareProfile,
    NetworkMedium,
)
from usagi_installer.state_store import ensure_defaults

MIB = 1024 * 1024

INTEL_CPUINFO = "processor\t: 0\nvendor_id\t: GenuineIntel\nmodel name\t: Intel(R) Core(TM) i9-13900K\n"
AMD_CPUINFO = "processor\t: 0\nvendor_id\t: AuthenticAMD\nmodel name\t: AMD Ryzen 9 7950X\n"

LSPCI_NVIDIA = [
    "00:02.0 VGA compatible controller: Intel Corporation Raptor Lake-S GT1 [UHD Graphics 770]",
    "01:00.0 VGA compatible controller: NVIDIA Corporation AD102 [GeForce RTX 4090] (rev a1)",
    "01:00.1 Audio device: NVIDIA Corporation AD102 High Definition Audio Controller (rev a1)",
]


class FakeEnvironment:
    """In-memory Environment that records which queries were made."""

    def __init__(
        self,
        *,
        euid: int = 0,
        block_devices: Sequence[str] = ("/dev/nvme0n1", "/dev/mapper/cryptlvm"),
        efi: bool = True,
        cpuinfo: str = INTEL_CPUINFO,
        pci: Sequence[str] = tuple(LSPCI_NVIDIA),
        sizes_mib: Optional[Dict[str, int]] = None,
        mounts: Sequence[str] = ("proc", "/dev/sda1"),
        interfaces: Sequence[str] = ("lo", "enp5s0"),
        links: Optional[Dict[str, str]] = None,
    ):
        self.euid = euid
        self.block_devices = set(block_devices)
        self.efi = efi
        self.cpuinfo = cpuinfo
        self.pci = list(pci)
        self.sizes_mib = sizes_mib if sizes_mib is not None else {"/dev/nvme0n1": 500000}
        self.mounts = list(mounts)
        self.interfaces = list(interfaces)
        self.links = dict(links or {})
        self.calls: List[str] = []

    def effective_uid(self) -> int:
        self.calls.append("effective_uid")
        return self.euid

    def is_block_device(self, path: str) -> bool:
        self.calls.append("is_block_device")
        return path in self.block_devices

    def resolve_device(self, path: str) -> str:
        self.calls.append("resolve_device")
        return self.links.get(path, path)

    def has_efi_firmware(self) -> bool:
        self.calls.append("has_efi_firmware")
        return self.efi

    def cpu_info(self) -> str:
        self.calls.append("cpu_info")
        return self.cpuinfo

    def pci_devices(self) -> List[str]:
        self.calls.append("pci_devices")
        return list(self.pci)

    def device_size_bytes(self, path: str) -> int:
        self.calls.append("device_size_bytes")
        return self.sizes_mib[path] * MIB

    def mounted_sources(self) -> List[str]:
        self.calls.append("mounted_sources")
        return list(self.mounts)

    def network_interfaces(self) -> List[str]:
        self.calls.append("network_interfaces")
        return list(self.interfaces)


class RecordingRunner:
    """Stands in for run_cmd: records argv and stdin, returns canned output.

    outputs maps an argv prefix to stdout; fail_on maps an argv prefix to the
    exit status to fail with.
    """

    def __init__(
        self,
        outputs: Optional[Dict[Tuple[str, ...], str]] = None,
        fail_on: Optional[Dict[Tuple[str, ...], int]] = None,
    ):
        self.outputs = outputs or {}
        self.fail_on = fail_on or {}
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []

    @staticmethod
    def _match(argv: List[str], table: Dict[Tuple[str, ...], object]):
        for prefix, value in table.items():
            if tuple(argv[: len(prefix)]) == prefix:
                return value
        return None

    def __call__(self, argv, *, check=True, env=None, cwd=None, input_text=None, dry_run=False) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input_text)

        code = self._match(argv, self.fail_on)
        if code is not None:
            if check:
                raise CommandError(argv, code, "simulated failure")
            return CmdResult(argv=argv, returncode=code, stdout="", stderr="simulated failure")

        stdout = self._match(argv, self.outputs) or ""
        return CmdResult(argv=argv, returncode=0, stdout=stdout, stderr="")

    def commands(self, tool: str) -> List[List[str]]:
        return [c for c in self.calls if c and c[0] == tool]

    def chroot_commands(self) -> List[List[str]]:
        return [c[2:] for c in self.calls if c[:1] == ["arch-chroot"]]


DEFAULT_OUTPUTS = {
    ("blkid", "-s", "PARTUUID"): "1111-aaaa-partuuid\n",
    ("blkid", "-s", "UUID"): "2222-bbbb-uuid\n",
    ("genfstab",): "UUID=abc / ext4 rw,relatime 0 1\nUUID=def /boot vfat rw,relatime,fmask=0022 0 2\n",
}


@pytest.fixture
def fake_env() -> FakeEnvironment:
    return FakeEnvironment()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner(outputs=dict(DEFAULT_OUTPUTS))


@pytest.fixture
def credentials() -> StaticCredentialProvider:
    return StaticCredentialProvider({"luks": "disk-secret", "root": "root-secret", "user:senpai": "user-secret"})


@pytest.fixture
def hardware() -> HardwareProfile:
    return HardwareProfile(
        cpu_vendor=CpuVendor.INTEL,
        gpu_vendor=GpuVendor.NVIDIA,
        firmware_mode=FirmwareMode.UEFI,
        network_medium=NetworkMedium.WIRED,
    )


@pytest.fixture
def device() -> DeviceSpec:
    return DeviceSpec(path="/dev/nvme0n1", total_capacity_mib=500000)


@pytest.fixture
def target_root(tmp_path) -> Path:
    """A staging root pre-seeded with the files the base system would install."""
    root = tmp_path / "mnt"
    etc = root / "etc"
    etc.mkdir(parents=True)
    (etc / "mkinitcpio.conf").write_text(
        "# vim:set ft=sh\n"
        "MODULES=()\n"
        "BINARIES=()\n"
        "HOOKS=(base udev autodetect modconf block filesystems keyboard fsck)\n",
        encoding="utf-8",
    )
    (etc / "pacman.conf").write_text(
        "[options]\n"
        "#ParallelDownloads = 5\n"
        "\n"
        "[core]\n"
        "Include = /etc/pacman.d/mirrorlist\n"
        "\n"
        "#[multilib]\n"
        "#Include = /etc/pacman.d/mirrorlist\n",
        encoding="utf-8",
    )
    (etc / "makepkg.conf").write_text(
        '#MAKEFLAGS="-j2"\n'
        "COMPRESSXZ=(xz -c -z -)\n",
        encoding="utf-8",
    )
    (etc / "locale.gen").write_text("#en_US.UTF-8 UTF-8\n", encoding="utf-8")
    return root


@pytest.fixture
def config(target_root) -> InstallConfig:
    raw = ensure_defaults({})["config"]
    raw["target_root"] = str(target_root)
    return InstallConfig(raw=raw)


@pytest.fixture
def ctx(config, fake_env, hardware, device, credentials, runner) -> StepContext:
    return StepContext(
        cfg=config,
        env=fake_env,
        hardware=hardware,
        device=device,
        plan=plan_layout(device.total_capacity_mib),
        credentials=credentials,
        runner=runner,
    )
