"""Package sets and configuration artifacts for the installed system.

Everything hardware-dependent is a lookup keyed by the detected CPU/GPU
vendor or network medium. Tunables are static data.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from ..models import CpuVendor, GpuVendor, HardwareProfile, NetworkMedium
from .confwriter import Artifact, Entry, Section, kv

BASE_PACKAGES = ["base", "base-devel", "linux", "linux-headers", "linux-firmware", "lvm2"]

MICROCODE: Dict[CpuVendor, str] = {
    CpuVendor.INTEL: "intel-ucode",
    CpuVendor.AMD: "amd-ucode",
}

GPU_PACKAGES: Dict[GpuVendor, List[str]] = {
    GpuVendor.NVIDIA: ["nvidia", "nvidia-utils"],
    GpuVendor.AMD: ["mesa", "vulkan-radeon"],
    GpuVendor.INTEL: ["mesa", "vulkan-intel", "intel-media-driver"],
    GpuVendor.NONE: [],
}

NETWORK_PACKAGES: Dict[NetworkMedium, List[str]] = {
    NetworkMedium.WIRELESS: ["iwd"],
}

FSTAB_SSD_OPTIONS = "noatime,discard=async,commit=60,lazytime,errors=remount-ro"

# --- init ramdisk --------------------------------------------------------

INITRAMFS_MODULES: Dict[GpuVendor, List[str]] = {
    GpuVendor.NVIDIA: ["nvidia", "nvidia_modeset", "nvidia_uvm", "nvidia_drm"],
    GpuVendor.AMD: ["amdgpu"],
    GpuVendor.INTEL: ["i915"],
    GpuVendor.NONE: [],
}

INITRAMFS_HOOKS = ["base", "udev", "autodetect", "modconf", "block", "encrypt", "lvm2", "filesystems", "keyboard", "fsck"]

# --- kernel command line -------------------------------------------------

KERNEL_PARAMS = ["quiet", "rw", "nmi_watchdog=0", "audit=0", "nowatchdog", "pcie_aspm=off"]

CPU_KERNEL_PARAMS: Dict[CpuVendor, List[str]] = {
    CpuVendor.INTEL: ["intel_pstate=active", "intel_iommu=on", "iommu=pt"],
    CpuVendor.AMD: ["amd_pstate=active", "amd_iommu=on", "iommu=pt"],
}

GPU_KERNEL_PARAMS: Dict[GpuVendor, List[str]] = {
    GpuVendor.NVIDIA: [
        "nvidia-drm.modeset=1",
        "nouveau.modeset=0",
        "nvidia.NVreg_PreserveVideoMemoryAllocations=1",
        "nvidia-drm.fbdev=1",
    ],
}

# --- services ------------------------------------------------------------

NETWORK_SERVICES: Dict[NetworkMedium, List[str]] = {
    NetworkMedium.WIRED: ["systemd-networkd", "systemd-resolved"],
    NetworkMedium.WIRELESS: ["systemd-networkd", "systemd-resolved", "iwd"],
    NetworkMedium.UNKNOWN: ["systemd-networkd", "systemd-resolved"],
}

GPU_SERVICES: Dict[GpuVendor, List[str]] = {
    GpuVendor.NVIDIA: ["nvidia-persistenced.service"],
}

BASE_SERVICES = ["cpupower.service", "disk-performance.service"]

# Package whose updates must rebuild the initramfs (out-of-tree modules).
GPU_HOOK_PACKAGE: Dict[GpuVendor, str] = {
    GpuVendor.NVIDIA: "nvidia",
}

# --- tunables ------------------------------------------------------------

DIRTY_WRITEBACK: List[Entry] = [
    ("vm.dirty_writeback_centisecs", "1500"),
    ("vm.dirty_ratio", "10"),
    ("vm.dirty_background_ratio", "5"),
]

SYSCTL_TUNING: List[Section] = [
    Section(
        "I/O optimizations",
        [
            ("vm.swappiness", "1"),
            ("vm.vfs_cache_pressure", "50"),
            *DIRTY_WRITEBACK,
            ("vm.dirty_expire_centisecs", "3000"),
        ],
    ),
    Section(
        "Network optimizations",
        [
            ("net.core.netdev_max_backlog", "16384"),
            ("net.core.somaxconn", "8192"),
            ("net.core.rmem_default", "1048576"),
            ("net.core.rmem_max", "16777216"),
            ("net.core.wmem_default", "1048576"),
            ("net.core.wmem_max", "16777216"),
            ("net.ipv4.tcp_fastopen", "3"),
            ("net.ipv4.tcp_max_syn_backlog", "8192"),
            ("net.ipv4.tcp_max_tw_buckets", "2000000"),
            ("net.ipv4.tcp_tw_reuse", "1"),
            ("net.ipv4.tcp_fin_timeout", "10"),
            ("net.ipv4.tcp_slow_start_after_idle", "0"),
        ],
    ),
    Section(
        "File system optimizations",
        [
            ("fs.inotify.max_user_watches", "524288"),
            ("fs.file-max", "2097152"),
        ],
    ),
    Section(
        "CPU and process optimizations",
        [
            ("kernel.nmi_watchdog", "0"),
            ("kernel.sched_autogroup_enabled", "0"),
        ],
    ),
]

# kernel name pattern -> scheduler
IO_SCHEDULERS: List[Entry] = [
    ("nvme[0-9]*", "none"),
]

CPUPOWER: List[Entry] = [
    ("governor", "'performance'"),
    ("min_freq", '"default"'),
    ("max_freq", '"default"'),
]

SESSION_ENVIRONMENT: List[Entry] = [
    ("XDG_SESSION_TYPE", "wayland"),
    ("EDITOR", "nvim"),
    ("VISUAL", "nvim"),
]

GPU_ENVIRONMENT: Dict[GpuVendor, List[Entry]] = {
    GpuVendor.NVIDIA: [
        ("LIBVA_DRIVER_NAME", "nvidia"),
        ("GBM_BACKEND", "nvidia-drm"),
        ("__GLX_VENDOR_LIBRARY_NAME", "nvidia"),
        ("WLR_NO_HARDWARE_CURSORS", "1"),
    ],
    GpuVendor.AMD: [("LIBVA_DRIVER_NAME", "radeonsi")],
    GpuVendor.INTEL: [("LIBVA_DRIVER_NAME", "iHD")],
}

PACMAN_PARALLEL_DOWNLOADS = 15


def packages_for(hw: HardwareProfile, extra: Sequence[str] = ()) -> List[str]:
    pkgs = list(BASE_PACKAGES)
    if hw.cpu_vendor in MICROCODE:
        pkgs.append(MICROCODE[hw.cpu_vendor])
    pkgs += GPU_PACKAGES.get(hw.gpu_vendor, [])
    pkgs += NETWORK_PACKAGES.get(hw.network_medium, [])
    for p in extra:
        if p not in pkgs:
            pkgs.append(p)
    return pkgs


def services_for(hw: HardwareProfile) -> List[str]:
    return [
        *NETWORK_SERVICES[hw.network_medium],
        *GPU_SERVICES.get(hw.gpu_vendor, []),
        *BASE_SERVICES,
    ]


def kernel_options(hw: HardwareProfile, *, crypt_partuuid: str, mapper: str, root_dev: str) -> str:
    params = [
        f"cryptdevice=PARTUUID={crypt_partuuid}:{mapper}:allow-discards",
        f"root={root_dev}",
        *KERNEL_PARAMS,
        *CPU_KERNEL_PARAMS.get(hw.cpu_vendor, []),
        *GPU_KERNEL_PARAMS.get(hw.gpu_vendor, []),
    ]
    return " ".join(params)


# --- artifacts -----------------------------------------------------------


def network_unit(medium: NetworkMedium) -> Artifact:
    if medium == NetworkMedium.WIRELESS:
        return Artifact(
            path="/etc/systemd/network/25-wireless.network",
            style="ini",
            sections=[
                Section("Match", [("Name", "wl*")]),
                Section("Network", [("DHCP", "yes"), ("IPv6PrivacyExtensions", "true"), ("IgnoreCarrierLoss", "3s")]),
                Section("DHCPv4", [("RouteMetric", "20"), ("UseDNS", "no")]),
            ],
        )
    return Artifact(
        path="/etc/systemd/network/20-wired.network",
        style="ini",
        sections=[
            Section("Match", [("Name", "en*")]),
            Section("Network", [("DHCP", "yes"), ("IPv6PrivacyExtensions", "true")]),
            Section("DHCPv4", [("RouteMetric", "10"), ("UseDNS", "no")]),
        ],
    )


def hosts_file(hostname: str) -> Artifact:
    return kv(
        "/etc/hosts",
        [
            ("127.0.0.1", "localhost"),
            ("::1", "localhost"),
            ("127.0.1.1", f"{hostname}.localdomain\t{hostname}"),
        ],
        separator="\t",
    )


def loader_conf() -> Artifact:
    return kv("/boot/loader/loader.conf", [("default", "arch"), ("timeout", "3"), ("editor", "0")], separator=" ")


def boot_entry(hw: HardwareProfile, *, options: str) -> Artifact:
    entries: List[Entry] = [("title", "Arch Linux"), ("linux", "/vmlinuz-linux")]
    if hw.cpu_vendor in MICROCODE:
        entries.append(("initrd", f"/{MICROCODE[hw.cpu_vendor]}.img"))
    entries += [("initrd", "/initramfs-linux.img"), ("options", options)]
    return kv("/boot/loader/entries/arch.conf", entries, separator=" ")


def environment_file(hw: HardwareProfile) -> Artifact:
    return kv("/etc/environment", [*GPU_ENVIRONMENT.get(hw.gpu_vendor, []), *SESSION_ENVIRONMENT])


def cpupower_conf() -> Artifact:
    return kv("/etc/default/cpupower", CPUPOWER)


def sysctl_conf() -> Artifact:
    return Artifact(path="/etc/sysctl.d/99-desktop-performance.conf", sections=SYSCTL_TUNING, separator=" = ")


def io_scheduler_rule() -> Artifact:
    rules: List[Entry] = [
        (f'ACTION=="add|change", KERNEL=="{pattern}", ATTR{{queue/scheduler}}="{scheduler}"', None)
        for pattern, scheduler in IO_SCHEDULERS
    ]
    return kv("/etc/udev/rules.d/60-scheduler.rules", rules, header="I/O scheduler per device class")


def thermal_tmpfiles(hw: HardwareProfile) -> Artifact | None:
    if hw.cpu_vendor != CpuVendor.INTEL:
        return None
    return kv(
        "/etc/tmpfiles.d/thermal-performance.conf",
        [("w /sys/devices/system/cpu/intel_pstate/no_turbo - - - - 0", None)],
        header="Keep Intel turbo boost enabled",
    )


def disk_performance_service() -> Artifact:
    """One-shot unit re-asserting the dirty write-back values at boot."""

    exec_lines: List[Entry] = [
        ("ExecStart", f"/usr/bin/sysctl -w {key}={value}") for key, value in DIRTY_WRITEBACK
    ]
    return Artifact(
        path="/etc/systemd/system/disk-performance.service",
        style="ini",
        sections=[
            Section("Unit", [("Description", "Disk Performance Settings"), ("After", "multi-user.target")]),
            Section("Service", [("Type", "oneshot"), *exec_lines, ("RemainAfterExit", "yes")]),
            Section("Install", [("WantedBy", "multi-user.target")]),
        ],
    )


def initramfs_hook(hw: HardwareProfile) -> Artifact | None:
    pkg = GPU_HOOK_PACKAGE.get(hw.gpu_vendor)
    if pkg is None:
        return None
    return Artifact(
        path=f"/etc/pacman.d/hooks/{pkg}.hook",
        style="ini",
        sections=[
            Section(
                "Trigger",
                [
                    ("Operation", "Install"),
                    ("Operation", "Upgrade"),
                    ("Operation", "Remove"),
                    ("Type", "Package"),
                    ("Target", pkg),
                    ("Target", "linux"),
                ],
            ),
            Section(
                "Action",
                [
                    ("Description", f"Update {pkg} module in initcpio"),
                    ("Depends", "mkinitcpio"),
                    ("When", "PostTransaction"),
                    ("NeedsTargets", None),
                    (
                        "Exec",
                        "/bin/sh -c 'while read -r trg; do case $trg in linux) exit 0; esac; done; /usr/bin/mkinitcpio -P'",
                    ),
                ],
            ),
        ],
    )


def crypttab_line(mapper: str, crypt_uuid: str) -> str:
    return f"{mapper} UUID={crypt_uuid} none luks,discard\n"
