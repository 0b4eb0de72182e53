"""Tests for target-system configuration."""

import dataclasses

import pytest

from usagi_installer.lib.command import CommandError
from usagi_installer.models import GpuVendor, NetworkMedium, StageRecord
from usagi_installer.steps import ConfigureTargetStep
from usagi_installer.steps.step_70_configure_target import TASKS


@pytest.fixture
def configured(ctx, runner, target_root):
    record = StageRecord(name="Configure")
    ConfigureTargetStep().run(ctx, record)
    return record


def read(root, rel):
    return (root / rel).read_text(encoding="utf-8")


class TestConfigureTarget:
    def test_no_side_effects_tracked(self, configured):
        assert configured.side_effects == []

    def test_basic_identity_files(self, configured, target_root):
        assert read(target_root, "etc/hostname") == "usagi\n"
        assert "127.0.1.1\tusagi.localdomain\tusagi" in read(target_root, "etc/hosts")
        assert read(target_root, "etc/locale.conf") == "LANG=en_GB.UTF-8\n"
        assert read(target_root, "etc/locale.gen").endswith("en_GB.UTF-8 UTF-8\n")
        assert read(target_root, "etc/vconsole.conf") == "KEYMAP=us\n"

    def test_commands_run_inside_target(self, configured, runner, target_root):
        chrooted = runner.chroot_commands()

        assert ["ln", "-sf", "/usr/share/zoneinfo/Europe/London", "/etc/localtime"] in chrooted
        assert ["bootctl", "install"] in chrooted
        assert ["mkinitcpio", "-P"] in chrooted
        assert all(c[1] == str(target_root) for c in runner.calls if c[0] == "arch-chroot")

    def test_passwords_come_from_credentials(self, configured, runner):
        assert "root:root-secret\n" in runner.inputs
        assert "senpai:user-secret\n" in runner.inputs

    def test_boot_entry_embeds_partuuid(self, configured, target_root):
        entry = read(target_root, "boot/loader/entries/arch.conf")

        assert "initrd /intel-ucode.img" in entry
        assert "cryptdevice=PARTUUID=1111-aaaa-partuuid:cryptlvm:allow-discards root=/dev/vg0/root" in entry
        assert "nvidia-drm.modeset=1" in entry
        assert "intel_iommu=on" in entry
        assert read(target_root, "boot/loader/loader.conf") == "default arch\ntimeout 3\neditor 0\n"

    def test_wired_network_unit(self, configured, target_root):
        unit = read(target_root, "etc/systemd/network/20-wired.network")

        assert unit.startswith("[Match]\nName=en*\n")
        assert "[DHCPv4]\nRouteMetric=10\nUseDNS=no\n" in unit

    def test_initramfs_config(self, configured, target_root):
        conf = read(target_root, "etc/mkinitcpio.conf")

        assert "MODULES=(nvidia nvidia_modeset nvidia_uvm nvidia_drm)" in conf
        assert "HOOKS=(base udev autodetect modconf block encrypt lvm2 filesystems keyboard fsck)" in conf
        assert "BINARIES=()" in conf

    def test_tuning_writers_both_set_dirty_writeback(self, configured, target_root):
        sysctl = read(target_root, "etc/sysctl.d/99-desktop-performance.conf")
        service = read(target_root, "etc/systemd/system/disk-performance.service")

        assert "vm.swappiness = 1" in sysctl
        assert "vm.dirty_writeback_centisecs = 1500" in sysctl
        assert "ExecStart=/usr/bin/sysctl -w vm.dirty_writeback_centisecs=1500" in service
        assert "ExecStart=/usr/bin/sysctl -w vm.dirty_ratio=10" in service

    def test_scheduler_rule_and_thermal(self, configured, target_root):
        rule = read(target_root, "etc/udev/rules.d/60-scheduler.rules")

        assert 'KERNEL=="nvme[0-9]*", ATTR{queue/scheduler}="none"' in rule
        assert "intel_pstate/no_turbo" in read(target_root, "etc/tmpfiles.d/thermal-performance.conf")

    def test_services_enabled(self, configured, runner):
        enabled = [c[2] for c in runner.chroot_commands() if c[:2] == ["systemctl", "enable"]]

        assert enabled == [
            "systemd-networkd",
            "systemd-resolved",
            "nvidia-persistenced.service",
            "cpupower.service",
            "disk-performance.service",
        ]

    def test_package_manager(self, configured, target_root):
        hook = read(target_root, "etc/pacman.d/hooks/nvidia.hook")
        pacman = read(target_root, "etc/pacman.conf")
        makepkg = read(target_root, "etc/makepkg.conf")

        assert "Target=nvidia\nTarget=linux\n" in hook
        assert "NeedsTargets\n" in hook
        assert "ParallelDownloads = 15" in pacman
        assert "[multilib]\nInclude = /etc/pacman.d/mirrorlist" in pacman
        assert 'MAKEFLAGS="-j$(nproc)"' in makepkg
        assert "--threads=0" in makepkg

    def test_crypttab_and_sudo(self, configured, target_root):
        assert read(target_root, "etc/crypttab") == "cryptlvm UUID=2222-bbbb-uuid none luks,discard\n"
        assert read(target_root, "etc/sudoers.d/wheel") == "%wheel ALL=(ALL) ALL\n"


class TestHardwareVariants:
    def test_wireless_without_gpu_driver(self, ctx, target_root):
        hw = dataclasses.replace(ctx.hardware, gpu_vendor=GpuVendor.INTEL, network_medium=NetworkMedium.WIRELESS)
        ctx = dataclasses.replace(ctx, hardware=hw)

        ConfigureTargetStep().run(ctx, StageRecord(name="Configure"))

        assert (target_root / "etc/systemd/network/25-wireless.network").exists()
        assert not (target_root / "etc/pacman.d/hooks/nvidia.hook").exists()
        assert "MODULES=(i915)" in read(target_root, "etc/mkinitcpio.conf")
        assert "nvidia" not in read(target_root, "boot/loader/entries/arch.conf")


class TestFailure:
    def test_first_failing_task_stops_configuration(self, ctx, runner):
        runner.fail_on[("arch-chroot", str(ctx.target_root), "mkinitcpio")] = 1

        with pytest.raises(CommandError):
            ConfigureTargetStep().run(ctx, StageRecord(name="Configure"))

        assert not any(c[2:4] == ["systemctl", "enable"] for c in runner.calls if c[0] == "arch-chroot")

    def test_task_order(self):
        names = [name for name, _ in TASKS]

        assert names.index("bootloader") < names.index("initramfs") < names.index("services")
        assert names[-1] == "user"
