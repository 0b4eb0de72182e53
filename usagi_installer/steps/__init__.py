from .step_10_partition import PartitionStep
from .step_20_encrypt import EncryptStep
from .step_30_lvm import LvmSetupStep
from .step_40_format import FormatStep
from .step_50_mount import MountStep
from .step_60_bootstrap import BootstrapStep
from .step_70_configure_target import ConfigureTargetStep
from .step_90_teardown import TeardownStep

__all__ = [
    "PartitionStep",
    "EncryptStep",
    "LvmSetupStep",
    "FormatStep",
    "MountStep",
    "BootstrapStep",
    "ConfigureTargetStep",
    "TeardownStep",
]
