"""usagi-installer: guided encrypted-LVM Arch Linux provisioning.

Core design goals:
- Validate the host before touching the disk
- Strictly ordered stages, each behind an operator confirmation
- Fail loud and stop; never roll back automatically
- Journal every created resource for manual remediation
- Centralized logging
"""

__all__ = []
