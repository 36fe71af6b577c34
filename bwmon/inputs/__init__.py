"""Input providers. Import a module to register its provider."""

from __future__ import annotations

from pathlib import Path

SYSFS_NET = Path("/sys/class/net")

IFF_UP = 0x1


def link_up(name: str, root: Path = SYSFS_NET) -> bool:
    """True unless /sys/class/net/<name>/flags says the link is down."""
    try:
        flags = int((root / name / "flags").read_text().strip(), 16)
    except (OSError, ValueError):
        return True
    return bool(flags & IFF_UP)
