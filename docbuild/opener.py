"""Selection of the platform's default-open command."""
from __future__ import annotations

from pathlib import Path
from typing import List
import platform


def open_command(path: Path, *, system: str | None = None) -> List[str]:
    """Return the argument vector that opens ``path`` with the default handler."""

    os_name = (system or platform.system()).lower()
    if os_name == "darwin":
        return ["open", str(path)]
    if os_name == "windows":
        # The empty string is the window title consumed by ``start``.
        return ["cmd", "/c", "start", "", str(path)]
    return ["xdg-open", str(path)]


__all__ = ["open_command"]
