from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# (key, value); a None value renders the key as a bare line.
Entry = Tuple[str, Optional[str]]


@dataclass(frozen=True)
class Section:
    title: Optional[str]
    entries: Sequence[Entry]


@dataclass(frozen=True)
class Artifact:
    """A configuration file on the target, as data.

    style:
    - "kv":  `key<sep>value` lines; section titles become `# title` comments
    - "ini": `[title]` headers followed by `key<sep>value` lines (systemd units, pacman hooks)
    """

    path: str
    sections: Sequence[Section]
    style: str = "kv"
    separator: str = "="
    header: Optional[str] = None


def _entry(entry: Entry, sep: str) -> str:
    key, value = entry
    if value is None:
        return key
    return f"{key}{sep}{value}"


def render(artifact: Artifact) -> str:
    if artifact.style not in {"kv", "ini"}:
        raise ValueError(f"Unknown artifact style: {artifact.style}")

    blocks: list[str] = []
    if artifact.header:
        blocks.append("\n".join(f"# {ln}" for ln in artifact.header.splitlines()))

    for section in artifact.sections:
        lines: list[str] = []
        if section.title:
            lines.append(f"[{section.title}]" if artifact.style == "ini" else f"# {section.title}")
        lines.extend(_entry(e, artifact.separator) for e in section.entries)
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks) + "\n"


def kv(path: str, entries: Sequence[Entry], *, separator: str = "=", header: Optional[str] = None) -> Artifact:
    """Single-section key/value artifact."""

    return Artifact(path=path, sections=[Section(None, entries)], separator=separator, header=header)
