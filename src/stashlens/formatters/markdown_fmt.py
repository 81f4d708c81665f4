from __future__ import annotations

import dataclasses
import enum
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from ..models import User


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, User):
        return f"@{value.slug}"
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return str(len(value))
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_markdown(items: Sequence[Any], title: str = "") -> str:
    now = datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    lines: list[str] = []

    lines.append(f"# {title}" if title else "# Results")
    lines.append(f"> {len(items)} entries · Generated: {now}")
    lines.append("")

    if not items:
        return "\n".join(lines)

    columns = [f.name for f in dataclasses.fields(items[0])]
    lines.append("| " + " | ".join(columns) + " |")
    lines.append("| " + " | ".join("---" for _ in columns) + " |")
    for item in items:
        lines.append("| " + " | ".join(_cell(getattr(item, c)) for c in columns) + " |")
    lines.append("")

    return "\n".join(lines)
