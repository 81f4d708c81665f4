from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .json_fmt import format_json
from .markdown_fmt import format_markdown


def get_formatter(fmt: str, **kwargs: Any) -> Callable[[Sequence[Any]], str]:
    if fmt == "json":
        return format_json
    if fmt == "markdown":
        title = kwargs.get("title", "")
        return lambda items: format_markdown(items, title=title)
    raise ValueError(f"Unknown format: {fmt!r}")
