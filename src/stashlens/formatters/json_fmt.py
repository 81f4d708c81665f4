from __future__ import annotations

import dataclasses
import json
from collections.abc import Sequence
from typing import Any


def format_json(items: Sequence[Any]) -> str:
    return json.dumps([dataclasses.asdict(item) for item in items], indent=2)
