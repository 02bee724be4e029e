from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RuntimeBootDeps:
    session_sweep_loop_func: Callable
    settings_warning: str | None = None
