"""Solver configuration and YAML helpers."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

EXECUTORS: tuple[str, ...] = ("thread", "process")


@dataclass(frozen=True)
class BackwardInductionConfig:
    """Configuration for a backward-induction solve."""

    n_workers: int = 1
    executor: str = "thread"
    chunk_size: int | None = None
    verbose: bool = False
    show_progress: bool = False
    progress_desc: str = "Backward Induction"
    keep_decision_values: bool = False

    def validate(self) -> None:
        if self.n_workers <= 0:
            raise ValueError("n_workers must be positive.")
        if self.executor not in EXECUTORS:
            raise ValueError(
                f"executor must be one of {', '.join(EXECUTORS)}; got {self.executor!r}."
            )
        if self.chunk_size is not None and self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive when set.")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "BackwardInductionConfig":
        """Create configuration from a plain dict, ignoring unknown keys."""
        chunk_size = payload.get("chunk_size")
        return cls(
            n_workers=int(payload.get("n_workers", 1)),
            executor=str(payload.get("executor", "thread")),
            chunk_size=None if chunk_size is None else int(chunk_size),
            verbose=bool(payload.get("verbose", False)),
            show_progress=bool(payload.get("show_progress", False)),
            progress_desc=str(payload.get("progress_desc", "Backward Induction")),
            keep_decision_values=bool(payload.get("keep_decision_values", False)),
        )


def save_solver_config(config: BackwardInductionConfig, output_path: Path) -> None:
    """Serialize solver configuration to YAML."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False))


def load_solver_config(path: Path) -> BackwardInductionConfig:
    """Load solver configuration from YAML; a missing or empty file gives defaults."""
    if not path.exists():
        return BackwardInductionConfig()
    raw = yaml.safe_load(path.read_text())
    if raw is None:
        return BackwardInductionConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Expected mapping in solver config: {path}")
    config = BackwardInductionConfig.from_dict(raw)
    config.validate()
    return config
