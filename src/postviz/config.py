# src/postviz/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "POSTVIZ_"


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    data_path: str = "data/snp.csv"
    output_dir: str = "plots"
    figure_format: str = "png"
    dpi: int = 150
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read POSTVIZ_* variables; anything unset keeps its default."""
        env = os.environ if env is None else env
        d = cls()
        return cls(
            data_path=env.get(ENV_PREFIX + "DATA_PATH") or d.data_path,
            output_dir=env.get(ENV_PREFIX + "OUTPUT_DIR") or d.output_dir,
            figure_format=(env.get(ENV_PREFIX + "FIGURE_FORMAT") or d.figure_format).lower().lstrip("."),
            dpi=_env_int(env, ENV_PREFIX + "DPI", d.dpi),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or d.log_level).upper(),
        )
