"""Runtime settings loaded from the environment and an optional .env file.

Recognised variables:
    PAYGRAM_DATA_DIR     directory for durable output (default: ./data)
    PAYGRAM_EVENT_LOG    JSONL event log path (default: <data dir>/events.jsonl)
    PAYGRAM_LOG_LEVEL    logging level name (default: INFO)
    PAYGRAM_START_TIME   initial block timestamp, Unix seconds (default: now)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    event_log_path: Path
    log_level: str = "INFO"
    start_time: Optional[int] = None

    @staticmethod
    def from_env(
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> Settings:
        """Build settings from ``env`` (default: os.environ after .env load).

        Values already present in the process environment win over the
        .env file.
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        data_dir = Path(env.get("PAYGRAM_DATA_DIR", "data"))
        event_log = env.get("PAYGRAM_EVENT_LOG")
        start_time = env.get("PAYGRAM_START_TIME")
        level = env.get("PAYGRAM_LOG_LEVEL", "INFO").upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown PAYGRAM_LOG_LEVEL: {level}")

        return Settings(
            data_dir=data_dir,
            event_log_path=Path(event_log) if event_log else data_dir / "events.jsonl",
            log_level=level,
            start_time=int(start_time) if start_time else None,
        )
