"""
Purpose: Runtime configuration from environment variables, plus the
factories that turn it into a ready controller.

Variables:
- OPENAI_API_KEY, OPENAI_MODEL
- COUNSEL_TEMPERATURE, COUNSEL_MAX_TOKENS
- COUNSEL_PERSISTENCE: "file" (server transcripts) or "client" (caller keeps history)
- COUNSEL_TRANSCRIPTS_DIR, COUNSEL_LOG_LEVEL, COUNSEL_HOST, COUNSEL_PORT
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from .controller import SessionController
from .models import LLMSettings
from .persistence.session_store import FileTranscriptStore
from .services.completion import OpenAICompletionGateway
from .services.llm_openai import OpenAILLMClient

DEFAULT_MODEL = "gpt-4o-2024-08-06"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class PersistenceMode(str, Enum):
    FILE = "file"
    CLIENT = "client"


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(env.get(key, default))
    except (TypeError, ValueError):
        return default


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(env.get(key, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AppConfig:
    api_key: str = ""
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 1024
    persistence: PersistenceMode = PersistenceMode.FILE
    transcripts_dir: Path = Path("transcripts")
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if env is None else env
        mode = (env.get("COUNSEL_PERSISTENCE") or PersistenceMode.FILE.value).strip().lower()
        try:
            persistence = PersistenceMode(mode)
        except ValueError:
            raise ValueError(
                f"COUNSEL_PERSISTENCE must be 'file' or 'client', got {mode!r}"
            ) from None
        return cls(
            api_key=env.get("OPENAI_API_KEY", ""),
            model=env.get("OPENAI_MODEL") or DEFAULT_MODEL,
            temperature=_get_float(env, "COUNSEL_TEMPERATURE", 0.7),
            max_tokens=_get_int(env, "COUNSEL_MAX_TOKENS", 1024),
            persistence=persistence,
            transcripts_dir=Path(env.get("COUNSEL_TRANSCRIPTS_DIR") or "transcripts"),
            log_level=(env.get("COUNSEL_LOG_LEVEL") or "INFO").upper(),
            host=env.get("COUNSEL_HOST") or "127.0.0.1",
            port=_get_int(env, "COUNSEL_PORT", 8000),
        )

    def llm_settings(self) -> LLMSettings:
        return LLMSettings(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def build_controller(
    config: AppConfig, *, api_key: Optional[str] = None
) -> SessionController:
    """Wire OpenAI client -> gateway -> controller (+ file store in file mode)."""
    llm = OpenAILLMClient(api_key=api_key or config.api_key)
    gateway = OpenAICompletionGateway(llm, config.llm_settings())
    store = None
    if config.persistence is PersistenceMode.FILE:
        store = FileTranscriptStore(config.transcripts_dir)
    return SessionController(gateway, store=store)
