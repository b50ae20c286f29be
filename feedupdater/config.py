# LICENSE HEADER MANAGED BY add-license-header
#
# BSD 3-Clause License
#
# Copyright (c) 2026, Martin Vesterlund
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice, this
#    list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
# 3. Neither the name of the copyright holder nor the names of its
#    contributors may be used to endorse or promote products derived from
#    this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

_UNSET_VAR_RE = re.compile(r"^\$\{?\w+\}?$")


class ConfigError(Exception):
    pass


@dataclass
class ThrottleConfig:
    concurrency: int = 3
    interval_cap: int = 15
    interval_s: float = 60.0
    token_ceiling: int = 900_000
    token_window_s: float = 60.0
    token_per_char: float = 0.4


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay_s: float = 2.0
    backoff_factor: float = 2.0
    max_delay_s: float = 60.0


@dataclass
class SummaryConfig:
    prompt_template: Optional[str] = None
    clip_chars: int = 3000
    fallback: str = "summary generation failed"


@dataclass
class Settings:
    sources: List[str]
    max_items_per_feed: int = 50
    store: Dict[str, Any] = field(default_factory=dict)
    llm: Dict[str, Any] = field(default_factory=dict)
    fetch_timeout_s: float = 20.0
    user_agent: Optional[str] = None
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    log_level: str = "INFO"


def load_env_files(base_dir: str = ".") -> Optional[Path]:
    """Läser .env, annars .env.local. Befintliga miljövariabler vinner."""
    for name in (".env", ".env.local"):
        p = Path(base_dir) / name
        if p.exists():
            load_dotenv(p, override=False)
            logger.info("Läste miljövariabler från %s", p)
            return p
    logger.warning("Hittade varken .env eller .env.local, förutsätter att miljön är satt")
    return None


def _resolve_env(value: Any) -> Any:
    """
    Stöd för ${VAR} och $VAR i config.yaml (rekursivt).
    """
    if isinstance(value, str):
        expanded = os.path.expandvars(value)
        # ej satt variabel: expandvars lämnar den orörd
        return "" if _UNSET_VAR_RE.match(expanded) else expanded
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    return value


def _source_urls(raw: Any) -> List[str]:
    out: List[str] = []
    for s in raw or []:
        if isinstance(s, str):
            url = s.strip()
        elif isinstance(s, dict):
            if s.get("enabled", True) is False:
                continue
            url = str(s.get("url") or "").strip()
        else:
            url = ""
        if url and url not in out:
            out.append(url)
    return out


def _positive(name: str, value: Any, cast=int):
    try:
        v = cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e
    if v <= 0:
        raise ConfigError(f"{name} must be > 0, got {v}")
    return v


def settings_from_dict(cfg: Dict[str, Any]) -> Settings:
    cfg = _resolve_env(cfg or {})

    sources = _source_urls(cfg.get("sources") or cfg.get("feeds"))
    if not sources:
        raise ConfigError("No sources configured (config 'sources')")

    llm_cfg = dict(cfg.get("llm") or {})
    # miljövariabler som fallback när config saknar värdet
    if not llm_cfg.get("api_key") and os.environ.get("LLM_API_KEY"):
        llm_cfg["api_key"] = os.environ["LLM_API_KEY"]
    if not llm_cfg.get("api_base") and os.environ.get("LLM_API_BASE"):
        llm_cfg["api_base"] = os.environ["LLM_API_BASE"]
    if not llm_cfg.get("model") and os.environ.get("LLM_NAME"):
        llm_cfg["model"] = os.environ["LLM_NAME"]

    provider = str(llm_cfg.get("provider") or "gemini").lower()
    if provider == "gemini" and not str(llm_cfg.get("api_key") or "").strip():
        raise ConfigError("LLM_API_KEY is not set, cannot generate summaries")

    store_cfg = dict(cfg.get("store") or {})
    if not store_cfg.get("path") and cfg.get("data_path"):
        store_cfg["path"] = cfg["data_path"]

    t = cfg.get("throttle") or {}
    throttle = ThrottleConfig(
        concurrency=_positive("throttle.concurrency", t.get("concurrency", 3)),
        interval_cap=_positive("throttle.interval_cap", t.get("interval_cap", 15)),
        interval_s=_positive("throttle.interval_s", t.get("interval_s", 60), float),
        token_ceiling=_positive("throttle.token_ceiling", t.get("token_ceiling", 900_000)),
        token_window_s=_positive(
            "throttle.token_window_s", t.get("token_window_s", 60), float
        ),
        token_per_char=_positive(
            "throttle.token_per_char", t.get("token_per_char", 0.4), float
        ),
    )

    r = cfg.get("retry") or {}
    retry = RetryConfig(
        max_attempts=_positive("retry.max_attempts", r.get("max_attempts", 3)),
        base_delay_s=float(r.get("base_delay_s", 2.0)),
        backoff_factor=float(r.get("backoff_factor", 2.0)),
        max_delay_s=float(r.get("max_delay_s", 60.0)),
    )

    s = cfg.get("summary") or {}
    summary = SummaryConfig(
        prompt_template=s.get("prompt_template"),
        clip_chars=_positive("summary.clip_chars", s.get("clip_chars", 3000)),
        fallback=str(s.get("fallback") or "summary generation failed"),
    )

    fetch_cfg = cfg.get("fetch") or {}
    log_cfg = cfg.get("logging") or {}

    return Settings(
        sources=sources,
        max_items_per_feed=_positive(
            "max_items_per_feed", cfg.get("max_items_per_feed", 50)
        ),
        store=store_cfg,
        llm=llm_cfg,
        fetch_timeout_s=_positive(
            "fetch.timeout_s", fetch_cfg.get("timeout_s", 20), float
        ),
        user_agent=fetch_cfg.get("user_agent"),
        throttle=throttle,
        retry=retry,
        summary=summary,
        log_level=str(os.environ.get("LOG_LEVEL") or log_cfg.get("level") or "INFO"),
    )


def load_settings(config_path: str = DEFAULT_CONFIG_PATH) -> Settings:
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    load_env_files(str(path.parent))

    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(cfg, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return settings_from_dict(cfg)
