from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

from .models import AssignmentFilter, ClientSettings

# Load environment variables from .env file
load_dotenv()

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [_HERE.parent / "config/config.yaml", *[parent / "config/config.yaml" for parent in _HERE.parents[1:4]]]

CONFIG_PATH = next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)
if CONFIG_PATH is None:  # pragma: no cover - fail fast in broken installs
    raise FileNotFoundError("Default config.yaml could not be located; the order_desk package data is missing.")

NOTES = {
    "search_debounce_seconds": "Quiet period after the last keystroke before a search is sent.",
    "toast_cooldown_seconds": "Identical error notifications are suppressed for this long.",
    "assigned_page_size": "Page size used by the 'assigned to me' dashboard view.",
}


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def make_runtime_config(overrides: Optional[Mapping[str, Any]] = None) -> DictConfig:
    """
    Merge overrides onto the packaged defaults.

    Unknown keys are rejected, except under ``field_mapping`` where callers
    may add their own backend keys.
    """
    base = OmegaConf.create(OmegaConf.to_container(_load_default_config(), resolve=False))
    OmegaConf.set_struct(base, True)
    OmegaConf.set_struct(base.field_mapping, False)

    merged = DictConfig(OmegaConf.merge(base, OmegaConf.create(dict(overrides or {}))))
    return merged


def build_field_mapping(custom: Optional[Mapping[str, str]] = None, config: Optional[DictConfig] = None) -> Dict[str, str]:
    config = config if config is not None else _load_default_config()
    defaults: Dict[str, str] = OmegaConf.to_container(config.field_mapping, resolve=True)  # type: ignore[assignment]
    return {**defaults, **dict(custom or {})}


def build_client_settings(config: Optional[DictConfig] = None) -> ClientSettings:
    config = config if config is not None else _load_default_config()
    return ClientSettings(
        page_size=config.orders.page_size,
        assigned_page_size=config.orders.assigned_page_size,
        search_debounce_seconds=config.search.debounce_seconds,
        toast_cooldown_seconds=config.notifications.toast_cooldown_seconds,
        assignment_filters=list(AssignmentFilter),
        field_mapping=build_field_mapping(config=config),
        notes=NOTES,
    )
