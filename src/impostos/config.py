from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import platformdirs
import yaml
from dotenv import load_dotenv

from impostos.utils.validators import validate_percent

APP_NAME = "impostos-venda"


def _resolve_config_dir_for_dotenv() -> Path | None:
    """Resolve config dir for .env loading without depending on env vars from .env itself.

    Only checks sources available before .env is loaded (env var set in the
    shell, dev layout, an existing platformdirs directory).
    """
    from_env = os.environ.get("IMPOSTOS_CONFIG_DIR")
    if from_env:
        return Path(from_env)
    project_root = Path(__file__).resolve().parent.parent.parent
    candidate = project_root / "config"
    if candidate.is_dir():
        return candidate
    pd = Path(platformdirs.user_config_dir(APP_NAME))
    if pd.is_dir():
        return pd
    return None


# Load .env: cwd first (highest priority), then config dir (won't override)
load_dotenv()
_cfg_dir = _resolve_config_dir_for_dotenv()
if _cfg_dir is not None:
    load_dotenv(_cfg_dir / ".env")


def _resolve_dir(env_var: str, default_subdir: str) -> Path:
    """Resolve a directory from env var, repo layout, or platform default.

    Priority: 1) env var, 2) dev repo layout, 3) platformdirs user directory.
    """
    from_env = os.environ.get(env_var)
    if from_env:
        return Path(from_env)
    # Development layout: src/impostos/config.py -> ../../.. = project root
    project_root = Path(__file__).resolve().parent.parent.parent
    candidate = project_root / default_subdir
    if candidate.is_dir():
        return candidate
    return Path(platformdirs.user_config_dir(APP_NAME))


def get_config_dir() -> Path:
    """Resolve config directory. Re-evaluated on each call to pick up env changes."""
    return _resolve_dir("IMPOSTOS_CONFIG_DIR", "config")


def get_mva_path() -> Path:
    return get_config_dir() / "mva.yaml"


def get_settings_path() -> Path:
    return get_config_dir() / "impostos.yaml"


# --- Default rates ---

DEFAULT_ICMS_OWN_RATE = Decimal("4")
DEFAULT_ST_INTERNAL_RATE = Decimal("18")
DEFAULT_IPI_RATE = Decimal("0")


@dataclass(frozen=True)
class RateDefaults:
    """Rates applied when a line item omits them.

    icms_own_rate_percent: ICMS próprio (4% interstate by default).
    st_internal_rate_percent: internal ICMS rate of the ST base (18%).
    ipi_rate_percent: IPI (0%).
    """

    icms_own_rate_percent: Decimal = DEFAULT_ICMS_OWN_RATE
    st_internal_rate_percent: Decimal = DEFAULT_ST_INTERNAL_RATE
    ipi_rate_percent: Decimal = DEFAULT_IPI_RATE


_RATE_SOURCES = {
    "icms_own_rate_percent": ("IMPOSTOS_ICMS_PROPRIO", "icms_proprio"),
    "st_internal_rate_percent": ("IMPOSTOS_ALIQUOTA_ST_INTERNA", "aliquota_st_interna"),
    "ipi_rate_percent": ("IMPOSTOS_IPI", "ipi"),
}


def load_rate_defaults() -> RateDefaults:
    """Resolve default rates once, at the call boundary.

    Priority: 1) env vars, 2) ``padroes:`` in impostos.yaml, 3) built-in values.
    """
    settings: dict = {}
    path = get_settings_path()
    if path.is_file():
        settings = (load_yaml(path) or {}).get("padroes") or {}

    values: dict[str, Decimal] = {}
    for name, (env_var, yaml_key) in _RATE_SOURCES.items():
        raw = os.environ.get(env_var)
        if raw is None:
            raw = settings.get(yaml_key)
        if raw is not None:
            values[name] = validate_percent(str(raw), yaml_key)
    return RateDefaults(**values)


# --- YAML config ---


def load_yaml(path: Path):
    """Load and parse a YAML file, returning the top-level object."""
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def load_sale(path: Path) -> dict:
    """Load a sale description (venda.yaml) from any path."""
    data = load_yaml(path)
    if not isinstance(data, dict):
        raise ValueError(f"Venda invalida em {path}: esperado um mapeamento YAML")
    return data
