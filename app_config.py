from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from priced_inputs import ExperienceTier, KitchenSize

logger = logging.getLogger(__name__)

APP_DIR = Path(__file__).resolve().parent
DEFAULT_CATALOG_DIR = APP_DIR / "catalogs"

ENV_CATALOG_DIR = "REMODEL_CATALOG_DIR"
ENV_DEFAULT_EXPERIENCE = "REMODEL_DEFAULT_EXPERIENCE"
ENV_DEFAULT_KITCHEN_SIZE = "REMODEL_DEFAULT_KITCHEN_SIZE"
ENV_LOG_LEVEL = "REMODEL_LOG_LEVEL"


@dataclass(frozen=True)
class AppConfig:
    catalog_dir: Path
    default_experience: ExperienceTier = ExperienceTier.BASIC
    default_kitchen_size: KitchenSize = KitchenSize.SMALL
    log_level: str = "INFO"


def load_env_file(path: Optional[Path] = None) -> bool:
    """
    Load a `.env` file into the process environment (existing variables win).

    python-dotenv's automatic discovery walks up from the calling module, which is
    unreliable under `streamlit run`; default to the working directory instead.
    """
    return load_dotenv(dotenv_path=path or (Path.cwd() / ".env"), override=False)


def load_app_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    env = os.environ if environ is None else environ

    catalog_dir_raw = str(env.get(ENV_CATALOG_DIR, "")).strip()
    catalog_dir = Path(catalog_dir_raw).expanduser() if catalog_dir_raw else DEFAULT_CATALOG_DIR

    experience = _enum_from_env(env, ENV_DEFAULT_EXPERIENCE, ExperienceTier, ExperienceTier.BASIC)
    kitchen_size = _enum_from_env(env, ENV_DEFAULT_KITCHEN_SIZE, KitchenSize, KitchenSize.SMALL)

    log_level = str(env.get(ENV_LOG_LEVEL, "")).strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(log_level), int):
        logger.warning("Ignoring invalid %s=%r; using INFO", ENV_LOG_LEVEL, log_level)
        log_level = "INFO"

    return AppConfig(
        catalog_dir=catalog_dir,
        default_experience=experience,
        default_kitchen_size=kitchen_size,
        log_level=log_level,
    )


def configure_logging(config: AppConfig) -> None:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    else:
        logging.getLogger().setLevel(config.log_level)


def _enum_from_env(env: Mapping[str, str], key: str, enum_cls, default):
    raw = str(env.get(key, "")).strip().lower()
    if not raw:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", key, raw, default.value)
        return default
