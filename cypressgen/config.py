import os
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "cypressgen.yaml"

# Environment variables that override values from the YAML file
ENV_OVERRIDES = {
    "CYPRESSGEN_PROVIDER": "provider",
    "CYPRESSGEN_MODEL": "model",
    "CYPRESSGEN_BASE_URL": "base_url",
    "CYPRESSGEN_API_BASE": "api_base",
}


@dataclass(frozen=True)
class Settings:
    provider: str = "together"
    model: str = "meta-llama/Llama-3.3-70B-Instruct-Turbo-Free"
    temperature: float = 0.0
    api_base: str = None
    base_url: str = "http://localhost:3000"
    headless: bool = True
    navigation_timeout_ms: int = 30000
    selectors_path: str = "common/selectors/orchestrator_selectors.ts"
    steps_path: str = "common/steps/orchestrator_steps.ts"
    selectors_module_path: str = "../selectors/orchestrator_selectors"
    refactor_selectors: bool = False
    enrich_assertions: bool = False
    verify: bool = True
    patch_cypress_config: bool = True

    def api_key(self):
        if self.provider == "together":
            return os.getenv("TOGETHER_API_KEY")
        return os.getenv("OPENAI_API_KEY")


def find_config_file(filename=CONFIG_FILENAME, start_path=None):
    """
    Search upwards from ``start_path`` (or the working directory) for ``filename``.
    Returns the first match or None.
    """
    start = Path(start_path or Path.cwd()).resolve()
    if start.is_file():
        start = start.parent
    for path in [start] + list(start.parents):
        candidate = path / filename
        if candidate.is_file():
            return candidate
    return None


def load_settings(filename=CONFIG_FILENAME, start_path=None, config_path=None) -> Settings:
    """
    Build ``Settings`` from defaults, the nearest YAML config file and the environment.
    ``.env`` is loaded first so API keys and overrides can live there.
    """
    load_dotenv()

    path = Path(config_path) if config_path else find_config_file(filename, start_path)
    values = {}
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file '{path}' not found")
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping")
        logger.info("Loaded configuration from: %s", path)
        values.update(loaded)
    else:
        logger.debug("Config file '%s' not found, using defaults", filename)

    for env_name, field_name in ENV_OVERRIDES.items():
        if os.getenv(env_name):
            values[field_name] = os.getenv(env_name)

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    settings = replace(Settings(), **values)
    if settings.provider not in ("together", "openai"):
        raise ConfigError(f"Unsupported provider: {settings.provider}")
    return settings
