"""Point the project's ``cypress.config.ts`` at the URL a feature file asks for."""
import logging
import re
from pathlib import Path
from typing import Optional

from .feature import FeatureDocument

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "cypress.config.ts"
BASE_URL = re.compile(r"baseUrl:\s*['\"`](.+?)['\"`],")


def locate_cypress_config(feature_path) -> Path:
    """
    ``<project>/cypress/e2e/features/x.feature`` -> ``<project>/cypress.config.ts``.
    The path is returned whether or not the file exists.
    """
    feature_dir = Path(feature_path).absolute().parent
    cypress_dir = feature_dir.parent.parent
    return cypress_dir.parent / CONFIG_FILENAME


def replace_base_url(config_text: str, url: str):
    """Return ``(new_text, old_url)``; ``old_url`` is None when no ``baseUrl`` entry was found."""
    match = BASE_URL.search(config_text)
    if not match:
        return config_text, None
    new_text = config_text[:match.start()] + f"baseUrl: '{url}'," + config_text[match.end():]
    return new_text, match.group(1)


def switch_base_url(feature_path, url: str = None) -> Optional[str]:
    """
    Rewrite ``baseUrl`` in the Cypress config next to the feature's project.
    Returns the URL written, or None when there was nothing to do.
    """
    if url is None:
        url = FeatureDocument.read(feature_path).url
    if not url:
        logger.warning("⚠️ No URL found in the first line of %s", feature_path)
        return None

    config_path = locate_cypress_config(feature_path)
    logger.debug("Cypress config: %s", config_path)
    if not config_path.is_file():
        logger.error("❌ Cypress config not found: %s", config_path)
        return None

    text, old_url = replace_base_url(config_path.read_text(encoding="utf-8"), url)
    if old_url is None:
        logger.warning("⚠️ No baseUrl found in %s, nothing replaced", config_path)
        return None
    config_path.write_text(text, encoding="utf-8")
    logger.info("✅ baseUrl replaced: %s → %s", old_url, url)
    return url
