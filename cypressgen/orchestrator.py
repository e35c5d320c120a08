"""
Runs the whole pipeline for one feature file:

feature -> HTML snapshot -> skeleton -> selectors -> steps -> verification
-> baseUrl patch -> files on disk.

Stages run one after another. Every artifact is handed to the next stage as an
argument and nothing is written, the Cypress config included, until all
stages have succeeded.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .agents import SelectorsAgent, StepsAgent, VerificationAgent, VerifyResult
from .config import Settings
from .cypress_config import switch_base_url
from .dom_filter import serialize
from .errors import CypressGenError, PageLoadError
from .feature import FeatureDocument
from .gateway import ModelGateway
from .page_loader import PlaywrightPageLoader
from .skeleton import extract_step_stubs, render_skeleton

logger = logging.getLogger(__name__)

FILTERED_DOM = "filtered-dom"
FULL_HTML = "full-html"


@dataclass(frozen=True)
class RunResult:
    feature_path: Path
    url: str
    html_source: str
    selectors_path: Path
    steps_path: Path
    selectors_code: str
    steps_code: str
    verification: Optional[VerifyResult] = None


def project_dir_for(feature_path) -> Path:
    """Output paths are relative to the directory above the one holding the feature file."""
    return Path(feature_path).absolute().parent.parent


def write_artifact(path: Path, code: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(code.rstrip() + "\n", encoding="utf-8")
    logger.info("💾 Wrote %s", path)


class Orchestrator:
    def __init__(self, settings: Settings = None, gateway=None, page_loader=None):
        self.settings = settings or Settings()
        self.gateway = gateway or ModelGateway.from_settings(self.settings)
        self.page_loader = page_loader or PlaywrightPageLoader(
            headless=self.settings.headless,
            timeout_ms=self.settings.navigation_timeout_ms,
        )

    def run(self, feature_path, url: str = None) -> RunResult:
        try:
            return self._run(Path(feature_path), url)
        except CypressGenError as e:
            logger.error("❌ Run aborted: %s", e)
            raise

    def _run(self, feature_path: Path, url_override: Optional[str]) -> RunResult:
        logger.info("▶ Processing %s", feature_path)
        feature = FeatureDocument.read(feature_path)

        url = url_override or feature.url or self.settings.base_url
        html, html_source = self._load_html(url)

        skeleton = render_skeleton(extract_step_stubs(feature.text))
        logger.debug("Step skeleton:\n%s", skeleton)

        selectors_agent = SelectorsAgent(self.gateway)
        selectors_code = selectors_agent.generate(feature.text, html).code
        if self.settings.refactor_selectors:
            selectors_code = selectors_agent.refactor(selectors_code)

        steps_agent = StepsAgent(self.gateway, self.settings.selectors_module_path)
        steps_code = steps_agent.generate(feature.text, selectors_code, skeleton).code
        if self.settings.enrich_assertions:
            steps_code = steps_agent.add_assertions(steps_code, html, feature.text)

        verification = None
        if self.settings.verify:
            verification = VerificationAgent(self.gateway).verify(selectors_code, steps_code)

        if (url_override or feature.url) and self.settings.patch_cypress_config:
            self._patch_cypress_config(feature_path, url)

        project_dir = project_dir_for(feature_path)
        selectors_path = project_dir / self.settings.selectors_path
        steps_path = project_dir / self.settings.steps_path
        write_artifact(selectors_path, selectors_code)
        write_artifact(steps_path, steps_code)

        if verification is not None and not verification.passed:
            if verification.corrected_selectors:
                selectors_code = verification.corrected_selectors
                write_artifact(selectors_path, selectors_code)
            if verification.corrected_steps:
                steps_code = verification.corrected_steps
                write_artifact(steps_path, steps_code)
            if not (verification.corrected_selectors or verification.corrected_steps):
                logger.warning("⚠️ Verification found problems but no corrections were applied")

        logger.info("✅ Done: selectors and steps generated for %s", feature_path.name)
        return RunResult(
            feature_path=feature_path,
            url=url,
            html_source=html_source,
            selectors_path=selectors_path,
            steps_path=steps_path,
            selectors_code=selectors_code,
            steps_code=steps_code,
            verification=verification,
        )

    def _patch_cypress_config(self, feature_path: Path, url: str):
        try:
            switch_base_url(feature_path, url)
        except OSError as e:
            logger.warning("⚠️ Could not update the Cypress config: %s", e)

    def _load_html(self, url: str):
        try:
            node = self.page_loader.load_filtered_dom(url)
        except PageLoadError as e:
            logger.warning("⚠️ Filtered DOM unavailable (%s), falling back to the full page HTML", e.reason)
            node = None
        else:
            if node is None:
                logger.warning("⚠️ Filtered DOM is empty, falling back to the full page HTML")
        if node is not None:
            return serialize(node), FILTERED_DOM
        return self.page_loader.load_full_html(url), FULL_HTML
