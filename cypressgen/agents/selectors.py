"""
Selectors synthesis: feature text + HTML snapshot in, Cypress selector helpers out.

Flow: generate, sanitize, validate; one retry with a stricter directive when the
reply does not look like selectors code; deterministic auto-fix; final validation.
A reply that is still invalid after that aborts the run.
"""
import logging
import re

from .. import prompts
from ..errors import InvalidArtifactError
from ..rewrite import VISITS_ROOT, auto_fix
from ..sourcemodel import mask, parse_exports, parse_imports
from .base import BaseAgent, GeneratedArtifact, extract_first_code_block, preview, slice_from, strip_comment_lines

logger = logging.getLogger(__name__)

STEP_KEYWORDS = {"Given", "When", "Then"}
RETURNS_QUERY = re.compile(r"\breturn\s+cy\s*\.")


def sanitize(text: str) -> str:
    """
    Reduce a model reply to selectors source: first fenced block (if any), cut
    everything before the first ``export``, drop import lines and full-line comments.
    """
    code = slice_from(extract_first_code_block(text), "export")
    code = "\n".join(line for line in code.splitlines() if not re.match(r"^\s*import\s+", line))
    return strip_comment_lines(code).strip()


def looks_like_selectors(code: str) -> bool:
    if not code or not code.strip():
        return False
    exports = parse_exports(code)
    has_function = any(decl.kind in ("function", "arrow") for decl in exports)
    visit_homepage = next((decl for decl in exports if decl.name == "visitHomepage"), None)
    visits_root = (
        visit_homepage is not None
        and visit_homepage.kind in ("function", "arrow")
        and VISITS_ROOT.search(visit_homepage.text) is not None
    )
    returns_query = RETURNS_QUERY.search(mask(code)) is not None
    no_string_constants = not any(decl.kind == "string" for decl in exports)
    no_step_imports = not any(STEP_KEYWORDS & set(decl.names) for decl in parse_imports(code))
    return has_function and visits_root and returns_query and no_string_constants and no_step_imports


class SelectorsAgent(BaseAgent):
    kind = "selectors"

    def generate(self, feature_text: str, html: str) -> GeneratedArtifact:
        prompt = prompts.selectors_prompt(feature_text, html)
        logger.info("▶ Generating selectors…")
        logger.debug("Selectors prompt length: %d", len(prompt))

        code = sanitize(self._invoke(prompt))
        if not looks_like_selectors(code):
            logger.warning("⚠️ Selectors look invalid, retrying with a stricter instruction…")
            code = sanitize(self._invoke(f"{prompt}\n\n{prompts.SELECTORS_RETRY_DIRECTIVE}"))

        code = auto_fix(code)
        if not looks_like_selectors(code):
            logger.error("❌ Selectors are still invalid. Preview:\n%s", preview(code))
            raise InvalidArtifactError(self.kind, preview(code))

        logger.info("✅ Selectors generated.")
        logger.debug("Selectors preview:\n%s", preview(code))
        return GeneratedArtifact(code=code, valid=True, kind=self.kind)

    def refactor(self, code: str) -> str:
        """
        Ask the model to tidy the selectors file into compilable TypeScript. The
        result is kept only if it still passes the validity heuristic.
        """
        logger.info("▶ Refactoring selectors…")
        refactored = sanitize(self._invoke(prompts.code_fix_prompt(code)))
        if not looks_like_selectors(refactored):
            logger.warning("⚠️ Refactored selectors look invalid, keeping the original code")
            return code
        logger.info("✅ Selectors refactored.")
        return auto_fix(refactored)
