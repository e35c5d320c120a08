"""
Steps synthesis: feature text + selectors code + skeleton in, Cucumber step
definitions out.

After the model reply passes the validity heuristic, two deterministic passes run:

1. ``ensure_universal_steps`` appends the canonical regex registrations for the
   common phrasings the feature uses and the reply does not cover.
2. ``filter_to_feature`` drops literal registrations that no feature line uses
   and literals a regex registration in the file already matches, since
   Cucumber rejects ambiguous step definitions.
"""
import logging
import re
from collections import namedtuple

from .. import prompts
from ..errors import InvalidArtifactError
from ..feature import FeatureDocument
from ..sourcemodel import mask, member_calls, parse_imports, parse_step_registrations, remove_spans
from .base import BaseAgent, GeneratedArtifact, extract_first_code_block, preview, slice_from, strip_comment_lines

logger = logging.getLogger(__name__)

DEFAULT_SELECTORS_MODULE = "../selectors/orchestrator_selectors"
DEFAULT_NAMESPACE = "sel"
STEP_KEYWORDS = {"Given", "When", "Then"}
URL_EQUALITY = re.compile(
    r"cy\.(?:url|location)\([^)]*\)\s*\.should\(\s*['\"](?:eq|equal|equals|deep\.equal)['\"]"
)

UniversalStep = namedtuple("UniversalStep", ["name", "sample", "source"])

UNIVERSAL_STEPS = [
    UniversalStep(
        "homepage",
        "the Customer is on the homepage",
        "Given(/^(?:the \\w+|I|he|she|they) (?:is|am|are) on the homepage$/i, () => {\n"
        "  return sel.visitHomepage();\n"
        "});",
    ),
    UniversalStep(
        "click",
        'he clicks "Start"',
        "When(/^(?:the \\w+|I|he|she|they) clicks? (?:on )?(?:the )?\"?([^\"]+?)\"?(?: button| tile| link)?$/i, "
        "(label: string) => {\n"
        "  return sel.clickLabel(label);\n"
        "});",
    ),
    UniversalStep(
        "visible",
        '"Results" should be displayed',
        "Then(/^(?:the )?\"?([^\"]+?)\"? should be (?:shown|visible|displayed)$/i, (label: string) => {\n"
        "  return sel.getLabel(label).should('be.visible');\n"
        "});",
    ),
    UniversalStep(
        "change-field",
        'he changes "Amount" to "100"',
        "When(/^(?:the \\w+|I|he|she|they) changes? (?:the )?\"?([^\"]+?)\"? to \"?([^\"]+?)\"?$/i, "
        "(field: string, value: string) => {\n"
        "  return sel.inputByLabel(field).clear().type(value);\n"
        "});",
    ),
    UniversalStep(
        "changed-value",
        'the changed "Amount" should be shown "100"',
        "Then(/^(?:the )?changed \"?([^\"]+?)\"? should be shown \"?([^\"]+?)\"?$/i, "
        "(label: string, value: string) => {\n"
        "  return sel.getLabel(label).parent().should('contain.text', value);\n"
        "});",
    ),
]

PLACEHOLDER_TOKEN = "<*>"
OUTLINE_PLACEHOLDER = re.compile(r'"?<[^<>"]+>"?')
EXPRESSION_PLACEHOLDER = re.compile(r'"?\{(?:string|int|word|float)\}"?')


def _universal_pattern(step: UniversalStep):
    return parse_step_registrations(step.source)[0].compiled()


def sanitize(text: str) -> str:
    code = slice_from(extract_first_code_block(text), "import")
    return strip_comment_lines(code).strip()


def _selectors_import(code: str, selectors_module_path: str):
    for decl in parse_imports(code):
        if decl.module in (selectors_module_path, f"{selectors_module_path}.ts"):
            return decl
    return None


def selectors_namespace(code: str, selectors_module_path: str = DEFAULT_SELECTORS_MODULE) -> str:
    """Alias of the ``import * as <alias>`` of the selectors module, ``sel`` when there is none."""
    selectors = _selectors_import(code, selectors_module_path)
    if selectors is None or not selectors.namespace:
        return DEFAULT_NAMESPACE
    return selectors.namespace


def looks_like_steps(code: str, selectors_module_path: str = DEFAULT_SELECTORS_MODULE) -> bool:
    if not code or not code.strip():
        return False
    imports_keywords = any(STEP_KEYWORDS <= set(decl.names) for decl in parse_imports(code))
    selectors = _selectors_import(code, selectors_module_path)
    # helpers are called through a namespace import
    if not imports_keywords or selectors is None or not selectors.namespace:
        return False
    namespace = selectors.namespace
    masked = mask(code)
    calls_helper = bool(member_calls(code, namespace))
    wraps_helper = re.search(r"cy\.get\(\s*" + re.escape(namespace) + r"\s*\.", masked) is not None
    proxies_visit = re.search(r"\bcy\.visitHomepage\b", masked) is not None
    return calls_helper and not wraps_helper and not proxies_visit and URL_EQUALITY.search(code) is None


def _feature_steps(feature_text: str):
    return [text for _, text in FeatureDocument.from_text(feature_text).step_lines()]


def universal_source(step: UniversalStep, namespace: str = DEFAULT_NAMESPACE) -> str:
    if namespace == DEFAULT_NAMESPACE:
        return step.source
    return step.source.replace(f"return {DEFAULT_NAMESPACE}.", f"return {namespace}.")


def ensure_universal_steps(code: str, feature_text: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    Append the canonical registration for every common phrasing that the feature
    uses and no regex registration in ``code`` already handles. The helpers are
    called through ``namespace``, the alias the selectors module is imported as.
    """
    existing = [reg.compiled() for reg in parse_step_registrations(code) if reg.is_regex]
    existing = [pattern for pattern in existing if pattern is not None]
    feature_steps = _feature_steps(feature_text)

    missing = []
    for step in UNIVERSAL_STEPS:
        if any(pattern.search(step.sample) for pattern in existing):
            continue
        pattern = _universal_pattern(step)
        if not any(pattern.search(line) for line in feature_steps):
            continue
        missing.append(step)

    if not missing:
        return code
    logger.info("Adding universal steps: %s", ", ".join(step.name for step in missing))
    blocks = "\n\n".join(universal_source(step, namespace) for step in missing)
    return f"{code.rstrip()}\n\n{blocks}\n"


def normalize_step_text(text: str) -> str:
    text = OUTLINE_PLACEHOLDER.sub(PLACEHOLDER_TOKEN, text)
    text = EXPRESSION_PLACEHOLDER.sub(PLACEHOLDER_TOKEN, text)
    return " ".join(text.split()).casefold()


def _used_by_feature(trigger: str, feature_lines) -> bool:
    normalized = normalize_step_text(trigger)
    if not normalized:
        return False
    if any(normalized in line for line in feature_lines):
        return True
    if PLACEHOLDER_TOKEN in normalized:
        prefix = normalized.split(PLACEHOLDER_TOKEN, 1)[0].strip()
        return bool(prefix) and any(line.startswith(prefix) for line in feature_lines)
    return False


def filter_to_feature(code: str, feature_text: str) -> str:
    """
    Keep every regex registration and every literal registration a feature line
    uses, unless a regex registration in the same file already matches it.
    Imports and any other top-level code are left alone.
    """
    registrations = parse_step_registrations(code)
    regexes = [reg.compiled() for reg in registrations if reg.is_regex]
    regexes = [pattern for pattern in regexes if pattern is not None]
    feature_lines = [normalize_step_text(line) for line in _feature_steps(feature_text)]

    dropped = []
    for reg in registrations:
        if reg.is_regex or reg.pattern is None:
            continue
        if any(pattern.search(reg.pattern) for pattern in regexes):
            logger.debug("Dropping step covered by a regex step: %s", reg.pattern)
            dropped.append((reg.start, reg.end))
        elif not _used_by_feature(reg.pattern, feature_lines):
            logger.debug("Dropping step not used by the feature: %s", reg.pattern)
            dropped.append((reg.start, reg.end))

    if not dropped:
        return code.strip()
    logger.info("Removed %d step definition(s) not matching the feature", len(dropped))
    return remove_spans(code, dropped)


class StepsAgent(BaseAgent):
    kind = "steps"

    def __init__(self, gateway, selectors_module_path: str = DEFAULT_SELECTORS_MODULE, system_prompt: str = None):
        super().__init__(gateway, system_prompt)
        self.selectors_module_path = selectors_module_path

    def generate(self, feature_text: str, selectors_ts: str, temp_steps_ts: str) -> GeneratedArtifact:
        prompt = prompts.steps_prompt(feature_text, self.selectors_module_path, selectors_ts, temp_steps_ts)
        logger.info("▶ Generating steps…")
        logger.debug("Steps prompt length: %d", len(prompt))

        code = sanitize(self._invoke(prompt))
        if not looks_like_steps(code, self.selectors_module_path):
            logger.warning("⚠️ Steps look invalid, retrying with a stricter instruction…")
            directive = prompts.render(
                prompts.STEPS_RETRY_DIRECTIVE, {"selectorsModulePath": self.selectors_module_path}
            )
            code = sanitize(self._invoke(f"{prompt}\n\n{directive}"))
            if not looks_like_steps(code, self.selectors_module_path):
                logger.error("❌ Steps are still invalid. Preview:\n%s", preview(code))
                raise InvalidArtifactError(self.kind, preview(code))

        namespace = selectors_namespace(code, self.selectors_module_path)
        code = filter_to_feature(ensure_universal_steps(code, feature_text, namespace), feature_text)
        logger.info("✅ Steps generated.")
        logger.debug("Steps preview:\n%s", preview(code))
        return GeneratedArtifact(code=code, valid=True, kind=self.kind)

    def add_assertions(self, steps_code: str, html: str, feature_text: str) -> str:
        """Let the model add missing assertions; an enriched file that breaks the heuristic is discarded."""
        logger.info("▶ Adding assertions to steps…")
        enriched = sanitize(self._invoke(prompts.assertions_prompt(steps_code, html)))
        if not looks_like_steps(enriched, self.selectors_module_path):
            logger.warning("⚠️ Steps with assertions look invalid, keeping the previous steps")
            return steps_code
        namespace = selectors_namespace(enriched, self.selectors_module_path)
        return filter_to_feature(ensure_universal_steps(enriched, feature_text, namespace), feature_text)
