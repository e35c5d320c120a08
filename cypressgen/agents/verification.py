"""
Cross-checks the generated selectors and steps files.

The static pass compares the names the steps file takes from project modules
with the names the selectors file exports, and runs a bracket/literal syntax
check on both files. Only when that finds problems is the model asked for a
corrected pair of files. Corrections are returned, never applied here.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .. import prompts
from ..sourcemodel import check_syntax, declares, export_names, member_accesses, parse_imports
from .base import BaseAgent, extract_first_code_block

logger = logging.getLogger(__name__)

UNSTRUCTURED_RESPONSE = "Verification response was not structured correctly"
SELECTORS_LABEL = "selectors.ts"
STEPS_LABEL = "steps.ts"
SELECTORS_NAMESPACE = "sel"


@dataclass(frozen=True)
class VerifyResult:
    passed: bool
    errors: Tuple[str, ...] = ()
    corrected_selectors: Optional[str] = None
    corrected_steps: Optional[str] = None


def missing_exports(selectors_code: str, steps_code: str):
    """Names the steps file uses from a relative module that the selectors file does not export."""
    exported = set(export_names(selectors_code))
    missing = []
    for decl in parse_imports(steps_code):
        if not decl.module.startswith("."):
            continue
        used = list(decl.names)
        if decl.namespace:
            used.extend(member_accesses(steps_code, decl.namespace))
        for name in used:
            if name not in exported and name not in missing:
                missing.append(name)
    return missing


def undeclared_namespaces(steps_code: str, namespaces=(SELECTORS_NAMESPACE,)):
    """``(namespace, member)`` pairs for helpers called through a namespace the steps file never imports."""
    undeclared = []
    for namespace in namespaces:
        if declares(steps_code, namespace):
            continue
        undeclared.extend((namespace, member) for member in member_accesses(steps_code, namespace))
    return undeclared


def static_errors(selectors_code: str, steps_code: str):
    errors = [
        f"Missing selector export: '{name}' is used by the steps file but not exported by the selectors file"
        for name in missing_exports(selectors_code, steps_code)
    ]
    errors.extend(
        f"Undeclared namespace: '{namespace}.{member}' is used by the steps file but '{namespace}' is never imported"
        for namespace, member in undeclared_namespaces(steps_code)
    )
    errors.extend(f"{SELECTORS_LABEL}: {problem}" for problem in check_syntax(selectors_code))
    errors.extend(f"{STEPS_LABEL}: {problem}" for problem in check_syntax(steps_code))
    return errors


def _extract_first_json_object(text: str):
    cleaned = re.sub(r"^\s*```(?:json)?\s*$", "", text or "", flags=re.IGNORECASE | re.MULTILINE)
    start = cleaned.find("{")
    if start == -1:
        return None
    try:
        value, _ = json.JSONDecoder().raw_decode(cleaned[start:])
    except json.JSONDecodeError:
        return None
    return value


def _correction_text(value):
    if value is None:
        return None
    value = extract_first_code_block(value).strip() if "```" in value else value.strip()
    return value or None


def parse_correction(reply: str):
    """
    Parse ``{"selectors": str|null, "steps": str|null}`` from a model reply.
    Returns ``(selectors, steps)`` or None when the reply does not have that shape.
    """
    data = _extract_first_json_object(reply)
    if not isinstance(data, dict) or not ({"selectors", "steps"} & set(data)):
        return None
    selectors, steps = data.get("selectors"), data.get("steps")
    if not all(value is None or isinstance(value, str) for value in (selectors, steps)):
        return None
    return _correction_text(selectors), _correction_text(steps)


class VerificationAgent(BaseAgent):
    kind = "verification"

    def verify(self, selectors_code: str, steps_code: str) -> VerifyResult:
        logger.info("▶ Verifying selectors and steps…")
        errors = static_errors(selectors_code, steps_code)
        if not errors:
            logger.info("✅ Verification passed.")
            return VerifyResult(passed=True)

        for error in errors:
            logger.warning("⚠️ %s", error)
        reply = self._invoke(prompts.consistency_fix_prompt(selectors_code, steps_code, errors))
        correction = parse_correction(reply)
        if correction is None:
            logger.error("❌ %s", UNSTRUCTURED_RESPONSE)
            return VerifyResult(passed=False, errors=tuple(errors) + (UNSTRUCTURED_RESPONSE,))

        corrected_selectors, corrected_steps = correction
        logger.info(
            "Verification suggested corrections (selectors: %s, steps: %s)",
            "yes" if corrected_selectors else "no",
            "yes" if corrected_steps else "no",
        )
        return VerifyResult(
            passed=False,
            errors=tuple(errors),
            corrected_selectors=corrected_selectors,
            corrected_steps=corrected_steps,
        )
