"""
Deterministic repairs for generated selectors code.

Each rule has a name and a pure ``apply(source) -> source``. ``auto_fix`` runs
them in the order of ``RULES``; a rule that finds nothing to do returns its input
unchanged.
"""
import logging
import re
from collections import namedtuple

from jinja2 import Environment

from .sourcemodel import export_names, find_export, parse_exports, remove_spans

logger = logging.getLogger(__name__)

RewriteRule = namedtuple("RewriteRule", ["name", "apply"])


def js_string(value: str) -> str:
    """Single-quoted JavaScript string literal for ``value``."""
    value = value.replace("\\", "\\\\")
    value = value.replace("'", "\\'")
    value = value.replace("\n", "\\n")
    return f"'{value}'"


env = Environment(keep_trailing_newline=False)
env.filters["js_string"] = js_string

query_function_template = env.from_string(
    "export function {{ name }}() { return cy.get({{ selector | js_string }}); }"
)

CORE_HELPERS = {
    "visitHomepage": "export function visitHomepage() { return cy.visit('/'); }",
    "clickLabel": (
        "export function clickLabel(label: string) {\n"
        "  const parts = String(label).split(/\\s+(?:and|und)\\s+|,\\s*/i).map(s => s.trim()).filter(Boolean);\n"
        "  let chain = cy.wrap(null);\n"
        "  parts.forEach(p => { chain = chain.then(() => cy.contains(String(p)).click({ force: true })); });\n"
        "  return chain;\n"
        "}"
    ),
    "getLabel": "export function getLabel(label: string) { return cy.contains(':visible', String(label)); }",
    "getHeading": (
        "export function getHeading(label: string) "
        "{ return cy.contains('h1:visible, h2:visible, [role=\"heading\"]:visible', String(label)); }"
    ),
}

INPUT_BY_LABEL = (
    "export function inputByLabel(label: string) {\n"
    "  const text = String(label);\n"
    "  return cy.contains('label', text).then($l => {\n"
    "    const id = $l.attr('for');\n"
    "    if (id) return cy.get('#' + id);\n"
    "    const $input = $l.closest('form, *').find('input, textarea, [contenteditable=\"true\"]').first();\n"
    "    if ($input && $input.length) return cy.wrap($input);\n"
    "    return cy.contains(':visible', text).parents().find('input, textarea, [contenteditable=\"true\"]').first();\n"
    "  });\n"
    "}"
)

BROKEN_ATTRIBUTE_SELECTOR = re.compile(
    r"return\s+cy\.get\(\s*(['\"])([^'\"]*\[[^\]=]+)=\1\)\s*;\s*(\})?\s*(['\"])([^'\"]+)\4\]\s*['\"]?\s*;?",
    re.MULTILINE,
)
TRAILING_JUNK = re.compile(r"(cy\.get\([^)]*\)\s*;)[ \t]*['\"][^'\"\n]+['\"][ \t]*;?")
STRAY_FRAGMENT = re.compile(r"^\s*[A-Za-z0-9_-]+\"\]';\s*$", re.MULTILINE)
UNDEFINED_SELECTOR = re.compile(r"cy\.get\((['\"])undefined=\"undefined\"\]\1\)")
# visitHomepage returns a visit of the root path, with or without options
VISITS_ROOT = re.compile(r"(?:\breturn\s+|=>\s*\(?\s*)cy\.visit\(\s*(['\"`])/\1")


def const_string_to_function(source: str) -> str:
    """``export const NAME = 'css'`` becomes a function returning ``cy.get('css')``."""
    out = source
    for decl in reversed(parse_exports(source)):
        if decl.kind != "string" or not decl.value:
            continue
        replacement = query_function_template.render(name=decl.name, selector=decl.value)
        out = out[:decl.start] + replacement + out[decl.end:]
    return out


def inject_core_helpers(source: str) -> str:
    present = set(export_names(source))
    missing = [name for name in CORE_HELPERS if name not in present]
    if not missing:
        return source
    logger.debug("Injecting core helpers: %s", ", ".join(missing))
    header = "\n".join(CORE_HELPERS[name] for name in missing)
    return f"{header}\n{source}" if source.strip() else header


def normalize_visit_homepage(source: str) -> str:
    """A ``visitHomepage`` that does not return a visit of ``'/'`` is replaced with the canonical one."""
    decl = find_export(source, "visitHomepage")
    if decl is None or decl.kind in ("class", "list") or VISITS_ROOT.search(decl.text):
        return source
    return source[:decl.start] + CORE_HELPERS["visitHomepage"] + source[decl.end:]


def normalize_get_label(source: str) -> str:
    """A ``getLabel`` that is not scoped to visible elements is replaced with the canonical one."""
    decl = find_export(source, "getLabel")
    if decl is None or decl.kind not in ("function", "arrow") or ":visible" in decl.text:
        return source
    return source[:decl.start] + CORE_HELPERS["getLabel"] + source[decl.end:]


def inject_input_by_label(source: str) -> str:
    if "inputByLabel" in export_names(source):
        return source
    return f"{source.rstrip()}\n{INPUT_BY_LABEL}"


def repair_attribute_selectors(source: str) -> str:
    """Rejoin attribute selectors that a truncated reply split across statements."""

    def _join(match):
        prefix, brace, value = match.group(2), match.group(3), match.group(5)
        repaired = f"return cy.get('{prefix}=\"{value}\"]');"
        return f"{repaired} }}" if brace else repaired

    return BROKEN_ATTRIBUTE_SELECTOR.sub(_join, source)


def strip_trailing_junk(source: str) -> str:
    return TRAILING_JUNK.sub(r"\1", source)


def strip_stray_fragments(source: str) -> str:
    return STRAY_FRAGMENT.sub("", source)


def remove_input_helpers(source: str) -> str:
    """Drop ad-hoc ``*Input()`` helpers; ``inputByLabel`` covers them."""
    spans = [
        (decl.start, decl.end)
        for decl in parse_exports(source)
        if decl.kind in ("function", "arrow") and decl.name.endswith("Input") and decl.name != "inputByLabel"
    ]
    if not spans:
        return source
    return remove_spans(source, spans)


def neutralize_undefined_selectors(source: str) -> str:
    return UNDEFINED_SELECTOR.sub("cy.get('*')", source)


RULES = [
    RewriteRule("const-string-to-function", const_string_to_function),
    RewriteRule("inject-core-helpers", inject_core_helpers),
    RewriteRule("normalize-visit-homepage", normalize_visit_homepage),
    RewriteRule("normalize-get-label", normalize_get_label),
    RewriteRule("inject-input-by-label", inject_input_by_label),
    RewriteRule("repair-attribute-selectors", repair_attribute_selectors),
    RewriteRule("strip-trailing-junk", strip_trailing_junk),
    RewriteRule("strip-stray-fragments", strip_stray_fragments),
    RewriteRule("remove-input-helpers", remove_input_helpers),
    RewriteRule("neutralize-undefined-selectors", neutralize_undefined_selectors),
]


def auto_fix(source: str, rules=None) -> str:
    out = source
    for rule in rules or RULES:
        fixed = rule.apply(out)
        if fixed != out:
            logger.debug("Rewrite rule '%s' changed the selectors code", rule.name)
        out = fixed
    return out.strip()
