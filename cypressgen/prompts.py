"""
Prompt templates for every model call in the pipeline.

There is exactly one template per responsibility, compiled once from the shared
Jinja2 ``env``. Placeholders use the ``{{name}}`` form; a placeholder without a
value in the context is rendered back as it was written.
"""
import textwrap
from collections import namedtuple

from jinja2 import Environment, Undefined

PromptTemplate = namedtuple("PromptTemplate", ["name", "version", "template"])


class KeepPlaceholder(Undefined):
    """Renders an unknown ``{{name}}`` as itself instead of an empty string."""

    def __str__(self):
        return "{{" + self._undefined_name + "}}"


env = Environment(undefined=KeepPlaceholder, keep_trailing_newline=False)


def _template(name, version, source):
    return PromptTemplate(name, version, env.from_string(textwrap.dedent(source)))


def render(template, context) -> str:
    if isinstance(template, PromptTemplate):
        template = template.template
    if isinstance(template, str):
        template = env.from_string(template)
    return template.render(**context).strip()


SELECTORS = _template("selectors", 3, """
You are a selector-generator for Cypress tests.

Input:
1) Gherkin feature (plain text)
2) HTML snapshot of the loaded page (plain text)

Output: ONLY a complete, valid TypeScript file for common/selectors/orchestrator_selectors.ts.
NO explanations, NO markdown, NO code fences, NO comments, NO imports. JUST WORKING SELECTORS code for Cypress.

Rules:
- The file MUST start with exactly these four helpers, with exactly these signatures:
    export function visitHomepage() { return cy.visit('/'); }
    export function clickLabel(label: string) { return cy.contains(String(label)).click({ force: true }); }
    export function getLabel(label: string) { return cy.contains(':visible', String(label)); }
    export function getHeading(label: string) { return cy.contains('h1:visible, h2:visible, [role="heading"]:visible', String(label)); }
- Every other export MUST be a function that returns a single query chain rooted at cy.get(...) or cy.contains(...).
- For each literal in double quotes in the feature that needs its own element, create a helper:
    - Name: PascalCase, prefixed with sel (e.g. "Anlegen" -> selAnlegen)
    - Implementation: the most robust unique CSS selector (prefer [data-test], [data-cy], id, classes; fall back to cy.contains).
- Never export string constants. Never use .should() or any assertion inside a helper.
- Use single quotes. Named exports only.

Example output (FOLLOW THIS FORMAT; NO EXPLANATIONS OR COMMENTS):

export function visitHomepage() {
  return cy.visit('/');
}
export function selTile(label: string) {
  return cy.get('section div.cursor-pointer').contains(label);
}
export function selHeading(label: string) {
  return cy.get('h2').contains(label);
}

Feature:
{{featureText}}

HTML Snapshot:
{{htmlSnapshot}}
""")

STEPS = _template("steps", 3, """
You are a Cypress step-definition generator. You are given:
- Feature text: a complete .feature Gherkin file.
- Selectors module path: e.g. "../selectors/orchestrator_selectors".
- Selectors file content: TypeScript code exporting helpers such as visitHomepage(), clickLabel(label), getLabel(label), getHeading(label) and optional element helpers.
- Steps file content: an auto-generated step-definition skeleton with one step per feature line and // TODO: implement step placeholders.

Your task: replace every placeholder body with working Cypress code.
1. The file starts with exactly:
     import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';
     import * as sel from '{{selectorsModulePath}}';
2. Every step body is exactly one returned Cypress chain built from the selectors helpers.
   Always return the chain. Do not leave any step unimplemented.
3. Do not modify the step text. No regex. No parameter placeholders ({string}, {int}, {word}, ...).
   Every step definition reproduces the literal step text exactly as written in the feature.
4. Mapping rules (strict):
   Given the Customer is on the homepage -> return sel.visitHomepage();
   When he clicks "X" or When he clicks X -> return sel.clickLabel('X');
   Then "X" should be displayed -> return sel.getHeading('X').should('be.visible');
   If "X" is not a heading, use -> return sel.getLabel('X').should('be.visible');
   If a step refers to a URL or path like /xyz, never check equality. Use -> return cy.location('pathname', { timeout: 10000 }).should('include', '/xyz');
   X is a placeholder: use the actual names from the steps.
5. No control flow: no if/else, no loops, no ternaries.
6. Never call a selector inside cy.get(...). Never call cy.visitHomepage().
7. No extra imports, no comments, no code fences, no JSON.

Feature:
{{featureText}}

Selectors Module Path:
{{selectorsModulePath}}

Selectors File Content:
{{selectorsTs}}

Steps File Content:
{{tempStepsTs}}
""")

ASSERTIONS = _template("assertions", 2, """
You are a verification agent for Cypress tests. Given the existing step definitions and
an HTML snapshot, add any missing assertions that verify test success.

Steps Definitions:
{{stepsText}}

HTML Snapshot:
{{htmlSnapshot}}

Instructions:
- Use Cypress assertions (should('be.visible'), should('contain.text'), etc.).
- Keep every step text and every import exactly as it is.
- Return only TypeScript code. No prose, no markdown, no comments.
""")

CONSISTENCY_FIX = _template("consistency-fix", 2, """
You are reviewing two generated Cypress files that must work together.
The steps file imports helpers from the selectors file.

The following problems were found:
{{errors}}

Selectors File (selectors.ts):
{{selectorsTs}}

Steps File (steps.ts):
{{stepsTs}}

Fix the problems. Respond with a single JSON object and nothing else:
{"selectors": "<full corrected selectors.ts or null if unchanged>", "steps": "<full corrected steps.ts or null if unchanged>"}
""")

CODE_FIX = _template("code-fix", 2, """
You are an expert TypeScript programmer.
You will receive a generated selectors file for Cypress tests.
Your task:
- Return only valid, compilable TypeScript code.
- The code must include all required closing braces and semicolons.
- Keep every exported function name and signature.
- Do not include explanations, comments, markdown formatting, or any extra text.

Selectors File Content:
{{selectorsTs}}
""")

SELECTORS_RETRY_DIRECTIVE = (
    "Return ONLY TypeScript for Cypress selectors. No prose, no Markdown. "
    "Start your file with `export `."
)

STEPS_RETRY_DIRECTIVE = (
    "Return ONLY TypeScript step definitions. No prose, no Markdown. "
    "Start your file with `import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';` "
    "followed by `import * as sel from '{{selectorsModulePath}}';` and call the sel.* helpers in every step."
)


def selectors_prompt(feature_text: str, html_snapshot: str) -> str:
    return render(SELECTORS, {"featureText": feature_text, "htmlSnapshot": html_snapshot})


def steps_prompt(feature_text, selectors_module_path, selectors_ts, temp_steps_ts) -> str:
    return render(STEPS, {
        "featureText": feature_text,
        "selectorsModulePath": selectors_module_path,
        "selectorsTs": selectors_ts,
        "tempStepsTs": temp_steps_ts,
    })


def assertions_prompt(steps_text: str, html_snapshot: str) -> str:
    return render(ASSERTIONS, {"stepsText": steps_text, "htmlSnapshot": html_snapshot})


def consistency_fix_prompt(selectors_ts: str, steps_ts: str, errors) -> str:
    return render(CONSISTENCY_FIX, {
        "errors": "\n".join(f"- {error}" for error in errors),
        "selectorsTs": selectors_ts,
        "stepsTs": steps_ts,
    })


def code_fix_prompt(selectors_ts: str) -> str:
    return render(CODE_FIX, {"selectorsTs": selectors_ts})
