import pytest

from cypressgen.agents.steps import (
    UNIVERSAL_STEPS,
    StepsAgent,
    ensure_universal_steps,
    filter_to_feature,
    looks_like_steps,
    normalize_step_text,
    sanitize,
)
from cypressgen.agents.verification import missing_exports, undeclared_namespaces
from cypressgen.errors import InvalidArtifactError
from cypressgen.sourcemodel import parse_step_registrations

from .conftest import FakeGateway

HEADER = (
    "import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';\n"
    "import * as sel from '../selectors/orchestrator_selectors';\n"
)

HOMEPAGE_STEP = 'Given("the Customer is on the homepage", () => {\n  return sel.visitHomepage();\n});\n'

CLICK_UNIVERSAL = next(step for step in UNIVERSAL_STEPS if step.name == "click").source


def test_sanitize_slices_from_first_import():
    reply = "Here are the steps:\n```typescript\n" + HEADER + "// homepage\n" + HOMEPAGE_STEP + "```"
    assert sanitize(reply) == (HEADER + HOMEPAGE_STEP).strip()


def test_looks_like_steps_accepts_valid_code():
    assert looks_like_steps(HEADER + "\n" + HOMEPAGE_STEP)


@pytest.mark.parametrize("code", [
    "",
    "import * as sel from '../selectors/orchestrator_selectors';\n" + HOMEPAGE_STEP,
    "import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';\n" + HOMEPAGE_STEP,
    HEADER + 'Given("x", () => {\n  return cy.visit("/");\n});',
    HEADER + 'When("x", () => {\n  return cy.get(sel.selStart()).click();\n});',
    HEADER + 'Given("x", () => {\n  sel.getLabel("a");\n  return cy.visitHomepage();\n});',
    HEADER + 'Then("x", () => {\n  sel.getLabel("a");\n  return cy.url().should(\'eq\', \'/done\');\n});',
])
def test_looks_like_steps_rejects(code):
    assert not looks_like_steps(code)


def test_path_contains_assertion_is_allowed():
    code = HEADER + (
        'Then("x", () => {\n  sel.getLabel("a");\n'
        "  return cy.location('pathname', { timeout: 10000 }).should('include', '/xyz');\n});"
    )
    assert looks_like_steps(code)


def test_universal_click_replaces_duplicate_literal():
    feature = 'Feature: x\n  Scenario: y\n    When he clicks "Anlegen"\n'
    model_output = (
        HEADER + "\n"
        + 'When("he clicks \\"Anlegen\\"", () => {\n  return sel.clickLabel(\'Anlegen\');\n});\n\n'
        + CLICK_UNIVERSAL
    )

    result = filter_to_feature(ensure_universal_steps(model_output, feature), feature)

    registrations = parse_step_registrations(result)
    assert len(registrations) == 1
    assert registrations[0].is_regex
    assert registrations[0].compiled().search('he clicks "Anlegen"')
    assert result.startswith(HEADER.strip())


def test_ensure_universal_steps_only_adds_what_the_feature_uses():
    feature = "Given the Customer is on the homepage\n"
    result = ensure_universal_steps(HEADER, feature)
    assert "return sel.visitHomepage();" in result
    assert "sel.clickLabel(label)" not in result
    assert "sel.inputByLabel(field)" not in result


def test_ensure_universal_steps_does_not_duplicate():
    feature = 'Given the Customer is on the homepage\nWhen he clicks "Start"\nThen "Results" should be displayed\n'
    once = ensure_universal_steps(HEADER, feature)
    assert ensure_universal_steps(once, feature) == once
    assert len(parse_step_registrations(once)) == 3


def test_ensure_universal_steps_covers_field_changes():
    feature = 'When he changes "Amount" to "500"\nThen the changed "Amount" should be shown "500"\n'
    result = ensure_universal_steps(HEADER, feature)
    assert "sel.inputByLabel(field).clear().type(value)" in result
    assert "sel.getLabel(label).parent().should('contain.text', value)" in result
    assert "should('be.visible')" not in result


def test_filter_drops_steps_the_feature_does_not_use():
    feature = "Given the Customer is on the homepage\n"
    code = HEADER + "\n" + HOMEPAGE_STEP + "\n" + 'When("he logs out", () => {\n  return sel.clickLabel(\'Logout\');\n});\n'
    result = filter_to_feature(code, feature)
    steps = [reg.pattern for reg in parse_step_registrations(result)]
    assert steps == ["the Customer is on the homepage"]
    assert "import * as sel" in result


def test_filter_matches_placeholders():
    feature = 'When he enters "<amount>" into the field\nAnd he enters "500" into the box\n'
    code = HEADER + (
        'When("he enters {string} into the field", (value: string) => {\n  return sel.inputByLabel(\'field\').type(value);\n});\n'
        'When("he enters {string} into the box", (value: string) => {\n  return sel.inputByLabel(\'box\').type(value);\n});\n'
        'When("she enters {string} into the basement", (value: string) => {\n  return sel.inputByLabel(\'x\').type(value);\n});\n'
    )
    result = filter_to_feature(code, feature)
    patterns = [reg.pattern for reg in parse_step_registrations(result)]
    assert patterns == ["he enters {string} into the field", "he enters {string} into the box"]


def test_normalize_step_text():
    assert normalize_step_text('He  enters "<Amount>" and {int}') == "he enters <*> and <*>"


def test_generate_runs_both_passes():
    feature = 'Given the Customer is on the homepage\nWhen he clicks "Start"\n'
    reply = "```ts\n" + HEADER + "\n" + HOMEPAGE_STEP + 'Then("an invented step", () => {\n  return sel.getLabel(\'x\');\n});\n```'
    gateway = FakeGateway([reply])
    artifact = StepsAgent(gateway).generate(feature, "export function visitHomepage() {}", "skeleton")

    assert artifact.valid and artifact.kind == "steps"
    registrations = parse_step_registrations(artifact.code)
    assert all(reg.is_regex for reg in registrations)
    assert len(registrations) == 2
    assert "an invented step" not in artifact.code
    assert "skeleton" in gateway.prompt(0)


def test_named_selectors_import_is_rejected():
    code = (
        "import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';\n"
        "import { visitHomepage } from '../selectors/orchestrator_selectors';\n"
        + HOMEPAGE_STEP
    )
    assert not looks_like_steps(code)


def test_universal_steps_use_the_imported_alias():
    feature = 'Given the Customer is on the homepage\nWhen he clicks "Start"\n'
    reply = (
        "import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';\n"
        "import * as s from '../selectors/orchestrator_selectors';\n\n"
        'Given("the Customer is on the homepage", () => {\n  return s.visitHomepage();\n});\n'
    )
    gateway = FakeGateway([reply])
    code = StepsAgent(gateway).generate(feature, "", "").code

    assert "return s.visitHomepage();" in code
    assert "return s.clickLabel(label);" in code
    assert "sel." not in code
    assert missing_exports("export function visitHomepage() {}\nexport function clickLabel() {}", code) == []
    assert undeclared_namespaces(code) == []


def test_generate_retries_then_fails():
    gateway = FakeGateway(["no code here", "still nothing"])
    with pytest.raises(InvalidArtifactError) as excinfo:
        StepsAgent(gateway).generate("Given x", "", "")

    assert str(excinfo.value) == "Model did not return valid steps code."
    assert len(gateway.calls) == 2
    retry_prompt = gateway.prompt(1)
    assert "import * as sel from '../selectors/orchestrator_selectors';" in retry_prompt
    assert "{{selectorsModulePath}}" not in retry_prompt


def test_generate_uses_configured_module_path():
    gateway = FakeGateway([HEADER + HOMEPAGE_STEP, "x"])
    agent = StepsAgent(gateway, selectors_module_path="../selectors/custom")
    with pytest.raises(InvalidArtifactError):
        agent.generate("Given the Customer is on the homepage", "", "")
    assert "../selectors/custom" in gateway.prompt(0)


def test_add_assertions_keeps_previous_steps_on_invalid_reply():
    gateway = FakeGateway(["Sorry, no."])
    steps = HEADER + HOMEPAGE_STEP
    assert StepsAgent(gateway).add_assertions(steps, "<body></body>", "Given the Customer is on the homepage") == steps
