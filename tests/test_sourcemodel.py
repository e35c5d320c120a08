from cypressgen.sourcemodel import (
    check_syntax,
    declares,
    export_names,
    mask,
    member_accesses,
    parse_exports,
    parse_imports,
    parse_step_registrations,
    remove_spans,
)

MODULE = """export const a = 'x';
export const b = (label: string) => cy.get(label);
export function c() {
  return cy.get('c { not a brace');
}
export class D {}
export { e, f as g };
"""


def test_parse_exports_kinds():
    decls = {decl.name: decl for decl in parse_exports(MODULE)}
    assert [decl.name for decl in parse_exports(MODULE)] == ["a", "b", "c", "D", "e", "g"]
    assert decls["a"].kind == "string" and decls["a"].value == "x"
    assert decls["b"].kind == "arrow"
    assert decls["c"].kind == "function"
    assert decls["c"].text.endswith("}")
    assert decls["D"].kind == "class"
    assert decls["e"].kind == "list"


def test_nested_exports_are_ignored():
    source = "export function outer() {\n  const s = 'export function inner() {}';\n  return cy.get(s);\n}"
    assert export_names(source) == ["outer"]


def test_parse_imports():
    source = (
        "import { Given, When, Then } from '@badeball/cypress-cucumber-preprocessor';\n"
        "import * as sel from '../selectors/orchestrator_selectors';\n"
        'import React, { useState } from "react";\n'
    )
    steps, selectors, react = parse_imports(source)
    assert steps.module == "@badeball/cypress-cucumber-preprocessor"
    assert steps.names == ["Given", "When", "Then"]
    assert selectors.namespace == "sel" and selectors.names == []
    assert react.default == "React" and react.names == ["useState"]


def test_mask_preserves_offsets():
    source = "const a = 'b}'; // c {\nconst d = `e${f}`;"
    masked = mask(source)
    assert len(masked) == len(source)
    assert "}" not in masked.split("\n")[0]
    assert masked.count("\n") == 1


def test_check_syntax_clean_code():
    assert check_syntax(MODULE) == []
    assert check_syntax("const re = /[)}]/g; const s = '{';") == []


def test_check_syntax_reports_problems():
    assert check_syntax("const a = 'abc;\nconst b = 1;") == ["line 1: unterminated string literal"]
    assert check_syntax("function f() {\n  return 1;\n") == ["line 1: unclosed '{'"]
    assert check_syntax("f());") == ["line 1: unexpected ')'"]
    assert any("does not match" in problem for problem in check_syntax("function f() { return [1, 2); }"))
    assert check_syntax("/* open comment") == ["line 1: unterminated block comment"]


def test_member_accesses_skip_strings_and_other_objects():
    source = "sel.a(); const t = 'sel.b'; other.sel.c; sel . d"
    assert member_accesses(source, "sel") == ["a", "d"]


def test_parse_step_registrations():
    source = (
        'Given("a \\"b\\"", () => {\n  return sel.x();\n});\n'
        "When(/^x (\\d+)$/i, (n) => {\n  return sel.y(n);\n});\n"
    )
    literal, regex = parse_step_registrations(source)
    assert literal.pattern == 'a "b"' and not literal.is_regex
    assert literal.text.endswith(";")
    assert regex.is_regex and regex.flags == "i"
    assert regex.compiled().search("X 12")


def test_remove_spans_collapses_blank_lines():
    source = "a\n\nb\n\nc"
    start = source.index("b")
    assert remove_spans(source, [(start, start + 1)]) == "a\n\nc"


def test_declares():
    source = (
        "import * as sel from './sel';\n"
        "import { a as renamed } from './a';\n"
        "const local = 1;\n"
        "const text = 'const ghost = 2';\n"
    )
    assert declares(source, "sel")
    assert declares(source, "renamed")
    assert declares(source, "local")
    assert not declares(source, "ghost")
    assert not declares(source, "se")
