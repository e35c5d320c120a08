"""
A lightweight model of a generated TypeScript module.

This is not a TypeScript parser. It knows enough about the language to find
string/template/regex literals and comments, and from there the top-level
export and import declarations, Cucumber step registrations and member calls
that the agents and the verification pass work with.
"""
import re
from collections import namedtuple
from dataclasses import dataclass
from typing import List, Optional

Literal = namedtuple("Literal", ["kind", "start", "end", "closed"])
ImportDecl = namedtuple("ImportDecl", ["module", "names", "namespace", "default", "start", "end"])

QUOTES = "'\"`"
OPENERS = "([{"
CLOSERS = ")]}"
PAIRS = {")": "(", "]": "[", "}": "{"}
REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
REGEX_KEYWORDS = {"return", "typeof", "case", "do", "else", "in", "of", "void", "yield", "await"}

CONTINUATION_END = ("=", ",", "(", "[", "{", "+", "-", "*", "/", "&", "|", "?", ":", ".", "=>")
CONTINUATION_START = (".", "?", ":", "+", "-", "*", "/", "&", "|", ",", ")", "]", "=>")

EXPORT_DECL = re.compile(
    r"\bexport\s+(?:default\s+)?(?:declare\s+)?(?:async\s+)?(function\*?|const|let|var|class)\s+([A-Za-z_$][\w$]*)"
)
EXPORT_LIST = re.compile(r"\bexport\s*\{([^}]*)\}")
IMPORT_DECL = re.compile(r"\bimport\s+(?:type\s+)?([^;]+?)\s+from\s+(['\"])([^'\"]+)\2\s*;?")
STEP_CALL = re.compile(r"(?<![\w$.])(Given|When|Then)\s*\(")
STRING_VALUE = re.compile(r"^(['\"`])((?:\\.|(?!\1).)*)\1$", re.DOTALL)
ARROW_VALUE = re.compile(r"^(?:async\s+)?(?:\([^)]*\)|[A-Za-z_$][\w$]*)\s*(?::\s*[^=]+?)?\s*=>")


# --- Lexical scanning ---

def _string_end(source: str, i: int) -> int:
    quote = source[i]
    j = i + 1
    while j < len(source):
        c = source[j]
        if c == "\\":
            j += 2
            continue
        if c == quote:
            return j + 1
        if c == "\n" and quote != "`":
            return -1
        j += 1
    return -1


def _regex_end(source: str, i: int) -> int:
    j = i + 1
    in_class = False
    while j < len(source):
        c = source[j]
        if c == "\\":
            j += 2
            continue
        if c == "\n":
            return -1
        if in_class:
            if c == "]":
                in_class = False
        elif c == "[":
            in_class = True
        elif c == "/":
            j += 1
            while j < len(source) and source[j].isalpha():
                j += 1
            return j
        j += 1
    return -1


def iter_literals(source: str):
    """
    Yield a ``Literal`` for every string, template literal, regex literal and
    comment in ``source``. An unterminated string stops at the end of its line;
    an unterminated template literal or block comment runs to the end of the text.
    """
    i, n = 0, len(source)
    prev, word = "", ""
    while i < n:
        c = source[i]
        nxt = source[i + 1] if i + 1 < n else ""
        if c in QUOTES:
            end = _string_end(source, i)
            kind = "template" if c == "`" else "string"
            if end == -1:
                if kind == "template":
                    yield Literal(kind, i, n, False)
                    return
                newline = source.find("\n", i)
                end = n if newline == -1 else newline
                yield Literal(kind, i, end, False)
            else:
                yield Literal(kind, i, end, True)
            i, prev, word = end, c, ""
            continue
        if c == "/" and nxt == "/":
            end = source.find("\n", i)
            end = n if end == -1 else end
            yield Literal("comment", i, end, True)
            i = end
            continue
        if c == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            if end == -1:
                yield Literal("comment", i, n, False)
                return
            yield Literal("comment", i, end + 2, True)
            i = end + 2
            continue
        if c == "/" and (prev == "" or prev in REGEX_PRECEDERS or word in REGEX_KEYWORDS):
            end = _regex_end(source, i)
            if end != -1:
                yield Literal("regex", i, end, True)
                i, prev, word = end, "/", ""
                continue
        if c.isalnum() or c in "_$":
            j = i
            while j < n and (source[j].isalnum() or source[j] in "_$"):
                j += 1
            word, prev, i = source[i:j], source[j - 1], j
            continue
        if not c.isspace():
            prev, word = c, ""
        i += 1


def mask(source: str) -> str:
    """
    Return ``source`` with the inside of every literal and every comment blanked
    out. Offsets and newlines are preserved so positions map 1:1.
    """
    chars = list(source)
    for literal in iter_literals(source):
        if literal.kind == "comment":
            lo, hi = literal.start, literal.end
        else:
            lo, hi = literal.start + 1, literal.end - 1 if literal.closed else literal.end
        for k in range(lo, hi):
            if chars[k] != "\n":
                chars[k] = " "
    return "".join(chars)


def _depth_at(masked: str, pos: int) -> int:
    depth = 0
    for c in masked[:pos]:
        if c in OPENERS:
            depth += 1
        elif c in CLOSERS:
            depth = max(depth - 1, 0)
    return depth


def find_closing(masked: str, open_index: int) -> int:
    """Index of the bracket closing the one at ``open_index``, or -1."""
    depth = 0
    for j in range(open_index, len(masked)):
        c = masked[j]
        if c in OPENERS:
            depth += 1
        elif c in CLOSERS:
            depth -= 1
            if depth == 0:
                return j
    return -1


def _statement_end(masked: str, start: int) -> int:
    depth = 0
    for j in range(start, len(masked)):
        c = masked[j]
        if c in OPENERS:
            depth += 1
        elif c in CLOSERS:
            if depth == 0:
                return j
            depth -= 1
        elif depth == 0:
            if c == ";":
                return j + 1
            if c == "\n":
                before = masked[start:j].rstrip()
                after = masked[j:].lstrip()
                if before and not before.endswith(CONTINUATION_END) and not after.startswith(CONTINUATION_START):
                    return j
    return len(masked)


def line_of(source: str, pos: int) -> int:
    return source.count("\n", 0, pos) + 1


def check_syntax(source: str) -> List[str]:
    """Report unbalanced brackets and unterminated literals or comments."""
    problems = []
    names = {"string": "string literal", "template": "template literal", "comment": "block comment"}
    for literal in iter_literals(source):
        if literal.closed:
            continue
        name = names[literal.kind]
        problems.append(f"line {line_of(source, literal.start)}: unterminated {name}")
    masked = mask(source)
    stack = []
    for j, c in enumerate(masked):
        if c in OPENERS:
            stack.append((c, j))
        elif c in CLOSERS:
            if not stack:
                problems.append(f"line {line_of(source, j)}: unexpected '{c}'")
            elif stack[-1][0] != PAIRS[c]:
                opener, _ = stack.pop()
                problems.append(f"line {line_of(source, j)}: '{c}' does not match '{opener}'")
            else:
                stack.pop()
    for opener, j in stack:
        problems.append(f"line {line_of(source, j)}: unclosed '{opener}'")
    return problems


def unescape_js(raw: str) -> str:
    escapes = {"n": "\n", "t": "\t", "r": "\r"}
    return re.sub(r"\\(.)", lambda m: escapes.get(m.group(1), m.group(1)), raw, flags=re.DOTALL)


def js_regex_to_python(pattern: str, flags: str = ""):
    """Compile a JavaScript regex body with Python's ``re``; None if it does not translate."""
    py_flags = 0
    if "i" in flags:
        py_flags |= re.IGNORECASE
    if "m" in flags:
        py_flags |= re.MULTILINE
    if "s" in flags:
        py_flags |= re.DOTALL
    pattern = re.sub(r"\(\?<([A-Za-z_]\w*)>", r"(?P<\1>", pattern)
    try:
        return re.compile(pattern, py_flags)
    except re.error:
        return None


# --- Declarations ---

@dataclass(frozen=True)
class ExportDecl:
    name: str
    kind: str  # function | arrow | string | value | class | list
    start: int
    end: int
    text: str
    value: Optional[str] = None


def parse_exports(source: str) -> List[ExportDecl]:
    masked = mask(source)
    exports = []
    for m in EXPORT_DECL.finditer(masked):
        if _depth_at(masked, m.start()) != 0:
            continue
        keyword, name = m.group(1), m.group(2)
        if keyword.startswith("function") or keyword == "class":
            end = _block_end(masked, m.end(), keyword == "class")
            kind = "class" if keyword == "class" else "function"
            exports.append(ExportDecl(name, kind, m.start(), end, source[m.start():end]))
            continue
        end = _statement_end(masked, m.start())
        eq = masked.find("=", m.end(), end)
        value = source[eq + 1:end].strip().rstrip(";").strip() if eq != -1 else ""
        kind, literal = _classify_value(value)
        exports.append(ExportDecl(name, kind, m.start(), end, source[m.start():end], literal))
    for m in EXPORT_LIST.finditer(masked):
        if _depth_at(masked, m.start()) != 0:
            continue
        for entry in source[m.start(1):m.end(1)].split(","):
            parts = entry.split()
            if not parts:
                continue
            name = parts[-1] if len(parts) == 3 and parts[1] == "as" else parts[0]
            exports.append(ExportDecl(name, "list", m.start(), m.end(), source[m.start():m.end()]))
    return sorted(exports, key=lambda decl: decl.start)


def _block_end(masked: str, pos: int, is_class: bool) -> int:
    if not is_class:
        paren = masked.find("(", pos)
        if paren == -1:
            return len(masked)
        pos = find_closing(masked, paren)
        if pos == -1:
            return len(masked)
    brace = masked.find("{", pos)
    semicolon = masked.find(";", pos)
    if brace == -1 or (semicolon != -1 and semicolon < brace):
        return len(masked) if semicolon == -1 else semicolon + 1
    close = find_closing(masked, brace)
    return len(masked) if close == -1 else close + 1


def _classify_value(value: str):
    match = STRING_VALUE.match(value)
    if match and not (match.group(1) == "`" and "${" in value):
        return "string", unescape_js(match.group(2))
    if ARROW_VALUE.match(value):
        return "arrow", None
    if re.match(r"^(?:async\s+)?function\b", value):
        return "function", None
    return "value", None


def export_names(source: str) -> List[str]:
    names = []
    for decl in parse_exports(source):
        if decl.name not in names:
            names.append(decl.name)
    return names


def find_export(source: str, name: str) -> Optional[ExportDecl]:
    for decl in parse_exports(source):
        if decl.name == name:
            return decl
    return None


def parse_imports(source: str) -> List[ImportDecl]:
    masked = mask(source)
    imports = []
    for m in IMPORT_DECL.finditer(source):
        if masked[m.start()] != "i" or _depth_at(masked, m.start()) != 0:
            continue
        clause = m.group(1).strip()
        names, namespace, default = [], None, None
        braces = re.search(r"\{([^}]*)\}", clause)
        if braces:
            for entry in braces.group(1).split(","):
                parts = entry.split()
                if parts and parts[0] != "type":
                    names.append(parts[0])
                elif len(parts) > 1:
                    names.append(parts[1])
            clause = clause[:braces.start()] + clause[braces.end():]
        ns = re.search(r"\*\s+as\s+([A-Za-z_$][\w$]*)", clause)
        if ns:
            namespace = ns.group(1)
            clause = clause[:ns.start()] + clause[ns.end():]
        leftover = clause.strip().strip(",").strip()
        if re.match(r"^[A-Za-z_$][\w$]*$", leftover):
            default = leftover
        imports.append(ImportDecl(m.group(3), names, namespace, default, m.start(), m.end()))
    return imports


def member_accesses(source: str, namespace: str) -> List[str]:
    """Names accessed as ``namespace.name`` anywhere in code (not in strings)."""
    masked = mask(source)
    pattern = re.compile(r"(?<![\w$.])" + re.escape(namespace) + r"\s*\.\s*([A-Za-z_$][\w$]*)")
    names = []
    for m in pattern.finditer(masked):
        if m.group(1) not in names:
            names.append(m.group(1))
    return names


def declares(source: str, name: str) -> bool:
    """True when ``name`` is bound by an import or a top-level declaration in ``source``."""
    for decl in parse_imports(source):
        if name in (decl.namespace, decl.default) or name in decl.names:
            return True
    binding = r"\b(?:const|let|var|function|class|as)\s+" + re.escape(name) + r"(?![\w$])"
    return re.search(binding, mask(source)) is not None


def member_calls(source: str, namespace: str) -> List[str]:
    masked = mask(source)
    pattern = re.compile(r"(?<![\w$.])" + re.escape(namespace) + r"\.([A-Za-z_$][\w$]*)\s*\(")
    return [m.group(1) for m in pattern.finditer(masked)]


# --- Step registrations ---

@dataclass(frozen=True)
class StepRegistration:
    keyword: str
    pattern: Optional[str]
    is_regex: bool
    flags: str
    start: int
    end: int
    text: str

    def compiled(self):
        if not self.is_regex or self.pattern is None:
            return None
        return js_regex_to_python(self.pattern, self.flags)


def parse_step_registrations(source: str) -> List[StepRegistration]:
    masked = mask(source)
    steps = []
    for m in STEP_CALL.finditer(masked):
        if _depth_at(masked, m.start()) != 0:
            continue
        paren = m.end() - 1
        close = find_closing(masked, paren)
        end = len(source) if close == -1 else close + 1
        rest = masked[end:]
        tail = len(rest) - len(rest.lstrip(" \t"))
        if rest[tail:tail + 1] == ";":
            end += tail + 1
        k = m.end()
        while k < len(source) and source[k].isspace():
            k += 1
        pattern, is_regex, flags = None, False, ""
        if k < len(source) and source[k] in QUOTES:
            lit_end = _string_end(source, k)
            if lit_end != -1:
                pattern = unescape_js(source[k + 1:lit_end - 1])
        elif k < len(source) and source[k] == "/":
            lit_end = _regex_end(source, k)
            if lit_end != -1:
                body_end = source.rindex("/", k + 1, lit_end)
                pattern, is_regex, flags = source[k + 1:body_end], True, source[body_end + 1:lit_end]
        steps.append(StepRegistration(m.group(1), pattern, is_regex, flags, m.start(), end, source[m.start():end]))
    return steps


def remove_spans(source: str, spans) -> str:
    """Cut the given (start, end) ranges out of ``source`` and tidy the blank lines left behind."""
    out, last = [], 0
    for start, end in sorted(spans):
        if start < last:
            continue
        out.append(source[last:start])
        last = end
    out.append(source[last:])
    return re.sub(r"\n[ \t]*(?:\n[ \t]*){2,}", "\n\n", "".join(out)).strip()
