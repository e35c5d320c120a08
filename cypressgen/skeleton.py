"""Placeholder step definitions generated straight from a feature file, no model involved."""
from dataclasses import dataclass
from typing import List

from jinja2 import Environment

from .feature import FeatureDocument, split_step

PRIMARY_KEYWORDS = ("Given", "When", "Then")


@dataclass(frozen=True)
class StepStub:
    keyword: str
    text: str


def escape_js_string(value: str) -> str:
    value = value.replace("\\", "\\\\")  # escape backslashes
    value = value.replace('"', '\\"')    # escape double quotes
    return value


env = Environment(trim_blocks=True, keep_trailing_newline=True)
env.filters["escape_js_string"] = escape_js_string

skeleton_template = env.from_string('''import { Given, When, Then } from "@badeball/cypress-cucumber-preprocessor";

{% for stub in stubs %}
{% if not loop.first %}

{% endif %}
{{ stub.keyword }}("{{ stub.text | escape_js_string }}", () => {
  // TODO: implement step
});
{% endfor %}
''')


def extract_step_stubs(feature_text: str) -> List[StepStub]:
    """
    One stub per distinct (keyword, text) pair in first-seen order. ``And`` and
    ``But`` take the keyword of the previous step, ``Given`` at the start.
    """
    stubs = []
    seen = set()
    last_keyword = None
    for keyword, text in FeatureDocument.from_text(feature_text).step_lines():
        if keyword not in PRIMARY_KEYWORDS:
            keyword = last_keyword or "Given"
        last_keyword = keyword
        stub = StepStub(keyword, text)
        if stub not in seen:
            seen.add(stub)
            stubs.append(stub)
    return stubs


def render_skeleton(stubs: List[StepStub]) -> str:
    return skeleton_template.render(stubs=stubs)


def generate_step_definitions(feature_path) -> str:
    return render_skeleton(extract_step_stubs(FeatureDocument.read(feature_path).text))
