import pytest

from cypressgen.errors import FeatureNotFoundError
from cypressgen.feature import FeatureDocument, parse_url_directive, split_step


@pytest.mark.parametrize("text, expected", [
    ("# url: https://example.org/page\nFeature: x", "https://example.org/page"),
    ("#URL:   http://localhost:3000  \nFeature: x", "http://localhost:3000"),
    ("Feature: x\n# url: https://example.org", None),
    ("", None),
])
def test_parse_url_directive(text, expected):
    assert parse_url_directive(text) == expected


def test_split_step():
    assert split_step('  When he clicks "Start"  ') == ("When", 'he clicks "Start"')
    assert split_step("Scenario: x") is None
    assert split_step("Butterfly") is None


def test_step_lines_skip_comments_and_blanks():
    document = FeatureDocument.from_text("# url: x\nFeature: F\n\n  # Given commented out\n  Given A\n  And B\n")
    assert list(document.step_lines()) == [("Given", "A"), ("And", "B")]
    assert document.url == "x"


def test_read_missing_file(tmp_path):
    with pytest.raises(FeatureNotFoundError):
        FeatureDocument.read(tmp_path / "missing.feature")
