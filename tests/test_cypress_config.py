from cypressgen.cypress_config import locate_cypress_config, replace_base_url, switch_base_url

CONFIG = "export default defineConfig({\n  e2e: {\n    baseUrl: \"http://localhost:3000\",\n  },\n});\n"


def _feature(tmp_path, first_line="# url: https://example.org/page"):
    features = tmp_path / "cypress" / "e2e" / "features"
    features.mkdir(parents=True)
    path = features / "demo.feature"
    path.write_text(f"{first_line}\nFeature: Demo\n", encoding="utf-8")
    return path


def test_locate_cypress_config(tmp_path):
    assert locate_cypress_config(_feature(tmp_path)) == tmp_path / "cypress.config.ts"


def test_replace_base_url():
    text, old = replace_base_url(CONFIG, "https://example.org")
    assert old == "http://localhost:3000"
    assert "baseUrl: 'https://example.org'," in text


def test_replace_base_url_without_entry():
    assert replace_base_url("export default {};", "x") == ("export default {};", None)


def test_switch_base_url_reads_feature_directive(tmp_path):
    feature = _feature(tmp_path)
    (tmp_path / "cypress.config.ts").write_text(CONFIG, encoding="utf-8")

    assert switch_base_url(feature) == "https://example.org/page"
    assert "baseUrl: 'https://example.org/page'," in (tmp_path / "cypress.config.ts").read_text(encoding="utf-8")


def test_switch_base_url_without_directive(tmp_path):
    feature = _feature(tmp_path, first_line="Feature: no url")
    (tmp_path / "cypress.config.ts").write_text(CONFIG, encoding="utf-8")
    assert switch_base_url(feature) is None
    assert (tmp_path / "cypress.config.ts").read_text(encoding="utf-8") == CONFIG


def test_switch_base_url_without_config_file(tmp_path):
    assert switch_base_url(_feature(tmp_path)) is None
