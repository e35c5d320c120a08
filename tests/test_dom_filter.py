import pytest

from cypressgen.dom_filter import filter_dom, node_to_html, save_filtered_html, serialize

PAGE = """<!DOCTYPE html>
<html>
<head><title>Demo</title><style>.x { color: red; }</style></head>
<body>
  <div>
    <span></span>
    <p class="lead" data-x="1">Hello <b>World</b> again</p>
  </div>
  <div><img src="a.png"></div>
  <section id="main"><!-- a comment --><script>var a = 1;</script></section>
  <ul><li>   </li></ul>
  <button class="btn btn primary">Start</button>
</body>
</html>
"""


def _assert_no_dead_leaves(node):
    for each in node.iter_nodes():
        assert each.text_content or each.id or each.class_list or each.children


def test_filter_dom_keeps_only_qualifying_elements():
    root = filter_dom(PAGE)

    assert root.tag == "body"
    assert [child.tag for child in root.children] == ["div", "section", "button"]

    div = root.children[0]
    assert div.id is None and div.class_list == [] and div.text_content is None
    assert [child.tag for child in div.children] == ["p"]

    section = root.children[1]
    assert section.id == "main"
    assert section.children == []


def test_filter_dom_direct_text_and_classes():
    root = filter_dom(PAGE)
    p = root.children[0].children[0]
    assert p.text_content == "Hello again"
    assert p.class_list == ["lead"]
    assert p.children[0].tag == "b"
    assert p.children[0].text_content == "World"

    button = root.children[2]
    assert button.class_list == ["btn", "primary"]
    assert button.text_content == "Start"


def test_filtered_tree_has_no_dead_leaves():
    _assert_no_dead_leaves(filter_dom(PAGE))


def test_filter_dom_returns_none_without_content():
    assert filter_dom("<html><body>  <div><span> </span></div> </body></html>") is None
    assert filter_dom("") is None


def test_body_with_only_a_class_is_kept():
    root = filter_dom('<html><body class="app"></body></html>')
    assert root.tag == "body"
    assert root.class_list == ["app"]


def test_has_text_looks_at_descendants():
    root = filter_dom(PAGE)
    assert root.has_text
    assert not root.children[1].has_text


def test_serialize_wraps_document_shell():
    html = serialize(filter_dom(PAGE))
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Filtered DOM</title>" in html
    assert '<p class="lead">Hello again<b>World</b></p>' in html
    assert '<section id="main"></section>' in html
    assert "data-x" not in html
    assert "var a" not in html
    assert html.count("<body>") == 1


def test_node_to_html_escapes_text():
    root = filter_dom("<html><body><p>a &lt; b</p></body></html>")
    assert node_to_html(root) == "<body><p>a &lt; b</p></body>"


def test_serialize_none_raises():
    with pytest.raises(ValueError, match="No DOM structure to serialize"):
        serialize(None)


def test_save_filtered_html(tmp_path):
    path = save_filtered_html(filter_dom(PAGE), tmp_path / "out" / "filtered.html")
    assert path.read_text(encoding="utf-8") == serialize(filter_dom(PAGE))
