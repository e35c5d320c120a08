"""
Reduce a rendered HTML page to the elements a selector writer actually needs.

An element survives filtering when it has direct text, an id, at least one
class, or at least one surviving child. Everything else (other attributes,
comments, whitespace-only text) is dropped so the snapshot stays small enough
to put into a prompt.
"""
import html
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from lxml import etree
from lxml import html as lxml_html

logger = logging.getLogger(__name__)

# Elements whose content is never rendered as page text
NON_RENDERED_TAGS = {"script", "style", "noscript", "template"}

DOCUMENT_SHELL = (
    '<!DOCTYPE html>\n'
    '<html lang="en">\n'
    '<head><meta charset="UTF-8"><title>Filtered DOM</title></head>\n'
    '{body}\n'
    '</html>\n'
)


@dataclass
class FilteredDomNode:
    tag: str
    id: Optional[str] = None
    class_list: List[str] = field(default_factory=list)
    text_content: Optional[str] = None
    children: List["FilteredDomNode"] = field(default_factory=list)

    @property
    def has_text(self) -> bool:
        """True if this node or any retained descendant carries direct text."""
        return bool(self.text_content) or any(child.has_text for child in self.children)

    def iter_nodes(self):
        yield self
        for child in self.children:
            yield from child.iter_nodes()


def _direct_text(element) -> Optional[str]:
    # element.text is the first text node; the tails of the children are the rest
    parts = [element.text] + [child.tail for child in element]
    cleaned = [part.strip() for part in parts if part and part.strip()]
    return " ".join(cleaned) or None


def _class_list(element) -> List[str]:
    classes = []
    for name in (element.get("class") or "").split():
        if name not in classes:
            classes.append(name)
    return classes


def _filter_element(element) -> Optional[FilteredDomNode]:
    if not isinstance(element.tag, str):
        # comments and processing instructions
        return None
    tag = element.tag.lower()
    if tag in NON_RENDERED_TAGS:
        return None

    children = []
    for child in element:
        filtered = _filter_element(child)
        if filtered is not None:
            children.append(filtered)

    element_id = element.get("id") or None
    class_list = _class_list(element)
    text = _direct_text(element)

    if text or element_id or class_list or children:
        return FilteredDomNode(
            tag=tag,
            id=element_id,
            class_list=class_list,
            text_content=text,
            children=children,
        )
    return None


def filter_dom(page_html: str) -> Optional[FilteredDomNode]:
    """
    Parse a full HTML document and return the filtered tree rooted at ``<body>``.
    Returns None when the body has no qualifying content anywhere.
    """
    if not page_html or not page_html.strip():
        return None
    try:
        document = lxml_html.document_fromstring(page_html)
    except (etree.ParserError, ValueError) as e:
        logger.warning("⚠️ Could not parse page HTML: %s", e)
        return None
    body = document.find("body")
    if body is None:
        return None
    return _filter_element(body)


def node_to_html(node: Optional[FilteredDomNode]) -> str:
    if node is None:
        return ""
    id_attr = f' id="{html.escape(node.id)}"' if node.id else ""
    class_attr = f' class="{html.escape(" ".join(node.class_list))}"' if node.class_list else ""
    text = html.escape(node.text_content, quote=False) if node.text_content else ""
    children_html = "".join(node_to_html(child) for child in node.children)
    return f"<{node.tag}{id_attr}{class_attr}>{text}{children_html}</{node.tag}>"


def serialize(node: Optional[FilteredDomNode]) -> str:
    """Render the filtered tree back into a minimal HTML document."""
    if node is None:
        raise ValueError("No DOM structure to serialize")
    body = node_to_html(node)
    if node.tag != "body":
        body = f"<body>{body}</body>"
    return DOCUMENT_SHELL.format(body=body)


def save_filtered_html(node: Optional[FilteredDomNode], path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(node), encoding="utf-8")
    logger.info("Filtered DOM saved to %s", path)
    return path
