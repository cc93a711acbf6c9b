"""
Minimal HTML element tree on top of the standard library's html.parser.

Text is kept exactly as written in the source (entities included) so that
fragments copied between elements round-trip verbatim; `text` gives the
decoded text content.

    doc = parse(page_html)
    for card in doc.find_all_by_class("day-card"):
        card.get("data-day"), card.find_by_class("day-title").inner_html
    doc.get_by_id("diary").remove()
    doc.outer_html
"""
from __future__ import annotations

import html
from html.parser import HTMLParser
from typing import Callable, Iterator, Optional

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class Node:
    parent: Optional["Element"] = None

    @property
    def outer_html(self) -> str:
        raise NotImplementedError

    @property
    def text(self) -> str:
        return ""

    def remove(self) -> None:
        """Detach this node from its parent; a detached node is left unchanged."""
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def clone(self) -> "Node":
        """Deep, detached copy."""
        raise NotImplementedError


class Text(Node):
    def __init__(self, raw: str):
        self.raw = raw

    @property
    def outer_html(self) -> str:
        return self.raw

    @property
    def text(self) -> str:
        return html.unescape(self.raw)

    def clone(self) -> "Text":
        return Text(self.raw)


class Comment(Node):
    def __init__(self, data: str):
        self.data = data

    @property
    def outer_html(self) -> str:
        return f"<!--{self.data}-->"

    def clone(self) -> "Comment":
        return Comment(self.data)


class Declaration(Node):
    def __init__(self, decl: str):
        self.decl = decl

    @property
    def outer_html(self) -> str:
        return f"<!{self.decl}>"

    def clone(self) -> "Declaration":
        return Declaration(self.decl)


class Element(Node):
    """An element; the document root is an Element whose tag is None."""

    def __init__(self, tag: Optional[str], attrs: Optional[dict[str, Optional[str]]] = None):
        self.tag = tag
        self.attrs: dict[str, Optional[str]] = dict(attrs or {})
        self.children: list[Node] = []

    def __repr__(self) -> str:
        return f"<Element {self.tag or '#document'} {self.attrs}>"

    # -- attributes --------------------------------------------------------

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    def set(self, name: str, value: Optional[str] = None) -> None:
        self.attrs[name] = value

    @property
    def classes(self) -> list[str]:
        return (self.attrs.get("class") or "").split()

    # -- tree --------------------------------------------------------------

    def append(self, node: Node) -> Node:
        node.remove()
        node.parent = self
        self.children.append(node)
        return node

    def clone(self) -> "Element":
        twin = Element(self.tag, self.attrs)
        for child in self.children:
            twin.append(child.clone())
        return twin

    def iter(self) -> Iterator["Element"]:
        """Descendant elements in document order (self excluded)."""
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter()

    def find_all(self, predicate: Callable[["Element"], bool]) -> list["Element"]:
        return [el for el in self.iter() if predicate(el)]

    def find(self, predicate: Callable[["Element"], bool]) -> Optional["Element"]:
        return next((el for el in self.iter() if predicate(el)), None)

    def find_all_by_class(self, name: str) -> list["Element"]:
        return self.find_all(lambda el: name in el.classes)

    def find_by_class(self, name: str) -> Optional["Element"]:
        return self.find(lambda el: name in el.classes)

    def get_by_id(self, element_id: str) -> Optional["Element"]:
        return self.find(lambda el: el.get("id") == element_id)

    def child_elements(self, tag: Optional[str] = None) -> list["Element"]:
        return [
            c for c in self.children
            if isinstance(c, Element) and (tag is None or c.tag == tag)
        ]

    # -- serialization -----------------------------------------------------

    @property
    def inner_html(self) -> str:
        return "".join(child.outer_html for child in self.children)

    @property
    def outer_html(self) -> str:
        if self.tag is None:
            return self.inner_html
        attrs = "".join(
            f" {name}" if value is None else f' {name}="{html.escape(value, quote=True)}"'
            for name, value in self.attrs.items()
        )
        if self.tag in VOID_ELEMENTS:
            return f"<{self.tag}{attrs}>"
        return f"<{self.tag}{attrs}>{self.inner_html}</{self.tag}>"

    @property
    def text(self) -> str:
        return "".join(child.text for child in self.children)

    def set_inner_html(self, markup: str) -> None:
        """Replace the children with the nodes parsed from `markup`."""
        for child in self.children:
            child.parent = None
        self.children = []
        for node in list(parse(markup).children):
            self.append(node)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

# Start tag -> (open tags it ends, container tags the search stops at).
# Covers the optional end tags: `<li>a<li>b` is two siblings.
_IMPLIED_END = {
    "li": ({"li"}, {"ul", "ol", "menu"}),
    "dt": ({"dt", "dd"}, {"dl"}),
    "dd": ({"dt", "dd"}, {"dl"}),
    "option": ({"option"}, {"select", "datalist", "optgroup"}),
    "tr": ({"tr"}, {"table", "thead", "tbody", "tfoot"}),
    "td": ({"td", "th"}, {"tr", "table"}),
    "th": ({"td", "th"}, {"tr", "table"}),
    "p": ({"p"}, {"div", "section", "article", "li", "td", "th", "body"}),
}


class _TreeBuilder(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=False)
        self.root = Element(None)
        self._stack: list[Element] = [self.root]

    @property
    def _current(self) -> Element:
        return self._stack[-1]

    def _close_implied(self, tag: str) -> None:
        rule = _IMPLIED_END.get(tag)
        if rule is None:
            return
        closes, scopes = rule
        for depth in range(len(self._stack) - 1, 0, -1):
            open_tag = self._stack[depth].tag
            if open_tag in closes:
                del self._stack[depth:]
                return
            if open_tag in scopes:
                return

    def handle_starttag(self, tag, attrs):
        self._close_implied(tag)
        el = self._current.append(Element(tag, dict(attrs)))
        if tag not in VOID_ELEMENTS:
            self._stack.append(el)

    def handle_startendtag(self, tag, attrs):
        self._current.append(Element(tag, dict(attrs)))

    def handle_endtag(self, tag):
        # Unmatched end tags are dropped; a match closes everything opened after it.
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def _append_text(self, raw: str) -> None:
        children = self._current.children
        if children and isinstance(children[-1], Text):
            children[-1].raw += raw
        else:
            self._current.append(Text(raw))

    def handle_data(self, data):
        self._append_text(data)

    def handle_entityref(self, name):
        self._append_text(f"&{name};")

    def handle_charref(self, name):
        self._append_text(f"&#{name};")

    def handle_comment(self, data):
        self._current.append(Comment(data))

    def handle_decl(self, decl):
        self._current.append(Declaration(decl))


def parse(markup: str) -> Element:
    """Parse a document or fragment; returns the root (tag None)."""
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.root
