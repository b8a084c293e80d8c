"""
Placeholder template interpreter

A small mustache-like language used by the Kleros dispute templates:

    {{ name }}              scalar placeholder
    {{# name }} ... {{/ name }}   section, repeated once per list element
    {{^ name }} ... {{/ name }}   inverted section, rendered when name is falsy

Rendering is a partial evaluation: names bound in the context are resolved,
everything else is written back verbatim so the arbitration system can
substitute it later. Inside a list section each element also binds `last`,
true only for the final element. A section tag alone on its line takes the
whole line with it, so block sections leave no blank lines in the output.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..errors import TemplateRenderError

TAG_RE = re.compile(r"\{\{\s*([#^/]?)\s*([A-Za-z_][A-Za-z0-9_.]*)\s*\}\}")

_MISSING = object()


@dataclass(frozen=True)
class Token:
    kind: str  # "text", "var", "#", "^" or "/"
    value: str  # text content or tag name
    start: int
    end: int


@dataclass
class Text:
    value: str


@dataclass
class Variable:
    name: str
    raw: str


@dataclass
class Section:
    name: str
    inverted: bool
    raw: str = ""
    children: List["Node"] = field(default_factory=list)


Node = Union[Text, Variable, Section]


def _standalone_span(source: str, start: int, end: int) -> Tuple[int, int]:
    """
    Widen a section tag alone on its line to the whole line, newline included.

    Standalone section tags then leave no blank line behind, and a deferred
    section re-emits its own lines unchanged.
    """
    line_start = source.rfind("\n", 0, start) + 1
    line_end = source.find("\n", end)
    line_end = len(source) if line_end == -1 else line_end + 1
    if source[line_start:start].strip() or source[end:line_end].strip():
        return start, end
    return line_start, line_end


def tokenize(source: str) -> List[Token]:
    """Split a template source into text and tag tokens"""
    tokens = []
    position = 0
    for match in TAG_RE.finditer(source):
        sigil, name = match.group(1), match.group(2)
        start, end = match.start(), match.end()
        if sigil:
            start, end = _standalone_span(source, start, end)
        if start > position:
            tokens.append(Token("text", source[position:start], position, start))
        tokens.append(Token(sigil or "var", name, start, end))
        position = end
    if position < len(source):
        tokens.append(Token("text", source[position:], position, len(source)))

    # Anything that still looks like a tag is malformed
    for token in tokens:
        if token.kind == "text" and ("{{" in token.value or "}}" in token.value):
            raise TemplateRenderError(f"Malformed tag near offset {token.start}: {token.value.strip()[:40]!r}")
    return tokens


def parse(source: str) -> List[Node]:
    """Build the section tree of a template source"""
    root: List[Node] = []
    stack: List[Tuple[Section, Token]] = []
    current = root

    for token in tokenize(source):
        if token.kind == "text":
            current.append(Text(token.value))
        elif token.kind == "var":
            current.append(Variable(token.value, source[token.start:token.end]))
        elif token.kind in ("#", "^"):
            section = Section(token.value, inverted=token.kind == "^")
            current.append(section)
            stack.append((section, token))
            current = section.children
        else:
            if not stack:
                raise TemplateRenderError(f"Closing tag '{token.value}' without an open section")
            section, opening = stack.pop()
            if section.name != token.value:
                raise TemplateRenderError(
                    f"Section '{section.name}' closed by '{token.value}' at offset {token.start}"
                )
            section.raw = source[opening.start:token.end]
            current = stack[-1][0].children if stack else root

    if stack:
        raise TemplateRenderError(f"Section '{stack[-1][0].name}' is never closed")
    return root


def placeholders(source: str) -> List[str]:
    """Names referenced by a source, in order of first appearance"""
    names: List[str] = []
    for token in tokenize(source):
        if token.kind != "text" and token.value not in names:
            names.append(token.value)
    return names


class Renderer:
    """Evaluates a parsed template against a context stack"""

    def __init__(self, escape: Optional[Callable[[str], str]] = None):
        self.escape = escape or (lambda value: value)

    def render(self, source: str, context: Mapping[str, Any]) -> str:
        nodes = parse(source)
        out: List[str] = []
        self._render_nodes(nodes, [context], out)
        return "".join(out)

    def _lookup(self, name: str, stack: List[Mapping[str, Any]]) -> Any:
        for frame in reversed(stack):
            if isinstance(frame, Mapping) and name in frame:
                return frame[name]
        return _MISSING

    def _render_nodes(self, nodes: List[Node], stack: List[Mapping[str, Any]], out: List[str]):
        for node in nodes:
            if isinstance(node, Text):
                out.append(node.value)
            elif isinstance(node, Variable):
                value = self._lookup(node.name, stack)
                if value is _MISSING:
                    out.append(node.raw)
                else:
                    out.append(self.escape(self._scalar(node.name, value)))
            else:
                self._render_section(node, stack, out)

    def _render_section(self, section: Section, stack: List[Mapping[str, Any]], out: List[str]):
        value = self._lookup(section.name, stack)
        if value is _MISSING:
            # Deferred: leave the whole section for the consumer
            out.append(section.raw)
            return

        if section.inverted:
            if not value:
                self._render_nodes(section.children, stack, out)
            return

        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                frame: Dict[str, Any] = dict(item) if isinstance(item, Mapping) else {}
                frame["last"] = index == len(value) - 1
                self._render_nodes(section.children, stack + [frame], out)
        elif value:
            frame = value if isinstance(value, Mapping) else {}
            self._render_nodes(section.children, stack + [frame], out)

    @staticmethod
    def _scalar(name: str, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int)):
            return str(value)
        raise TemplateRenderError(f"Placeholder '{name}' bound to non-scalar {type(value).__name__}")


def render(source: str, context: Mapping[str, Any], escape: Optional[Callable[[str], str]] = None) -> str:
    """Render `source` with the names bound in `context`, leaving the rest unresolved"""
    return Renderer(escape=escape).render(source, context)
