from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, NoReturn, Tuple, Union

from domain.models import Orientation

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = frozenset({"graph", "flowchart"})
DIRECTIVE_KEYWORDS = frozenset({"classDef", "class", "style", "linkStyle", "click", "direction"})
COMMENT_PREFIX = "%%"
CODE_FENCE_PREFIX = "```"

_DIRECTIONS: dict[str, Orientation] = {
    "TB": "TB",
    "TD": "TB",
    "BT": "TB",
    "LR": "LR",
    "RL": "LR",
}

# Longest openers first so "((" is not read as "(".
_SHAPES: Tuple[Tuple[str, str], ...] = (
    ("([", "])"),
    ("[[", "]]"),
    ("[(", ")]"),
    ("((", "))"),
    ("{{", "}}"),
    ("[", "]"),
    ("(", ")"),
    ("{", "}"),
    (">", "]"),
)

_IDENTIFIER = re.compile(r"\w+")
_ARROWS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"-\.->"),
    re.compile(r"-->"),
    re.compile(r"---"),
    re.compile(r"==>"),
    re.compile(r"--\s+(?P<text>[^\s].*?)\s+-->"),
    re.compile(r"--[xo]"),
)
_PIPE_LABEL = re.compile(r"\|(?P<text>[^|]*)\|")


class NotationSyntaxError(ValueError):
    def __init__(self, message: str, statement: str, position: int) -> None:
        super().__init__(f"{message} at column {position + 1}: {statement!r}")
        self.statement = statement
        self.position = position


@dataclass(frozen=True)
class FlowchartHeader:
    direction: Orientation | None


@dataclass(frozen=True)
class NodeRef:
    id: str
    label: str | None = None


@dataclass(frozen=True)
class EdgeChain:
    nodes: Tuple[NodeRef, ...]
    link_labels: Tuple[str | None, ...] = ()


@dataclass(frozen=True)
class MultiEdgeStatement:
    chains: Tuple[EdgeChain, ...]


@dataclass(frozen=True)
class Directive:
    keyword: str


@dataclass(frozen=True)
class Subgraph:
    title: str | None
    body: Tuple[Statement, ...]


Statement = Union[FlowchartHeader, MultiEdgeStatement, Directive, Subgraph]


@dataclass(frozen=True)
class NotationDocument:
    statements: Tuple[Statement, ...]
    skipped: int = 0

    @property
    def direction(self) -> Orientation | None:
        for statement in self.statements:
            if isinstance(statement, FlowchartHeader):
                return statement.direction
        return None


def parse_flowchart(text: str) -> NotationDocument:
    raw_statements = list(_split_statements(text))
    parser = _DocumentParser(raw_statements)
    statements = parser.parse_block(top_level=True)
    return NotationDocument(statements=tuple(statements), skipped=parser.skipped)


def _split_statements(text: str) -> List[str]:
    statements: List[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIX) or line.startswith(CODE_FENCE_PREFIX):
            continue
        statements.extend(part for part in _split_outside_labels(line, ";") if part)
    return statements


def _split_outside_labels(line: str, separator: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    in_quotes = False
    current: List[str] = []
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char in "[({":
            depth += 1
        elif not in_quotes and char in "])}" and depth > 0:
            depth -= 1
        if char == separator and depth == 0 and not in_quotes:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return parts


def _leading_keyword(statement: str) -> str:
    match = _IDENTIFIER.match(statement)
    return match.group(0) if match else ""


class _DocumentParser:
    def __init__(self, statements: List[str]) -> None:
        self._statements = statements
        self._index = 0
        self.skipped = 0

    def parse_block(self, top_level: bool) -> List[Statement]:
        parsed: List[Statement] = []
        while self._index < len(self._statements):
            statement = self._statements[self._index]
            self._index += 1
            keyword = _leading_keyword(statement)
            if keyword == "end" and statement == "end":
                if top_level:
                    self.skipped += 1
                    continue
                return parsed
            if keyword == "subgraph":
                title = statement[len(keyword):].strip() or None
                parsed.append(Subgraph(title=title, body=tuple(self.parse_block(top_level=False))))
                continue
            try:
                parsed.append(_StatementParser(statement).parse())
            except NotationSyntaxError as exc:
                self.skipped += 1
                logger.debug("Skipping notation statement: %s", exc)
        return parsed


class _StatementParser:
    def __init__(self, statement: str) -> None:
        self._text = statement
        self._pos = 0

    def parse(self) -> Statement:
        keyword = _leading_keyword(self._text)
        if keyword in HEADER_KEYWORDS:
            return self._parse_header(keyword)
        if keyword in DIRECTIVE_KEYWORDS and not self._looks_like_edge(keyword):
            return Directive(keyword=keyword)

        chains = [self._parse_chain()]
        while True:
            self._skip_whitespace()
            if self._at_end():
                break
            if self._text[self._pos] != "&":
                self._fail("Unexpected token")
            self._pos += 1
            chains.append(self._parse_chain())
        return MultiEdgeStatement(chains=tuple(chains))

    def _looks_like_edge(self, keyword: str) -> bool:
        rest = self._text[len(keyword):].lstrip()
        return rest.startswith(("-", "=", "&", "[", "("))

    def _parse_header(self, keyword: str) -> FlowchartHeader:
        rest = self._text[len(keyword):].strip()
        if not rest:
            return FlowchartHeader(direction=None)
        direction = _DIRECTIONS.get(rest.upper())
        if direction is None:
            self._pos = len(keyword)
            self._fail(f"Unknown direction {rest!r}")
        return FlowchartHeader(direction=direction)

    def _parse_chain(self) -> EdgeChain:
        nodes = [self._parse_node()]
        labels: List[str | None] = []
        while True:
            self._skip_whitespace()
            matched, arrow_label = self._parse_arrow()
            if not matched:
                break
            labels.append(arrow_label)
            nodes.append(self._parse_node())
        return EdgeChain(nodes=tuple(nodes), link_labels=tuple(labels))

    def _parse_node(self) -> NodeRef:
        self._skip_whitespace()
        match = _IDENTIFIER.match(self._text, self._pos)
        if not match:
            self._fail("Expected node identifier")
        node_id = match.group(0)
        self._pos = match.end()
        return NodeRef(id=node_id, label=self._parse_shape_label())

    def _parse_shape_label(self) -> str | None:
        for opener, closer in _SHAPES:
            if not self._text.startswith(opener, self._pos):
                continue
            start = self._pos + len(opener)
            end = self._text.find(closer, start)
            if end < 0:
                self._fail(f"Unclosed {opener!r}")
            self._pos = end + len(closer)
            return _clean_label(self._text[start:end])
        return None

    def _parse_arrow(self) -> Tuple[bool, str | None]:
        for pattern in _ARROWS:
            match = pattern.match(self._text, self._pos)
            if not match:
                continue
            self._pos = match.end()
            label = match.groupdict().get("text")
            self._skip_whitespace()
            pipe = _PIPE_LABEL.match(self._text, self._pos)
            if pipe:
                self._pos = pipe.end()
                label = pipe.group("text")
            return True, _clean_label(label) if label is not None else None
        return False, None

    def _skip_whitespace(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos].isspace():
            self._pos += 1

    def _at_end(self) -> bool:
        return self._pos >= len(self._text)

    def _fail(self, message: str) -> NoReturn:
        raise NotationSyntaxError(message, self._text, self._pos)


def _clean_label(raw: str) -> str | None:
    label = raw.strip()
    if len(label) >= 2 and label[0] == label[-1] == '"':
        label = label[1:-1].strip()
    return label or None
