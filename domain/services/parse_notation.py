from __future__ import annotations

import logging
import re
from itertools import pairwise
from typing import Dict, Iterable, List, Tuple

from domain.errors import NoNodesFoundError
from domain.models import NotationNode, ParsedNotation, RawEdge
from domain.services.notation_grammar import (
    CODE_FENCE_PREFIX,
    COMMENT_PREFIX,
    Directive,
    EdgeChain,
    FlowchartHeader,
    MultiEdgeStatement,
    NotationDocument,
    Statement,
    Subgraph,
    parse_flowchart,
)

logger = logging.getLogger(__name__)

MULTI_EDGE_SEPARATOR = "&"

_FALLBACK_EDGE_PATTERN = re.compile(
    r"^(?P<first>\w+)(?:\[(?P<first_label>[^\]]+)\])?"
    r"\s*-->\s*(?P<second>\w+)(?:\[(?P<second_label>[^\]]+)\])?"
    r"(?:\s*-->\s*(?P<third>\w+)(?:\[(?P<third_label>[^\]]+)\])?)?"
)
_FALLBACK_NODE_PATTERN = re.compile(r"^(?P<id>\w+)\[(?P<label>[^\]]+)\]")

_MARRIAGE_ID_PATTERN = re.compile(r"^M\d+$", re.IGNORECASE)
_MARRIAGE_WORDS = frozenset({"marriage", "married"})
_SPOUSE_WORD_PATTERN = re.compile(r"^(husband|wife|spouse)$", re.IGNORECASE)
_ORDINAL_SPOUSE_PATTERN = re.compile(
    r"^(first|second|third|fourth|fifth|1st|2nd|3rd|4th|5th)\s+(husband|wife|spouse)$",
    re.IGNORECASE,
)
_ORDINAL_SPOUSE_ID_PATTERN = re.compile(
    r"^(first|second|third|fourth|fifth)(husband|wife|spouse)$", re.IGNORECASE
)
_PLACEHOLDER_WORDS = "husband|wife|son|daughter|father|mother|parent|child"
_PLACEHOLDER_LABEL_PATTERN = re.compile(rf"^({_PLACEHOLDER_WORDS})\s*\d+$", re.IGNORECASE)
_PLACEHOLDER_ID_PATTERN = re.compile(rf"^({_PLACEHOLDER_WORDS})\d+$", re.IGNORECASE)


class _NodeCollector:
    def __init__(self) -> None:
        self._labels: Dict[str, str | None] = {}

    def add(self, node_id: str, label: str | None) -> None:
        if node_id not in self._labels:
            self._labels[node_id] = label
        elif label and not self._labels[node_id]:
            self._labels[node_id] = label

    def nodes(self) -> List[NotationNode]:
        return [NotationNode(id=node_id, label=label) for node_id, label in self._labels.items()]


def parse_notation(text: str) -> ParsedNotation:
    document = parse_flowchart(text)
    nodes, edges = collect_structured(document)
    if not nodes or not edges:
        fallback_nodes, fallback_edges = parse_notation_lines(text)
        if not nodes and fallback_nodes:
            logger.debug("Structured parse found no nodes, using %d scanned", len(fallback_nodes))
            nodes = fallback_nodes
        if not edges and fallback_edges:
            logger.debug("Structured parse found no edges, using %d scanned", len(fallback_edges))
            edges = fallback_edges

    kept = filter_noise_nodes(nodes)
    if len(kept) != len(nodes):
        dropped = sorted({node.id for node in nodes} - {node.id for node in kept})
        logger.debug("Dropped marriage artifact nodes: %s", ", ".join(dropped))
    if not kept:
        raise NoNodesFoundError()
    return ParsedNotation(nodes=kept, edges=edges, direction=document.direction)


def collect_structured(document: NotationDocument) -> Tuple[List[NotationNode], List[RawEdge]]:
    collector = _NodeCollector()
    edges: List[RawEdge] = []
    for statement in document.statements:
        _visit_statement(statement, collector, edges)
    return collector.nodes(), edges


def _visit_statement(statement: Statement, collector: _NodeCollector, edges: List[RawEdge]) -> None:
    if isinstance(statement, MultiEdgeStatement):
        for chain in statement.chains:
            _visit_chain(chain, collector, edges)
    elif isinstance(statement, Subgraph):
        for child in statement.body:
            _visit_statement(child, collector, edges)
    elif isinstance(statement, (FlowchartHeader, Directive)):
        return


def _visit_chain(chain: EdgeChain, collector: _NodeCollector, edges: List[RawEdge]) -> None:
    for node in chain.nodes:
        collector.add(node.id, node.label)
    for index, (source, target) in enumerate(pairwise(chain.nodes)):
        label = chain.link_labels[index] if index < len(chain.link_labels) else None
        edges.append(RawEdge(source=source.id, target=target.id, label=label))


def parse_notation_lines(text: str) -> Tuple[List[NotationNode], List[RawEdge]]:
    collector = _NodeCollector()
    edges: List[RawEdge] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIX) or line.startswith(CODE_FENCE_PREFIX):
            continue
        for segment in (part.strip() for part in line.split(MULTI_EDGE_SEPARATOR)):
            _scan_segment(segment, collector, edges)
    return collector.nodes(), edges


def _scan_segment(segment: str, collector: _NodeCollector, edges: List[RawEdge]) -> None:
    edge_match = _FALLBACK_EDGE_PATTERN.match(segment)
    if edge_match:
        chain: List[str] = []
        for key in ("first", "second", "third"):
            node_id = edge_match.group(key)
            if node_id is None:
                continue
            collector.add(node_id, _strip_label(edge_match.group(f"{key}_label")))
            chain.append(node_id)
        edges.extend(RawEdge(source=source, target=target) for source, target in pairwise(chain))
        return

    node_match = _FALLBACK_NODE_PATTERN.match(segment)
    if node_match:
        collector.add(node_match.group("id"), _strip_label(node_match.group("label")))


def _strip_label(raw: str | None) -> str | None:
    if raw is None:
        return None
    label = raw.strip().strip('"').strip()
    return label or None


def filter_noise_nodes(nodes: Iterable[NotationNode]) -> List[NotationNode]:
    return [node for node in nodes if not is_marriage_artifact(node)]


def is_placeholder(node: NotationNode) -> bool:
    label = (node.label or "").strip()
    return bool(_PLACEHOLDER_LABEL_PATTERN.match(label) or _PLACEHOLDER_ID_PATTERN.match(node.id))


def is_marriage_artifact(node: NotationNode) -> bool:
    if is_placeholder(node):
        return False
    node_id = node.id.strip()
    label = (node.label or "").strip()
    if _MARRIAGE_ID_PATTERN.match(node_id):
        return True
    if node_id.lower() in _MARRIAGE_WORDS or label.lower() in _MARRIAGE_WORDS:
        return True
    if _SPOUSE_WORD_PATTERN.match(node_id) or _SPOUSE_WORD_PATTERN.match(label):
        return True
    if _ORDINAL_SPOUSE_PATTERN.match(label):
        return True
    return bool(_ORDINAL_SPOUSE_ID_PATTERN.match(node_id))
