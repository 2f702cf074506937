"""Small helpers over selectolax nodes shared by the page extractors."""

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

from selectolax.parser import HTMLParser, Node

logger = logging.getLogger(__name__)


def node_text(node: Optional[Node]) -> str:
    """Visible text of a node with whitespace collapsed."""
    if node is None:
        return ""
    return " ".join((node.text(deep=True, separator=" ") or "").split())


def inner_html(node: Optional[Node]) -> str:
    """Markup between a node's opening and closing tags."""
    if node is None:
        return ""
    outer = node.html or ""
    start = outer.find(">")
    end = outer.rfind("</")
    if start == -1 or end <= start:
        return ""
    return outer[start + 1:end].strip()


def try_selectors(
    parser: HTMLParser | Node,
    selectors: Sequence[str],
) -> Tuple[Optional[str], Optional[Node]]:
    """
    Try multiple selectors and return the first one that matches.

    Args:
        parser: HTMLParser or Node to search within
        selectors: List of CSS selectors to try, in priority order

    Returns:
        Tuple of (successful_selector, element) or (None, None)
    """
    for selector in selectors:
        try:
            elem = parser.css_first(selector)
        except Exception as e:
            logger.debug(f"Selector error: {selector} - {e}")
            continue
        if elem is not None:
            return selector, elem
    return None, None


def first_result(
    strategies: Sequence[Callable[[Any], Any]],
    target: Any,
    field_name: str = "",
) -> Any:
    """
    Run extraction strategies in order and return the first non-empty result.

    A strategy that raises is skipped; the order of the list decides ties.
    """
    for strategy in strategies:
        try:
            value = strategy(target)
        except Exception as e:
            logger.debug(f"Strategy {getattr(strategy, '__name__', strategy)} failed for {field_name}: {e}")
            continue
        if value:
            return value
    return None


def attr_or_text(node: Optional[Node], attribute: str) -> str:
    """Value of an attribute if present and non-empty, else the node text."""
    if node is None:
        return ""
    value = node.attributes.get(attribute)
    return value if value else node_text(node)


def select_all(parser: HTMLParser | Node, selectors: Sequence[str]) -> List[Node]:
    """Union of nodes matched by several selectors, deduplicated by node identity."""
    seen = set()
    nodes = []
    for selector in selectors:
        for node in parser.css(selector):
            if node.mem_id in seen:
                continue
            seen.add(node.mem_id)
            nodes.append(node)
    return nodes
