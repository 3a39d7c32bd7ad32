"""Above-the-fold DOM pruning.

Reduces a rendered DOM snapshot to the elements whose top edge lies
above the fold, so critical CSS can be matched against only what a
visitor sees before scrolling.

The snapshot is plain HTML in which the renderer has stamped each
element's top offset (in CSS pixels, relative to the initial scroll
position) into a ``data-offset-top`` attribute. A custom ``top_of``
callable can be passed instead when offsets live elsewhere.
"""

import copy
import math
from typing import Callable, Optional

from bs4 import BeautifulSoup, Doctype, Tag

# Default rendering geometry.
VIEWPORT_WIDTH = 1280
VIEWPORT_HEIGHT = 800
FOLD_HEIGHT = 900
DESKTOP_VIEWPORT = (1440, 900)

OFFSET_ATTR = "data-offset-top"

TopOffsetFn = Callable[[Tag], Optional[float]]


def recorded_top(element: Tag) -> Optional[float]:
    """Read the top offset the renderer stamped on an element."""
    raw = element.get(OFFSET_ATTR)
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _check_fold_height(fold_height) -> float:
    if fold_height is None:
        raise ValueError("fold_height is required to prune a document")
    fold_height = float(fold_height)
    if math.isnan(fold_height) or fold_height < 0:
        raise ValueError(f"fold_height must be >= 0, got {fold_height!r}")
    return fold_height


def _shallow_clone(soup: BeautifulSoup, element: Tag, strip_offsets: bool) -> Tag:
    attrs = {
        name: list(value) if isinstance(value, list) else value
        for name, value in element.attrs.items()
        if not (strip_offsets and name == OFFSET_ATTR)
    }
    return soup.new_tag(element.name, attrs=attrs)


def _clone_above(
    soup: BeautifulSoup,
    node,
    fold_height: float,
    top_of: TopOffsetFn,
    parent_top: float,
    strip_offsets: bool,
):
    """Clone ``node`` and its above-the-fold descendants, or return None."""
    if not isinstance(node, Tag):
        return copy.copy(node)

    top = top_of(node)
    if top is None:
        top = parent_top
    if top >= fold_height:
        return None

    clone = _shallow_clone(soup, node, strip_offsets)
    for child in node.children:
        cloned_child = _clone_above(
            soup, child, fold_height, top_of, top, strip_offsets
        )
        if cloned_child is not None:
            clone.append(cloned_child)
    return clone


def _doctype_of(soup: BeautifulSoup) -> str:
    for item in soup.contents:
        if isinstance(item, Doctype):
            return f"<!DOCTYPE {item}>"
    return "<!DOCTYPE html>"


def prune_above_the_fold(
    html: str,
    fold_height: Optional[float],
    top_of: Optional[TopOffsetFn] = None,
    strip_offsets: bool = True,
) -> str:
    """Keep only the body content rendered above the fold.

    Walks the body depth-first. An element whose top offset is at or
    below ``fold_height`` is dropped together with its subtree; any
    other element is cloned without children and its children are
    processed the same way. Text and comment nodes are copied as-is when
    their container survives. An element with no recorded offset is
    treated as starting at its parent's top. The head is kept whole.

    Args:
        html: The DOM snapshot as HTML.
        fold_height: The fold line in pixels. ``math.inf`` keeps the
            whole body; ``0`` keeps none of its elements.
        top_of: Optional callable returning an element's top offset.
            Defaults to reading ``data-offset-top``.
        strip_offsets: Remove the offset attribute from the output.

    Returns:
        A complete HTML document string (doctype, head and pruned body).

    Raises:
        ValueError: If ``fold_height`` is missing or negative.
    """
    fold_height = _check_fold_height(fold_height)
    top_of = top_of or recorded_top

    source = BeautifulSoup(html or "", "lxml")
    output = BeautifulSoup("", "lxml")

    html_attrs = dict(source.html.attrs) if source.html else {}
    html_clone = output.new_tag("html", attrs=html_attrs)

    if source.head is not None:
        html_clone.append(copy.copy(source.head))
    else:
        html_clone.append(output.new_tag("head"))

    body = source.body
    if body is not None:
        body_clone = _shallow_clone(output, body, strip_offsets)
        body_top = top_of(body) or 0.0
        for child in body.children:
            cloned_child = _clone_above(
                output, child, fold_height, top_of, body_top, strip_offsets
            )
            if cloned_child is not None:
                body_clone.append(cloned_child)
    else:
        body_clone = output.new_tag("body")
    html_clone.append(body_clone)

    return f"{_doctype_of(source)}\n{html_clone}"


def _selector_for(element: Tag) -> str:
    if element.get("id"):
        return f"#{element['id']}"
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    classes = [c for c in classes if c]
    if classes:
        return "." + ".".join(classes)
    return element.name


def above_the_fold_selectors(
    html: str,
    fold_height: Optional[float],
    top_of: Optional[TopOffsetFn] = None,
) -> list[str]:
    """List simple selectors for every element visible above the fold.

    Each element contributes ``#id``, ``.class.list`` or its tag name.
    Useful to see which selectors critical CSS has to cover.
    """
    pruned = prune_above_the_fold(
        html, fold_height, top_of=top_of, strip_offsets=False
    )
    soup = BeautifulSoup(pruned, "lxml")
    if soup.body is None:
        return []
    selectors = [_selector_for(el) for el in soup.body.find_all(True)]
    return list(dict.fromkeys(selectors))
