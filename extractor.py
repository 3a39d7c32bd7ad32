"""Page resource extraction.

Turns a page into the list of scripts and stylesheets the analyzer
works on. Several backends are available and one is picked at startup
with ``get_extractor``:

- ``http``: fetch the raw HTML with requests and parse it.
- ``file``: parse an HTML file saved to disk.
- ``snapshot``: load a JSON export from a headless-browser run, which
  may carry the rendered DOM and network timings as well.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup, Tag

from analyzer import (
    ExternalScript,
    ExternalStylesheet,
    InlineScript,
    InlineStylesheet,
    Position,
    Resource,
    ResourceSize,
    loading_strategy_from_attrs,
    resource_from_dict,
)

# Default HTTP headers mimicking a real browser.
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36 "
        "RenderAudit/1.0"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;"
        "q=0.9,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

DEFAULT_TIMEOUT = 30


@dataclass
class PageSnapshot:
    """Everything the analyzer needs to know about one page."""

    url: str
    html: str
    resources: list[Resource] = field(default_factory=list)

    @property
    def page_host(self) -> Optional[str]:
        return urlparse(self.url).hostname if self.url else None

    @property
    def scripts(self) -> list[Resource]:
        return [r for r in self.resources if r.is_script]

    @property
    def stylesheets(self) -> list[Resource]:
        return [r for r in self.resources if not r.is_script]


def fetch_page_html(
    url: str,
    timeout: int = DEFAULT_TIMEOUT,
    headers: Optional[dict] = None,
) -> str:
    """Fetch the raw HTML content of a single page.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.
        headers: Optional custom HTTP headers.

    Returns:
        The raw HTML string.

    Raises:
        requests.HTTPError: If the response status is not 2xx.
    """
    resp = requests.get(
        url,
        headers=headers or DEFAULT_HEADERS,
        timeout=timeout,
    )
    resp.raise_for_status()
    return resp.text


def _top_level_body_child(element: Tag, body: Tag) -> Optional[Tag]:
    node = element
    while node is not None and node.parent is not body:
        node = node.parent if isinstance(node.parent, Tag) else None
    return node


def zone_for(element: Tag, soup: BeautifulSoup) -> str:
    """Work out which part of the document an element sits in.

    Elements inside <head> are "head". Elements in the body are placed
    by the index of their top-level body ancestor: the first third of
    the body's children is "body-start", the last third "body-end",
    everything else "body-middle".
    """
    if soup.head is not None and any(p is soup.head for p in element.parents):
        return "head"

    body = soup.body
    if body is None:
        return "body-middle"

    top_level = _top_level_body_child(element, body)
    if top_level is None:
        return "body-middle"

    children = body.find_all(True, recursive=False)
    total = len(children)
    # Tag equality is structural, so compare by identity.
    index = next(i for i, child in enumerate(children) if child is top_level)

    if index < total / 3:
        return "body-start"
    if index > (total * 2) / 3:
        return "body-end"
    return "body-middle"


def _resolve(url: str, base_url: str) -> str:
    return urljoin(base_url, url) if base_url else url


def _is_stylesheet_link(tag: Tag) -> bool:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return tag.get("href") is not None and "stylesheet" in [r.lower() for r in rel]


def extract_resources(html: str, base_url: str = "") -> list[Resource]:
    """Extract every script and stylesheet from an HTML document.

    Args:
        html: The page HTML.
        base_url: The page URL, used to resolve relative ``src``/``href``
            values. Leave empty to keep them as written.

    Returns:
        Scripts first, then external and inline stylesheets, each group
        in document order.
    """
    soup = BeautifulSoup(html or "", "lxml")
    scripts: list[Resource] = []
    external_styles: list[Resource] = []
    inline_styles: list[Resource] = []

    for tag in soup.find_all(["script", "link", "style"]):
        zone = zone_for(tag, soup)

        if tag.name == "script":
            position = Position(zone=zone, index=len(scripts))
            script_id = f"script-{len(scripts) + 1}"
            script_type = tag.get("type")
            strategy = loading_strategy_from_attrs(
                tag.has_attr("async"), tag.has_attr("defer"), script_type
            )
            src = tag.get("src")
            if src:
                scripts.append(ExternalScript(
                    id=script_id,
                    position=position,
                    src=_resolve(src, base_url),
                    loading_strategy=strategy,
                    explicit_type=script_type,
                ))
            else:
                scripts.append(InlineScript(
                    id=script_id,
                    position=position,
                    content=tag.get_text(),
                    loading_strategy=strategy,
                    explicit_type=script_type,
                ))

        elif tag.name == "link" and _is_stylesheet_link(tag):
            external_styles.append(ExternalStylesheet(
                id=f"style-ext-{len(external_styles) + 1}",
                position=Position(zone=zone, index=len(external_styles)),
                href=_resolve(tag["href"], base_url),
                media=tag.get("media") or "all",
            ))

        elif tag.name == "style":
            content = tag.get_text()
            inline_styles.append(InlineStylesheet(
                id=f"style-inline-{len(inline_styles) + 1}",
                position=Position(zone=zone, index=len(inline_styles)),
                size=ResourceSize(
                    transfer_bytes=len(content), decoded_bytes=len(content)
                ),
                content=content,
                media=tag.get("media") or "all",
            ))

    return scripts + external_styles + inline_styles


def correlate_timings(
    resources: list[Resource],
    timings: list[dict],
) -> list[Resource]:
    """Attach network timing data to resources by exact URL match.

    Args:
        resources: Extracted resources.
        timings: Resource timing entries with ``name`` (the URL) and
            ``transferSize``/``decodedBodySize``/``duration``.

    Returns:
        The same resources; those with a matching timing entry and no
        size yet get one.
    """
    by_url = {}
    for entry in timings or []:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if name and name not in by_url:
            by_url[name] = entry

    for resource in resources:
        url = resource.source_location
        if not url or resource.size is not None or url not in by_url:
            continue
        entry = by_url[url]
        resource.size = ResourceSize(
            transfer_bytes=entry.get("transferSize"),
            decoded_bytes=entry.get("decodedBodySize"),
            duration_ms=entry.get("duration"),
        )
    return resources


class Extractor:
    """Base class for extraction backends."""

    name = "base"

    def extract(self, target: str) -> PageSnapshot:
        raise NotImplementedError


class HttpExtractor(Extractor):
    """Fetch a live page over HTTP and parse its static HTML."""

    name = "http"

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, headers: Optional[dict] = None):
        self.timeout = timeout
        self.headers = headers

    def extract(self, target: str) -> PageSnapshot:
        html = fetch_page_html(target, timeout=self.timeout, headers=self.headers)
        return PageSnapshot(
            url=target,
            html=html,
            resources=extract_resources(html, base_url=target),
        )


class FileExtractor(Extractor):
    """Parse an HTML file saved to disk."""

    name = "file"

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    def extract(self, target: str) -> PageSnapshot:
        with open(target, "r", encoding="utf-8") as fh:
            html = fh.read()
        return PageSnapshot(
            url=self.base_url or f"file://{os.path.abspath(target)}",
            html=html,
            resources=extract_resources(html, base_url=self.base_url),
        )


class SnapshotExtractor(Extractor):
    """Load a rendered-page export produced by a headless browser.

    Expected JSON shape::

        {
          "url": "https://example.com/",
          "html": "<!DOCTYPE html>...",       (optional)
          "scripts": [{...}, ...],            (optional)
          "stylesheets": [{...}, ...],        (optional)
          "timings": [{"name": ..., "transferSize": ...}, ...]
        }

    When ``scripts``/``stylesheets`` are absent, resources are extracted
    from ``html``.
    """

    name = "snapshot"

    def __init__(self, console=None):
        self.console = console

    def extract(self, target: str) -> PageSnapshot:
        with open(target, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return self.from_dict(data, console=self.console)

    @staticmethod
    def from_dict(data: dict, console=None) -> PageSnapshot:
        """Build a PageSnapshot from a decoded snapshot export.

        Entries of ``scripts``/``stylesheets`` that are not objects are
        skipped with a warning; the rest of the page is still analyzed.

        Raises:
            ValueError: If ``data`` itself is not a JSON object.
        """
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a JSON object")

        url = data.get("url") or ""
        html = data.get("html") or ""

        if "scripts" in data or "stylesheets" in data:
            resources = []
            for kind, prefix in (("script", "script"), ("stylesheet", "style")):
                for i, raw in enumerate(data.get(f"{kind}s") or []):
                    resource_id = f"{prefix}-{i + 1}"
                    if not isinstance(raw, dict):
                        if console:
                            console.print(
                                f"  [yellow]Skipping malformed {kind} entry "
                                f"{resource_id}: {raw!r}[/]"
                            )
                        continue
                    resources.append(resource_from_dict(
                        {"kind": kind, **raw}, default_id=resource_id
                    ))
        else:
            resources = extract_resources(html, base_url=url)

        correlate_timings(resources, data.get("timings") or [])
        return PageSnapshot(url=url, html=html, resources=resources)


EXTRACTORS = {
    HttpExtractor.name: HttpExtractor,
    FileExtractor.name: FileExtractor,
    SnapshotExtractor.name: SnapshotExtractor,
}


def get_extractor(name: str, **options) -> Extractor:
    """Create the extraction backend registered under ``name``.

    Raises:
        ValueError: If no backend has that name.
    """
    try:
        factory = EXTRACTORS[name]
    except KeyError:
        raise ValueError(
            f"Unknown extractor {name!r}; choose from {sorted(EXTRACTORS)}"
        ) from None
    return factory(**options)
