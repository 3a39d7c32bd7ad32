"""Resource hint generator.

Scans a page for web fonts, above-the-fold images and external origins
and builds the <link rel="preload">, <link rel="preconnect"> and
<link rel="dns-prefetch"> tags that let the browser fetch them earlier.
"""

import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from above_fold import recorded_top

FONT_EXTENSIONS = (".woff2", ".woff", ".ttf", ".otf", ".eot")

MAX_IMAGE_PRELOADS = 5
MAX_PRECONNECT = 3

_CSS_URL_RE = re.compile(r"url\(\s*['\"]?([^'\")\s]+)['\"]?\s*\)", re.I)
_FONT_FACE_RE = re.compile(r"@font-face\s*\{([^}]*)\}", re.I | re.S)
_FONT_FORMAT_RE = re.compile(r"\.(woff2?|ttf|otf|eot)(?:$|[?#])", re.I)


@dataclass
class PreloadableResources:
    """Everything on a page worth a resource hint."""

    fonts: list[dict] = field(default_factory=list)
    images: list[dict] = field(default_factory=list)
    styles: list[dict] = field(default_factory=list)
    scripts: list[dict] = field(default_factory=list)
    preconnect: list[dict] = field(default_factory=list)
    external_domains: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "fonts": self.fonts,
            "images": self.images,
            "styles": self.styles,
            "scripts": self.scripts,
            "preconnect": self.preconnect,
            "external_domains": self.external_domains,
        }


def _origin(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def _font_format(url: str) -> str:
    match = _FONT_FORMAT_RE.search(url)
    return match.group(1).lower() if match else "woff2"


def _is_above_fold(tag, fold_height: Optional[float]) -> bool:
    if fold_height is None:
        return True
    top = recorded_top(tag)
    return top is not None and top < fold_height


def extract_preloadable_resources(
    html: str,
    base_url: str = "",
    fold_height: Optional[float] = None,
) -> PreloadableResources:
    """Collect fonts, images, stylesheets, scripts and external origins.

    Args:
        html: Page HTML. When it is a DOM snapshot carrying
            ``data-offset-top`` attributes, images are filtered by
            ``fold_height``.
        base_url: The page URL, used to resolve relative URLs and to
            tell external origins from the page's own.
        fold_height: Only images starting above this offset count.
            None treats every image as above the fold.

    Returns:
        A PreloadableResources instance.
    """
    soup = BeautifulSoup(html or "", "lxml")
    page_origin = _origin(base_url) if base_url else None
    found = PreloadableResources()
    domains: list[str] = []

    def resolve(url: str) -> str:
        return urljoin(base_url, url) if base_url else url

    def note_domain(url: str) -> None:
        origin = _origin(url)
        if origin and origin != page_origin and origin not in domains:
            domains.append(origin)

    for style in soup.find_all("style"):
        for block in _FONT_FACE_RE.findall(style.get_text()):
            match = _CSS_URL_RE.search(block)
            if match:
                url = resolve(match.group(1))
                found.fonts.append({"url": url, "format": _font_format(url)})

    for link in soup.find_all("link", href=True):
        rel = [r.lower() for r in (link.get("rel") or [])]
        url = resolve(link["href"])
        if "preload" in rel and (
            link.get("as") == "font"
            or urlparse(url).path.lower().endswith(FONT_EXTENSIONS)
        ):
            found.fonts.append({"url": url, "format": _font_format(url)})
        elif "preconnect" in rel:
            found.preconnect.append({"url": url})
            note_domain(url)
        elif "stylesheet" in rel:
            found.styles.append({"url": url})
            note_domain(url)

    for script in soup.find_all("script", src=True):
        url = resolve(script["src"])
        found.scripts.append({
            "url": url,
            "async": script.has_attr("async"),
            "defer": script.has_attr("defer"),
        })
        note_domain(url)

    for img in soup.find_all("img", src=True):
        if img["src"].startswith("data:") or not _is_above_fold(img, fold_height):
            continue
        found.images.append({
            "url": resolve(img["src"]),
            "is_above_fold": True,
            "width": img.get("width"),
            "height": img.get("height"),
        })

    for element in soup.find_all(style=re.compile("background", re.I)):
        if not _is_above_fold(element, fold_height):
            continue
        match = _CSS_URL_RE.search(element["style"])
        if match and not match.group(1).startswith("data:"):
            found.images.append({
                "url": resolve(match.group(1)),
                "is_above_fold": True,
                "is_background": True,
            })

    for resource in found.images + found.fonts:
        note_domain(resource["url"])

    found.external_domains = domains
    return found


def generate_font_preloads(fonts: list[dict]) -> list[str]:
    """One preload tag per distinct font URL."""
    unique = {}
    for font in fonts:
        unique.setdefault(font["url"], font)
    return [
        f'<link rel="preload" href="{font["url"]}" as="font" '
        f'type="font/{font.get("format") or "woff2"}" crossorigin="anonymous">'
        for font in unique.values()
    ]


def generate_image_preloads(
    images: list[dict],
    max_images: int = MAX_IMAGE_PRELOADS,
) -> list[str]:
    """Preload tags for the first ``max_images`` above-the-fold images."""
    above_fold = [img for img in images if img.get("is_above_fold")]
    return [
        f'<link rel="preload" href="{img["url"]}" as="image">'
        for img in above_fold[:max_images]
    ]


def generate_dns_prefetch(domains: list[str]) -> list[str]:
    return [f'<link rel="dns-prefetch" href="{domain}">' for domain in domains]


def generate_preconnect(
    domains: list[str],
    max_preconnect: int = MAX_PRECONNECT,
) -> list[str]:
    # Too many preconnects compete for bandwidth.
    return [
        f'<link rel="preconnect" href="{domain}" crossorigin>'
        for domain in domains[:max_preconnect]
    ]


def generate_all_preload_tags(
    resources: PreloadableResources,
    max_images: int = MAX_IMAGE_PRELOADS,
    max_preconnect: int = MAX_PRECONNECT,
) -> dict:
    """Build every resource hint for a page.

    Args:
        resources: Output of ``extract_preloadable_resources``.
        max_images: Cap on image preloads.
        max_preconnect: Cap on preconnect hints.

    Returns:
        A dict with the tag lists per kind, ``all_tags`` in the order
        they should appear in <head>, a ready-to-paste ``html`` string
        and ``stats`` counters.
    """
    font_preloads = generate_font_preloads(resources.fonts)
    image_preloads = generate_image_preloads(resources.images, max_images)
    dns_prefetch = generate_dns_prefetch(resources.external_domains)
    preconnect = generate_preconnect(resources.external_domains, max_preconnect)

    all_tags = preconnect + dns_prefetch + font_preloads + image_preloads

    return {
        "font_preloads": font_preloads,
        "image_preloads": image_preloads,
        "dns_prefetch": dns_prefetch,
        "preconnect": preconnect,
        "all_tags": all_tags,
        "html": "\n".join(all_tags),
        "stats": {
            "fonts_preloaded": len(font_preloads),
            "images_preloaded": len(image_preloads),
            "domains_preconnected": len(preconnect),
            "domains_prefetched": len(dns_prefetch),
            "preconnects_found": len(resources.preconnect),
        },
    }
