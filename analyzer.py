"""Render-blocking resource analyzer.

Models the scripts and stylesheets extracted from a rendered page and
decides, per resource, how critical it is, how it should be loaded and
whether its current placement hurts rendering. Script recommendations
come from an ordered rule cascade: the first rule whose predicate
matches produces the recommendation.
"""

import concurrent.futures
import re
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlparse

from classifiers import (
    CONSENT_POLICY_KEY,
    SeoCriticalPolicy,
    classify_inline_script,
    describe_inline_script,
    detect_seo_critical,
)
from templates import (
    current_code,
    inline_template,
    select_template,
    seo_critical_inline_template,
)
from vendors import match_vendor

ZONES = ("head", "body-start", "body-middle", "body-end")
LOADING_STRATEGIES = ("none", "async", "defer", "module")

# Blocking score weights. Position matters most, then loading strategy,
# then transfer size.
POSITION_WEIGHTS = {
    "head": 5,
    "body-start": 3,
    "body-middle": 2,
    "body-end": 1,
}
STRATEGY_WEIGHTS = {
    "none": 3,
    "defer": 1,
    "module": 1,
    "async": 0,
}
LARGE_RESOURCE_BYTES = 100_000
MEDIUM_RESOURCE_BYTES = 50_000
MIN_BLOCKING_SCORE = 1
MAX_BLOCKING_SCORE = 10

# Library filenames that mark a script as a legacy dependency.
LEGACY_LIBRARY_RE = re.compile(r"jquery\.min\.js|jquery[-.](\d)|/jquery\.js", re.I)


@dataclass(frozen=True)
class Position:
    """Where a resource sits in the document."""

    zone: str  # "head", "body-start", "body-middle" or "body-end"
    index: int = 0

    def to_dict(self) -> dict:
        return {"zone": self.zone, "index": self.index}


@dataclass(frozen=True)
class ResourceSize:
    """Network timing data correlated to a resource by URL."""

    transfer_bytes: Optional[int] = None
    decoded_bytes: Optional[int] = None
    duration_ms: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "transfer_bytes": self.transfer_bytes,
            "decoded_bytes": self.decoded_bytes,
            "duration_ms": (
                round(self.duration_ms, 1)
                if self.duration_ms is not None
                else None
            ),
        }


@dataclass(frozen=True)
class Recommendation:
    """Optimization advice for a single script."""

    criticality: str
    suggested_strategy: str
    suggested_position: str
    reason: str
    has_issue: bool
    blocking_score: int
    current_strategy: str = "none"
    current_position: Optional[str] = None
    code_example: str = ""
    current_code: str = ""
    is_seo_critical: bool = False
    seo_critical_type: Optional[str] = None
    seo_critical_name: Optional[str] = None
    seo_impact: Optional[str] = None
    caveat: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        data = {
            "criticality": self.criticality,
            "suggested_strategy": self.suggested_strategy,
            "suggested_position": self.suggested_position,
            "reason": self.reason,
            "has_issue": self.has_issue,
            "blocking_score": self.blocking_score,
            "current_strategy": self.current_strategy,
            "current_position": self.current_position,
            "code_example": self.code_example,
            "current_code": self.current_code,
            "is_seo_critical": self.is_seo_critical,
        }
        if self.is_seo_critical:
            data.update({
                "seo_critical_type": self.seo_critical_type,
                "seo_critical_name": self.seo_critical_name,
                "seo_impact": self.seo_impact,
                "caveat": self.caveat,
            })
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class StylesheetRecommendation:
    """Critical-CSS advice for a single stylesheet."""

    action: str  # "consider-critical-css" or "ok"
    reason: str
    is_blocking: bool
    is_critical: bool

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "reason": self.reason,
            "is_blocking": self.is_blocking,
            "is_critical": self.is_critical,
        }


@dataclass
class Resource:
    """Base for every script or stylesheet found on a page."""

    id: str
    position: Optional[Position]
    size: Optional[ResourceSize] = None
    category: str = "internal"
    vendor_name: str = "Internal Script"
    is_legacy_library: bool = False
    vendor_criticality: Optional[str] = None
    vendor_load_strategy: Optional[str] = None
    vendor_description: Optional[str] = None
    vendor_error: Optional[str] = None
    recommendation: Optional[object] = None

    kind = "resource"
    is_inline = False
    is_script = False

    @property
    def zone(self) -> Optional[str]:
        return self.position.zone if self.position else None

    @property
    def domain(self) -> Optional[str]:
        location = self.source_location
        if not location:
            return None
        return urlparse(location).hostname

    def attach(self, recommendation) -> None:
        """Attach the resource's recommendation. Allowed only once."""
        if self.recommendation is not None:
            raise RuntimeError(
                f"Resource {self.id} already has a recommendation"
            )
        self.recommendation = recommendation

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "kind": self.kind,
            "is_inline": self.is_inline,
            "source_location": self.source_location,
            "domain": self.domain,
            "position": self.position.to_dict() if self.position else None,
            "size": self.size.to_dict() if self.size else None,
            "category": self.category,
            "vendor_name": self.vendor_name,
            "vendor_criticality": self.vendor_criticality,
            "vendor_load_strategy": self.vendor_load_strategy,
            "vendor_description": self.vendor_description,
            "recommendation": (
                self.recommendation.to_dict()
                if self.recommendation is not None
                else None
            ),
        }


@dataclass
class ExternalScript(Resource):
    src: str = ""
    loading_strategy: str = "none"
    explicit_type: Optional[str] = None
    observed_blocking: Optional[bool] = None

    kind = "external-script"
    is_script = True

    @property
    def source_location(self) -> Optional[str]:
        return self.src

    @property
    def content(self) -> Optional[str]:
        return None

    @property
    def is_blocking(self) -> bool:
        """Observed blocking flag, else head placement without strategy."""
        if self.observed_blocking is not None:
            return self.observed_blocking
        return self.zone == "head" and self.loading_strategy == "none"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["loading_strategy"] = self.loading_strategy
        data["explicit_type"] = self.explicit_type
        data["is_blocking"] = self.is_blocking
        return data


@dataclass
class InlineScript(Resource):
    content: str = ""
    loading_strategy: str = "none"
    explicit_type: Optional[str] = None

    kind = "inline-script"
    is_inline = True
    is_script = True

    @property
    def source_location(self) -> Optional[str]:
        return None

    @property
    def is_blocking(self) -> bool:
        return self.zone == "head" and self.loading_strategy == "none"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["loading_strategy"] = self.loading_strategy
        data["explicit_type"] = self.explicit_type
        data["content_length"] = len(self.content)
        return data


@dataclass
class ExternalStylesheet(Resource):
    href: str = ""
    media: str = "all"

    kind = "external-stylesheet"

    @property
    def source_location(self) -> Optional[str]:
        return self.href

    @property
    def content(self) -> Optional[str]:
        return None

    @property
    def filename(self) -> str:
        path = urlparse(self.href).path
        return path.rsplit("/", 1)[-1] or path or self.href

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["media"] = self.media
        data["filename"] = self.filename
        return data


@dataclass
class InlineStylesheet(Resource):
    content: str = ""
    media: str = "all"

    kind = "inline-stylesheet"
    is_inline = True

    @property
    def source_location(self) -> Optional[str]:
        return None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["media"] = self.media
        data["content_length"] = len(self.content)
        return data


# --- Building resources from plain input -------------------------------


def _first(data: dict, *keys, default=None):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _parse_position(raw) -> Optional[Position]:
    if not isinstance(raw, dict):
        return None
    zone = _first(raw, "zone", "location")
    if zone not in ZONES:
        return None
    try:
        index = int(raw.get("index") or 0)
    except (TypeError, ValueError):
        index = 0
    return Position(zone=zone, index=index)


def _parse_size(raw) -> Optional[ResourceSize]:
    if not isinstance(raw, dict):
        return None
    return ResourceSize(
        transfer_bytes=_first(raw, "transferBytes", "transfer_bytes", "transferSize"),
        decoded_bytes=_first(
            raw, "decodedBytes", "decoded_bytes", "decodedBodySize", "resourceSize"
        ),
        duration_ms=_first(raw, "durationMs", "duration_ms", "duration"),
    )


def loading_strategy_from_attrs(
    is_async: bool = False,
    is_defer: bool = False,
    script_type: Optional[str] = None,
) -> str:
    """Derive the loading strategy from a script's attributes."""
    if is_async:
        return "async"
    if is_defer:
        return "defer"
    if script_type and script_type.strip().lower() == "module":
        return "module"
    return "none"


def resource_from_dict(data: dict, default_id: str = "resource") -> Resource:
    """Build the right Resource variant from an extracted-resource dict.

    Accepts the shape produced by the page extraction step, e.g.
    ``{"sourceLocation": ..., "isInline": ..., "content": ...,
    "position": {"zone": ..., "index": ...}, "loadingStrategy": ...,
    "size": ..., "explicitType": ..., "kind": "script"}``. A missing or
    unrecognized position becomes ``None``.
    """
    kind = (data.get("kind") or "script").lower()
    is_inline = bool(data.get("isInline", data.get("is_inline", False)))
    location = _first(data, "sourceLocation", "source_location", "src", "href")
    content = _first(data, "content", "textContent", default="")
    common = {
        "id": data.get("id") or default_id,
        "position": _parse_position(data.get("position")),
        "size": _parse_size(data.get("size")),
    }

    if kind in ("stylesheet", "style", "external-stylesheet", "inline-stylesheet"):
        media = data.get("media") or "all"
        if is_inline or not location:
            if common["size"] is None and content:
                common["size"] = ResourceSize(
                    transfer_bytes=len(content),
                    decoded_bytes=len(content),
                )
            return InlineStylesheet(content=content, media=media, **common)
        return ExternalStylesheet(href=location, media=media, **common)

    explicit_type = _first(data, "explicitType", "explicit_type", "type")
    strategy = _first(data, "loadingStrategy", "loading_strategy")
    if strategy not in LOADING_STRATEGIES:
        strategy = loading_strategy_from_attrs(
            bool(data.get("async")), bool(data.get("defer")), explicit_type
        )

    if is_inline or not location:
        return InlineScript(
            content=content,
            loading_strategy=strategy,
            explicit_type=explicit_type,
            **common,
        )
    return ExternalScript(
        src=location,
        loading_strategy=strategy,
        explicit_type=explicit_type,
        observed_blocking=_first(data, "observedBlocking", "isBlocking"),
        **common,
    )


# --- Blocking score ----------------------------------------------------


def calculate_blocking_score(resource: Resource) -> int:
    """Score how much a resource delays rendering, from 1 to 10.

    Head placement adds 5, synchronous loading adds 3, and transfers
    over 50 KB / 100 KB add 1 / 2. Depends only on the resource's
    position, loading strategy and size.
    """
    score = POSITION_WEIGHTS.get(resource.zone, 0)
    score += STRATEGY_WEIGHTS.get(getattr(resource, "loading_strategy", "none"), 3)

    if resource.size and resource.size.transfer_bytes:
        if resource.size.transfer_bytes > LARGE_RESOURCE_BYTES:
            score += 2
        elif resource.size.transfer_bytes > MEDIUM_RESOURCE_BYTES:
            score += 1

    return min(max(score, MIN_BLOCKING_SCORE), MAX_BLOCKING_SCORE)


# --- Category policy table ---------------------------------------------

CATEGORY_RULES: dict[str, dict] = {
    "analytics": {
        "criticality": "critical",
        "suggested_strategy": "async",
        "suggested_position": "head",
        "reason": (
            "Analytics scripts are critical for business insights but "
            "should use async to avoid blocking page render. This ensures "
            "accurate tracking while maintaining performance."
        ),
    },
    "ab_testing": {
        "criticality": "critical",
        "suggested_strategy": "head-sync",
        "suggested_position": "head",
        "reason": (
            "A/B testing tools must load early to prevent content flicker. "
            "However, use an anti-flicker snippet and set a timeout to "
            "prevent blocking."
        ),
    },
    "consent": {
        "criticality": "critical",
        "suggested_strategy": "head-sync",
        "suggested_position": "head",
        "reason": (
            "GDPR and privacy compliance requires cookie consent to load "
            "before other tracking scripts. Must be in the head."
        ),
    },
    "chat": {
        "criticality": "non-essential",
        "suggested_strategy": "lazy-load",
        "suggested_position": "body-end",
        "reason": (
            "Chat widgets are not needed for initial page load. Load them "
            "on scroll, click, or after a few seconds to improve "
            "performance."
        ),
    },
    "fonts": {
        "criticality": "interactive",
        "suggested_strategy": "preload-or-async",
        "suggested_position": "head",
        "reason": (
            "Fonts should be preloaded for better performance. Use "
            "font-display: swap to prevent invisible text during loading."
        ),
    },
    "cdn": {
        "criticality": "critical",
        "suggested_strategy": "head-defer",
        "suggested_position": "head",
        "reason": (
            "Core libraries from CDNs should use defer attribute. This "
            "allows parallel downloads while ensuring proper execution "
            "order."
        ),
    },
    "advertising": {
        "criticality": "interactive",
        "suggested_strategy": "defer",
        "suggested_position": "body-end",
        "reason": (
            "Ad scripts should defer loading to prevent blocking the main "
            "content. Place them at the end of the body."
        ),
    },
    "social": {
        "criticality": "interactive",
        "suggested_strategy": "defer",
        "suggested_position": "body-end",
        "reason": (
            "Social media widgets can be deferred as they're not critical "
            "for initial page load. Consider lazy-loading if they're below "
            "the fold."
        ),
    },
    "maps": {
        "criticality": "interactive",
        "suggested_strategy": "lazy-load",
        "suggested_position": "body-end",
        "reason": (
            "Map scripts are heavy and often below the fold. Load them on "
            "scroll or when the map container becomes visible."
        ),
    },
    "video": {
        "criticality": "interactive",
        "suggested_strategy": "lazy-load",
        "suggested_position": "body-end",
        "reason": (
            "Video player scripts should load only when needed. Use "
            "lazy-loading with a thumbnail image as placeholder."
        ),
    },
    "payments": {
        "criticality": "critical",
        "suggested_strategy": "context-dependent",
        "suggested_position": "body-end",
        "reason": (
            "Payment scripts are critical on checkout pages but not needed "
            "elsewhere. Consider loading them only on payment pages."
        ),
    },
    "monitoring": {
        "criticality": "non-essential",
        "suggested_strategy": "defer",
        "suggested_position": "body-end",
        "reason": (
            "Error monitoring and analytics tools don't need to block "
            "rendering. Use defer or async attributes."
        ),
    },
    "crm": {
        "criticality": "non-essential",
        "suggested_strategy": "lazy-load",
        "suggested_position": "body-end",
        "reason": (
            "CRM and marketing automation scripts can be lazy-loaded after "
            "initial page interaction."
        ),
    },
    "popups": {
        "criticality": "non-essential",
        "suggested_strategy": "lazy-load",
        "suggested_position": "body-end",
        "reason": (
            "Popup scripts should load after the main content. Consider "
            "delaying them by a few seconds or trigger on scroll."
        ),
    },
    "email": {
        "criticality": "interactive",
        "suggested_strategy": "defer",
        "suggested_position": "body-end",
        "reason": (
            "Email marketing forms can be deferred. They don't need to "
            "block the initial page load."
        ),
    },
    "support": {
        "criticality": "non-essential",
        "suggested_strategy": "lazy-load",
        "suggested_position": "body-end",
        "reason": (
            "Support widgets can be lazy-loaded on interaction to improve "
            "initial page load time."
        ),
    },
    "internal": {
        "criticality": "standard",
        "suggested_strategy": "defer",
        "suggested_position": "context-dependent",
        "reason": (
            "Internal scripts should generally use defer unless they're "
            "critical for initial render. Review each script individually."
        ),
    },
    "other": {
        "criticality": "standard",
        "suggested_strategy": "defer",
        "suggested_position": "body-end",
        "reason": (
            "Third-party script. Move to end of body and add defer "
            "attribute unless you know it's critical."
        ),
    },
}


def get_category_rules(category: Optional[str]) -> dict:
    """Return the policy for a category, falling back to "other"."""
    return CATEGORY_RULES.get(category or "other", CATEGORY_RULES["other"])


# --- Issue predicates --------------------------------------------------


def _has_no_strategy(resource) -> bool:
    return resource.loading_strategy in (None, "", "none")


def is_non_critical_in_head(resource, criticality: str) -> bool:
    """Any non-critical script sitting blocking in the head."""
    return (
        resource.zone == "head"
        and _has_no_strategy(resource)
        and criticality != "critical"
    )


def needs_analytics_async(resource) -> bool:
    return resource.category == "analytics" and _has_no_strategy(resource)


def needs_chat_lazy_load(resource) -> bool:
    # No observed strategy is lazy, so every chat widget qualifies.
    return resource.category == "chat" and resource.loading_strategy != "lazy"


def is_non_essential_blocking(resource, criticality: str) -> bool:
    return (
        criticality == "non-essential"
        and resource.zone == "head"
        and _has_no_strategy(resource)
    )


def _vendor_addenda(resource) -> str:
    """Extra reason text for vendors with well-known loading guidance."""
    notes = []
    strategy = resource.loading_strategy

    if resource.vendor_name == "Google Analytics" and strategy != "async":
        notes.append(
            "Google Analytics officially recommends async loading for "
            "optimal performance without data loss."
        )
    if resource.vendor_name == "Google Tag Manager" and strategy != "async":
        notes.append(
            "GTM works best with async loading or delayed injection on "
            "user interaction."
        )
    if (
        resource.is_legacy_library
        and resource.zone == "head"
        and _has_no_strategy(resource)
    ):
        notes.append(
            "Consider moving jQuery to end of body with defer, or migrate "
            "to modern vanilla JavaScript."
        )
    if needs_chat_lazy_load(resource):
        notes.append(
            "Most users never interact with chat widgets - lazy-loading "
            "saves bandwidth and improves performance."
        )
    if resource.category == "consent":
        notes.append(
            "Note: This must load before other tracking scripts for legal "
            "compliance."
        )

    return "".join(" " + note for note in notes)


# --- Rule cascade ------------------------------------------------------


def _current_code_for(resource) -> str:
    return current_code(
        resource.source_location,
        resource.zone,
        resource.loading_strategy,
        content=resource.content,
        is_inline=resource.is_inline,
    )


def _seo_fields(seo: SeoCriticalPolicy) -> dict:
    return {
        "is_seo_critical": True,
        "seo_critical_type": seo.key,
        "seo_critical_name": seo.name,
        "seo_impact": seo.seo_impact,
        "caveat": seo.caveat,
    }


def _recommend_unpositioned(resource, seo) -> Recommendation:
    return fallback_recommendation(
        resource, "Resource has no recorded position"
    )


def _recommend_inline_seo_critical(resource, seo) -> Recommendation:
    return Recommendation(
        criticality="seo-critical",
        suggested_strategy="keep-as-is",
        suggested_position=resource.zone,
        reason=seo.reason,
        has_issue=False,
        blocking_score=calculate_blocking_score(resource),
        current_strategy=resource.loading_strategy,
        current_position=resource.zone,
        code_example=seo_critical_inline_template(
            seo.name, resource.content, resource.explicit_type
        ),
        current_code=_current_code_for(resource),
        **_seo_fields(seo),
    )


def _recommend_inline(resource, seo) -> Recommendation:
    criticality = classify_inline_script(resource.content)
    common = {
        "blocking_score": calculate_blocking_score(resource),
        "current_strategy": resource.loading_strategy,
        "current_position": resource.zone,
        "current_code": _current_code_for(resource),
    }

    if criticality == "critical":
        return Recommendation(
            criticality="critical",
            suggested_strategy="keep-inline",
            suggested_position="head",
            reason=(
                "This inline script appears to contain configuration or "
                "initialization code. Keep it in the head but ensure it's "
                "minimal."
            ),
            has_issue=False,
            code_example=inline_template(
                resource.content, "Keep this inline script in <head>"
            ),
            **common,
        )

    return Recommendation(
        criticality=criticality,
        suggested_strategy="move-to-end",
        suggested_position="body-end",
        reason=(
            "Move non-critical inline scripts to the end of the body to "
            "avoid blocking rendering."
        ),
        has_issue=resource.zone == "head",
        code_example=inline_template(resource.content, "Move to end of <body>"),
        **common,
    )


def _recommend_external_seo_critical(resource, seo) -> Recommendation:
    # Consent managers must run before any tracker: never async/defer.
    if seo.key == CONSENT_POLICY_KEY:
        strategy = "keep-sync-in-head"
    else:
        strategy = "async"

    return Recommendation(
        criticality="seo-critical",
        suggested_strategy=strategy,
        suggested_position="head",
        reason=seo.reason,
        has_issue=_has_no_strategy(resource),
        blocking_score=calculate_blocking_score(resource),
        current_strategy=resource.loading_strategy,
        current_position=resource.zone,
        code_example=select_template(resource.src, strategy),
        current_code=_current_code_for(resource),
        **_seo_fields(seo),
    )


def _recommend_by_category(resource, seo) -> Recommendation:
    rules = get_category_rules(resource.category)
    criticality = rules["criticality"]

    has_issue = bool(
        is_non_critical_in_head(resource, criticality)
        or needs_analytics_async(resource)
        or needs_chat_lazy_load(resource)
        or is_non_essential_blocking(resource, criticality)
        or resource.is_blocking
    )

    return Recommendation(
        criticality=criticality,
        suggested_strategy=rules["suggested_strategy"],
        suggested_position=rules["suggested_position"],
        reason=rules["reason"] + _vendor_addenda(resource),
        has_issue=has_issue,
        blocking_score=calculate_blocking_score(resource),
        current_strategy=resource.loading_strategy,
        current_position=resource.zone,
        code_example=select_template(
            resource.src,
            rules["suggested_strategy"],
            vendor_name=resource.vendor_name,
        ),
        current_code=_current_code_for(resource),
    )


def is_unpositioned(resource, seo) -> bool:
    return resource.position is None


def is_inline_seo_critical(resource, seo) -> bool:
    return resource.is_inline and seo is not None


def is_inline(resource, seo) -> bool:
    return resource.is_inline


def is_external_seo_critical(resource, seo) -> bool:
    return not resource.is_inline and seo is not None


def is_external(resource, seo) -> bool:
    return not resource.is_inline


# Ordered (predicate, handler) pairs; the first matching predicate wins.
# SEO-critical detection overrides inline heuristics and category policy.
RECOMMENDATION_RULES: list[tuple[Callable, Callable]] = [
    (is_unpositioned, _recommend_unpositioned),
    (is_inline_seo_critical, _recommend_inline_seo_critical),
    (is_inline, _recommend_inline),
    (is_external_seo_critical, _recommend_external_seo_critical),
    (is_external, _recommend_by_category),
]


def fallback_recommendation(resource, error: str) -> Recommendation:
    """The safest generic advice, used when a script can't be classified."""
    rules = CATEGORY_RULES["other"]
    return Recommendation(
        criticality=rules["criticality"],
        suggested_strategy=rules["suggested_strategy"],
        suggested_position=rules["suggested_position"],
        reason=rules["reason"],
        has_issue=False,
        blocking_score=calculate_blocking_score(resource),
        current_strategy=getattr(resource, "loading_strategy", None) or "none",
        current_position=resource.zone,
        error=error,
    )


def recommend(resource: Resource) -> Recommendation:
    """Generate the optimization recommendation for a script.

    Evaluates RECOMMENDATION_RULES in order and returns the first
    matching handler's result. Does not raise: a resource that can't be
    evaluated gets the "other" category advice with ``error`` set.

    Args:
        resource: An ExternalScript or InlineScript, already classified
            by the vendor matcher.

    Returns:
        A Recommendation.
    """
    try:
        seo = detect_seo_critical(resource)
        for predicate, handler in RECOMMENDATION_RULES:
            if predicate(resource, seo):
                return handler(resource, seo)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        return fallback_recommendation(resource, f"{type(exc).__name__}: {exc}")
    return fallback_recommendation(resource, "No recommendation rule matched")


def recommend_stylesheet(resource: Resource) -> StylesheetRecommendation:
    """Decide whether a stylesheet is a critical-CSS candidate.

    A stylesheet in the head that applies to all media blocks first
    render and should be split into critical (inlined) and deferred CSS.
    """
    in_head = resource.zone == "head"
    media = (getattr(resource, "media", "") or "all").strip().lower()
    is_blocking = in_head and media == "all"

    if resource.is_inline:
        reason = (
            "Inline styles in head are good for critical CSS"
            if in_head
            else "Consider moving critical inline styles to head"
        )
    else:
        reason = (
            "Consider extracting critical CSS for above-the-fold content"
            if in_head
            else "Stylesheet is properly placed"
        )

    return StylesheetRecommendation(
        action="consider-critical-css" if is_blocking else "ok",
        reason=reason,
        is_blocking=is_blocking,
        is_critical=in_head,
    )


# --- Pipeline ----------------------------------------------------------


def classify_resource(resource: Resource, page_host: Optional[str] = None) -> Resource:
    """Fill in a resource's category and vendor name."""
    if resource.is_inline:
        resource.category = "internal"
        if resource.is_script:
            resource.vendor_name = describe_inline_script(resource.content)
        else:
            resource.vendor_name = "Inline Styles"
        return resource

    url = resource.source_location
    match = match_vendor(
        url,
        zone=resource.zone,
        loading_strategy=getattr(resource, "loading_strategy", None),
        page_host=page_host,
    )
    resource.category = match.category
    resource.vendor_name = match.name
    resource.vendor_criticality = match.criticality
    resource.vendor_load_strategy = match.load_strategy
    resource.vendor_description = match.description
    resource.vendor_error = match.error
    resource.is_legacy_library = match.legacy or bool(
        isinstance(url, str) and LEGACY_LIBRARY_RE.search(url)
    )
    return resource


def analyze_resource(resource: Resource, page_host: Optional[str] = None) -> Resource:
    """Classify a resource and attach its recommendation."""
    classify_resource(resource, page_host=page_host)
    if resource.is_script:
        recommendation = recommend(resource)
        # Fallback advice is generic, so the vendor category goes too.
        if recommendation.error:
            resource.category = "other"
        resource.attach(recommendation)
    else:
        resource.attach(recommend_stylesheet(resource))
    return resource


def _degrade(resource: Resource, error: str) -> Resource:
    resource.category = "other"
    resource.vendor_error = error
    if resource.recommendation is None:
        if resource.is_script:
            resource.attach(fallback_recommendation(resource, error))
        else:
            resource.attach(StylesheetRecommendation(
                action="ok", reason=error, is_blocking=False, is_critical=False,
            ))
    return resource


def analyze_resources(
    resources: list[Resource],
    page_host: Optional[str] = None,
    max_workers: Optional[int] = None,
    console=None,
) -> list[Resource]:
    """Classify and recommend every resource on a page.

    Resources are independent, so they may be processed on a thread
    pool; the returned list keeps the input order and is complete
    before this function returns. A resource that fails classification
    gets the generic fallback instead of aborting the batch.

    Args:
        resources: Resources from the extraction step.
        page_host: Hostname of the analyzed page, for same-origin checks.
        max_workers: Thread pool size. None or 1 runs sequentially.
        console: Optional rich.console.Console for warnings.

    Returns:
        The same resources, each with category, vendor and
        recommendation filled in.
    """

    def _process(resource: Resource) -> Resource:
        try:
            return analyze_resource(resource, page_host=page_host)
        except (AttributeError, TypeError, ValueError) as exc:
            if console:
                console.print(
                    f"  [yellow]Fallback classification for "
                    f"{resource.id}: {exc}[/]"
                )
            return _degrade(resource, str(exc))

    if max_workers and max_workers > 1 and len(resources) > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(_process, resources))

    return [_process(resource) for resource in resources]
