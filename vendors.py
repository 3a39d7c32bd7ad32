"""Third-party vendor table and domain matcher.

Maps script URLs to known third-party services and the loading policy
each one should follow. Unknown third-party domains fall back to a
heuristic classification derived from the hostname and the script's
position on the page.
"""

import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Optional
from urllib.parse import urlparse

# Vendor policies grouped by category. Keys are domain patterns:
#   "example.com"              exact host or any subdomain of it
#   "*.example.com"            any subdomain (wildcard)
#   "example.com/*/file.js"    host + path pattern
# Each entry: name, criticality, load_strategy and optional description.
# Entries flagged "legacy" are libraries worth migrating away from.
VENDOR_DATABASE: dict[str, dict[str, dict]] = {
    "analytics": {
        "googletagmanager.com/gtag/*": {
            "name": "Google Analytics",
            "criticality": "non-essential",
            "load_strategy": "async",
            "description": "GA4 via gtag.js",
        },
        "googletagmanager.com": {
            "name": "Google Tag Manager",
            "criticality": "critical",
            "load_strategy": "async",
            "description": "Tag management container for marketing and analytics tags",
        },
        "google-analytics.com": {
            "name": "Google Analytics",
            "criticality": "non-essential",
            "load_strategy": "async",
            "description": "Web analytics and traffic reporting",
        },
        "*.hotjar.com": {
            "name": "Hotjar",
            "criticality": "non-essential",
            "load_strategy": "async",
            "description": "Heatmaps and session recordings",
        },
        "fullstory.com": {
            "name": "FullStory",
            "criticality": "non-essential",
            "load_strategy": "async",
            "description": "Session replay",
        },
        "heapanalytics.com": {
            "name": "Heap Analytics",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "amplitude.com": {
            "name": "Amplitude",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "mixpanel.com": {
            "name": "Mixpanel",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "cdn.segment.com": {
            "name": "Segment",
            "criticality": "non-essential",
            "load_strategy": "async",
            "description": "Customer data and analytics router",
        },
        "tags.tiqcdn.com": {
            "name": "Tealium",
            "criticality": "critical",
            "load_strategy": "async",
            "description": "Tag management",
        },
        "clarity.ms": {
            "name": "Microsoft Clarity",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "plausible.io": {
            "name": "Plausible Analytics",
            "criticality": "non-essential",
            "load_strategy": "defer",
        },
        "matomo.cloud": {
            "name": "Matomo",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
    },
    "ab_testing": {
        "cdn.optimizely.com": {
            "name": "Optimizely",
            "criticality": "critical",
            "load_strategy": "sync",
            "description": "A/B testing; loads early to avoid content flicker",
        },
        "dev.visualwebsiteoptimizer.com": {
            "name": "VWO",
            "criticality": "critical",
            "load_strategy": "sync",
        },
        "cdn-3.convertexperiments.com": {
            "name": "Convert",
            "criticality": "critical",
            "load_strategy": "sync",
        },
        "abtasty.com": {
            "name": "AB Tasty",
            "criticality": "critical",
            "load_strategy": "sync",
        },
    },
    "consent": {
        "cdn.cookielaw.org": {
            "name": "OneTrust",
            "criticality": "critical",
            "load_strategy": "sync",
            "description": "Cookie consent management",
        },
        "consent.cookiebot.com": {
            "name": "Cookiebot",
            "criticality": "critical",
            "load_strategy": "sync",
            "description": "Cookie consent management",
        },
        "consent.trustarc.com": {
            "name": "TrustArc",
            "criticality": "critical",
            "load_strategy": "sync",
        },
        "cdn.iubenda.com": {
            "name": "iubenda",
            "criticality": "critical",
            "load_strategy": "sync",
        },
        "app.termly.io": {
            "name": "Termly",
            "criticality": "critical",
            "load_strategy": "sync",
        },
    },
    "chat": {
        "widget.intercom.io": {
            "name": "Intercom",
            "criticality": "non-essential",
            "load_strategy": "lazy",
            "description": "Customer messaging widget",
        },
        "js.intercomcdn.com": {
            "name": "Intercom",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "js.driftt.com": {
            "name": "Drift",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "embed.tawk.to": {
            "name": "Tawk.to",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "client.crisp.chat": {
            "name": "Crisp",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "cdn.livechatinc.com": {
            "name": "LiveChat",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "code.tidio.co": {
            "name": "Tidio",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
    },
    "support": {
        "static.zdassets.com": {
            "name": "Zendesk",
            "criticality": "non-essential",
            "load_strategy": "lazy",
            "description": "Support widget",
        },
        "config.gorgias.chat": {
            "name": "Gorgias",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "widget.freshworks.com": {
            "name": "Freshdesk",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "beacon-v2.helpscout.net": {
            "name": "Help Scout Beacon",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
    },
    "advertising": {
        "facebook.net/*/fbevents.js": {
            "name": "Facebook Pixel",
            "criticality": "non-essential",
            "load_strategy": "async",
            "description": "Meta conversion tracking and retargeting",
        },
        "googleadservices.com": {
            "name": "Google Ads",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "googlesyndication.com": {
            "name": "Google AdSense",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "doubleclick.net": {
            "name": "Google DoubleClick",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "snap.licdn.com": {
            "name": "LinkedIn Insight Tag",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "analytics.tiktok.com": {
            "name": "TikTok Pixel",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "s.pinimg.com/ct/*": {
            "name": "Pinterest Tag",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "static.ads-twitter.com": {
            "name": "Twitter/X Ads Pixel",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "*.criteo.net": {
            "name": "Criteo",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
        "bat.bing.com": {
            "name": "Microsoft Advertising UET",
            "criticality": "non-essential",
            "load_strategy": "async",
        },
    },
    "social": {
        "platform.twitter.com": {
            "name": "Twitter/X Widgets",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "connect.facebook.net/*/sdk.js": {
            "name": "Facebook SDK",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "platform.linkedin.com": {
            "name": "LinkedIn Widgets",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "assets.pinterest.com": {
            "name": "Pinterest Widgets",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "s7.addthis.com": {
            "name": "AddThis",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "platform-api.sharethis.com": {
            "name": "ShareThis",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
    },
    "cdn": {
        "code.jquery.com": {
            "name": "jQuery CDN",
            "criticality": "critical",
            "load_strategy": "defer",
            "legacy": True,
        },
        "ajax.googleapis.com/ajax/libs/jquery/*": {
            "name": "jQuery (Google CDN)",
            "criticality": "critical",
            "load_strategy": "defer",
            "legacy": True,
        },
        "cdnjs.cloudflare.com/ajax/libs/jquery/*": {
            "name": "jQuery (cdnjs)",
            "criticality": "critical",
            "load_strategy": "defer",
            "legacy": True,
        },
        "cdn.jsdelivr.net/npm/jquery*": {
            "name": "jQuery (jsDelivr)",
            "criticality": "critical",
            "load_strategy": "defer",
            "legacy": True,
        },
        "ajax.googleapis.com/*": {
            "name": "Google Hosted Libraries",
            "criticality": "critical",
            "load_strategy": "defer",
        },
        "cdnjs.cloudflare.com/*": {
            "name": "cdnjs",
            "criticality": "critical",
            "load_strategy": "defer",
        },
        "cdn.jsdelivr.net/*": {
            "name": "jsDelivr",
            "criticality": "critical",
            "load_strategy": "defer",
        },
        "unpkg.com": {
            "name": "unpkg",
            "criticality": "critical",
            "load_strategy": "defer",
        },
        "stackpath.bootstrapcdn.com": {
            "name": "BootstrapCDN",
            "criticality": "critical",
            "load_strategy": "defer",
        },
        "cdn.shopify.com": {
            "name": "Shopify CDN",
            "criticality": "critical",
            "load_strategy": "defer",
        },
    },
    "fonts": {
        "fonts.googleapis.com": {
            "name": "Google Fonts",
            "criticality": "interactive",
            "load_strategy": "preload",
        },
        "fonts.gstatic.com": {
            "name": "Google Fonts",
            "criticality": "interactive",
            "load_strategy": "preload",
        },
        "use.typekit.net": {
            "name": "Adobe Fonts",
            "criticality": "interactive",
            "load_strategy": "preload",
        },
        "kit.fontawesome.com": {
            "name": "Font Awesome",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "use.fontawesome.com": {
            "name": "Font Awesome",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
    },
    "maps": {
        "maps.googleapis.com": {
            "name": "Google Maps",
            "criticality": "interactive",
            "load_strategy": "lazy",
        },
        "api.mapbox.com": {
            "name": "Mapbox",
            "criticality": "interactive",
            "load_strategy": "lazy",
        },
    },
    "video": {
        "youtube.com": {
            "name": "YouTube",
            "criticality": "interactive",
            "load_strategy": "lazy",
        },
        "player.vimeo.com": {
            "name": "Vimeo",
            "criticality": "interactive",
            "load_strategy": "lazy",
        },
        "fast.wistia.com": {
            "name": "Wistia",
            "criticality": "interactive",
            "load_strategy": "lazy",
        },
        "players.brightcove.net": {
            "name": "Brightcove",
            "criticality": "interactive",
            "load_strategy": "lazy",
        },
    },
    "payments": {
        "js.stripe.com": {
            "name": "Stripe",
            "criticality": "critical",
            "load_strategy": "context-dependent",
        },
        "paypal.com/sdk/*": {
            "name": "PayPal",
            "criticality": "critical",
            "load_strategy": "context-dependent",
        },
        "js.braintreegateway.com": {
            "name": "Braintree",
            "criticality": "critical",
            "load_strategy": "context-dependent",
        },
        "js.klarna.com": {
            "name": "Klarna",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "js.afterpay.com": {
            "name": "Afterpay",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
    },
    "monitoring": {
        "browser.sentry-cdn.com": {
            "name": "Sentry",
            "criticality": "non-essential",
            "load_strategy": "defer",
            "description": "Error monitoring",
        },
        "js-agent.newrelic.com": {
            "name": "New Relic",
            "criticality": "non-essential",
            "load_strategy": "defer",
        },
        "www.datadoghq-browser-agent.com": {
            "name": "Datadog RUM",
            "criticality": "non-essential",
            "load_strategy": "defer",
        },
        "cdn.logrocket.io": {
            "name": "LogRocket",
            "criticality": "non-essential",
            "load_strategy": "defer",
        },
        "d2wy8f7a9ursnm.cloudfront.net": {
            "name": "Bugsnag",
            "criticality": "non-essential",
            "load_strategy": "defer",
        },
    },
    "crm": {
        "js.hs-scripts.com": {
            "name": "HubSpot",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "js.hs-analytics.net": {
            "name": "HubSpot Analytics",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "munchkin.marketo.net": {
            "name": "Marketo",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "pi.pardot.com": {
            "name": "Pardot",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "salesforce.com": {
            "name": "Salesforce",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
    },
    "popups": {
        "a.optinmonster.com": {
            "name": "OptinMonster",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "sumo.com": {
            "name": "Sumo",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "privy.com": {
            "name": "Privy",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
        "justuno.com": {
            "name": "Justuno",
            "criticality": "non-essential",
            "load_strategy": "lazy",
        },
    },
    "email": {
        "static.klaviyo.com": {
            "name": "Klaviyo",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "chimpstatic.com": {
            "name": "Mailchimp",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "list-manage.com": {
            "name": "Mailchimp Forms",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
        "f.convertkit.com": {
            "name": "ConvertKit",
            "criticality": "interactive",
            "load_strategy": "defer",
        },
    },
}

INTERNAL_MATCH = {
    "category": "internal",
    "name": "Internal Script",
    "criticality": "standard",
    "load_strategy": "defer",
}

# Subdomain prefixes stripped before building a readable vendor name.
_HOST_PREFIX_RE = re.compile(
    r"^(www\d?|cdn|static|assets|js|scripts?|img|images)\.", re.I
)

# Hostname fragments that hint at what a third-party host serves.
_HOST_DESCRIPTORS = (
    ("cdn.", "CDN"),
    ("api.", "API"),
    ("analytics.", "Analytics"),
)

NON_ESSENTIAL_URL_HINTS = ("analytics", "tracking", "chat", "widget")


@dataclass(frozen=True)
class VendorMatch:
    """Result of resolving a script URL to a vendor policy."""

    category: str
    name: str
    criticality: str
    load_strategy: str
    description: Optional[str] = None
    legacy: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        data = {
            "category": self.category,
            "name": self.name,
            "criticality": self.criticality,
            "load_strategy": self.load_strategy,
        }
        if self.description:
            data["description"] = self.description
        if self.legacy:
            data["legacy"] = True
        if self.error:
            data["error"] = self.error
        return data


def _from_entry(category: str, entry: dict) -> VendorMatch:
    return VendorMatch(
        category=category,
        name=entry["name"],
        criticality=entry["criticality"],
        load_strategy=entry["load_strategy"],
        description=entry.get("description"),
        legacy=entry.get("legacy", False),
    )


def _iter_entries():
    """Yield (category, domain_pattern, entry) in table order."""
    for category, vendors in VENDOR_DATABASE.items():
        for pattern, entry in vendors.items():
            yield category, pattern, entry


def _match_host_exact(hostname: str) -> Optional[VendorMatch]:
    for category, pattern, entry in _iter_entries():
        if "/" in pattern:
            continue
        if "*" in pattern:
            if fnmatchcase(hostname, pattern):
                return _from_entry(category, entry)
        elif hostname == pattern:
            return _from_entry(category, entry)
    return None


def _match_path(full_path: str) -> Optional[VendorMatch]:
    for category, pattern, entry in _iter_entries():
        if "/" not in pattern:
            continue
        if fnmatchcase(full_path, pattern) or fnmatchcase(
            full_path, "*." + pattern
        ):
            return _from_entry(category, entry)
    return None


def _match_subdomain(hostname: str) -> Optional[VendorMatch]:
    for category, pattern, entry in _iter_entries():
        if "/" in pattern or "*" in pattern:
            continue
        if hostname.endswith("." + pattern):
            return _from_entry(category, entry)
    return None


def readable_name(hostname: Optional[str]) -> str:
    """Build a human-readable vendor name from a hostname.

    Args:
        hostname: A hostname such as "cdn.example-widgets.com".

    Returns:
        A title-cased name such as "Example Widgets CDN". Falls back to
        the hostname itself when it has no registrable label, and to
        "External Script" when there is no hostname at all.
    """
    if not hostname:
        return "External Script"

    cleaned = _HOST_PREFIX_RE.sub("", hostname)
    parts = cleaned.split(".")
    if len(parts) < 2:
        return hostname

    main_label = parts[-2]
    formatted = " ".join(
        word[:1].upper() + word[1:]
        for word in re.split(r"[-_]", main_label)
        if word
    ) or main_label

    lowered = hostname.lower()
    for fragment, descriptor in _HOST_DESCRIPTORS:
        if fragment in lowered:
            return f"{formatted} {descriptor}"
    return formatted


def _is_unstrategized(loading_strategy: Optional[str]) -> bool:
    return loading_strategy in (None, "", "none")


def infer_criticality(
    url: str,
    zone: Optional[str] = None,
    loading_strategy: Optional[str] = None,
) -> str:
    """Guess how critical an unknown third-party script is.

    A blocking script in the head is assumed to be there on purpose;
    tracking and widget URLs are treated as non-essential.
    """
    if zone == "head" and _is_unstrategized(loading_strategy):
        return "critical"

    url_lower = url.lower()
    if any(hint in url_lower for hint in NON_ESSENTIAL_URL_HINTS):
        return "non-essential"

    return "interactive"


def infer_load_strategy(
    zone: Optional[str] = None,
    loading_strategy: Optional[str] = None,
) -> str:
    """Suggest a loading strategy for an unknown third-party script."""
    if _is_unstrategized(loading_strategy):
        if zone == "head":
            return "defer"
        if zone and zone.startswith("body"):
            return "async"
    return "current"


def _unparseable(error: str) -> VendorMatch:
    return VendorMatch(
        category="other",
        name="External Script",
        criticality="standard",
        load_strategy="defer",
        error=error,
    )


def match_vendor(
    url: Optional[str],
    zone: Optional[str] = None,
    loading_strategy: Optional[str] = None,
    page_host: Optional[str] = None,
) -> VendorMatch:
    """Match a script URL to a known third-party vendor.

    Resolution order, first match wins:
      1. relative/local paths -> internal
      2. exact or wildcard hostname keys
      3. host + path pattern keys
      4. subdomain of a table domain
      5. same origin as the page -> internal
      6. heuristic third-party classification

    Args:
        url: The script URL.
        zone: The script's position zone ("head", "body-start", ...).
        loading_strategy: The observed loading strategy.
        page_host: Hostname of the page being analyzed.

    Returns:
        A VendorMatch. Never raises; an unparseable URL yields the
        "other" category with the parse error attached.
    """
    if url and not isinstance(url, str):
        return _unparseable(f"URL is not a string: {url!r}")
    if url and url.startswith("//"):
        url = "https:" + url
    elif not url or url.startswith("/") or url.startswith("."):
        return VendorMatch(**INTERNAL_MATCH)

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        if not hostname:
            raise ValueError(f"URL has no hostname: {url!r}")
    except ValueError as exc:
        return _unparseable(str(exc))

    full_path = hostname + parsed.path

    match = (
        _match_host_exact(hostname)
        or _match_path(full_path)
        or _match_subdomain(hostname)
    )
    if match is not None:
        return match

    if page_host and hostname == page_host.lower():
        return VendorMatch(**INTERNAL_MATCH)

    return VendorMatch(
        category="third_party",
        name=readable_name(hostname),
        criticality=infer_criticality(url, zone, loading_strategy),
        load_strategy=infer_load_strategy(zone, loading_strategy),
        description=f"Third-party script from {hostname}",
    )


def get_categories() -> list[str]:
    """Return all vendor categories in table order."""
    return list(VENDOR_DATABASE.keys())


def get_vendors_by_category(category: str) -> dict[str, dict]:
    """Return the vendor entries for a category (empty if unknown)."""
    return VENDOR_DATABASE.get(category, {})


def get_total_vendor_count() -> int:
    """Return the number of domain patterns in the vendor table."""
    return sum(len(vendors) for vendors in VENDOR_DATABASE.values())
