"""Rule-based classifiers for scripts that must not be deferred.

Holds the SEO-critical pattern table (structured data, tag managers,
analytics, ad pixels, consent managers) and the keyword heuristics
used to judge inline script content.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

JSON_LD_MIME = "application/ld+json"


@dataclass(frozen=True)
class SeoCriticalPolicy:
    """Policy for a script category that must stay early in the page."""

    key: str
    patterns: Tuple[re.Pattern, ...]
    name: str
    reason: str
    seo_impact: str  # "low", "medium", "high" or "critical"
    keep_in_head: bool
    caveat: str

    def matches(self, text: str) -> bool:
        """Return True if any of the category's patterns match ``text``."""
        return any(pattern.search(text) for pattern in self.patterns)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary (patterns omitted)."""
        return {
            "type": self.key,
            "name": self.name,
            "reason": self.reason,
            "seo_impact": self.seo_impact,
            "keep_in_head": self.keep_in_head,
            "caveat": self.caveat,
        }


# Canonical order matters: the first category with a matching pattern
# wins, so tag-manager patterns are tested before generic analytics.
SEO_CRITICAL_POLICIES: list[SeoCriticalPolicy] = [
    SeoCriticalPolicy(
        key="schema_org",
        patterns=(
            re.compile(r"@context.*schema\.org", re.I),
            re.compile(
                r'"@type"\s*:\s*"(FAQPage|Article|Product|Organization|'
                r"WebSite|BreadcrumbList|LocalBusiness|Review|Event|Recipe|"
                r'HowTo|VideoObject)"',
                re.I,
            ),
        ),
        name="Structured Data (Schema.org)",
        reason=(
            "Structured data (Schema.org) must remain in the document for "
            "search engines to properly index rich snippets. Moving or "
            "deferring this script may cause your FAQ, product, or article "
            "rich results to disappear from Google search results."
        ),
        seo_impact="high",
        keep_in_head=True,
        caveat=(
            "SEO Impact: Rich snippets and enhanced search results depend "
            "on this script being present and parseable by search engine "
            "crawlers."
        ),
    ),
    SeoCriticalPolicy(
        key="gtm",
        patterns=(
            re.compile(r"gtm\.start", re.I),
            re.compile(r"googletagmanager\.com/gtm", re.I),
            re.compile(r"GTM-[A-Z0-9]+", re.I),
        ),
        name="Google Tag Manager",
        reason=(
            "Google Tag Manager initializes tracking and marketing pixels. "
            "It should use async but remain in the <head> to capture all "
            "pageviews accurately."
        ),
        seo_impact="medium",
        keep_in_head=True,
        caveat=(
            "Analytics Impact: Moving GTM to the end of the body may cause "
            "missed pageviews for users who leave quickly (bounce visitors), "
            "leading to inaccurate analytics data."
        ),
    ),
    SeoCriticalPolicy(
        key="google_analytics",
        patterns=(
            re.compile(r"gtag\s*\(\s*['\"]config['\"]", re.I),
            re.compile(r"google-analytics\.com/analytics", re.I),
            re.compile(r"googletagmanager\.com/gtag", re.I),
            re.compile(r"ga\s*\(\s*['\"]create['\"]", re.I),
            re.compile(r"GoogleAnalyticsObject", re.I),
        ),
        name="Google Analytics",
        reason=(
            "Google Analytics tracking should remain in the <head> with "
            "async to capture all pageviews accurately without blocking "
            "render."
        ),
        seo_impact="medium",
        keep_in_head=True,
        caveat=(
            "Analytics Impact: Delayed analytics loading may miss 10-30% of "
            "pageviews from users who leave within the first few seconds."
        ),
    ),
    SeoCriticalPolicy(
        key="facebook_pixel",
        patterns=(
            re.compile(r"fbq\s*\(\s*['\"]init['\"]", re.I),
            re.compile(r"connect\.facebook\.net.*fbevents", re.I),
        ),
        name="Facebook Pixel",
        reason=(
            "Facebook Pixel should load early to track conversions "
            "accurately. Use async but keep in <head>."
        ),
        seo_impact="medium",
        keep_in_head=True,
        caveat=(
            "Marketing Impact: Delayed pixel loading may miss attribution "
            "for quick visitors, affecting ad campaign optimization and "
            "retargeting."
        ),
    ),
    SeoCriticalPolicy(
        key="consent_management",
        patterns=(
            re.compile(r"cookieconsent", re.I),
            re.compile(r"onetrust", re.I),
            re.compile(r"cookiebot", re.I),
            re.compile(r"trustarc", re.I),
            re.compile(r"privacymanager", re.I),
        ),
        name="Cookie Consent",
        reason=(
            "Cookie consent must load before any tracking scripts for "
            "GDPR/CCPA compliance. This is a legal requirement."
        ),
        seo_impact="critical",
        keep_in_head=True,
        caveat=(
            "Legal Requirement: This script MUST load before other tracking "
            "scripts. Moving it could result in compliance violations and "
            "potential fines."
        ),
    ),
]

# Matched by the script's type attribute, never by content.
JSON_LD_POLICY = SeoCriticalPolicy(
    key="json_ld",
    patterns=(),
    name="JSON-LD Structured Data",
    reason=(
        "JSON-LD structured data is used by search engines to understand "
        "page content and generate rich results."
    ),
    seo_impact="high",
    keep_in_head=True,
    caveat=(
        "SEO Impact: This structured data powers rich snippets in search "
        "results (FAQs, reviews, products, etc.). Removing or breaking it "
        "will cause these enhanced listings to disappear."
    ),
)

CONSENT_POLICY_KEY = "consent_management"

# Inline content keyword heuristics, checked in order.
_CONFIG_KEYWORDS = ("config", "init", "setup")
_INTERACTIVE_KEYWORDS = ("addeventlistener", "onclick", "jquery", "$")
_TRACKING_KEYWORDS = ("track", "analytics", "gtag", "fbq")

# Each entry: (compiled_regex_pattern, label) for naming inline scripts.
KNOWN_INLINE_PATTERNS: list[Tuple[re.Pattern, str]] = [
    (re.compile(r"gtm\.start|googletagmanager", re.I),
     "Google Tag Manager snippet"),
    (re.compile(r"gtag\s*\(|dataLayer\.push", re.I),
     "Google Analytics (gtag) inline config"),
    (re.compile(r"fbq\s*\(", re.I),
     "Facebook Pixel inline initialization"),
    (re.compile(r"_learnq|klaviyo", re.I),
     "Klaviyo inline tracking"),
    (re.compile(r"ttq\.", re.I),
     "TikTok Pixel inline initialization"),
    (re.compile(r"pintrk\s*\(", re.I),
     "Pinterest Tag inline initialization"),
    (re.compile(r"hj\s*\(|_hjSettings", re.I),
     "Hotjar inline initialization"),
    (re.compile(r"intercomSettings|window\.Intercom", re.I),
     "Intercom inline configuration"),
    (re.compile(r"cookieconsent|OneTrust|Cookiebot", re.I),
     "Cookie consent configuration"),
    (re.compile(r"Shopify\.", re.I),
     "Shopify inline configuration"),
]


def _is_json_ld(explicit_type: Optional[str]) -> bool:
    return bool(explicit_type) and explicit_type.strip().lower() == JSON_LD_MIME


def detect_seo_critical(resource) -> Optional[SeoCriticalPolicy]:
    """Detect whether a script must stay early in the page.

    A ``type="application/ld+json"`` marker returns the JSON-LD policy
    without looking at content. Otherwise the inline text (inline
    scripts) or the URL (external scripts) is tested against the
    canonical policy list and the first category with a matching
    pattern is returned.

    Args:
        resource: A script resource exposing ``explicit_type``,
            ``is_inline``, ``content`` and ``source_location``.

    Returns:
        The matching SeoCriticalPolicy, or None if the script is not
        SEO-critical.
    """
    if _is_json_ld(getattr(resource, "explicit_type", None)):
        return JSON_LD_POLICY

    if resource.is_inline:
        text = resource.content or ""
    else:
        text = resource.source_location or ""

    if not text:
        return None

    for policy in SEO_CRITICAL_POLICIES:
        if policy.matches(text):
            return policy
    return None


def get_seo_policy(key: str) -> Optional[SeoCriticalPolicy]:
    """Look up an SEO-critical policy by its category key."""
    if key == JSON_LD_POLICY.key:
        return JSON_LD_POLICY
    for policy in SEO_CRITICAL_POLICIES:
        if policy.key == key:
            return policy
    return None


def classify_inline_script(content: Optional[str]) -> str:
    """Guess the criticality of inline script content.

    Args:
        content: The text content of an inline <script> tag.

    Returns:
        "critical" for configuration/initialization or tracking code,
        "interactive" for event handlers and jQuery-style UI code,
        "custom" for anything else.
    """
    if not content:
        return "custom"

    lowered = content.lower()

    if any(keyword in lowered for keyword in _CONFIG_KEYWORDS):
        return "critical"
    if "window." in lowered and "=" in lowered:
        return "critical"

    if any(keyword in lowered for keyword in _INTERACTIVE_KEYWORDS):
        return "interactive"

    if any(keyword in lowered for keyword in _TRACKING_KEYWORDS):
        return "critical"

    return "custom"


def describe_inline_script(content: Optional[str]) -> str:
    """Build a human-readable label for an inline script.

    Args:
        content: The text content of an inline <script> tag.

    Returns:
        A known-vendor label, or "Inline Script" when nothing matches.
    """
    if content:
        for pattern, label in KNOWN_INLINE_PATTERNS:
            if pattern.search(content):
                return label
    return "Inline Script"
