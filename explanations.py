"""Plain-language explanations for headline issues and SEO-critical scripts.

Each explanation has three levels: a one-line brief, a non-technical
description, and a technical breakdown shown on request.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class IssueExplanation:
    brief: str
    detail: str
    technical: str

    def to_dict(self) -> dict:
        return {
            "brief": self.brief,
            "detail": self.detail,
            "technical": self.technical,
        }


ISSUE_EXPLANATIONS: dict[str, IssueExplanation] = {
    "synchronous_scripts_in_head": IssueExplanation(
        brief=(
            "Scripts without async/defer in <head> block HTML parsing and "
            "delay rendering."
        ),
        detail=(
            "When the browser hits one of these scripts it has to stop "
            "building the page, download the script, run it, and only then "
            "continue. Visitors look at a blank screen for longer."
        ),
        technical=(
            "The parser stops, fetches the script over the network, executes "
            "it and only then resumes.\n"
            "Impact:\n"
            "- Delays First Contentful Paint by 100-500ms+ per script\n"
            "- Poor Largest Contentful Paint scores\n"
            "- Higher bounce rates\n"
            "Solution:\n"
            "- Add 'defer' for scripts needing the DOM\n"
            "- Add 'async' for independent scripts\n"
            "- Move non-critical scripts to the end of <body>"
        ),
    ),
    "analytics_scripts_no_async": IssueExplanation(
        brief="Analytics should use async to avoid blocking rendering.",
        detail=(
            "Analytics scripts track visitors but do not change how the page "
            "looks or works. They can load in the background while the page "
            "keeps rendering."
        ),
        technical=(
            "Impact:\n"
            "- 150-300ms delay per analytics script\n"
            "- Multiple scripts compound the problem\n"
            "Solution:\n"
            "- Add the 'async' attribute\n"
            "- Inject the script on first interaction\n"
            "- Load tags through Google Tag Manager asynchronously"
        ),
    ),
    "chat_widgets_not_lazy": IssueExplanation(
        brief="Chat widgets can wait until user interaction.",
        detail=(
            "Chat widgets are heavy (often 100-300KB) and most visitors never "
            "open them. They can load when the visitor scrolls or after a few "
            "seconds."
        ),
        technical=(
            "Impact:\n"
            "- 200-500ms initial page delay\n"
            "- Wasted bandwidth\n"
            "Solution:\n"
            "- Load on scroll, click, or after 3-5 seconds\n"
            "- Use an IntersectionObserver on the widget container"
        ),
    ),
    "blocking_scripts_in_head": IssueExplanation(
        brief=(
            "Render-blocking scripts prevent the page from displaying "
            "content quickly."
        ),
        detail=(
            "While scripts in <head> block rendering, visitors wait on a "
            "white screen for all of that code to download and run."
        ),
        technical=(
            "Impact:\n"
            "- Poor First Contentful Paint\n"
            "- Slow Time to Interactive\n"
            "Solution:\n"
            "- Move scripts to the end of <body>\n"
            "- Add async/defer attributes\n"
            "- Use resource hints (preload, preconnect)"
        ),
    ),
    "seo_critical_schema_org": IssueExplanation(
        brief=(
            "Schema.org structured data must stay in the document for search "
            "engine indexing."
        ),
        detail=(
            "This script tells search engines what the page is about: FAQs, "
            "products, recipes, business details. Moving or deferring it can "
            "make rich results disappear from search."
        ),
        technical=(
            "Crawlers may not execute all JavaScript, so structured data has "
            "to be present in the delivered markup.\n"
            "Best practice:\n"
            "- Keep JSON-LD in <head> or early in <body>\n"
            "- Keep the content static, not injected later\n"
            "- Validate with Google's Rich Results Test"
        ),
    ),
    "seo_critical_gtm": IssueExplanation(
        brief=(
            "Google Tag Manager should use async but remain in <head> for "
            "accurate tracking."
        ),
        detail=(
            "Tag Manager drives every tracking and marketing tag on the page. "
            "Loaded late, it misses visitors who leave quickly."
        ),
        technical=(
            "Impact of moving GTM:\n"
            "- 10-30% of pageviews missed from bounce visitors\n"
            "- Inaccurate campaign attribution\n"
            "Best practice:\n"
            "- Use the official async snippet right after <head>\n"
            "- Do not defer or lazy-load the container"
        ),
    ),
    "seo_critical_analytics": IssueExplanation(
        brief=(
            "Analytics scripts should use async to balance performance and "
            "data accuracy."
        ),
        detail=(
            "If analytics load too late, quick visits go uncounted and "
            "traffic looks lower than it is."
        ),
        technical=(
            "Best practice:\n"
            "- Use async, not defer\n"
            "- Place in <head>\n"
            "- Initialize tracking as early as possible"
        ),
    ),
    "seo_critical_facebook_pixel": IssueExplanation(
        brief=(
            "Facebook Pixel should use async but stay in <head> for ad "
            "attribution accuracy."
        ),
        detail=(
            "The pixel records which ad brought a visitor. Loaded late, "
            "conversions show up as unattributed in ad reports."
        ),
        technical=(
            "Impact of delayed loading:\n"
            "- Lost conversion attribution\n"
            "- Smaller retargeting audiences\n"
            "Best practice:\n"
            "- Use async but keep in <head>\n"
            "- Fire PageView immediately"
        ),
    ),
    "seo_critical_consent": IssueExplanation(
        brief=(
            "Cookie consent must load first for GDPR/CCPA compliance. This "
            "is a legal requirement."
        ),
        detail=(
            "Consent tools have to run before any tracking starts. If the "
            "banner loads after trackers, data is collected without "
            "permission."
        ),
        technical=(
            "Required implementation:\n"
            "- First script in <head>\n"
            "- No async or defer\n"
            "- Block other tags until consent is given"
        ),
    ),
}

_SEO_EXPLANATION_KEYS = {
    "schema_org": "seo_critical_schema_org",
    "json_ld": "seo_critical_schema_org",
    "gtm": "seo_critical_gtm",
    "google_analytics": "seo_critical_analytics",
    "facebook_pixel": "seo_critical_facebook_pixel",
    "consent_management": "seo_critical_consent",
}


def get_issue_explanation(issue_text: str) -> Optional[IssueExplanation]:
    """Find the explanation for a headline issue string.

    Args:
        issue_text: An entry of ``Insights.main_issues``, e.g.
            "2 synchronous scripts in <head> blocking render".

    Returns:
        The matching IssueExplanation, or None.
    """
    text = issue_text or ""
    if "synchronous script" in text and "<head>" in text:
        return ISSUE_EXPLANATIONS["synchronous_scripts_in_head"]
    if "analytics" in text:
        return ISSUE_EXPLANATIONS["analytics_scripts_no_async"]
    if "chat widget" in text:
        return ISSUE_EXPLANATIONS["chat_widgets_not_lazy"]
    if "blocking" in text and "<head>" in text:
        return ISSUE_EXPLANATIONS["blocking_scripts_in_head"]
    return None


def get_seo_critical_explanation(seo_type: Optional[str]) -> Optional[IssueExplanation]:
    """Find the explanation for an SEO-critical category key."""
    key = _SEO_EXPLANATION_KEYS.get(seo_type or "")
    return ISSUE_EXPLANATIONS[key] if key else None
