"""Unit tests for analyzer module."""

import pytest

from analyzer import (
    CATEGORY_RULES,
    RECOMMENDATION_RULES,
    ExternalScript,
    ExternalStylesheet,
    InlineScript,
    InlineStylesheet,
    Position,
    ResourceSize,
    analyze_resource,
    analyze_resources,
    calculate_blocking_score,
    get_category_rules,
    loading_strategy_from_attrs,
    recommend,
    recommend_stylesheet,
    resource_from_dict,
)
from reporter import generate_insights

PAGE_HOST = "www.example.com"


def _script(src, zone="head", strategy="none", size=None, script_id="script-1"):
    return ExternalScript(
        id=script_id,
        position=Position(zone=zone, index=0),
        src=src,
        loading_strategy=strategy,
        size=ResourceSize(transfer_bytes=size) if size is not None else None,
    )


def _inline(content, zone="head", explicit_type=None):
    return InlineScript(
        id="script-1",
        position=Position(zone=zone, index=0),
        content=content,
        explicit_type=explicit_type,
    )


class TestBlockingScore:
    """Tests for calculate_blocking_score."""

    def test_head_sync_large(self):
        script = _script("https://x.io/a.js", size=150_000)
        assert calculate_blocking_score(script) == 10

    def test_head_sync_medium(self):
        script = _script("https://x.io/a.js", size=60_000)
        assert calculate_blocking_score(script) == 9

    def test_body_end_async_is_minimum(self):
        script = _script("https://x.io/a.js", zone="body-end", strategy="async")
        assert calculate_blocking_score(script) == 1

    @pytest.mark.parametrize("strategy", ["none", "async", "defer", "module"])
    @pytest.mark.parametrize("size", [None, 10, 70_000, 500_000])
    def test_bounds_and_position_monotonic(self, strategy, size):
        scores = [
            calculate_blocking_score(_script("https://x.io/a.js", zone, strategy, size))
            for zone in ("body-end", "body-middle", "body-start", "head")
        ]
        assert all(1 <= score <= 10 for score in scores)
        assert scores == sorted(scores)

    def test_sync_scores_higher_than_async(self):
        sync = calculate_blocking_score(_script("https://x.io/a.js", "body-start", "none"))
        deferred = calculate_blocking_score(_script("https://x.io/a.js", "body-start", "defer"))
        asynced = calculate_blocking_score(_script("https://x.io/a.js", "body-start", "async"))
        assert sync > deferred > asynced


class TestResourceFromDict:
    """Tests for resource_from_dict."""

    def test_external_script(self):
        resource = resource_from_dict({
            "sourceLocation": "https://x.io/a.js",
            "isInline": False,
            "position": {"zone": "head", "index": 2},
            "loadingStrategy": "defer",
            "size": {"transferBytes": 1200, "decodedBytes": 4000, "durationMs": 12.5},
        })
        assert isinstance(resource, ExternalScript)
        assert resource.position == Position("head", 2)
        assert resource.loading_strategy == "defer"
        assert resource.size.transfer_bytes == 1200

    def test_inline_script(self):
        resource = resource_from_dict({
            "isInline": True,
            "content": "var a = 1;",
            "position": {"zone": "body-end", "index": 0},
            "explicitType": "application/ld+json",
        })
        assert isinstance(resource, InlineScript)
        assert resource.explicit_type == "application/ld+json"

    def test_strategy_from_attributes(self):
        resource = resource_from_dict({
            "src": "https://x.io/a.js",
            "position": {"zone": "head"},
            "type": "module",
        })
        assert resource.loading_strategy == "module"

    def test_invalid_position(self):
        resource = resource_from_dict({"src": "https://x.io/a.js", "position": {"zone": "footer"}})
        assert resource.position is None

    def test_inline_stylesheet_size_from_content(self):
        resource = resource_from_dict({
            "kind": "stylesheet",
            "isInline": True,
            "content": "body{margin:0}",
            "position": {"zone": "head"},
        })
        assert isinstance(resource, InlineStylesheet)
        assert resource.size.transfer_bytes == 14

    def test_external_stylesheet(self):
        resource = resource_from_dict({
            "kind": "stylesheet",
            "href": "https://x.io/css/site.css?v=2",
            "position": {"zone": "head"},
        })
        assert isinstance(resource, ExternalStylesheet)
        assert resource.filename == "site.css"
        assert resource.media == "all"


class TestLoadingStrategy:
    """Tests for loading_strategy_from_attrs."""

    def test_precedence(self):
        assert loading_strategy_from_attrs(True, True, "module") == "async"
        assert loading_strategy_from_attrs(False, True, "module") == "defer"
        assert loading_strategy_from_attrs(False, False, "module") == "module"
        assert loading_strategy_from_attrs() == "none"


class TestRecommendExternal:
    """External scripts: SEO-critical rules, then category policy."""

    def test_blocking_analytics(self):
        script = analyze_resource(
            _script("https://www.google-analytics.com/analytics.js"), PAGE_HOST
        )
        assert script.category == "analytics"
        assert script.recommendation.has_issue is True
        assert script.recommendation.blocking_score >= 8

    def test_optimized_cdn_script(self):
        script = analyze_resource(
            _script("https://cdn.jsdelivr.net/npm/lib.js", zone="body-end", strategy="defer"),
            PAGE_HOST,
        )
        assert script.category == "cdn"
        assert script.recommendation.has_issue is False
        assert script.recommendation.blocking_score <= 2

    def test_consent_keeps_sync(self):
        script = analyze_resource(_script("https://consent.cookiebot.com/uc.js"), PAGE_HOST)
        rec = script.recommendation
        assert rec.suggested_strategy == "keep-sync-in-head"
        assert rec.suggested_position == "head"
        assert rec.is_seo_critical is True
        assert rec.seo_critical_type == "consent_management"
        assert rec.has_issue is True

    def test_consent_with_strategy_has_no_issue(self):
        script = analyze_resource(
            _script("https://consent.cookiebot.com/uc.js", strategy="defer"), PAGE_HOST
        )
        assert script.recommendation.suggested_strategy == "keep-sync-in-head"
        assert script.recommendation.has_issue is False

    def test_gtm_gets_async(self):
        script = analyze_resource(
            _script("https://www.googletagmanager.com/gtm.js?id=GTM-XXXX", strategy="async"),
            PAGE_HOST,
        )
        rec = script.recommendation
        assert rec.criticality == "seo-critical"
        assert rec.suggested_strategy == "async"
        assert rec.has_issue is False
        assert rec.caveat

    def test_chat_widget_needs_lazy_load(self):
        script = analyze_resource(
            _script("https://widget.intercom.io/widget/abc", zone="body-end", strategy="async"),
            PAGE_HOST,
        )
        rec = script.recommendation
        assert script.category == "chat"
        assert rec.suggested_strategy == "lazy-load"
        assert rec.has_issue is True
        assert "lazy-loading saves bandwidth" in rec.reason

    def test_legacy_jquery_in_head(self):
        script = analyze_resource(
            _script("https://code.jquery.com/jquery-3.6.0.min.js"), PAGE_HOST
        )
        rec = script.recommendation
        assert script.is_legacy_library is True
        assert rec.has_issue is True
        assert "Consider moving jQuery" in rec.reason

    def test_self_hosted_jquery_is_legacy(self):
        script = analyze_resource(_script("/static/js/jquery.min.js"), PAGE_HOST)
        assert script.category == "internal"
        assert script.is_legacy_library is True

    def test_unknown_third_party_in_head(self):
        script = analyze_resource(_script("https://cdn.acme-widgets.com/w.js"), PAGE_HOST)
        rec = script.recommendation
        assert script.category == "third_party"
        assert script.vendor_name == "Acme Widgets CDN"
        assert rec.criticality == CATEGORY_RULES["other"]["criticality"]
        assert rec.has_issue is True

    def test_observed_blocking_flag(self):
        script = ExternalScript(
            id="script-1",
            position=Position("body-end", 0),
            src="/js/app.js",
            loading_strategy="none",
            observed_blocking=True,
        )
        assert analyze_resource(script, PAGE_HOST).recommendation.has_issue is True

    def test_code_examples_generated(self):
        rec = analyze_resource(
            _script("https://cdn.jsdelivr.net/npm/lib.js"), PAGE_HOST
        ).recommendation
        assert "defer" in rec.code_example
        assert "synchronous" in rec.current_code


class TestRecommendInline:
    """Inline scripts: SEO-critical first, then content heuristics."""

    def test_json_ld_keep_as_is(self):
        rec = recommend(_inline('{"@type": "FAQPage"}', explicit_type="application/ld+json"))
        assert rec.criticality == "seo-critical"
        assert rec.suggested_strategy == "keep-as-is"
        assert rec.has_issue is False
        assert rec.seo_critical_type == "json_ld"

    def test_config_stays_in_head(self):
        rec = recommend(_inline("window.appConfig = {debug: false};"))
        assert rec.criticality == "critical"
        assert rec.suggested_strategy == "keep-inline"
        assert rec.has_issue is False

    def test_interactive_in_head_is_issue(self):
        rec = recommend(_inline("document.addEventListener('click', go);"))
        assert rec.criticality == "interactive"
        assert rec.suggested_strategy == "move-to-end"
        assert rec.suggested_position == "body-end"
        assert rec.has_issue is True

    def test_interactive_in_body_is_fine(self):
        rec = recommend(_inline("document.addEventListener('click', go);", zone="body-end"))
        assert rec.has_issue is False


class TestRecommendFallback:
    """The cascade degrades instead of raising."""

    def test_unpositioned(self):
        script = ExternalScript(id="s", position=None, src="https://x.io/a.js")
        rec = recommend(script)
        assert rec.criticality == "standard"
        assert rec.suggested_strategy == "defer"
        assert rec.error == "Resource has no recorded position"

    def test_unpositioned_vendor_script_drops_category(self):
        script = resource_from_dict({"src": "https://www.google-analytics.com/analytics.js"})
        assert script.position is None
        (analyzed,) = analyze_resources([script], page_host=PAGE_HOST)
        assert analyzed.category == "other"
        assert analyzed.recommendation.suggested_strategy == "defer"
        assert analyzed.recommendation.has_issue is False
        insights = generate_insights([analyzed])
        assert insights.main_issues == []
        assert insights.total_blocking_time_ms == 0

    def test_non_string_src(self):
        script = _script(123)
        (analyzed,) = analyze_resources([script], page_host=PAGE_HOST)
        assert analyzed.category == "other"
        assert analyzed.recommendation.error

    def test_malformed_content(self):
        rec = recommend(_inline(12345))
        assert rec.criticality == "standard"
        assert rec.suggested_strategy == "defer"
        assert rec.error.startswith("TypeError")

    def test_rules_are_ordered(self):
        names = [predicate.__name__ for predicate, _ in RECOMMENDATION_RULES]
        assert names == [
            "is_unpositioned",
            "is_inline_seo_critical",
            "is_inline",
            "is_external_seo_critical",
            "is_external",
        ]

    def test_unknown_category_rules(self):
        assert get_category_rules("third_party") is CATEGORY_RULES["other"]
        assert get_category_rules(None) is CATEGORY_RULES["other"]


class TestRecommendStylesheet:
    """Tests for recommend_stylesheet."""

    def test_head_stylesheet_is_blocking(self):
        sheet = ExternalStylesheet(id="s", position=Position("head"), href="/a.css")
        rec = recommend_stylesheet(sheet)
        assert rec.action == "consider-critical-css"
        assert rec.is_blocking is True

    def test_print_stylesheet_not_blocking(self):
        sheet = ExternalStylesheet(id="s", position=Position("head"), href="/p.css", media="print")
        assert recommend_stylesheet(sheet).action == "ok"

    def test_body_stylesheet(self):
        sheet = ExternalStylesheet(id="s", position=Position("body-end"), href="/a.css")
        rec = recommend_stylesheet(sheet)
        assert rec.action == "ok"
        assert rec.reason == "Stylesheet is properly placed"

    def test_inline_style_in_head(self):
        sheet = InlineStylesheet(id="s", position=Position("head"), content="a{}")
        assert recommend_stylesheet(sheet).reason == "Inline styles in head are good for critical CSS"


class TestAnalyzeResources:
    """Tests for analyze_resources."""

    def _batch(self):
        return [
            _script("https://www.google-analytics.com/analytics.js", script_id="script-1"),
            _inline(12345),
            _script("https://cdn.jsdelivr.net/npm/lib.js", "body-end", "defer", script_id="script-3"),
            ExternalStylesheet(id="style-ext-1", position=Position("head"), href="/a.css"),
        ]

    @pytest.mark.parametrize("workers", [None, 1, 4])
    def test_order_preserved_and_complete(self, workers):
        batch = self._batch()
        results = analyze_resources(batch, page_host=PAGE_HOST, max_workers=workers)
        assert [r.id for r in results] == [r.id for r in batch]
        assert all(r.recommendation is not None for r in results)

    def test_bad_resource_degrades(self):
        results = analyze_resources(self._batch(), page_host=PAGE_HOST)
        bad = results[1]
        assert bad.category == "other"
        assert bad.recommendation.error
        assert results[0].category == "analytics"

    def test_recommendation_attached_once(self):
        script = analyze_resource(_script("/js/app.js"), PAGE_HOST)
        with pytest.raises(RuntimeError):
            script.attach(recommend(script))

    def test_to_dict(self):
        script = analyze_resource(_script("/js/app.js", size=2048), PAGE_HOST)
        data = script.to_dict()
        assert data["kind"] == "external-script"
        assert data["position"] == {"zone": "head", "index": 0}
        assert data["size"]["transfer_bytes"] == 2048
        assert data["recommendation"]["blocking_score"] == 8
        assert data["is_blocking"] is True

    def test_vendor_heuristics_kept(self):
        script = analyze_resource(
            _script("https://widgets.example-vendor.io/app.js", "body-end"), PAGE_HOST
        )
        assert script.category == "third_party"
        assert script.vendor_criticality == "non-essential"
        assert script.vendor_load_strategy == "async"
        data = script.to_dict()
        assert data["vendor_description"] == (
            "Third-party script from widgets.example-vendor.io"
        )
        assert data["vendor_load_strategy"] == "async"
