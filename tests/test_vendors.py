"""Unit tests for vendors module."""

import pytest

from vendors import (
    VENDOR_DATABASE,
    get_categories,
    get_total_vendor_count,
    get_vendors_by_category,
    infer_criticality,
    infer_load_strategy,
    match_vendor,
    readable_name,
)


class TestMatchVendorTable:
    """Known vendors resolve from the static table."""

    def test_gtm_subdomain(self):
        match = match_vendor("https://www.googletagmanager.com/gtm.js?id=GTM-XXXX")
        assert match.category == "analytics"
        assert match.name == "Google Tag Manager"

    def test_gtag_path_pattern(self):
        match = match_vendor("https://www.googletagmanager.com/gtag/js?id=G-123")
        assert match.category == "analytics"
        assert match.name == "Google Analytics"

    def test_google_analytics_legacy(self):
        match = match_vendor("https://www.google-analytics.com/analytics.js")
        assert match.category == "analytics"
        assert match.name == "Google Analytics"

    def test_wildcard_host(self):
        match = match_vendor("https://static.hotjar.com/c/hotjar-123.js?sv=6")
        assert match.category == "analytics"
        assert match.name == "Hotjar"

    def test_exact_host(self):
        match = match_vendor("https://widget.intercom.io/widget/abc123")
        assert match.category == "chat"
        assert match.name == "Intercom"

    def test_facebook_pixel_path(self):
        match = match_vendor("https://connect.facebook.net/en_US/fbevents.js")
        assert match.category == "advertising"
        assert match.name == "Facebook Pixel"

    def test_facebook_sdk_path(self):
        match = match_vendor("https://connect.facebook.net/en_US/sdk.js")
        assert match.category == "social"

    def test_jquery_is_legacy(self):
        match = match_vendor("https://code.jquery.com/jquery-3.6.0.min.js")
        assert match.category == "cdn"
        assert match.legacy is True

    def test_jquery_path_wins_over_generic_cdn(self):
        match = match_vendor(
            "https://ajax.googleapis.com/ajax/libs/jquery/3.6.0/jquery.min.js"
        )
        assert match.category == "cdn"
        assert match.legacy is True

    def test_generic_cdn_not_legacy(self):
        match = match_vendor("https://cdn.jsdelivr.net/npm/lib.js")
        assert match.category == "cdn"
        assert match.name == "jsDelivr"
        assert match.legacy is False

    def test_protocol_relative(self):
        match = match_vendor("//code.jquery.com/jquery.js")
        assert match.category == "cdn"

    def test_deterministic(self):
        url = "https://www.googletagmanager.com/gtm.js?id=GTM-XXXX"
        assert match_vendor(url) == match_vendor(url)


class TestMatchVendorInternal:
    """Relative, empty and same-origin URLs are internal."""

    @pytest.mark.parametrize("url", ["", None, "/js/app.js", "./app.js", "../lib/x.js"])
    def test_relative(self, url):
        match = match_vendor(url)
        assert match.category == "internal"
        assert match.name == "Internal Script"
        assert match.criticality == "standard"
        assert match.load_strategy == "defer"

    def test_same_origin(self):
        match = match_vendor("https://shop.example.com/app.js", page_host="shop.example.com")
        assert match.category == "internal"

    def test_other_origin_is_third_party(self):
        match = match_vendor("https://shop.example.com/app.js", page_host="www.example.com")
        assert match.category == "third_party"


class TestMatchVendorFallback:
    """Unknown hosts get a heuristic third-party classification."""

    def test_unknown_host(self):
        match = match_vendor(
            "https://widgets.example-vendor.io/app.js",
            zone="body-end",
            loading_strategy="none",
        )
        assert match.category == "third_party"
        assert match.name == "Example Vendor"
        assert match.criticality == "non-essential"
        assert match.load_strategy == "async"
        assert match.description == "Third-party script from widgets.example-vendor.io"

    @pytest.mark.parametrize("url", [
        "https://a.b.example.org/x.js",
        "https://tracker.io/t.js",
        "http://10.0.0.1:8080/app.js",
    ])
    def test_always_named(self, url):
        match = match_vendor(url)
        assert match.category == "third_party"
        assert match.name
        assert match.criticality
        assert match.load_strategy

    def test_unparseable_url(self):
        match = match_vendor("https://[invalid/app.js")
        assert match.category == "other"
        assert match.name == "External Script"
        assert match.criticality == "standard"
        assert match.load_strategy == "defer"
        assert match.error

    def test_missing_hostname(self):
        match = match_vendor("not a url")
        assert match.category == "other"
        assert match.error

    @pytest.mark.parametrize("url", [123, 4.5, ["https://x.io/a.js"]])
    def test_non_string_url(self, url):
        match = match_vendor(url)
        assert match.category == "other"
        assert match.name == "External Script"
        assert "not a string" in match.error


class TestReadableName:
    """Tests for readable_name."""

    def test_strips_prefix_and_adds_descriptor(self):
        assert readable_name("cdn.acme.com") == "Acme CDN"

    def test_hyphenated_label(self):
        assert readable_name("www.my-great_vendor.com") == "My Great Vendor"

    def test_api_descriptor(self):
        assert readable_name("api.payments.dev") == "Payments API"

    def test_single_label(self):
        assert readable_name("localhost") == "localhost"

    def test_none(self):
        assert readable_name(None) == "External Script"


class TestInference:
    """Tests for infer_criticality and infer_load_strategy."""

    def test_blocking_head_is_critical(self):
        assert infer_criticality("https://x.io/chat.js", "head", "none") == "critical"

    def test_tracking_hint(self):
        assert infer_criticality("https://x.io/tracking.js", "body-end", "async") == "non-essential"

    def test_default_interactive(self):
        assert infer_criticality("https://x.io/app.js", "body-end", "defer") == "interactive"

    def test_load_strategy(self):
        assert infer_load_strategy("head", "none") == "defer"
        assert infer_load_strategy("body-middle", None) == "async"
        assert infer_load_strategy("head", "async") == "current"


class TestVendorTable:
    """Tests for the table accessors."""

    def test_categories(self):
        categories = get_categories()
        assert categories[0] == "analytics"
        assert {"chat", "consent", "cdn", "advertising"} <= set(categories)

    def test_vendors_by_category(self):
        assert "widget.intercom.io" in get_vendors_by_category("chat")
        assert get_vendors_by_category("nonexistent") == {}

    def test_total_count(self):
        expected = sum(len(v) for v in VENDOR_DATABASE.values())
        assert get_total_vendor_count() == expected
        assert expected > 0

    def test_entries_have_required_fields(self):
        for vendors in VENDOR_DATABASE.values():
            for entry in vendors.values():
                assert entry["name"]
                assert entry["criticality"]
                assert entry["load_strategy"]
