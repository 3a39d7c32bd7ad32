"""Unit tests for reporter module."""

import io
import json

import pytest
from rich.console import Console

from analyzer import (
    ExternalScript,
    ExternalStylesheet,
    InlineScript,
    Position,
    ResourceSize,
    analyze_resources,
)
from reporter import (
    _format_bytes,
    build_page_report,
    generate_insights,
    group_by_category,
    prioritize_scripts,
    print_insights,
    print_scripts_report,
    print_stylesheets_report,
    summarize,
    write_excel_report,
    write_json_report,
)

PAGE_HOST = "www.example.com"


def _script(script_id, src, zone="head", strategy="none", size=None):
    return ExternalScript(
        id=script_id,
        position=Position(zone=zone, index=0),
        src=src,
        loading_strategy=strategy,
        size=ResourceSize(transfer_bytes=size) if size is not None else None,
    )


def _analyzed(resources):
    return analyze_resources(resources, page_host=PAGE_HOST)


def _mixed_page():
    """SEO-critical GTM plus ordinary problem scripts."""
    return _analyzed([
        _script("script-1", "https://www.googletagmanager.com/gtm.js?id=GTM-ABC"),
        _script("script-2", "https://cdn.example.org/app.js"),
        _script("script-3", "https://static.hotjar.com/c/hotjar-1.js", size=45_000),
        _script("script-4", "https://widget.intercom.io/widget/x", "body-end", "async"),
        InlineScript(
            id="script-5",
            position=Position("head", 4),
            content='{"@context": "https://schema.org"}',
            explicit_type="application/ld+json",
        ),
        ExternalStylesheet(id="style-ext-1", position=Position("head"), href="/a.css"),
    ])


def _console():
    return Console(file=io.StringIO(), width=200)


class TestFormatBytes:
    """Tests for _format_bytes."""

    def test_units(self):
        assert _format_bytes(512) == "512 B"
        assert _format_bytes(1536) == "1.5 KB"
        assert _format_bytes(3 * 1_048_576) == "3.0 MB"
        assert _format_bytes(None) == "-"


class TestGenerateInsights:
    """Tests for generate_insights."""

    def test_empty(self):
        insights = generate_insights([])
        assert insights.issue_count == 0
        assert insights.has_no_issues is True
        assert insights.seo_critical_count == 0
        assert insights.main_issues == []
        assert insights.total_blocking_time_ms == 0
        assert insights.potential_savings_ms == 0
        assert insights.success_message.startswith("Excellent!")
        assert insights.seo_critical_note is None

    def test_mixed_page_issues(self):
        insights = generate_insights(_mixed_page())
        assert insights.main_issues == [
            "2 synchronous scripts in <head> blocking render",
            "1 analytics script should use async attribute",
            "1 chat widget should be lazy-loaded",
        ]
        assert insights.issue_count == 3
        assert insights.has_no_issues is False
        assert insights.success_message is None

    def test_seo_critical_listed_separately(self):
        insights = generate_insights(_mixed_page())
        assert insights.seo_critical_count == 2
        types = {item["type"] for item in insights.seo_critical_scripts}
        assert types == {"gtm", "json_ld"}

    def test_seo_critical_excluded_from_buckets(self):
        resources = _mixed_page()
        seo_ids = {r.id for r in resources if r.is_script and r.recommendation.is_seo_critical}
        assert seo_ids == {"script-1", "script-5"}
        # GTM alone is a head-sync analytics script with an issue, yet
        # nothing is reported for it.
        gtm_only = [r for r in resources if r.id == "script-1"]
        assert gtm_only[0].recommendation.has_issue is True
        insights = generate_insights(gtm_only)
        assert insights.main_issues == []
        assert insights.total_blocking_time_ms == 0

    def test_blocking_time_and_savings_cap(self):
        insights = generate_insights(_mixed_page())
        # app.js and intercom default to 100 ms each; hotjar is 45 KB.
        assert insights.total_blocking_time_ms == 245
        assert insights.potential_savings_ms == 245

    def test_savings_fall_back_to_head_scripts(self):
        resources = _analyzed([_script("script-1", "/js/app.js", size=900_000)])
        insights = generate_insights(resources)
        assert insights.main_issues == ["1 synchronous script in <head> blocking render"]
        assert insights.total_blocking_time_ms == 900
        assert insights.potential_savings_ms == 150

    def test_constants_overridable(self):
        resources = _analyzed([_script("script-1", "/js/app.js")])
        insights = generate_insights(
            resources, default_blocking_ms=500, savings_per_issue_ms=200
        )
        assert insights.total_blocking_time_ms == 500
        assert insights.potential_savings_ms == 200

    def test_only_seo_critical_scripts(self):
        resources = _analyzed([
            _script("script-1", "https://www.googletagmanager.com/gtm.js?id=GTM-A", strategy="async"),
        ])
        insights = generate_insights(resources)
        assert insights.has_no_issues is True
        assert insights.success_message.startswith("No render-blocking issues found")
        assert insights.seo_critical_note == (
            "Found 1 SEO-critical script that should remain in <head> for "
            "proper indexing and analytics."
        )

    @pytest.mark.parametrize("size", [None, 1, 999, 50_000, 2_000_000])
    def test_savings_never_exceed_blocking(self, size):
        resources = _analyzed([
            _script("script-1", "https://static.hotjar.com/c/h.js", size=size),
            _script("script-2", "https://widget.intercom.io/w", "body-end", "async", size=size),
            _script("script-3", "https://x.example.net/a.js", size=size),
        ])
        insights = generate_insights(resources)
        assert insights.potential_savings_ms <= insights.total_blocking_time_ms

    def test_to_dict(self):
        data = generate_insights([]).to_dict()
        assert data["issue_count"] == 0
        assert data["has_no_issues"] is True
        assert "seo_critical_note" not in data


class TestPageReport:
    """Tests for summarize, prioritize_scripts, group_by_category and build_page_report."""

    def test_summarize(self):
        resources = _mixed_page()
        scripts = [r for r in resources if r.is_script]
        sheets = [r for r in resources if not r.is_script]
        summary = summarize(scripts, sheets)
        assert summary["total_scripts"] == 5
        assert summary["total_stylesheets"] == 1
        assert summary["inline_scripts"] == 1
        assert summary["render_blocking_stylesheets"] == 1
        assert summary["seo_critical_scripts"] == 2

    def test_prioritize(self):
        scripts = [r for r in _mixed_page() if r.is_script]
        ordered = prioritize_scripts(scripts)
        flags = [s.recommendation.has_issue for s in ordered]
        assert flags == sorted(flags, reverse=True)

    def test_group_by_category(self):
        scripts = [r for r in _mixed_page() if r.is_script]
        grouped = group_by_category(scripts)
        assert [s.id for s in grouped["analytics"]] == ["script-1", "script-3"]
        assert [s.id for s in grouped["chat"]] == ["script-4"]

    def test_build_page_report(self):
        report = build_page_report("https://www.example.com/", _mixed_page(), analyzed_at="2024-01-01T00:00:00+00:00")
        data = report.to_dict()
        assert data["url"] == "https://www.example.com/"
        assert data["analyzed_at"] == "2024-01-01T00:00:00+00:00"
        assert len(data["scripts"]) == 5
        assert len(data["stylesheets"]) == 1
        assert data["insights"]["issue_count"] == 3
        assert data["scripts_by_category"]["chat"] == ["script-4"]

    def test_empty_report(self):
        report = build_page_report("https://www.example.com/", [])
        assert report.insights.has_no_issues is True
        assert report.summary["total_scripts"] == 0
        assert report.analyzed_at


class TestOutput:
    """Tests for terminal and file output."""

    def test_print_insights_with_issues(self):
        console = _console()
        report = build_page_report("https://www.example.com/", _mixed_page())
        print_insights(report, console=console)
        output = console.file.getvalue()
        assert "3 issues found" in output
        assert "chat widget should be lazy-loaded" in output
        assert "Google Tag Manager" in output

    def test_print_insights_hides_seo_critical(self):
        console = _console()
        report = build_page_report("https://www.example.com/", _mixed_page())
        print_insights(report, console=console, show_seo_critical=False)
        assert "SEO-Critical Scripts" not in console.file.getvalue()

    def test_print_insights_success(self):
        console = _console()
        print_insights(build_page_report("https://www.example.com/", []), console=console)
        assert "Excellent!" in console.file.getvalue()

    def test_print_tables(self):
        console = _console()
        report = build_page_report("https://www.example.com/", _mixed_page())
        print_scripts_report(report, console=console)
        print_stylesheets_report(report, console=console)
        output = console.file.getvalue()
        assert "Intercom" in output
        assert "a.css" in output

    def test_write_json_report(self, tmp_path):
        path = tmp_path / "out" / "report.json"
        report = build_page_report("https://www.example.com/", _mixed_page())
        write_json_report(report, str(path))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["insights"]["seo_critical_count"] == 2
        assert data["scripts"][0]["recommendation"]["is_seo_critical"] is True

    def test_write_excel_report(self, tmp_path):
        openpyxl = pytest.importorskip("openpyxl")
        path = tmp_path / "report.xlsx"
        report = build_page_report("https://www.example.com/", _mixed_page())
        write_excel_report(report, str(path))
        workbook = openpyxl.load_workbook(path)
        assert workbook.sheetnames == ["Insights", "Scripts", "Stylesheets", "SEO-Critical"]
        assert workbook["Scripts"].max_row == 6
