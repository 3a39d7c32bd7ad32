"""Report generator for render-blocking resource audits.

Aggregates per-resource recommendations into page-level insights
(headline issues, estimated blocking time and savings), and outputs
results as rich terminal tables, a JSON file and an Excel workbook.
"""

import json
import os
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from analyzer import Resource
from explanations import get_issue_explanation, get_seo_critical_explanation

# Rough estimate: 1 KB transferred costs about 1 ms of blocking on 3G.
BYTES_PER_BLOCKING_MS = 1000
# Blocking time assumed for a problem script with no timing data.
DEFAULT_BLOCKING_MS = 100
# Savings assumed per fixed analytics script, chat widget or head script.
SAVINGS_PER_ISSUE_MS = 150


def _format_bytes(size_bytes: Optional[int]) -> str:
    """Format byte count as a human-readable string.

    Args:
        size_bytes: Number of bytes, or None when unknown.

    Returns:
        A string like "1.5 KB" or "3.2 MB", or "-" when unknown.
    """
    if size_bytes is None:
        return "-"
    if size_bytes >= 1_048_576:
        return f"{size_bytes / 1_048_576:.1f} MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes} B"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count > 1 else ''}"


@dataclass
class Insights:
    """Page-level summary of what is wrong and what fixing it is worth."""

    main_issues: list[str] = field(default_factory=list)
    seo_critical_scripts: list[dict] = field(default_factory=list)
    total_blocking_time_ms: int = 0
    potential_savings_ms: int = 0
    success_message: Optional[str] = None
    seo_critical_note: Optional[str] = None

    @property
    def issue_count(self) -> int:
        return len(self.main_issues)

    @property
    def has_no_issues(self) -> bool:
        return self.issue_count == 0

    @property
    def seo_critical_count(self) -> int:
        return len(self.seo_critical_scripts)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        data = {
            "main_issues": self.main_issues,
            "issue_count": self.issue_count,
            "has_no_issues": self.has_no_issues,
            "seo_critical_scripts": self.seo_critical_scripts,
            "seo_critical_count": self.seo_critical_count,
            "total_blocking_time_ms": self.total_blocking_time_ms,
            "potential_savings_ms": self.potential_savings_ms,
        }
        if self.success_message:
            data["success_message"] = self.success_message
        if self.seo_critical_note:
            data["seo_critical_note"] = self.seo_critical_note
        return data


def _is_seo_critical(resource: Resource) -> bool:
    return bool(getattr(resource.recommendation, "is_seo_critical", False))


def _has_issue(resource: Resource) -> bool:
    return bool(getattr(resource.recommendation, "has_issue", False))


def _unstrategized(resource: Resource) -> bool:
    return getattr(resource, "loading_strategy", "none") in (None, "", "none")


def generate_insights(
    resources: list[Resource],
    bytes_per_blocking_ms: int = BYTES_PER_BLOCKING_MS,
    default_blocking_ms: int = DEFAULT_BLOCKING_MS,
    savings_per_issue_ms: int = SAVINGS_PER_ISSUE_MS,
) -> Insights:
    """Aggregate per-script recommendations into page insights.

    SEO-critical scripts are listed separately and never counted towards
    any headline issue, blocking time or savings. Three issue buckets
    are checked among the remaining scripts:
    - external scripts loaded synchronously in <head>,
    - analytics scripts without async/defer,
    - chat widgets that are not lazy-loaded.

    Args:
        resources: Analyzed resources. Stylesheets are ignored.
        bytes_per_blocking_ms: Transfer bytes per millisecond of
            estimated blocking.
        default_blocking_ms: Blocking estimate for a problem script
            without size data.
        savings_per_issue_ms: Estimated savings per fixed script.

    Returns:
        An Insights instance. An empty input yields no issues.
    """
    scripts = [
        r for r in resources
        if r.is_script and r.recommendation is not None
    ]
    seo_critical = [r for r in scripts if _is_seo_critical(r)]
    ordinary = [r for r in scripts if not _is_seo_critical(r)]

    head_sync = [
        r for r in ordinary
        if r.zone == "head" and _unstrategized(r) and not r.is_inline
    ]
    analytics_no_async = [
        r for r in ordinary
        if r.category == "analytics" and _unstrategized(r)
    ]
    chat_not_lazy = [
        r for r in ordinary
        if r.category == "chat" and getattr(r, "loading_strategy", None) != "lazy"
    ]

    issues = []
    savings = 0
    if head_sync:
        issues.append(
            f"{_plural(len(head_sync), 'synchronous script')} in <head> "
            f"blocking render"
        )
    if analytics_no_async:
        issues.append(
            f"{_plural(len(analytics_no_async), 'analytics script')} "
            f"should use async attribute"
        )
        savings += len(analytics_no_async) * savings_per_issue_ms
    if chat_not_lazy:
        issues.append(
            f"{_plural(len(chat_not_lazy), 'chat widget')} should be lazy-loaded"
        )
        savings += len(chat_not_lazy) * savings_per_issue_ms

    blocking = 0
    for resource in ordinary:
        if not _has_issue(resource):
            continue
        transfer = resource.size.transfer_bytes if resource.size else None
        if transfer:
            blocking += transfer // bytes_per_blocking_ms
        else:
            blocking += default_blocking_ms

    if savings == 0 and head_sync:
        savings = len(head_sync) * savings_per_issue_ms

    insights = Insights(
        main_issues=issues,
        seo_critical_scripts=[
            {
                "name": r.recommendation.seo_critical_name,
                "type": r.recommendation.seo_critical_type,
                "caveat": r.recommendation.caveat,
            }
            for r in seo_critical
        ],
        total_blocking_time_ms=blocking,
        potential_savings_ms=min(savings, blocking),
    )

    if insights.has_no_issues:
        if seo_critical:
            insights.success_message = (
                "No render-blocking issues found. Your SEO and analytics "
                "scripts are correctly configured."
            )
            insights.seo_critical_note = (
                f"Found {_plural(len(seo_critical), 'SEO-critical script')} "
                f"that should remain in <head> for proper indexing and "
                f"analytics."
            )
        else:
            insights.success_message = (
                "Excellent! No render-blocking issues detected. Your "
                "scripts are well-optimized."
            )

    return insights


def summarize(scripts: list[Resource], stylesheets: list[Resource]) -> dict:
    """Count scripts and stylesheets by the properties the report shows."""

    def criticality_count(level: str) -> int:
        return sum(
            1 for s in scripts
            if getattr(s.recommendation, "criticality", None) == level
        )

    return {
        "total_scripts": len(scripts),
        "total_stylesheets": len(stylesheets),
        "external_stylesheets": sum(1 for s in stylesheets if not s.is_inline),
        "inline_stylesheets": sum(1 for s in stylesheets if s.is_inline),
        "render_blocking_scripts": sum(
            1 for s in scripts if getattr(s, "is_blocking", False)
        ),
        "render_blocking_stylesheets": sum(
            1 for s in stylesheets
            if getattr(s.recommendation, "is_blocking", False)
        ),
        "third_party_scripts": sum(
            1 for s in scripts if s.category != "internal"
        ),
        "inline_scripts": sum(1 for s in scripts if s.is_inline),
        "seo_critical_scripts": sum(1 for s in scripts if _is_seo_critical(s)),
        "critical_scripts": criticality_count("critical"),
        "interactive_scripts": criticality_count("interactive"),
        "non_essential_scripts": criticality_count("non-essential"),
    }


def prioritize_scripts(scripts: list[Resource]) -> list[Resource]:
    """Order scripts worst first: issues, then by blocking score.

    The sort is stable, so equally ranked scripts keep document order.
    """
    return sorted(
        scripts,
        key=lambda s: (
            0 if _has_issue(s) else 1,
            -getattr(s.recommendation, "blocking_score", 0),
        ),
    )


def group_by_category(scripts: list[Resource]) -> dict[str, list[Resource]]:
    grouped: dict[str, list[Resource]] = defaultdict(list)
    for script in scripts:
        grouped[script.category or "other"].append(script)
    return dict(grouped)


@dataclass
class PageReport:
    """Complete audit result for one page."""

    url: str
    analyzed_at: str
    scripts: list[Resource]
    stylesheets: list[Resource]
    summary: dict
    insights: Insights
    scripts_by_category: dict[str, list[Resource]]

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "url": self.url,
            "analyzed_at": self.analyzed_at,
            "summary": self.summary,
            "insights": self.insights.to_dict(),
            "scripts": [s.to_dict() for s in self.scripts],
            "scripts_by_category": {
                category: [s.id for s in scripts]
                for category, scripts in self.scripts_by_category.items()
            },
            "stylesheets": [s.to_dict() for s in self.stylesheets],
        }


def build_page_report(
    url: str,
    resources: list[Resource],
    analyzed_at: Optional[str] = None,
) -> PageReport:
    """Assemble the page report from fully analyzed resources.

    Must only be called once every resource has its recommendation.
    """
    scripts = [r for r in resources if r.is_script]
    stylesheets = [r for r in resources if not r.is_script]
    return PageReport(
        url=url,
        analyzed_at=analyzed_at or datetime.now(timezone.utc).isoformat(),
        scripts=scripts,
        stylesheets=stylesheets,
        summary=summarize(scripts, stylesheets),
        insights=generate_insights(resources),
        scripts_by_category=group_by_category(scripts),
    )


# --- Terminal output ---------------------------------------------------


def print_insights(
    report: PageReport,
    console: Optional[Console] = None,
    show_seo_critical: bool = True,
) -> None:
    """Print the headline issues and estimated savings.

    Args:
        report: The page report.
        console: Optional rich Console. Creates one if not provided.
        show_seo_critical: Whether to list SEO-critical scripts.
    """
    if console is None:
        console = Console()

    insights = report.insights
    summary = report.summary

    console.print()
    if insights.has_no_issues:
        body = f"[bold green]✅ {insights.success_message}[/]"
        if insights.seo_critical_note:
            body += f"\n[dim]{insights.seo_critical_note}[/]"
        console.print(Panel(body, title="🔍 Insights", border_style="green"))
    else:
        lines = []
        for issue in insights.main_issues:
            lines.append(f"  • [bold]{issue}[/]")
            explanation = get_issue_explanation(issue)
            if explanation:
                lines.append(f"    [dim]{explanation.brief}[/]")
        console.print(Panel(
            f"[bold red]🔴 {insights.issue_count} issue"
            f"{'s' if insights.issue_count > 1 else ''} found[/]\n\n"
            + "\n".join(lines)
            + "\n\n"
            f"[dim]Estimated blocking time:[/] "
            f"{insights.total_blocking_time_ms} ms\n"
            f"[dim]Potential savings:[/] "
            f"[green]{insights.potential_savings_ms} ms[/]",
            title="🔍 Insights",
            border_style="red",
        ))

    console.print(
        f"[dim]Scripts:[/] {summary['total_scripts']}  "
        f"[dim]Render-blocking:[/] {summary['render_blocking_scripts']}  "
        f"[dim]Third-party:[/] {summary['third_party_scripts']}  "
        f"[dim]Stylesheets:[/] {summary['total_stylesheets']}"
    )

    if show_seo_critical and insights.seo_critical_scripts:
        lines = []
        for item in insights.seo_critical_scripts:
            lines.append(f"  • [bold]{item['name']}[/]")
            explanation = get_seo_critical_explanation(item["type"])
            if explanation:
                lines.append(f"    [dim]{explanation.brief}[/]")
        console.print()
        console.print(Panel(
            "[bold yellow]🟡 Keep these scripts early in the page[/]\n\n"
            + "\n".join(lines),
            title="SEO-Critical Scripts",
            border_style="yellow",
        ))


def _score_text(score: int) -> Text:
    if score >= 8:
        style = "bold red"
    elif score >= 5:
        style = "yellow"
    else:
        style = "green"
    return Text(str(score), style=style)


def _script_label(script: Resource) -> str:
    if script.is_inline:
        return f"{script.vendor_name} ({script.id})"
    return script.source_location or script.id


def print_scripts_report(
    report: PageReport,
    console: Optional[Console] = None,
    show_seo_critical: bool = True,
) -> None:
    """Print every script with its current and recommended loading.

    Args:
        report: The page report.
        console: Optional rich Console.
        show_seo_critical: Whether to include SEO-critical scripts.
    """
    if console is None:
        console = Console()

    scripts = prioritize_scripts(report.scripts)
    if not show_seo_critical:
        scripts = [s for s in scripts if not _is_seo_critical(s)]

    console.print()
    if not scripts:
        console.print("[green]No scripts found.[/]")
        return

    table = Table(
        title="📜 Scripts",
        show_header=True,
        header_style="bold magenta",
        show_lines=True,
        expand=True,
    )
    table.add_column("Script", style="bold", max_width=45)
    table.add_column("Vendor", max_width=25)
    table.add_column("Category", style="cyan", max_width=14)
    table.add_column("Current", max_width=18)
    table.add_column("Suggested", max_width=22)
    table.add_column("Score", justify="right", max_width=6)
    table.add_column("Size", justify="right", max_width=10)
    table.add_column("Issue?", justify="center", max_width=8)

    for script in scripts:
        rec = script.recommendation
        if rec.is_seo_critical:
            issue = "🔒 SEO"
        elif rec.has_issue:
            issue = "⚠️ Yes"
        else:
            issue = "✅ No"

        table.add_row(
            _script_label(script),
            script.vendor_name,
            script.category,
            f"{script.zone or '?'} / {rec.current_strategy}",
            f"{rec.suggested_position} / {rec.suggested_strategy}",
            _score_text(rec.blocking_score),
            _format_bytes(script.size.transfer_bytes if script.size else None),
            issue,
        )

    console.print(table)


def print_stylesheets_report(
    report: PageReport,
    console: Optional[Console] = None,
) -> None:
    """Print stylesheets and whether they are critical-CSS candidates."""
    if console is None:
        console = Console()

    console.print()
    if not report.stylesheets:
        console.print("[green]No stylesheets found.[/]")
        return

    table = Table(
        title="🎨 Stylesheets",
        show_header=True,
        header_style="bold blue",
        expand=True,
    )
    table.add_column("Stylesheet", style="bold", max_width=45)
    table.add_column("Location", max_width=12)
    table.add_column("Media", max_width=10)
    table.add_column("Size", justify="right", max_width=10)
    table.add_column("Advice", max_width=45)

    for sheet in report.stylesheets:
        rec = sheet.recommendation
        label = sheet.filename if not sheet.is_inline else f"<style> ({sheet.id})"
        advice_style = "yellow" if rec.is_blocking else "green"
        table.add_row(
            label,
            sheet.zone or "?",
            sheet.media,
            _format_bytes(sheet.size.transfer_bytes if sheet.size else None),
            Text(rec.reason, style=advice_style),
        )

    console.print(table)


# --- File output -------------------------------------------------------


def write_json_report(report: PageReport, output_path: str) -> None:
    """Write the full report as a JSON file.

    Args:
        report: The page report.
        output_path: Path for the JSON output file.
    """
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(report.to_dict(), fh, indent=2, ensure_ascii=False)


def _script_rows(report: PageReport, clean) -> list[dict]:
    rows = []
    for script in prioritize_scripts(report.scripts):
        rec = script.recommendation
        rows.append({
            "ID": script.id,
            "Source": clean(script.source_location or "(inline)"),
            "Vendor": clean(script.vendor_name),
            "Category": script.category,
            "Vendor Notes": clean(script.vendor_description),
            "Zone": script.zone,
            "Current Strategy": rec.current_strategy,
            "Suggested Strategy": rec.suggested_strategy,
            "Suggested Position": rec.suggested_position,
            "Criticality": rec.criticality,
            "Blocking Score": rec.blocking_score,
            "Has Issue": rec.has_issue,
            "SEO Critical": rec.is_seo_critical,
            "Transfer Bytes": (
                script.size.transfer_bytes if script.size else None
            ),
            "Reason": clean(rec.reason),
            "Caveat": clean(rec.caveat),
            "Recommended Code": clean(rec.code_example),
        })
    return rows


def _stylesheet_rows(report: PageReport, clean) -> list[dict]:
    rows = []
    for sheet in report.stylesheets:
        rec = sheet.recommendation
        rows.append({
            "ID": sheet.id,
            "Source": clean(sheet.source_location or "(inline)"),
            "Zone": sheet.zone,
            "Media": sheet.media,
            "Transfer Bytes": sheet.size.transfer_bytes if sheet.size else None,
            "Action": rec.action,
            "Blocking": rec.is_blocking,
            "Reason": clean(rec.reason),
        })
    return rows


def write_excel_report(report: PageReport, output_path: str) -> None:
    """Write the full report as an Excel file.

    Sheets: Insights, Scripts, Stylesheets, and SEO-Critical when any
    script is SEO-critical.

    Args:
        report: The page report.
        output_path: Path for the Excel output file.
    """
    import pandas as pd
    from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    def _clean_str(val):
        if isinstance(val, str):
            return ILLEGAL_CHARACTERS_RE.sub("", val)
        return val

    insights = report.insights
    insight_rows = [
        {"Metric": "URL", "Value": report.url},
        {"Metric": "Analyzed At", "Value": report.analyzed_at},
        {"Metric": "Issue Count", "Value": insights.issue_count},
        {"Metric": "Total Blocking Time (ms)", "Value": insights.total_blocking_time_ms},
        {"Metric": "Potential Savings (ms)", "Value": insights.potential_savings_ms},
        {"Metric": "SEO-Critical Scripts", "Value": insights.seo_critical_count},
    ]
    for issue in insights.main_issues:
        insight_rows.append({"Metric": "Issue", "Value": _clean_str(issue)})
    if insights.success_message:
        insight_rows.append(
            {"Metric": "Result", "Value": insights.success_message}
        )
    for key, value in report.summary.items():
        insight_rows.append(
            {"Metric": key.replace("_", " ").title(), "Value": value}
        )

    df_insights = pd.DataFrame(insight_rows)
    df_scripts = pd.DataFrame(_script_rows(report, _clean_str))
    df_styles = pd.DataFrame(_stylesheet_rows(report, _clean_str))
    df_seo = pd.DataFrame([
        {
            "Name": _clean_str(item["name"]),
            "Type": item["type"],
            "Caveat": _clean_str(item["caveat"]),
        }
        for item in insights.seo_critical_scripts
    ])

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        df_insights.to_excel(writer, sheet_name="Insights", index=False)
        df_scripts.to_excel(writer, sheet_name="Scripts", index=False)
        df_styles.to_excel(writer, sheet_name="Stylesheets", index=False)
        if not df_seo.empty:
            df_seo.to_excel(writer, sheet_name="SEO-Critical", index=False)

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(
            start_color="366092", end_color="366092", fill_type="solid"
        )
        wrap_alignment = Alignment(wrap_text=True, vertical="top")

        for sheet_name in writer.sheets:
            worksheet = writer.sheets[sheet_name]

            # Freeze the header row and add a filter dropdown to it
            worksheet.freeze_panes = "A2"
            worksheet.auto_filter.ref = worksheet.dimensions

            for col_idx, column in enumerate(worksheet.columns, 1):
                col_letter = get_column_letter(col_idx)
                header_cell = column[0]
                header_val = str(header_cell.value) if header_cell.value else ""

                header_cell.font = header_font
                header_cell.fill = header_fill

                max_length = max(
                    (len(str(cell.value)) for cell in column if cell.value is not None),
                    default=0,
                )
                # Between 10 and 50 characters wide
                worksheet.column_dimensions[col_letter].width = max(
                    min(max_length + 2, 50), 10
                )

                for cell in column[1:]:
                    if "Bytes" in header_val:
                        cell.number_format = "#,##0"
                    if header_val in (
                        "Source", "Reason", "Caveat", "Recommended Code", "Value"
                    ):
                        cell.alignment = wrap_alignment
