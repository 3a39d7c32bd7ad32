"""Copy-ready HTML snippets for script loading recommendations.

These strings are presentational only: they show the current markup
next to the recommended markup and play no part in any decision.
"""

from typing import Optional

INLINE_PREVIEW_CHARS = 200


def lazy_load_template(src: str, trigger: str = "scroll") -> str:
    """Load a script on a user event, with a timeout fallback."""
    if trigger == "timeout":
        return (
            "<!-- Load after 3 seconds -->\n"
            "<script>\n"
            "  setTimeout(function() {\n"
            "    const script = document.createElement('script');\n"
            f"    script.src = '{src}';\n"
            "    document.body.appendChild(script);\n"
            "  }, 3000);\n"
            "</script>"
        )

    return (
        f"<!-- Load on {trigger} event -->\n"
        "<script>\n"
        "  function loadScript() {\n"
        "    const script = document.createElement('script');\n"
        f"    script.src = '{src}';\n"
        "    document.body.appendChild(script);\n"
        "  }\n"
        "\n"
        f"  window.addEventListener('{trigger}', loadScript, {{ once: true }});\n"
        "\n"
        "  // Fallback: load after 5 seconds if no interaction\n"
        "  setTimeout(loadScript, 5000);\n"
        "</script>"
    )


def defer_template(src: str) -> str:
    return (
        "<!-- Deferred loading (downloads in parallel, executes after "
        "HTML parsing) -->\n"
        f'<script defer src="{src}"></script>'
    )


def async_template(src: str) -> str:
    return (
        "<!-- Async loading (downloads and executes independently) -->\n"
        f'<script async src="{src}"></script>'
    )


def preload_async_template(src: str) -> str:
    return (
        "<!-- Preload for faster loading (place in <head>) -->\n"
        f'<link rel="preload" href="{src}" as="script">\n'
        "\n"
        "<!-- Async script (place before </body>) -->\n"
        f'<script async src="{src}"></script>'
    )


def head_sync_template(src: str) -> str:
    return (
        "<!-- Keep in <head> for critical functionality -->\n"
        f'<script src="{src}"></script>'
    )


def gtm_optimized_template(gtm_id: str = "GTM-XXXX") -> str:
    """Google Tag Manager container injected on first interaction."""
    return (
        "<!-- Optimized Google Tag Manager (lazy-loaded) -->\n"
        "<script>\n"
        "  function loadGTM() {\n"
        "    if (window.gtmLoaded) return;\n"
        "    window.gtmLoaded = true;\n"
        "\n"
        "    (function(w,d,s,l,i){w[l]=w[l]||[];w[l].push({'gtm.start':\n"
        "    new Date().getTime(),event:'gtm.js'});var f=d.getElementsByTagName(s)[0],\n"
        "    j=d.createElement(s),dl=l!='dataLayer'?'&l='+l:'';j.async=true;j.src=\n"
        "    'https://www.googletagmanager.com/gtm.js?id='+i+dl;f.parentNode.insertBefore(j,f);\n"
        f"    }})(window,document,'script','dataLayer','{gtm_id}');\n"
        "  }\n"
        "\n"
        "  ['scroll', 'click', 'mousemove', 'touchstart', 'keydown'].forEach(function(event) {\n"
        "    window.addEventListener(event, loadGTM, { once: true });\n"
        "  });\n"
        "\n"
        "  setTimeout(loadGTM, 5000);\n"
        "</script>\n"
        "\n"
        "<!-- GTM noscript fallback -->\n"
        f'<noscript><iframe src="https://www.googletagmanager.com/ns.html?id={gtm_id}"\n'
        'height="0" width="0" style="display:none;visibility:hidden"></iframe></noscript>'
    )


def ga_optimized_template(tracking_id: str = "GA-TRACKING-ID") -> str:
    """gtag.js loaded on scroll or after a short timeout."""
    return (
        "<!-- Optimized Google Analytics (lazy-loaded) -->\n"
        "<script>\n"
        "  function loadGA() {\n"
        "    if (window.gaLoaded) return;\n"
        "    window.gaLoaded = true;\n"
        "\n"
        "    window.dataLayer = window.dataLayer || [];\n"
        "    function gtag(){dataLayer.push(arguments);}\n"
        "    gtag('js', new Date());\n"
        f"    gtag('config', '{tracking_id}');\n"
        "\n"
        "    const script = document.createElement('script');\n"
        "    script.async = true;\n"
        f"    script.src = 'https://www.googletagmanager.com/gtag/js?id={tracking_id}';\n"
        "    document.head.appendChild(script);\n"
        "  }\n"
        "\n"
        "  window.addEventListener('scroll', loadGA, { once: true });\n"
        "  setTimeout(loadGA, 3000);\n"
        "</script>"
    )


def facebook_pixel_optimized_template(pixel_id: str = "PIXEL-ID") -> str:
    """Meta Pixel bootstrapped on first interaction."""
    return (
        "<!-- Optimized Facebook Pixel (lazy-loaded) -->\n"
        "<script>\n"
        "  function loadFBPixel() {\n"
        "    if (window.fbqLoaded) return;\n"
        "    window.fbqLoaded = true;\n"
        "\n"
        "    !function(f,b,e,v,n,t,s)\n"
        "    {if(f.fbq)return;n=f.fbq=function(){n.callMethod?\n"
        "    n.callMethod.apply(n,arguments):n.queue.push(arguments)};\n"
        "    if(!f._fbq)f._fbq=n;n.push=n;n.loaded=!0;n.version='2.0';\n"
        "    n.queue=[];t=b.createElement(e);t.async=!0;\n"
        "    t.src=v;s=b.getElementsByTagName(e)[0];\n"
        "    s.parentNode.insertBefore(t,s)}(window, document,'script',\n"
        "    'https://connect.facebook.net/en_US/fbevents.js');\n"
        f"    fbq('init', '{pixel_id}');\n"
        "    fbq('track', 'PageView');\n"
        "  }\n"
        "\n"
        "  ['scroll', 'click', 'mousemove'].forEach(function(e) {\n"
        "    window.addEventListener(e, loadFBPixel, { once: true });\n"
        "  });\n"
        "  setTimeout(loadFBPixel, 3000);\n"
        "</script>"
    )


def inline_template(content: str, comment: str) -> str:
    return f"<!-- {comment} -->\n<script>\n{content}\n</script>"


def _preview(content: Optional[str]) -> str:
    content = content or ""
    if len(content) > INLINE_PREVIEW_CHARS:
        return content[:INLINE_PREVIEW_CHARS] + "..."
    return content


def seo_critical_inline_template(
    name: str,
    content: Optional[str],
    explicit_type: Optional[str] = None,
) -> str:
    """Inline SEO-critical script shown unchanged, truncated."""
    type_attr = f' type="{explicit_type}"' if explicit_type else ""
    return (
        f"<!-- {name} - Keep as-is for SEO/Analytics -->\n"
        f"<script{type_attr}>\n{_preview(content)}\n</script>"
    )


_STRATEGY_TEMPLATES = {
    "lazy-load": lazy_load_template,
    "defer": defer_template,
    "async": async_template,
    "head-defer": defer_template,
    "preload-or-async": preload_async_template,
    "head-sync": head_sync_template,
    "keep-sync-in-head": head_sync_template,
}

_VENDOR_TEMPLATES = {
    "Google Tag Manager": gtm_optimized_template,
    "Google Analytics": ga_optimized_template,
    "Facebook Pixel": facebook_pixel_optimized_template,
}


def select_template(
    src: Optional[str],
    suggested_strategy: str,
    vendor_name: Optional[str] = None,
) -> str:
    """Pick the recommended-markup snippet for a script.

    Well-known vendors get a vendor-specific lazy loader; everything
    else is rendered from the suggested loading strategy.
    """
    vendor_template = _VENDOR_TEMPLATES.get(vendor_name or "")
    if vendor_template is not None:
        return vendor_template()

    strategy_template = _STRATEGY_TEMPLATES.get(suggested_strategy)
    if strategy_template is not None:
        return strategy_template(src or "")

    return f'<script src="{src or ""}"></script>'


def current_code(
    src: Optional[str],
    zone: Optional[str],
    loading_strategy: Optional[str],
    content: Optional[str] = None,
    is_inline: bool = False,
) -> str:
    """Render the script's markup as it currently appears on the page."""
    location = zone or "unknown"

    if is_inline:
        return (
            f"<!-- Current: Inline in <{location}> -->\n"
            f"<script>\n{content or ''}\n</script>"
        )

    attrs = ""
    if loading_strategy in ("async", "defer"):
        attrs = f" {loading_strategy}"
    elif loading_strategy == "module":
        attrs = ' type="module"'

    strategy = loading_strategy or "none"
    if strategy == "none":
        strategy = "synchronous"

    return (
        f"<!-- Current: in <{location}>, {strategy} -->\n"
        f'<script{attrs} src="{src or ""}"></script>'
    )
