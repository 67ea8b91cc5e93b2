"""
TubeShield Styles — One identified style block that hides known ad containers.
"""

import logging

from .signatures import GRID_ITEM_SELECTOR, REMOVED_MARKER, STYLE_ELEMENT_ID

log = logging.getLogger("tubeshield.styles")

AD_HIDING_CSS = """\
/* Player ad layers */
.ad-showing .video-ads,
.ad-showing .ytp-ad-module,
.ad-showing .ytp-ad-player-overlay,
.ad-interrupting .video-ads,
.ad-interrupting .ytp-ad-module,
.ad-interrupting .ytp-ad-player-overlay {
  display: none !important;
  visibility: hidden !important;
}

/* Ad renderers */
ytd-display-ad-renderer,
ytd-video-masthead-ad-v3-renderer,
ytd-promoted-sparkles-web-renderer,
ytd-compact-promoted-video-renderer,
ytd-promoted-video-renderer,
ytd-banner-promo-renderer,
ytd-action-companion-ad-renderer {
  display: none !important;
}

/* Home feed, search and browse */
.ytd-search-pyv-renderer,
.ytd-merch-shelf-renderer,
.ad-container,
#player-ads,
.ytp-ad-overlay-container,
ytm-promoted-video-renderer,
.iv-promo,
.companion-ad,
.video-ads,
.ytp-ad-progress-list,
.ytd-single-option-survey-renderer,
[data-ad-impression] {
  display: none !important;
  visibility: hidden !important;
}

.ytp-ad-skip-button-container {
  display: none !important;
}

/* Slot based containers */
ytd-ad-slot-renderer,
ytd-in-feed-ad-layout-renderer,
ad-badge-view-model,
ytd-rich-item-renderer:has(> #content > ytd-ad-slot-renderer),
ytd-item-section-renderer:has(ytd-ad-slot-renderer),
ytd-video-masthead-ad-primary-video-renderer,
ytd-statement-banner-renderer,
ytd-primetime-promo-renderer {
  display: none !important;
  visibility: hidden !important;
  height: 0 !important;
  margin: 0 !important;
  padding: 0 !important;
}

/* Collapse the grid around removed items */
ytd-rich-grid-renderer {
  grid-auto-rows: minmax(0, auto) !important;
}

ytd-rich-section-renderer:empty,
ytd-rich-section-renderer:has(> #content:empty) {
  display: none !important;
  height: 0 !important;
  margin: 0 !important;
}

%(grid_item)s[%(marker)s] {
  display: none !important;
  height: 0 !important;
  margin: 0 !important;
  padding: 0 !important;
}
""" % {"grid_item": GRID_ITEM_SELECTOR, "marker": REMOVED_MARKER}


def inject_styles(document, css: str = AD_HIDING_CSS):
    """Insert the style block into head (or the root). No-op when it already exists."""
    existing = document.get_element_by_id(STYLE_ELEMENT_ID)
    if existing is not None:
        return existing

    target = document.head
    if target is None:
        target = document.root
    style = document.soup.new_tag("style", attrs={"id": STYLE_ELEMENT_ID})
    style.string = css
    document.append(target, style)
    log.debug(f"Injected ad-hiding styles into <{target.name}>")
    return style


def ensure_styles(document, css: str = AD_HIDING_CSS) -> bool:
    """Re-insert the style block if the host dropped it. Returns True when it had to."""
    if document.get_element_by_id(STYLE_ELEMENT_ID) is not None:
        return False
    log.info("Style block missing, re-injecting")
    inject_styles(document, css)
    return True
