"""
TubeShield Signatures — Known advertising property names, element selectors,
text tokens and URL patterns. Pure data, loaded once and never mutated.
"""

# Properties stripped from player/browse payloads wherever they occur
AD_PROPERTIES = (
    "playerAds",
    "adPlacements",
    "adSlots",
    "ads",
    "adBreakParams",
    "companions",
)

# Some payload shapes wrap the real player descriptor one level down
WRAPPED_DESCRIPTOR_KEY = "playerResponse"

INITIAL_PLAYER_RESPONSE = "ytInitialPlayerResponse"

# Player container
PLAYER_ID = "movie_player"
VIDEO_SELECTOR = ".video-stream"
AD_STATE_CLASSES = ("ad-showing", "ad-interrupting")

# At least one of these must be present alongside an ad state class
CORROBORATING_SELECTORS = (
    ".ytp-ad-player-overlay",
    ".video-ads.ytp-ad-module",
    ".ytp-ad-text",
    ".ytp-ad-skip-button",
    ".ytp-ad-skip-button-modern",
    ".ytp-skip-ad-button",
)

SKIP_BUTTON_SELECTORS = (
    ".ytp-ad-skip-button",
    ".ytp-ad-skip-button-modern",
    ".ytp-skip-ad-button",
)

AD_OVERLAY_SELECTORS = (
    ".ytp-ad-overlay-container",
    ".ytp-ad-text-overlay",
    ".ytp-ad-image-overlay",
    ".ytp-ad-player-overlay-flyout-cta",
    ".ytp-ad-overlay-close-container",
)

# Feed containers
FEED_AD_TAGS = (
    "ytd-ad-slot-renderer",
    "ytd-in-feed-ad-layout-renderer",
    "ad-badge-view-model",
)

FEED_AD_ANCESTORS = (
    "ytd-ad-slot-renderer",
    "ytd-in-feed-ad-layout-renderer",
)

FEED_AD_DESCENDANTS = (
    "ytd-ad-slot-renderer",
    "ytd-in-feed-ad-layout-renderer",
    "ad-badge-view-model",
    "ytd-display-ad-renderer",
)

# Swept once when the feed monitor starts
FEED_AD_SELECTORS = (
    "ytd-ad-slot-renderer",
    "ytd-in-feed-ad-layout-renderer",
    "ad-badge-view-model",
    "ytd-display-ad-renderer",
    ".ytd-merch-shelf-renderer",
    ".ytd-single-option-survey-renderer",
    "ytd-statement-banner-renderer",
    "ytd-banner-promo-renderer",
    "ytd-video-masthead-ad-v3-renderer",
    "ytd-video-masthead-ad-primary-video-renderer",
)

BADGE_SELECTORS = ("badge-shape", "ad-badge-view-model")
SPONSOR_TEXT_MARKERS = ("Sponsored", "Ad ·")
SPONSOR_LABEL_TOKENS = ("ad", "ads", "sponsored", "advertisement")

GRID_ITEM_SELECTOR = "ytd-rich-item-renderer"
SECTION_SELECTOR = "ytd-rich-section-renderer"
GRID_SELECTOR = "ytd-rich-grid-renderer"
REMOVED_MARKER = "data-sg-ad-removed"

STYLE_ELEMENT_ID = "sg-youtube-ad-skipper-styles"
FALLBACK_PLAYER_ID = "sg-fallback-player"
FALLBACK_EMBED_URL = "https://www.youtube-nocookie.com/embed/"

# Page globals
PATTERNS_GLOBAL = "TUBESHIELD_BLOCKED_AD_PATTERNS"
INITIALIZED_GLOBAL = "__TUBESHIELD_INITIALIZED__"
AGENT_GLOBAL = "__TUBESHIELD_AGENT__"

# Network endpoints
MEDIA_SEGMENT_HOST = "googlevideo.com"
CANDIDATE_PATHS = (
    "/youtubei/v1/player",
    "/youtubei/v1/browse",
    "/get_video_info",
)
CONTINUATION_MARKER = "/next"

BLOCKED_AD_PATTERNS = (
    # Ad serving domains
    "*://*.googlesyndication.com/*",
    "*://*.doubleclick.net/*",
    "*://googleads.g.doubleclick.net/*",
    "*://static.doubleclick.net/*",

    # Classic ad endpoints
    "*://youtube.com/api/stats/ads*",
    "*://youtube.com/ptracking*",
    "*://youtube.com/pagead/*",
    "*://youtube.com/get_midroll_*",
    "*://youtube.com/ad_*",
    "*://youtube.com/adunit/*",
    "*://*.youtube.com/api/stats/ads*",
    "*://*.youtube.com/ptracking*",
    "*://*.youtube.com/pagead/*",
    "*://*.youtube.com/get_midroll_*",
    "*://*.youtube.com/ad_*",

    # Innertube ad endpoints
    "*://youtube.com/youtubei/v1/player/ad_*",
    "*://*.youtube.com/youtubei/v1/player/ad_*",
    "*://youtube.com/api/stats/qoe*",
    "*://*.youtube.com/api/stats/qoe*",

    # Ad video segments
    "*://googlevideo.com/videoplayback*&aclk=*",
    "*://googlevideo.com/videoplayback*&ad=*",
    "*://googlevideo.com/videoplayback*ad_*",
    "*://googlevideo.com/pcs/activeview*",
    "*://*.googlevideo.com/videoplayback*&aclk=*",
    "*://*.googlevideo.com/videoplayback*&ad=*",
    "*://*.googlevideo.com/videoplayback*ad_*",
    "*://*.googlevideo.com/pcs/activeview*",

    # Tracking
    "*://youtube.com/api/stats/watchtime*",
    "*://*.youtube.com/api/stats/watchtime*",
    "*://google.com/pagead/*",
    "*://*.google.com/pagead/*",
    "*://youtube.com/pagead/interaction/*",
    "*://*.youtube.com/pagead/interaction/*",
)
