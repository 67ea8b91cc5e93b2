"""
TubeShield Patterns — Glob matching for the blocked URL list and export of the
list for external network-level blockers.
"""

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlsplit

from .signatures import BLOCKED_AD_PATTERNS, PATTERNS_GLOBAL

log = logging.getLogger("tubeshield.patterns")


def _wildcard(segment: str, star: str = ".*") -> str:
    """Escape everything in `segment` except `*`."""
    return star.join(re.escape(part) for part in segment.split("*"))


class GlobPattern:
    """A `scheme://host/path` glob where `*` is the only wildcard."""

    def __init__(self, glob: str):
        self.glob = glob
        scheme, sep, rest = glob.partition("://")
        if not sep:
            raise ValueError(f"Pattern has no scheme separator: {glob!r}")
        host, _, path = rest.partition("/")

        self.scheme_re = re.compile(_wildcard(scheme.lower()) + r"\Z")
        if host.startswith("*."):
            self.host_suffix = host[2:].lower()
            self.host_re = None
        else:
            self.host_suffix = None
            self.host_re = re.compile(_wildcard(host.lower(), star=r"[^/]*") + r"\Z")
        self.path_re = re.compile(_wildcard("/" + path) + r"\Z")

    def _host_matches(self, hostname: str) -> bool:
        if self.host_suffix is not None:
            return hostname == self.host_suffix or hostname.endswith("." + self.host_suffix)
        return bool(self.host_re.match(hostname))

    def matches(self, url: str) -> bool:
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        hostname = (parts.hostname or "").lower()
        if not parts.scheme or not hostname:
            return False

        target = parts.path or "/"
        if parts.query:
            target += "?" + parts.query

        return (
            bool(self.scheme_re.match(parts.scheme.lower()))
            and self._host_matches(hostname)
            and bool(self.path_re.match(target))
        )

    def __repr__(self):
        return f"GlobPattern({self.glob!r})"


@lru_cache(maxsize=256)
def compile_pattern(glob: str) -> GlobPattern:
    return GlobPattern(glob)


def matches(pattern: str, url: str) -> bool:
    """Check a single glob against a URL."""
    return compile_pattern(pattern).matches(url)


def is_blocked(url: str, patterns=BLOCKED_AD_PATTERNS) -> bool:
    """True when any of `patterns` matches `url`."""
    return any(matches(p, url) for p in patterns)


def export_patterns(window, patterns=BLOCKED_AD_PATTERNS) -> tuple:
    """Publish the ordered pattern list on the page globals for external blockers."""
    exported = tuple(patterns)
    window[PATTERNS_GLOBAL] = exported
    log.debug(f"Exported {len(exported)} blocked URL patterns")
    return exported


def compute_hash(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()[:16]


def build_network_filters(version: str = "1.0.0", patterns=BLOCKED_AD_PATTERNS) -> dict:
    """Render the pattern list in the network filter-file shape."""
    updated = datetime.now(timezone.utc).isoformat()
    return {
        "name": "YouTube Network Filters",
        "version": version,
        "updated": updated,
        "rules": [
            {
                "id": f"net-{compute_hash(pattern)}",
                "pattern": pattern,
                "description": f"Blocked ad endpoint: {pattern}",
            }
            for pattern in patterns
        ],
    }


def write_network_filters(path, version: str = "1.0.0", patterns=BLOCKED_AD_PATTERNS) -> Path:
    """Write the network filter file and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(build_network_filters(version, patterns), f, indent=2)
    log.info(f"Network filters saved: {path}")
    return path
