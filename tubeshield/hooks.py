"""
TubeShield Hooks — Sanitizes player data on the write path, before page code
sees it.

Three layers, installed independently:
  - the call-returning request mechanism (`requests.Session.send`), which gets
    a substitute response carrying the cleaned body
  - the event-based one (requests response hooks), which rewrites the body of
    the response object in place
  - the `ytInitialPlayerResponse` page global, turned into an accessor that
    cleans every assignment
"""

import json
import logging
import re
from urllib.parse import urlsplit

import requests
from requests.structures import CaseInsensitiveDict

from .config import DEFAULTS
from .patterns import is_blocked
from .sanitizer import sanitize, sanitize_count
from .signatures import (
    CANDIDATE_PATHS,
    CONTINUATION_MARKER,
    INITIAL_PLAYER_RESPONSE,
    MEDIA_SEGMENT_HOST,
)

log = logging.getLogger("tubeshield.hooks")

INLINE_ASSIGNMENT = re.compile(
    r"""(?:\bvar\s+|window\[["'])?\b%s(?:["']\])?\s*=\s*""" % INITIAL_PLAYER_RESPONSE
)
CHARSET = re.compile(r"""charset\s*=\s*["']?([\w.:-]+)""", re.I)


def declared_charset(content_type: str | None) -> str | None:
    match = CHARSET.search(content_type or "")
    return match.group(1) if match else None


def body_encoding(content_type: str | None) -> str:
    """Charset a body is read and written back in: the declared one, else UTF-8."""
    return declared_charset(content_type) or "utf-8"


def is_media_segment(url: str) -> bool:
    hostname = (urlsplit(url or "").hostname or "").lower()
    return hostname == MEDIA_SEGMENT_HOST or hostname.endswith("." + MEDIA_SEGMENT_HOST)


def is_candidate(url: str) -> bool:
    """Player, browse and video-info endpoints, never continuation (`/next`) requests."""
    path = urlsplit(url or "").path
    if CONTINUATION_MARKER in path:
        return False
    return any(marker in path for marker in CANDIDATE_PATHS)


def is_json_type(content_type: str | None) -> bool:
    return bool(content_type) and "json" in content_type.lower()


def is_html_type(content_type: str | None) -> bool:
    return bool(content_type) and "text/html" in content_type.lower()


def is_watch_document(url: str) -> bool:
    return urlsplit(url or "").path == "/watch"


def sanitize_inline_payload(html: str, max_depth: int = DEFAULTS["sanitizer"]["max_depth"]) -> str:
    """
    Clean `ytInitialPlayerResponse = {...}` assignments embedded in page markup.
    Only assignments that actually lose a property are rewritten; when none do,
    the very same string is returned.
    """
    decoder = json.JSONDecoder()
    out, pos = [], 0
    for match in INLINE_ASSIGNMENT.finditer(html):
        start = match.end()
        if start < pos:
            continue
        try:
            data, end = decoder.raw_decode(html, start)
        except ValueError:
            continue
        if not isinstance(data, dict):
            continue
        if not sanitize_count(data, max_depth=max_depth):
            continue
        # ASCII-only output survives re-encoding in whatever charset the page uses
        encoded = json.dumps(data, ensure_ascii=True, separators=(",", ":"))
        out.append(html[pos:start])
        # Keep string values from closing the surrounding <script>
        out.append(encoded.replace("</", "<\\/"))
        pos = end
    if not out:
        return html
    out.append(html[pos:])
    return "".join(out)


class ResponseSanitizer:
    """Decides which responses to touch and produces their cleaned bodies."""

    def __init__(self, config: dict | None = None):
        config = config or DEFAULTS
        self.max_depth = config.get("sanitizer", {}).get("max_depth", 15)
        self.fast_exit = config.get("hooks", {}).get("fast_exit_on_blocked", True)
        self.stats = {"inspected": 0, "sanitized": 0, "decode_failures": 0}

    def should_inspect(self, url: str, content_type: str | None) -> bool:
        if is_media_segment(url):
            return False
        if self.fast_exit and is_blocked(url):
            return False
        if is_json_type(content_type):
            return is_candidate(url)
        if is_html_type(content_type):
            return is_watch_document(url)
        return False

    def rewrite(self, body, content_type: str | None = None) -> bytes | None:
        """
        Cleaned body in the response's own charset, or None when the original
        must be passed through: undecodable, or nothing was removed.
        """
        self.stats["inspected"] += 1
        encoding = body_encoding(content_type)
        if is_html_type(content_type):
            try:
                text = body.decode(encoding) if isinstance(body, bytes) else body
            except (LookupError, UnicodeDecodeError) as e:
                self.stats["decode_failures"] += 1
                log.debug(f"Watch page not decodable as {encoding}: {e}")
                return None
            cleaned = sanitize_inline_payload(text, self.max_depth)
            if cleaned is text:
                return None
            self.stats["sanitized"] += 1
            return cleaned.encode(encoding)

        try:
            data = json.loads(body)
        except (TypeError, ValueError):
            self.stats["decode_failures"] += 1
            return None

        if not sanitize_count(data, max_depth=self.max_depth):
            return None
        ascii_only = not encoding.lower().startswith("utf")
        try:
            cleaned = json.dumps(data, ensure_ascii=ascii_only, separators=(",", ":")).encode(encoding)
        except LookupError:
            log.debug(f"Unknown charset {encoding}, passing original through")
            return None
        self.stats["sanitized"] += 1
        return cleaned

    def _cleaned_body(self, response: requests.Response) -> bytes | None:
        url = response.url or getattr(response.request, "url", "")
        content_type = response.headers.get("Content-Type")
        if not self.should_inspect(url, content_type):
            return None
        try:
            body = response.content
        except requests.RequestException as e:
            log.debug(f"Could not read body of {url}: {e}")
            return None
        return self.rewrite(body, content_type)

    def filter_response(self, response: requests.Response) -> requests.Response:
        """Return a substitute response with the cleaned body, or the original one."""
        body = self._cleaned_body(response)
        if body is None:
            return response
        log.debug(f"Sanitized response: {response.url}")
        return rebuild_response(response, body, body_encoding(response.headers.get("Content-Type")))

    def response_hook(self, response: requests.Response, *args, **kwargs):
        """requests `response` event handler; rewrites the body of `response` in place."""
        try:
            body = self._cleaned_body(response)
        except Exception as e:
            log.error(f"Response hook failed for {response.url}: {e}")
            return None
        if body is not None:
            response._content = body
            response._content_consumed = True
            response.encoding = body_encoding(response.headers.get("Content-Type"))
            response.headers["Content-Length"] = str(len(body))
            log.debug(f"Sanitized response in place: {response.url}")
        return None


def rebuild_response(original: requests.Response, body: bytes, encoding: str = "utf-8") -> requests.Response:
    """New response carrying `body` with the original status and headers."""
    response = requests.Response()
    response.status_code = original.status_code
    response.reason = original.reason
    response.headers = CaseInsensitiveDict(original.headers)
    response.headers["Content-Length"] = str(len(body))
    response._content = body
    response._content_consumed = True
    response.encoding = encoding
    response.url = original.url
    response.request = original.request
    response.history = original.history
    response.elapsed = original.elapsed
    response.cookies = original.cookies
    response.connection = getattr(original, "connection", None)
    return response


def install_session_hook(session, sanitizer: ResponseSanitizer):
    """Wrap `session.send` so callers only ever receive sanitized responses."""
    if getattr(session.send, "_tubeshield_hook", False):
        return
    original_send = session.send

    def send(request, **kwargs):
        # Media segments go straight through, body untouched and unread
        if is_media_segment(request.url):
            return original_send(request, **kwargs)
        response = original_send(request, **kwargs)
        try:
            return sanitizer.filter_response(response)
        except Exception as e:
            log.error(f"Sanitizing {request.url} failed, passing original through: {e}")
            return response

    send._tubeshield_hook = True
    session.send = send


def install_event_hook(target, sanitizer: ResponseSanitizer):
    """Register the in-place rewriter on `target.hooks['response']`."""
    handlers = target.hooks.setdefault("response", [])
    if sanitizer.response_hook not in handlers:
        handlers.append(sanitizer.response_hook)


class PayloadTrap:
    """Storage behind the `ytInitialPlayerResponse` accessor."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        self.value = None
        self.writes = 0

    def get(self):
        return self.value

    def set(self, value):
        try:
            sanitize(value, max_depth=self.max_depth)
        except Exception as e:
            log.error(f"Sanitizing {INITIAL_PLAYER_RESPONSE} failed: {e}")
        self.value = value
        self.writes += 1


def install_initial_payload_trap(window, sanitizer: ResponseSanitizer) -> PayloadTrap:
    """Turn the initial player payload global into a sanitizing accessor."""
    if window.is_accessor(INITIAL_PLAYER_RESPONSE):
        return None
    existing = window.get(INITIAL_PLAYER_RESPONSE)
    trap = PayloadTrap(sanitizer.max_depth)
    window.define_property(INITIAL_PLAYER_RESPONSE, trap.get, trap.set)
    if existing is not None:
        trap.set(existing)
    return trap


class NetworkHooks:
    """Installs every available layer; one layer failing leaves the others in place."""

    def __init__(self, config: dict | None = None):
        self.sanitizer = ResponseSanitizer(config)
        self.installed = {}
        self.trap = None

    def install(self, window=None, session=None, event_target=None) -> dict:
        layers = (
            ("initial_payload", install_initial_payload_trap, window),
            ("session", install_session_hook, session),
            ("events", install_event_hook, event_target),
        )
        for name, installer, target in layers:
            if target is None:
                log.debug(f"No target for {name} hook, skipping")
                continue
            try:
                result = installer(target, self.sanitizer)
                if name == "initial_payload" and result is not None:
                    self.trap = result
                self.installed[name] = True
            except Exception as e:
                log.error(f"Failed to hook {name}: {e}")
                self.installed[name] = False
        return self.installed
