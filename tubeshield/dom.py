"""
TubeShield DOM — The live page as the agent sees it.

A `Document` wraps a BeautifulSoup tree together with the page globals and
the page URL. Hosts apply their changes through the mutation methods here so
that observers get notified the same way a browser's mutation observers would:
records are queued per observer and delivered as one batch per scheduler turn.
"""

import logging
import re
from collections.abc import MutableMapping
from urllib.parse import parse_qs, urlsplit

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

log = logging.getLogger("tubeshield.dom")

DISPLAY_NONE = re.compile(r"display\s*:\s*none", re.I)


def is_youtube_page(url: str) -> bool:
    hostname = urlsplit(url or "").hostname or ""
    return hostname == "youtube.com" or hostname.endswith(".youtube.com")


def is_watch_page(url: str) -> bool:
    parts = urlsplit(url or "")
    return parts.path == "/watch" and "v" in parse_qs(parts.query)


def query_param(url: str, name: str) -> str | None:
    values = parse_qs(urlsplit(url or "").query).get(name)
    return values[0] if values else None


class PageGlobals(MutableMapping):
    """
    The page's global namespace. Keys can be turned into accessors with
    `define_property`, after which reads and writes go through the given
    getter and setter instead of plain storage.
    """

    def __init__(self, *args, **kwargs):
        self._values = {}
        self._properties = {}
        self.update(*args, **kwargs)

    def define_property(self, name: str, getter, setter=None):
        self._values.pop(name, None)
        self._properties[name] = (getter, setter)

    def is_accessor(self, name: str) -> bool:
        return name in self._properties

    def __getitem__(self, name):
        if name in self._properties:
            return self._properties[name][0]()
        return self._values[name]

    def __setitem__(self, name, value):
        if name in self._properties:
            setter = self._properties[name][1]
            if setter is None:
                raise TypeError(f"Cannot assign to read-only property {name!r}")
            setter(value)
        else:
            self._values[name] = value

    def __delitem__(self, name):
        if name in self._properties:
            del self._properties[name]
        else:
            del self._values[name]

    def __iter__(self):
        yield from self._values
        yield from self._properties

    def __len__(self):
        return len(self._values) + len(self._properties)


class MutationRecord:
    def __init__(self, type: str, target, added_nodes=(), removed_nodes=(),
                 attribute_name: str | None = None, old_value=None):
        self.type = type
        self.target = target
        self.added_nodes = list(added_nodes)
        self.removed_nodes = list(removed_nodes)
        self.attribute_name = attribute_name
        self.old_value = old_value

    def __repr__(self):
        name = getattr(self.target, "name", None)
        return f"MutationRecord({self.type}, <{name}>, +{len(self.added_nodes)}, -{len(self.removed_nodes)})"


class Observer:
    """Receives batches of mutation records for one target (and optionally its subtree)."""

    def __init__(self, document, target, callback, child_list=True, subtree=False,
                 attributes=False, attribute_filter=None):
        self.document = document
        self.target = target
        self.callback = callback
        self.child_list = child_list
        self.subtree = subtree
        self.attributes = attributes
        self.attribute_filter = set(attribute_filter) if attribute_filter else None
        self.connected = True
        self._pending = []
        self._handle = None

    def wants(self, record: MutationRecord) -> bool:
        if record.type == "childList" and not self.child_list:
            return False
        if record.type == "attributes":
            if not self.attributes:
                return False
            if self.attribute_filter is not None and record.attribute_name not in self.attribute_filter:
                return False
        if record.target is self.target:
            return True
        return self.subtree and any(p is self.target for p in record.target.parents)

    def enqueue(self, record: MutationRecord):
        self._pending.append(record)
        scheduler = self.document.scheduler
        if scheduler is None:
            self.deliver()
        elif self._handle is None:
            self._handle = scheduler.call_soon(self.deliver)

    def take_records(self) -> list:
        records, self._pending = self._pending, []
        return records

    def deliver(self):
        self._handle = None
        records = self.take_records()
        if records and self.connected:
            self.callback(records)

    def disconnect(self):
        if not self.connected:
            return
        self.connected = False
        self._pending = []
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.document._observers = [o for o in self.document._observers if o is not self]


class Document:
    def __init__(self, html: str = "", url: str = "about:blank", scheduler=None, window=None):
        self.soup = BeautifulSoup(html or "<html><head></head><body></body></html>", "html.parser")
        self.url = url
        self.scheduler = scheduler
        self.window = window if window is not None else PageGlobals()
        self._observers = []
        self._click_listeners = []
        self._media = {}

    # Structure

    @property
    def root(self):
        html = self.soup.find("html")
        return html if html is not None else self.soup

    @property
    def head(self):
        return self.soup.find("head")

    @property
    def body(self):
        body = self.soup.find("body")
        return body if body is not None else self.root

    def get_element_by_id(self, element_id: str):
        return self.soup.find(id=element_id)

    def is_attached(self, tag) -> bool:
        if tag is self.soup:
            return True
        return any(p is self.soup for p in tag.parents)

    def is_visible(self, tag) -> bool:
        """Approximates `offsetParent !== null`: attached and not hidden on the way up."""
        if not self.is_attached(tag):
            return False
        for node in (tag, *tag.parents):
            if not isinstance(node, Tag):
                continue
            if node.has_attr("hidden"):
                return False
            if DISPLAY_NONE.search(node.get("style") or ""):
                return False
        return True

    # Selectors. A selector the engine cannot evaluate counts as "no match".

    def select(self, selector: str, root=None) -> list:
        try:
            return sv.select(selector, root if root is not None else self.soup)
        except Exception as e:
            log.debug(f"Selector skipped ({selector}): {e}")
            return []

    def select_one(self, selector: str, root=None):
        try:
            return sv.select_one(selector, root if root is not None else self.soup)
        except Exception as e:
            log.debug(f"Selector skipped ({selector}): {e}")
            return None

    def matches(self, tag, selector: str) -> bool:
        try:
            return sv.match(selector, tag)
        except Exception as e:
            log.debug(f"Selector skipped ({selector}): {e}")
            return False

    def closest(self, tag, selector: str):
        try:
            return sv.closest(selector, tag)
        except Exception as e:
            log.debug(f"Selector skipped ({selector}): {e}")
            return None

    # Mutation

    def create(self, markup: str):
        """Parse `markup` and return its first element, detached from any document."""
        fragment = BeautifulSoup(markup, "html.parser")
        for node in fragment.contents:
            if isinstance(node, Tag):
                return node.extract()
        raise ValueError(f"Markup contains no element: {markup[:60]!r}")

    def append(self, parent, node) -> list:
        """Append a tag or a markup fragment to `parent`. Returns the added nodes."""
        if isinstance(node, str):
            nodes = list(BeautifulSoup(node, "html.parser").contents)
        else:
            nodes = [node]
        for child in nodes:
            parent.append(child)
        self._notify(MutationRecord("childList", parent, added_nodes=nodes))
        return nodes

    def remove(self, tag) -> bool:
        """Detach `tag`. Removing an already detached node is a no-op."""
        parent = tag.parent
        if parent is None:
            return False
        tag.extract()
        self._forget_media(tag)
        self._notify(MutationRecord("childList", parent, removed_nodes=[tag]))
        return True

    def replace(self, old, new):
        parent = old.parent
        if parent is None:
            return None
        old.replace_with(new)
        self._forget_media(old)
        self._notify(MutationRecord("childList", parent, added_nodes=[new], removed_nodes=[old]))
        return new

    def set_attribute(self, tag, name: str, value):
        old = tag.get(name)
        if old == value:
            return
        tag[name] = value
        self._notify(MutationRecord("attributes", tag, attribute_name=name, old_value=old))

    def remove_attribute(self, tag, name: str):
        if not tag.has_attr(name):
            return
        old = tag[name]
        del tag[name]
        self._notify(MutationRecord("attributes", tag, attribute_name=name, old_value=old))

    def has_class(self, tag, name: str) -> bool:
        return name in (tag.get("class") or [])

    def add_class(self, tag, name: str):
        classes = list(tag.get("class") or [])
        if name not in classes:
            self.set_attribute(tag, "class", classes + [name])

    def remove_class(self, tag, name: str):
        classes = list(tag.get("class") or [])
        if name in classes:
            classes.remove(name)
            self.set_attribute(tag, "class", classes)

    def set_style(self, tag, prop: str, value: str | None):
        """Set or clear one inline style declaration."""
        declarations = [
            d.strip() for d in (tag.get("style") or "").split(";")
            if d.strip() and d.split(":", 1)[0].strip() != prop
        ]
        if value:
            declarations.append(f"{prop}: {value}")
        if declarations:
            self.set_attribute(tag, "style", "; ".join(declarations))
        else:
            self.remove_attribute(tag, "style")

    # Observation

    def observe(self, target, callback, child_list=True, subtree=False,
                attributes=False, attribute_filter=None) -> Observer:
        observer = Observer(self, target, callback, child_list=child_list, subtree=subtree,
                            attributes=attributes, attribute_filter=attribute_filter)
        self._observers.append(observer)
        return observer

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self, record: MutationRecord):
        for observer in list(self._observers):
            if observer.connected and observer.wants(record):
                observer.enqueue(record)

    # Interaction

    def on_click(self, listener):
        self._click_listeners.append(listener)

    def click(self, tag) -> bool:
        if not self.is_attached(tag):
            return False
        for listener in list(self._click_listeners):
            listener(tag)
        return True

    def attach_media(self, tag, media):
        self._media[id(tag)] = (tag, media)

    def media_for(self, tag):
        entry = self._media.get(id(tag))
        if entry is None or entry[0] is not tag:
            return None
        return entry[1]

    def _forget_media(self, node):
        """Drop attachments of `node` and its descendants once they leave the tree."""
        for key, (tag, _) in list(self._media.items()):
            if tag is node or any(p is node for p in tag.parents):
                del self._media[key]

    @property
    def media_count(self) -> int:
        return len(self._media)
