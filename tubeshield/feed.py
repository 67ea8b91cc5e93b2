"""
TubeShield Feed — Removes sponsored items from home, search and browse feeds
as the host inserts them.

Every inserted subtree is classified by an ordered list of predicates over a
normalized view of each candidate node. A sponsored node takes its grid item
with it (and the enclosing section, once nothing organic is left there). The
grid item is hidden through a marker attribute first and detached a moment
later, and all layout recovery for a burst collapses into one debounced
reflow.
"""

import enum
import logging
import re
from functools import cached_property

from bs4 import Tag

from .config import DEFAULTS
from .scheduler import Debouncer
from .signatures import (
    BADGE_SELECTORS,
    FEED_AD_ANCESTORS,
    FEED_AD_DESCENDANTS,
    FEED_AD_SELECTORS,
    FEED_AD_TAGS,
    GRID_ITEM_SELECTOR,
    GRID_SELECTOR,
    REMOVED_MARKER,
    SECTION_SELECTOR,
    SPONSOR_LABEL_TOKENS,
    SPONSOR_TEXT_MARKERS,
)

log = logging.getLogger("tubeshield.feed")

WORD = re.compile(r"[a-z]+")


class FeedClass(enum.Enum):
    SPONSORED = "sponsored"
    ORGANIC = "organic"


class NodeView:
    """What the predicates look at: tag name, ancestor chain, text, label and badges."""

    def __init__(self, tag, document):
        self.tag = tag
        self.document = document
        self.name = tag.name
        self.label = tag.get("aria-label") or ""

    @cached_property
    def ancestors(self) -> list:
        return [p.name for p in self.tag.parents if isinstance(p, Tag)]

    @cached_property
    def badge_texts(self) -> list:
        selector = ", ".join(BADGE_SELECTORS)
        texts = []
        for badge in self.document.select(selector, root=self.tag):
            # A badge often holds only an icon; its label sits beside it
            holder = badge.parent if badge.parent is not None else badge
            texts.append(holder.get_text(" ", strip=True))
        return texts

    @property
    def has_badge(self) -> bool:
        return bool(self.badge_texts)


class Predicate:
    name = "predicate"
    explicit = False

    def matches(self, view: NodeView) -> bool:
        raise NotImplementedError


class TagPredicate(Predicate):
    name = "tag"
    explicit = True

    def __init__(self, tags=FEED_AD_TAGS):
        self.tags = frozenset(tags)

    def matches(self, view):
        return view.name in self.tags


class AncestorPredicate(Predicate):
    name = "ancestor"
    explicit = True

    def __init__(self, tags=FEED_AD_ANCESTORS):
        self.tags = frozenset(tags)

    def matches(self, view):
        return any(name in self.tags for name in view.ancestors)


class BadgeTextPredicate(Predicate):
    name = "badge-text"

    def __init__(self, markers=SPONSOR_TEXT_MARKERS):
        self.markers = tuple(markers)

    def matches(self, view):
        if not view.has_badge:
            return False
        return any(m in text for text in view.badge_texts for m in self.markers)


class AriaLabelPredicate(Predicate):
    name = "aria-label"

    def __init__(self, tokens=SPONSOR_LABEL_TOKENS):
        self.tokens = frozenset(tokens)

    def matches(self, view):
        if not view.label:
            return False
        return not self.tokens.isdisjoint(WORD.findall(view.label.lower()))


DEFAULT_PREDICATES = (
    TagPredicate(),
    AncestorPredicate(),
    BadgeTextPredicate(),
    AriaLabelPredicate(),
)


class Classification:
    def __init__(self, kind: FeedClass, predicate: Predicate | None = None):
        self.kind = kind
        self.predicate = predicate

    @property
    def sponsored(self) -> bool:
        return self.kind is FeedClass.SPONSORED

    @property
    def explicit(self) -> bool:
        return self.predicate is not None and self.predicate.explicit

    def __repr__(self):
        reason = f" by {self.predicate.name}" if self.predicate else ""
        return f"<Classification {self.kind.value}{reason}>"


def classify(tag, document, predicates=DEFAULT_PREDICATES) -> Classification:
    """First matching predicate wins; no match means organic."""
    view = NodeView(tag, document)
    for predicate in predicates:
        if predicate.matches(view):
            return Classification(FeedClass.SPONSORED, predicate)
    return Classification(FeedClass.ORGANIC)


class FeedMonitor:
    def __init__(self, document, scheduler, config: dict | None = None, predicates=DEFAULT_PREDICATES):
        self.document = document
        self.scheduler = scheduler
        settings = dict(DEFAULTS["feed"])
        settings.update((config or {}).get("feed", {}))
        self.settings = settings
        self.predicates = predicates

        self.reflow = Debouncer(scheduler, settings["reflow_debounce"], self.force_grid_reflow)
        self.reflow_count = 0
        self.stats = {"detected": 0, "items_removed": 0, "sections_removed": 0}
        self.running = False
        self._observer = None
        self._removals = []
        self._restores = []

    def start(self):
        if self.running:
            return
        self._observer = self.document.observe(
            self.document.body, self.handle_mutations, child_list=True, subtree=True
        )
        self.running = True
        self.remove_existing()

    def stop(self):
        """Disconnect and drop every pending removal and reflow. Safe to call repeatedly."""
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
        for handle in self._removals + self._restores:
            handle.cancel()
        self._removals = []
        self._restores = []
        self.reflow.cancel()
        self.running = False

    def handle_mutations(self, records):
        """One batch of mutation records is one unit of work."""
        detected = 0
        for record in records:
            if record.type != "childList":
                continue
            for node in record.added_nodes:
                if isinstance(node, Tag) and self.document.is_attached(node):
                    detected += self.process(node)
        if detected:
            self.reflow.trigger()
        return detected

    def process(self, root) -> int:
        """Classify an inserted subtree and collapse whatever is sponsored in it."""
        # Containers of many items are never judged as a whole by text heuristics
        holds_items = self.document.select_one(GRID_ITEM_SELECTOR, root=root) is not None
        if not holds_items:
            result = classify(root, self.document, self.predicates)
            # A refused heuristic match still leaves explicit ads inside to collapse
            if result.sponsored and self.collapse(root, explicit=result.explicit):
                log.info(f"Removed sponsored content: <{root.name}> ({result.predicate.name})")
                return 1

        detected = 0
        for element in self.document.select(", ".join(FEED_AD_DESCENDANTS), root=root):
            if self.collapse(element, explicit=True):
                detected += 1
        if holds_items:
            for item in self.document.select(GRID_ITEM_SELECTOR, root=root):
                if item.has_attr(REMOVED_MARKER):
                    continue
                if classify(item, self.document, self.predicates).sponsored:
                    detected += int(self.collapse(item, explicit=False))
        if detected:
            log.info(f"Removed {detected} sponsored container(s) under <{root.name}>")
        return detected

    def remove_existing(self) -> int:
        """Sweep ads that were already in the page before observation began."""
        found = 0
        for selector in FEED_AD_SELECTORS:
            for element in self.document.select(selector):
                if self.collapse(element, explicit=True):
                    found += 1
        if found:
            log.info(f"Removed {found} pre-existing ad container(s)")
            self.reflow.trigger()
        return found

    def collapse(self, tag, explicit: bool = True) -> bool:
        """
        Hide the grid item holding `tag` now and detach it after `removal_delay`.
        Without a grid item an explicit match is detached directly; heuristic
        matches are only acted on inside a grid item.
        """
        item = self.document.closest(tag, GRID_ITEM_SELECTOR)
        if item is None:
            if not explicit:
                return False
            if self.document.remove(tag):
                self.stats["detected"] += 1
                self.reflow.trigger()
                return True
            return False

        if item.has_attr(REMOVED_MARKER):
            return False
        self.stats["detected"] += 1
        self.document.set_attribute(item, REMOVED_MARKER, "true")
        handle = self.scheduler.call_later(self.settings["removal_delay"], lambda: self._remove_item(item))
        self._removals.append(handle)
        return True

    def _remove_item(self, item):
        self._removals = [h for h in self._removals if not h.cancelled]
        section = self.document.closest(item, SECTION_SELECTOR)
        remove_section = False
        if section is not None:
            others = [
                i for i in self.document.select(GRID_ITEM_SELECTOR, root=section)
                if i is not item and not i.has_attr(REMOVED_MARKER)
            ]
            remove_section = not others

        if self.document.remove(item):
            self.stats["items_removed"] += 1
        if remove_section and self.document.remove(section):
            self.stats["sections_removed"] += 1
        log.debug("Cleaned up ad container hierarchy")
        self.reflow.trigger()

    def force_grid_reflow(self):
        """Nudge every feed grid to recompute its columns on the next turn."""
        self.reflow_count += 1
        for grid in self.document.select(GRID_SELECTOR):
            self.document.set_style(grid, "grid-template-columns", "auto")
            self._restores.append(
                self.scheduler.call_soon(lambda g=grid: self.document.set_style(g, "grid-template-columns", None))
            )
        self._restores = [h for h in self._restores if not h.cancelled]
