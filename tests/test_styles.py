from tubeshield.dom import Document
from tubeshield.signatures import STYLE_ELEMENT_ID
from tubeshield.styles import AD_HIDING_CSS, ensure_styles, inject_styles


def test_injected_once(home_document):
    first = inject_styles(home_document)
    second = inject_styles(home_document)

    assert first is second
    assert len(home_document.select(f"#{STYLE_ELEMENT_ID}")) == 1
    assert first.parent is home_document.head
    assert "ytd-ad-slot-renderer" in first.string


def test_root_used_without_head():
    document = Document("<html><body></body></html>")
    style = inject_styles(document)
    assert style.parent is document.root


def test_removed_marker_hides_grid_items():
    assert "ytd-rich-item-renderer[data-sg-ad-removed]" in AD_HIDING_CSS


def test_no_broad_label_rules():
    assert 'aria-label*="ad"' not in AD_HIDING_CSS


def test_ensure_restores_dropped_block(home_document):
    assert ensure_styles(home_document) is True
    assert ensure_styles(home_document) is False

    home_document.remove(home_document.get_element_by_id(STYLE_ELEMENT_ID))
    assert ensure_styles(home_document) is True
    assert home_document.get_element_by_id(STYLE_ELEMENT_ID) is not None
