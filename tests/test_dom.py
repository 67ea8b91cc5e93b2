import pytest

from tubeshield.dom import Document, PageGlobals, is_watch_page, is_youtube_page, query_param


def test_page_globals_accessor():
    window = PageGlobals(plain=1)
    stored = []
    window.define_property("trap", lambda: stored[-1] if stored else None, stored.append)

    window["trap"] = "a"
    window["trap"] = "b"

    assert window["trap"] == "b"
    assert stored == ["a", "b"]
    assert window.is_accessor("trap")
    assert not window.is_accessor("plain")
    assert set(window) == {"plain", "trap"}


def test_read_only_property_rejects_writes():
    window = PageGlobals()
    window.define_property("fixed", lambda: 42)
    with pytest.raises(TypeError):
        window["fixed"] = 1
    assert window["fixed"] == 42


def test_define_property_replaces_plain_value():
    window = PageGlobals(value=1)
    window.define_property("value", lambda: 2)
    assert window["value"] == 2
    assert len(window) == 1


@pytest.mark.parametrize("url, youtube, watch", [
    ("https://www.youtube.com/watch?v=x", True, True),
    ("https://m.youtube.com/watch?v=x", True, True),
    ("https://youtube.com/results?search_query=x", True, False),
    ("https://www.youtube.com/watch", True, False),
    ("https://notyoutube.com/watch?v=x", False, True),
    ("about:blank", False, False),
])
def test_page_kinds(url, youtube, watch):
    assert is_youtube_page(url) is youtube
    assert is_watch_page(url) is watch


def test_query_param():
    assert query_param("https://www.youtube.com/watch?v=abc&t=90s", "t") == "90s"
    assert query_param("https://www.youtube.com/watch?v=abc", "t") is None


def test_mutations_in_one_turn_arrive_as_one_batch(home_document, scheduler, contents):
    batches = []
    home_document.observe(home_document.body, batches.append, subtree=True)

    home_document.append(contents, "<p>one</p>")
    home_document.append(contents, "<p>two</p>")
    assert batches == []

    scheduler.run_pending()

    assert len(batches) == 1
    assert [r.added_nodes[0].get_text() for r in batches[0]] == ["one", "two"]


def test_without_scheduler_records_arrive_immediately():
    document = Document("<html><body><div id='a'></div></body></html>")
    batches = []
    document.observe(document.body, batches.append, subtree=True)
    document.append(document.get_element_by_id("a"), "<span></span>")
    assert len(batches) == 1


def test_observer_without_subtree_ignores_descendants(home_document, scheduler, contents):
    batches = []
    home_document.observe(home_document.body, batches.append)
    home_document.append(contents, "<p></p>")
    scheduler.run_pending()
    assert batches == []


def test_disconnect_drops_queued_records(home_document, scheduler, contents):
    batches = []
    observer = home_document.observe(home_document.body, batches.append, subtree=True)
    home_document.append(contents, "<p></p>")
    observer.disconnect()
    observer.disconnect()

    scheduler.run_pending()

    assert batches == []
    assert home_document.observer_count == 0
    assert scheduler.pending == 0


def test_attribute_filter(watch_document, scheduler, player):
    batches = []
    watch_document.observe(player, batches.append, child_list=False,
                           attributes=True, attribute_filter=["class"])

    watch_document.set_attribute(player, "data-x", "1")
    watch_document.add_class(player, "ad-showing")
    watch_document.add_class(player, "ad-showing")
    scheduler.run_pending()

    assert len(batches) == 1
    [record] = batches[0]
    assert record.attribute_name == "class"
    assert record.old_value == ["html5-video-player"]


def test_visibility(home_document, contents):
    shown = home_document.append(contents, "<button>a</button>")[0]
    hidden = home_document.append(contents, '<div style="display:none"><button>b</button></div>')[0].button
    flagged = home_document.append(contents, "<button hidden>c</button>")[0]
    detached = home_document.create("<button>d</button>")

    assert home_document.is_visible(shown)
    assert not home_document.is_visible(hidden)
    assert not home_document.is_visible(flagged)
    assert not home_document.is_visible(detached)


def test_set_style_keeps_other_declarations(home_document, contents):
    home_document.set_attribute(contents, "style", "color: red")
    home_document.set_style(contents, "width", "10px")
    assert contents["style"] == "color: red; width: 10px"

    home_document.set_style(contents, "width", "20px")
    assert contents["style"] == "color: red; width: 20px"

    home_document.set_style(contents, "width", None)
    home_document.set_style(contents, "color", None)
    assert not contents.has_attr("style")


def test_remove_is_idempotent(home_document, contents):
    node = home_document.append(contents, "<p></p>")[0]
    assert home_document.remove(node)
    assert not home_document.remove(node)
    assert not home_document.is_attached(node)


def test_unsupported_selector_matches_nothing(home_document, contents):
    assert home_document.select("div[") == []
    assert home_document.select_one("div[") is None
    assert home_document.matches(contents, "div[") is False
    assert home_document.closest(contents, "div[") is None


def test_click_only_reaches_attached_nodes(home_document, contents):
    clicked = []
    home_document.on_click(clicked.append)
    button = home_document.append(contents, "<button></button>")[0]
    home_document.remove(button)
    assert home_document.click(button) is False
    assert clicked == []


def test_media_lookup_is_by_identity(watch_document):
    video = watch_document.select_one(".video-stream")
    copy = watch_document.create(str(video))
    assert watch_document.media_for(video) is not None
    assert watch_document.media_for(copy) is None


def test_create_requires_an_element(home_document):
    with pytest.raises(ValueError):
        home_document.create("just text")


def test_class_helpers(watch_document, player):
    watch_document.add_class(player, "ad-showing")
    assert watch_document.has_class(player, "ad-showing")
    assert watch_document.matches(player, "#movie_player.ad-showing")
    watch_document.remove_class(player, "ad-showing")
    assert not watch_document.has_class(player, "ad-showing")
    assert watch_document.has_class(player, "html5-video-player")


def test_media_forgotten_when_its_element_leaves(watch_document, player):
    video = watch_document.select_one(".video-stream")
    assert watch_document.media_count == 1

    watch_document.remove(player)

    assert watch_document.media_for(video) is None
    assert watch_document.media_count == 0


def test_replaced_element_drops_its_media(watch_document, player):
    watch_document.replace(player, watch_document.create("<iframe></iframe>"))
    assert watch_document.media_count == 0
