import pytest

from tubeshield.dom import Document
from tubeshield.media import MediaElement
from tubeshield.scheduler import ManualScheduler

WATCH_URL = "https://www.youtube.com/watch?v=abc123&list=PL1"
HOME_URL = "https://www.youtube.com/"

WATCH_HTML = """
<html><head><title>watch</title></head><body>
<div id="movie_player" class="html5-video-player">
  <div class="html5-video-container"><video class="video-stream html5-main-video"></video></div>
</div>
</body></html>
"""

HOME_HTML = """
<html><head><title>home</title></head><body>
<ytd-rich-grid-renderer id="grid"><div id="contents"></div></ytd-rich-grid-renderer>
</body></html>
"""


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def watch_document(scheduler):
    document = Document(WATCH_HTML, url=WATCH_URL, scheduler=scheduler)
    document.attach_media(document.select_one(".video-stream"), MediaElement(duration=15.0))
    return document


@pytest.fixture
def media(watch_document):
    return watch_document.media_for(watch_document.select_one(".video-stream"))


@pytest.fixture
def player(watch_document):
    return watch_document.get_element_by_id("movie_player")


@pytest.fixture
def home_document(scheduler):
    return Document(HOME_HTML, url=HOME_URL, scheduler=scheduler)


@pytest.fixture
def contents(home_document):
    return home_document.get_element_by_id("contents")
