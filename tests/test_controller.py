from __future__ import annotations

import itertools

import pytest

pytest.importorskip("PyQt6.QtWidgets")

from tabshell.bookmarks import BookmarkStore  # noqa: E402
from tabshell.controller import ShellController  # noqa: E402
from tabshell.ipc import Channel  # noqa: E402
from tabshell.store import KeyValueStore  # noqa: E402
from tests.fakes import FakeHost, FakeView, Recorder  # noqa: E402

BROADCASTS = ["url-update", "title-update", "tabs-updated", "bookmarks-updated", "tab-opened"]


class Shell:
    def __init__(self, tmp_path):
        self.host = FakeHost()
        self.requests = Channel("requests", queued=False)
        self.events = Channel("events", queued=False)
        self.recorder = Recorder(self.events, BROADCASTS)
        self.views = []
        self.bookmarks = BookmarkStore(KeyValueStore(str(tmp_path / "store.json")))
        self.controller = ShellController(self.host, self.requests, self.events, self.bookmarks, self._make_view)

    def _make_view(self):
        view = FakeView()
        self.views.append(view)
        return view

    def open(self, count, urls=None):
        for i in range(count):
            self.controller.new_tab(urls[i] if urls else None)
        self.recorder.clear()


@pytest.fixture
def shell(qapp, tmp_path, monkeypatch):
    ticks = itertools.count(1000)
    monkeypatch.setattr("tabshell.bookmarks._now_ms", lambda: next(ticks))
    return Shell(tmp_path)


def test_new_tab_attaches_view_beside_sidebar(shell):
    tab = shell.controller.start("https://example.com")

    view = shell.views[0]
    assert shell.host.visible == [view]
    assert view.geometry == (250, 0, 950, 800)
    assert view.loads == ["https://example.com"]
    assert shell.controller.active_index == 0
    assert shell.recorder.of("tab-opened") == [{"index": 0, "id": tab.id}]


def test_new_tab_without_url_loads_nothing_and_becomes_active(shell):
    shell.open(2)
    assert shell.views[1].loads == []
    assert shell.controller.active_index == 1
    assert shell.host.visible == [shell.views[1]]


def test_new_tab_request_from_panel(shell):
    shell.requests.send("new-tab")
    shell.requests.send("new-tab", "https://a.example")
    assert len(shell.controller.tabs) == 2
    assert shell.views[1].loads == ["https://a.example"]


def test_navigate_loads_into_active_view(shell):
    shell.open(2)
    shell.controller.switch_tab(0)
    shell.requests.send("navigate", "https://b.example")
    assert shell.views[0].loads == ["https://b.example"]
    assert shell.views[1].loads == []


def test_navigate_without_tabs_is_silent(shell):
    shell.controller.navigate("https://b.example")
    assert shell.recorder.received == []


def test_switch_tab_shows_only_target_and_reports_url(shell):
    shell.open(3, ["https://a.example", "https://b.example", "https://c.example"])

    shell.requests.send("switch-tab", 1)

    assert shell.host.visible == [shell.views[1]]
    assert shell.controller.active_index == 1
    assert shell.recorder.of("url-update") == ["https://b.example"]


@pytest.mark.parametrize("ref", [-1, 3, 99, "1", None, True, {"index": 7}])
def test_switch_tab_out_of_range_is_ignored(shell, ref):
    shell.open(3)
    shell.controller.switch_tab(ref)
    assert shell.controller.active_index == 2
    assert shell.host.visible == [shell.views[2]]
    assert shell.recorder.received == []


def test_closing_last_tab_is_refused(shell):
    shell.open(1)
    shell.requests.send("close-tab", 0)
    assert len(shell.controller.tabs) == 1
    assert not shell.views[0].released
    assert shell.host.visible == [shell.views[0]]
    assert shell.recorder.received == []


@pytest.mark.parametrize(
    ("active", "closed", "expected"),
    [
        (2, 3, 2),  # after the active tab: unchanged
        (2, 0, 1),  # before the active tab: shifts down
        (2, 2, 2),  # the active tab itself: next tab slides in
        (3, 3, 2),  # the last, active tab: clamps to the new last
        (0, 0, 0),
    ],
)
def test_close_tab_keeps_active_index_in_bounds(shell, active, closed, expected):
    shell.open(4, [f"https://{n}.example" for n in "abcd"])
    shell.controller.switch_tab(active)
    survivor = shell.controller.tabs[active] if active != closed else None
    shell.recorder.clear()

    shell.requests.send("close-tab", closed)

    tabs = shell.controller.tabs
    assert len(tabs) == 3
    assert shell.controller.active_index == expected
    assert 0 <= shell.controller.active_index < len(tabs)
    if survivor is not None:
        assert tabs[expected] is survivor
    active_view = tabs[expected].view
    assert shell.host.visible == [active_view]
    assert shell.recorder.received == [
        ("url-update", active_view.current_url()),
        ("tabs-updated", expected),
    ]


def test_close_tab_releases_the_view(shell):
    shell.open(2)
    closed_view = shell.views[0]
    shell.controller.close_tab(0)
    assert closed_view.released
    assert closed_view not in shell.host.visible


def test_close_out_of_range_is_ignored(shell):
    shell.open(2)
    shell.controller.close_tab(5)
    assert len(shell.controller.tabs) == 2
    assert shell.recorder.received == []


def test_stale_tab_id_is_ignored_instead_of_hitting_a_shifted_tab(shell):
    shell.open(3)
    first_id = shell.controller.tabs[0].id
    shell.controller.close_tab(0)
    shell.recorder.clear()

    # The panel still thinks the closed tab lives at index 0
    shell.requests.send("close-tab", {"index": 0, "id": first_id})

    assert len(shell.controller.tabs) == 2
    assert shell.recorder.received == []


def test_id_reference_follows_the_tab_after_indices_shift(shell):
    shell.open(3)
    last_id = shell.controller.tabs[2].id
    shell.controller.close_tab(0)

    shell.requests.send("switch-tab", {"index": 2, "id": last_id})

    assert shell.controller.active_index == 1
    assert shell.controller.active_tab.id == last_id


def test_history_navigation_only_when_available(shell):
    shell.open(1)
    view = shell.views[0]
    view.url = "https://b.example"

    shell.requests.send("go-back")
    shell.requests.send("go-forward")
    assert view.url == "https://b.example"

    view.back_history.append("https://a.example")
    shell.requests.send("go-back")
    assert view.url == "https://a.example"
    shell.requests.send("go-forward")
    assert view.url == "https://b.example"


def test_address_changes_are_debounced_and_only_reported_for_active_tab(shell):
    shell.open(2)
    background, active = shell.controller.tabs

    active.view.address_changed.emit("https://a.example/1")
    active.view.address_changed.emit("https://a.example/2")
    background.view.address_changed.emit("https://bg.example")
    assert shell.recorder.of("url-update") == []

    for tab in (background, active):
        tab.debouncers[0].flush()
    assert shell.recorder.of("url-update") == ["https://a.example/2"]


def test_title_change_reports_current_position_and_updates_label(shell):
    shell.open(3)
    tab = shell.controller.tabs[2]
    tab.view.url = "https://www.example.com/"
    shell.controller.close_tab(0)
    shell.recorder.clear()

    tab.view.title_changed.emit("Example Domain")
    tab.debouncers[1].flush()

    assert shell.recorder.of("title-update") == [
        {"index": 1, "title": "Example Domain", "url": "https://www.example.com/"}
    ]
    assert tab.label == "Example"


def test_closed_tab_emits_nothing(shell):
    shell.open(2)
    tab = shell.controller.tabs[1]
    tab.view.title_changed.emit("Late title")
    debouncers = list(tab.debouncers)
    shell.controller.close_tab(1)
    shell.recorder.clear()

    for debouncer in debouncers:
        debouncer.flush()
    tab.view.title_changed.emit("Even later")
    assert shell.recorder.received == []


def test_page_opened_window_becomes_a_new_tab(shell):
    shell.open(1)
    new_view = shell.views[0].window_opener()
    assert new_view is shell.views[1]
    assert shell.controller.active_index == 1
    assert shell.recorder.of("tab-opened") == [{"index": 1, "id": shell.controller.tabs[1].id}]


def test_resize_relayouts_every_view(shell):
    shell.open(2)
    shell.host.width, shell.host.height = 1000, 600
    shell.host.resized.emit()
    shell.controller._relayout.flush()
    assert [v.geometry for v in shell.views] == [(250, 0, 750, 600)] * 2


def test_get_bookmarks_replies_immediately(shell):
    shell.bookmarks.add("https://a.example", "A")
    shell.requests.send("get-bookmarks")
    assert shell.recorder.of("bookmarks-updated") == [[{"id": 1000, "url": "https://a.example", "title": "A"}]]


def test_bookmark_mutations_coalesce_into_one_broadcast(shell):
    shell.requests.send("add-bookmark", {"url": "https://a.example", "title": "A"})
    shell.requests.send("add-bookmark", {"url": "https://b.example", "title": "B"})
    shell.requests.send("update-bookmark", {"id": 1000, "new_title": "Alpha"})
    assert shell.recorder.of("bookmarks-updated") == []

    shell.controller._bookmarks_changed.flush()
    assert shell.recorder.of("bookmarks-updated") == [[
        {"id": 1000, "url": "https://a.example", "title": "Alpha"},
        {"id": 1001, "url": "https://b.example", "title": "B"},
    ]]


def test_untitled_bookmark_takes_the_active_tab_label(shell):
    shell.open(1)
    tab = shell.controller.active_tab
    tab.view.url = "https://news.example.org/"
    tab.view.title_changed.emit("Front page")
    tab.debouncers[1].flush()

    shell.requests.send("add-bookmark", {"url": "https://news.example.org/", "title": ""})
    assert shell.bookmarks.all() == [{"id": 1000, "url": "https://news.example.org/", "title": "News"}]


def test_add_then_remove_bookmark_round_trip(shell):
    shell.requests.send("add-bookmark", {"url": "https://a.example", "title": "A"})
    before = shell.bookmarks.all()
    shell.requests.send("add-bookmark", {"url": "https://b.example", "title": "B"})
    shell.requests.send("remove-bookmark", 1001)
    shell.controller._bookmarks_changed.flush()
    assert shell.bookmarks.all() == before
    assert shell.recorder.of("bookmarks-updated") == [before]


@pytest.mark.parametrize("new_title", ["", "   ", "A"])
def test_noop_rename_fires_no_broadcast(shell, new_title):
    shell.bookmarks.add("https://a.example", "A")
    shell.requests.send("update-bookmark", {"id": 1000, "new_title": new_title})
    assert not shell.controller._bookmarks_changed.pending
    assert shell.bookmarks.all()[0]["title"] == "A"


def test_shutdown_releases_views_and_ignores_later_requests(shell):
    shell.open(2)
    shell.controller.shutdown()
    assert all(view.released for view in shell.views)
    assert shell.controller.tabs == ()

    shell.requests.send("new-tab")
    assert shell.controller.tabs == ()
