from __future__ import annotations

from newshub.analytics import EventTracker
from newshub.datamodels import Article, get_country


def article():
    return Article(url="https://a/1", title="Story", source_name="X", published_at="")


def test_events_are_logged(caplog):
    tracker = EventTracker()
    with caplog.at_level("INFO", logger="newshub"):
        tracker.track_search("space", 3)
        tracker.track_app_open()
    assert "search_performed" in caplog.text
    assert "'result_count': 3" in caplog.text
    assert "Event: app_open" in caplog.text


def test_article_and_country_events(caplog):
    tracker = EventTracker()
    with caplog.at_level("INFO", logger="newshub"):
        tracker.track_article_shared(article(), platform="browser")
        tracker.track_country_changed(get_country("gb"))
        tracker.track_setting_changed("dark_mode", True)
    assert "'platform': 'browser'" in caplog.text
    assert "'country_code': 'gb'" in caplog.text
    assert "'value': 'True'" in caplog.text


def test_disabled_tracker_logs_nothing(caplog):
    tracker = EventTracker(enabled=False)
    with caplog.at_level("DEBUG", logger="newshub"):
        tracker.track_article_view(article(), category="science")
        tracker.track_error("HttpError", "HTTP 500", "headlines")
        tracker.track_screen_view("settings", "SettingsScreen")
    assert caplog.records == []
