from __future__ import annotations

import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock, patch

from newshub.datamodels import Article
from newshub.preferences import AppTheme, FontSize, Keys, PreferenceStore


def article(n):
    return Article(url=f"https://a/{n}", title=f"Story {n}", source_name="X", published_at="")


@patch("newshub.preferences.default_country_from_locale", side_effect=lambda fallback: fallback)
class TestPreferenceStore(unittest.TestCase):
    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.path = str(Path(self.tmp.name) / "preferences.json")

    def tearDown(self):
        self.tmp.cleanup()

    def store(self, **kwargs):
        return PreferenceStore(path=self.path, **kwargs)

    def test_defaults(self, _locale):
        prefs = self.store(default_country="gb")
        self.assertEqual(prefs.selected_country.code, "gb")
        self.assertFalse(prefs.dark_mode)
        self.assertEqual(prefs.font_size, FontSize.MEDIUM)
        self.assertEqual(prefs.theme, AppTheme.SYSTEM)
        self.assertEqual(prefs.auto_refresh_interval, 0)
        self.assertEqual(prefs.bookmarks, [])
        self.assertIn("technology", prefs.visible_category_names())

    def test_persistence_round_trip(self, _locale):
        prefs = self.store()
        prefs.selected_country = "IN"
        prefs.dark_mode = True
        prefs.font_size = FontSize.LARGE
        prefs.theme = AppTheme.GREEN
        prefs.auto_refresh_interval = 15
        prefs.toggle_interest("space")
        prefs.add_bookmark(article(1))
        prefs.toggle_category_visibility("sports", False)
        prefs.mark_as_read(article(2))
        prefs.update_progress("https://a/2", 0.5)

        reloaded = self.store()
        self.assertEqual(reloaded.selected_country.code, "in")
        self.assertTrue(reloaded.dark_mode)
        self.assertEqual(reloaded.font_size, FontSize.LARGE)
        self.assertEqual(reloaded.theme, AppTheme.GREEN)
        self.assertEqual(reloaded.auto_refresh_interval, 15)
        self.assertEqual(reloaded.interests, ["space"])
        self.assertEqual(reloaded.bookmarks, [article(1)])
        self.assertNotIn("sports", reloaded.visible_category_names())
        self.assertTrue(reloaded.is_read(article(2)))
        self.assertEqual(reloaded.reading_history[0].progress, 0.5)
        self.assertEqual(reloaded.progress_for("https://a/2"), 0.5)

        with open(self.path) as f:
            data = json.load(f)
        self.assertEqual(data[Keys.COUNTRY_CODE], "in")
        self.assertEqual(data[Keys.BOOKMARKED_ARTICLES][0]["url"], "https://a/1")

    def test_unsupported_country_is_rejected(self, _locale):
        prefs = self.store(default_country="us")
        with self.assertRaises(ValueError):
            prefs.selected_country = "xx"
        self.assertEqual(prefs.selected_country.code, "us")

    def test_negative_refresh_interval_is_rejected(self, _locale):
        prefs = self.store()
        with self.assertRaises(ValueError):
            prefs.auto_refresh_interval = -5

    def test_toggle_bookmark_twice_restores_state(self, _locale):
        prefs = self.store()
        self.assertTrue(prefs.toggle_bookmark(article(1)))
        self.assertTrue(prefs.is_bookmarked(article(1)))
        self.assertFalse(prefs.toggle_bookmark(article(1)))
        self.assertEqual(prefs.bookmarks, [])

    def test_add_bookmark_is_idempotent(self, _locale):
        prefs = self.store()
        prefs.add_bookmark(article(1))
        prefs.add_bookmark(article(1))
        self.assertEqual(len(prefs.bookmarks), 1)
        prefs.remove_bookmark("https://a/1")
        self.assertEqual(prefs.bookmarks, [])

    def test_toggle_interest_twice_restores_state(self, _locale):
        prefs = self.store()
        self.assertTrue(prefs.toggle_interest("AI"))
        self.assertFalse(prefs.toggle_interest("AI"))
        self.assertEqual(prefs.interests, [])

    def test_mark_as_read_is_idempotent_on_read_set(self, _locale):
        prefs = self.store()
        prefs.mark_as_read(article(1))
        prefs.mark_as_read(article(1))
        self.assertEqual(prefs.read_article_urls, {"https://a/1"})
        self.assertEqual(len(prefs.reading_history), 2)

    def test_history_is_capped(self, _locale):
        prefs = self.store()
        for n in range(101):
            prefs.mark_as_read(article(n))
        history = prefs.reading_history
        self.assertEqual(len(history), 100)
        self.assertEqual(history[0].article, article(100))
        self.assertNotIn(article(0), [entry.article for entry in history])

    def test_progress_is_clamped(self, _locale):
        prefs = self.store()
        prefs.mark_as_read(article(1))
        self.assertEqual(prefs.update_progress("https://a/1", 1.7), 1.0)
        self.assertEqual(prefs.update_progress("https://a/1", -0.2), 0.0)
        self.assertEqual(prefs.reading_history[0].progress, 0.0)

    def test_clear_reading_history(self, _locale):
        prefs = self.store()
        prefs.mark_as_read(article(1))
        prefs.clear_reading_history()
        self.assertEqual(prefs.reading_history, [])
        self.assertFalse(prefs.is_read(article(1)))

    def test_listeners_are_notified(self, _locale):
        prefs = self.store()
        changes = []
        unsubscribe = prefs.subscribe(changes.append)
        prefs.dark_mode = True
        prefs.toggle_bookmark(article(1))
        unsubscribe()
        prefs.toggle_interest("space")
        self.assertEqual(changes, ["dark_mode", "bookmarks"])

    def test_write_failure_is_logged_and_state_kept(self, _locale):
        prefs = self.store()
        with patch("newshub.preferences.os.replace", side_effect=OSError("disk full")):
            with self.assertLogs("newshub", level="ERROR"):
                prefs.dark_mode = True
        self.assertTrue(prefs.dark_mode)

    def test_corrupt_file_falls_back_to_defaults(self, _locale):
        with open(self.path, "w") as f:
            f.write("{not json")
        prefs = self.store(default_country="us")
        self.assertEqual(prefs.bookmarks, [])
        self.assertEqual(prefs.selected_country.code, "us")

    def test_suggested_interests(self, _locale):
        prefs = self.store()
        self.assertIn("cricket", prefs.suggested_interests("Sports"))
        self.assertNotIn("cricket", prefs.suggested_interests("business"))
        self.assertIn("AI", prefs.suggested_interests())

    def test_progress_updates_most_recent_history_row(self, _locale):
        prefs = self.store()
        prefs.mark_as_read(article(1))
        prefs.mark_as_read(article(2))
        prefs.mark_as_read(article(1))
        prefs.update_progress("https://a/1", 0.4)
        history = prefs.reading_history
        self.assertEqual(history[0].article, article(1))
        self.assertEqual(history[0].progress, 0.4)
        self.assertEqual(history[2].article, article(1))
        self.assertEqual(history[2].progress, 0.0)

    def test_progress_is_dropped_with_its_history_entry(self, _locale):
        prefs = self.store()
        prefs.mark_as_read(article(0))
        prefs.update_progress("https://a/0", 0.5)
        for n in range(1, 101):
            prefs.mark_as_read(article(n))
        self.assertEqual(prefs.progress_for("https://a/0"), 0.0)
        with open(self.path) as f:
            stored = json.load(f)
        self.assertNotIn("https://a/0", stored[Keys.READING_PROGRESS])

    def test_invalid_stored_bookmark_is_skipped(self, _locale):
        good = article(1)
        with open(self.path, "w") as f:
            json.dump({Keys.BOOKMARKED_ARTICLES: [good.to_dict(), {"description": "no url"}]}, f)
        with self.assertLogs("newshub", level="WARNING"):
            prefs = self.store()
        self.assertEqual(prefs.bookmarks, [good])

        prefs.dark_mode = True
        self.assertEqual(self.store().bookmarks, [good])

    def test_mutations_are_tracked(self, _locale):
        analytics = MagicMock()
        prefs = self.store(analytics=analytics)
        prefs.toggle_interest("space")
        prefs.toggle_interest("space")
        prefs.selected_country = "gb"
        prefs.toggle_bookmark(article(1))
        prefs.toggle_bookmark(article(1))

        analytics.track_interest_selected.assert_called_once_with("space")
        analytics.track_interest_removed.assert_called_once_with("space")
        analytics.track_country_changed.assert_called_once_with(prefs.selected_country)
        analytics.track_article_bookmarked.assert_called_once_with(article(1))


if __name__ == "__main__":
    unittest.main()
