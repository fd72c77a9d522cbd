from __future__ import annotations

import json
import locale
import logging
import os
import threading
import time
from enum import IntEnum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .analytics import EventTracker
from .config import (
    DEFAULT_CATEGORIES,
    DEFAULT_COUNTRY,
    INTEREST_SUGGESTIONS,
    PREFERENCES_FILE,
    READING_HISTORY_LIMIT,
)
from .datamodels import Article, Country, HistoryEntry, get_country

logger = logging.getLogger("newshub")

Listener = Callable[[str], None]


class FontSize(IntEnum):
    SMALL = 0
    MEDIUM = 1
    LARGE = 2

    @property
    def title(self) -> str:
        return self.name.capitalize()

    @property
    def text_size(self) -> int:
        return {FontSize.SMALL: 14, FontSize.MEDIUM: 16, FontSize.LARGE: 18}[self]

    @property
    def headline_size(self) -> int:
        return {FontSize.SMALL: 18, FontSize.MEDIUM: 20, FontSize.LARGE: 24}[self]


class AppTheme(IntEnum):
    SYSTEM = 0
    LIGHT = 1
    DARK = 2
    BLUE = 3
    GREEN = 4
    ORANGE = 5

    @property
    def title(self) -> str:
        if self is AppTheme.SYSTEM:
            return "System Default"
        return self.name.capitalize()


# Keys of the persisted key-value document
class Keys:
    COUNTRY_CODE = "userCountryCode"
    DARK_MODE = "darkMode"
    NOTIFICATIONS_ENABLED = "notificationsEnabled"
    FONT_SIZE = "fontSize"
    SHOW_CATEGORIES = "showCategories"
    BOOKMARKED_ARTICLES = "bookmarkedArticles"
    INTERESTS = "interests"
    AUTO_REFRESH_INTERVAL = "autoRefreshInterval"
    READ_ARTICLES = "readArticles"
    READING_HISTORY = "readingHistory"
    APP_THEME = "appTheme"
    READING_PROGRESS = "readingProgress"


def default_country_from_locale(fallback: str = DEFAULT_COUNTRY) -> str:
    """Region of the process locale when it is a supported country."""
    try:
        language_code, _ = locale.getlocale()
    except ValueError:
        language_code = None
    if language_code and "_" in language_code:
        region = language_code.split("_", 1)[1].split(".", 1)[0]
        if get_country(region):
            return region.lower()
    return fallback


class PreferenceStore:
    """User preferences, bookmarks and reading history.

    Every mutation is applied under a lock and written to disk before it
    returns. Write failures are logged; the in-memory state still changes.
    Listeners are called with the name of the field that changed.
    """

    def __init__(
        self,
        path: str = PREFERENCES_FILE,
        default_country: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        analytics: Optional[EventTracker] = None,
    ):
        self.path = path
        self.clock = clock
        self.analytics = analytics or EventTracker()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._data: Dict[str, Any] = self._read()

        fallback = default_country_from_locale(default_country or DEFAULT_COUNTRY)
        country = get_country(self._data.get(Keys.COUNTRY_CODE)) or get_country(fallback)
        self._country: Country = country or get_country(DEFAULT_COUNTRY)
        self._dark_mode = bool(self._data.get(Keys.DARK_MODE, False))
        self._notifications_enabled = bool(self._data.get(Keys.NOTIFICATIONS_ENABLED, False))
        self._font_size = self._load_enum(FontSize, Keys.FONT_SIZE, FontSize.MEDIUM)
        self._theme = self._load_enum(AppTheme, Keys.APP_THEME, AppTheme.SYSTEM)
        self._auto_refresh_interval = self._load(Keys.AUTO_REFRESH_INTERVAL, int, 0)

        self._visible_categories: Dict[str, bool] = self._load(
            Keys.SHOW_CATEGORIES,
            lambda raw: {str(k): bool(v) for k, v in raw.items()},
            None,
        ) or {c: True for c in DEFAULT_CATEGORIES}
        self._bookmarks: List[Article] = self._load(
            Keys.BOOKMARKED_ARTICLES, lambda raw: self._decode_each(raw, Article.from_dict), []
        )
        self._interests: List[str] = self._load(
            Keys.INTERESTS, lambda raw: [str(i) for i in raw], []
        )
        self._read_urls: Set[str] = self._load(Keys.READ_ARTICLES, set, set())
        self._history: List[HistoryEntry] = self._load(
            Keys.READING_HISTORY, lambda raw: self._decode_each(raw, HistoryEntry.from_dict), []
        )[:READING_HISTORY_LIMIT]
        self._progress: Dict[str, float] = self._load(
            Keys.READING_PROGRESS, lambda raw: {k: float(v) for k, v in raw.items()}, {}
        )

    # --- persistence ---
    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (IOError, json.JSONDecodeError) as e:
            logger.warning("Failed to read preferences from %s: %s", self.path, e)
            return {}

    def _load(self, key: str, decode: Callable[[Any], Any], default: Any) -> Any:
        if key not in self._data:
            return default
        try:
            return decode(self._data[key])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring invalid stored value for %s: %s", key, e)
            return default

    def _decode_each(self, raw: Iterable[Any], decode: Callable[[Any], Any]) -> List[Any]:
        items = []
        for item in raw:
            try:
                items.append(decode(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping invalid stored item: %s", e)
        return items

    def _load_enum(self, enum_class, key: str, default):
        try:
            return enum_class(int(self._data.get(key, default)))
        except (TypeError, ValueError):
            return default

    def _persist(self, **values: Any) -> None:
        self._data.update(values)
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(self._data, f)
            os.replace(tmp_path, self.path)
        except (IOError, OSError, TypeError) as e:
            logger.error("Failed to save preferences to %s: %s", self.path, e)

    # --- change notification ---
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, field_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(field_name)
            except Exception:
                logger.exception("Preference listener failed for %s", field_name)

    # --- scalar settings ---
    @property
    def selected_country(self) -> Country:
        return self._country

    @selected_country.setter
    def selected_country(self, code: str) -> None:
        country = get_country(code)
        if country is None:
            raise ValueError(f"Unsupported country: {code}")
        with self._lock:
            self._country = country
            self._persist(**{Keys.COUNTRY_CODE: country.code})
        self.analytics.track_country_changed(country)
        self._notify("selected_country")

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    @dark_mode.setter
    def dark_mode(self, value: bool) -> None:
        with self._lock:
            self._dark_mode = bool(value)
            self._persist(**{Keys.DARK_MODE: self._dark_mode})
        self.analytics.track_setting_changed("dark_mode", self._dark_mode)
        self._notify("dark_mode")

    @property
    def notifications_enabled(self) -> bool:
        return self._notifications_enabled

    @notifications_enabled.setter
    def notifications_enabled(self, value: bool) -> None:
        with self._lock:
            self._notifications_enabled = bool(value)
            self._persist(**{Keys.NOTIFICATIONS_ENABLED: self._notifications_enabled})
        self.analytics.track_setting_changed("notifications_enabled", self._notifications_enabled)
        self._notify("notifications_enabled")

    @property
    def font_size(self) -> FontSize:
        return self._font_size

    @font_size.setter
    def font_size(self, value: FontSize) -> None:
        with self._lock:
            self._font_size = FontSize(value)
            self._persist(**{Keys.FONT_SIZE: int(self._font_size)})
        self.analytics.track_setting_changed("font_size", self._font_size.title)
        self._notify("font_size")

    @property
    def theme(self) -> AppTheme:
        return self._theme

    @theme.setter
    def theme(self, value: AppTheme) -> None:
        with self._lock:
            self._theme = AppTheme(value)
            self._persist(**{Keys.APP_THEME: int(self._theme)})
        self.analytics.track_setting_changed("theme", self._theme.title)
        self._notify("theme")

    @property
    def auto_refresh_interval(self) -> int:
        """Minutes between automatic refreshes; 0 disables them."""
        return self._auto_refresh_interval

    @auto_refresh_interval.setter
    def auto_refresh_interval(self, minutes: int) -> None:
        minutes = int(minutes)
        if minutes < 0:
            raise ValueError("auto refresh interval cannot be negative")
        with self._lock:
            self._auto_refresh_interval = minutes
            self._persist(**{Keys.AUTO_REFRESH_INTERVAL: minutes})
        self.analytics.track_setting_changed("auto_refresh_interval", minutes)
        self._notify("auto_refresh_interval")

    # --- categories ---
    def all_categories(self) -> List[str]:
        return list(DEFAULT_CATEGORIES)

    @property
    def visible_categories(self) -> Dict[str, bool]:
        with self._lock:
            return dict(self._visible_categories)

    def visible_category_names(self) -> List[str]:
        with self._lock:
            return [c for c, visible in self._visible_categories.items() if visible]

    def toggle_category_visibility(self, category: str, visible: bool) -> None:
        with self._lock:
            self._visible_categories[category] = bool(visible)
            self._persist(**{Keys.SHOW_CATEGORIES: dict(self._visible_categories)})
        self._notify("visible_categories")

    # --- bookmarks ---
    @property
    def bookmarks(self) -> List[Article]:
        with self._lock:
            return list(self._bookmarks)

    def is_bookmarked(self, article: Article) -> bool:
        with self._lock:
            return any(b.url == article.url for b in self._bookmarks)

    def _save_bookmarks(self) -> None:
        self._persist(**{Keys.BOOKMARKED_ARTICLES: [a.to_dict() for a in self._bookmarks]})

    def add_bookmark(self, article: Article) -> None:
        with self._lock:
            if self.is_bookmarked(article):
                return
            self._bookmarks.append(article)
            self._save_bookmarks()
        self.analytics.track_article_bookmarked(article)
        self._notify("bookmarks")

    def remove_bookmark(self, article_or_url) -> None:
        url = getattr(article_or_url, "url", article_or_url)
        with self._lock:
            self._bookmarks = [b for b in self._bookmarks if b.url != url]
            self._save_bookmarks()
        self._notify("bookmarks")

    def toggle_bookmark(self, article: Article) -> bool:
        """Bookmark or un-bookmark an article; returns the new membership."""
        with self._lock:
            if self.is_bookmarked(article):
                self._bookmarks = [b for b in self._bookmarks if b.url != article.url]
                bookmarked = False
            else:
                self._bookmarks.append(article)
                bookmarked = True
            self._save_bookmarks()
        if bookmarked:
            self.analytics.track_article_bookmarked(article)
        self._notify("bookmarks")
        return bookmarked

    # --- read state and history ---
    @property
    def read_article_urls(self) -> Set[str]:
        with self._lock:
            return set(self._read_urls)

    @property
    def reading_history(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._history)

    def is_read(self, article: Article) -> bool:
        with self._lock:
            return article.url in self._read_urls

    def _save_history(self) -> None:
        self._persist(
            **{
                Keys.READ_ARTICLES: sorted(self._read_urls),
                Keys.READING_HISTORY: [h.to_dict() for h in self._history],
                Keys.READING_PROGRESS: dict(self._progress),
            }
        )

    def mark_as_read(self, article: Article) -> HistoryEntry:
        entry = HistoryEntry(article=article, timestamp=self.clock())
        with self._lock:
            self._read_urls.add(article.url)
            self._history.insert(0, entry)
            del self._history[READING_HISTORY_LIMIT:]
            self._prune_progress()
            self._save_history()
        self.analytics.track_article_view(article)
        self._notify("reading_history")
        return entry

    def update_progress(self, url: str, progress: float) -> float:
        progress = min(1.0, max(0.0, float(progress)))
        with self._lock:
            self._progress[url] = progress
            for entry in self._history:
                if entry.article.url == url:
                    entry.progress = progress
                    break
            self._prune_progress()
            self._save_history()
        self._notify("reading_progress")
        return progress

    def _prune_progress(self) -> None:
        # Progress is only kept for urls still in the history
        urls = {entry.article.url for entry in self._history}
        self._progress = {url: p for url, p in self._progress.items() if url in urls}

    def progress_for(self, url: str) -> float:
        with self._lock:
            return self._progress.get(url, 0.0)

    def clear_reading_history(self) -> None:
        with self._lock:
            self._history.clear()
            self._read_urls.clear()
            self._progress.clear()
            self._save_history()
        self._notify("reading_history")

    # --- interests ---
    @property
    def interests(self) -> List[str]:
        with self._lock:
            return list(self._interests)

    def is_interest_selected(self, interest: str) -> bool:
        with self._lock:
            return interest in self._interests

    def toggle_interest(self, interest: str) -> bool:
        """Add or remove an interest; returns whether it is now selected."""
        with self._lock:
            if interest in self._interests:
                self._interests.remove(interest)
                selected = False
            else:
                self._interests.append(interest)
                selected = True
            self._persist(**{Keys.INTERESTS: list(self._interests)})
        if selected:
            self.analytics.track_interest_selected(interest)
        else:
            self.analytics.track_interest_removed(interest)
        self._notify("interests")
        return selected

    def clear_all_interests(self) -> None:
        with self._lock:
            self._interests.clear()
            self._persist(**{Keys.INTERESTS: []})
        self._notify("interests")

    def suggested_interests(self, category: Optional[str] = None) -> List[str]:
        if category and category.lower() in INTEREST_SUGGESTIONS:
            return sorted(INTEREST_SUGGESTIONS[category.lower()])
        suggestions: Set[str] = set()
        for topics in INTEREST_SUGGESTIONS.values():
            suggestions.update(topics)
        return sorted(suggestions)
