from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import (
    Header,
    Input,
    ListItem,
    ListView,
    LoadingIndicator,
    Rule,
    Static,
    TabbedContent,
    TabPane,
)
from textual.worker import Worker, WorkerState

from .aggregator import (
    PERSONALIZED_NEWS,
    RELATED_ARTICLES,
    SEARCH_RESULTS,
    TOP_HEADLINES,
    TRENDING_TOPICS,
    NewsAggregator,
    category_feed,
    guardian_feed,
)
from .config import UI_DEFAULTS, logger
from .datamodels import Article, WeatherReport
from .messages import FeedUpdated, PreferencesChanged
from .preferences import PreferenceStore
from .scheduler import AutoRefreshScheduler
from .screens import (
    ArticleScreen,
    BookmarksScreen,
    ErrorScreen,
    HistoryScreen,
    SettingsScreen,
)
from .sources.weather import WeatherClient
from .summaries import ArticleSummarizer
from .themes import load_themes, theme_name_for
from .widgets import (
    ArticleItem,
    ErrorMessage,
    FeedSection,
    SectionListItem,
    StatusBar,
    TrendingBar,
    WeatherLine,
)

FEED_LISTS = {
    TOP_HEADLINES: "#top-list",
    PERSONALIZED_NEWS: "#foryou-list",
    SEARCH_RESULTS: "#search-list",
}

TAB_FEEDS = {
    "top-tab": TOP_HEADLINES,
    "foryou-tab": PERSONALIZED_NEWS,
    "search-tab": SEARCH_RESULTS,
}


class NewsApp(App):
    TITLE = "newshub"
    SUB_TITLE = "Headlines, categories and your interests"

    CSS_PATH = "app.css"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("R", "refresh_all", "Refresh all"),
        Binding("b", "bookmark", "Bookmark"),
        Binding("B", "show_bookmarks", "Show Bookmarks"),
        Binding("h", "show_history", "History"),
        Binding("s", "show_settings", "Settings"),
        Binding("/", "focus_search", "Search"),
    ]

    def __init__(
        self,
        preferences: PreferenceStore,
        aggregator: NewsAggregator,
        config: Optional[Dict[str, Any]] = None,
        weather: Optional[WeatherClient] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.preferences = preferences
        self.aggregator = aggregator
        self.analytics = aggregator.analytics
        self.config = config or {}
        self.weather = weather
        self.summarizer = ArticleSummarizer()
        self.scheduler = AutoRefreshScheduler(aggregator.refresh_all)
        self.sections: List[FeedSection] = []
        self.current_section: Optional[FeedSection] = None
        self._unsubscribe: List[Any] = []
        self._started_at = time.monotonic()

    @property
    def main_screen(self) -> Screen:
        return self.screen_stack[0]

    def get_keybinding_style(self) -> str:
        """Return the keybinding style for the status bar."""
        return "$accent"

    def apply_theme_styles(self, screen: Screen) -> None:
        """Apply the font size preference to a screen."""
        font = self.preferences.font_size.name.lower()
        for size in ("small", "medium", "large"):
            screen.set_class(size == font, f"font-{size}")

    def compose(self) -> ComposeResult:
        yield Header()
        with TabbedContent(id="tabs", initial="top-tab"):
            with TabPane("Top News", id="top-tab"):
                yield WeatherLine(id="weather")
                yield TrendingBar(id="trending")
                yield ListView(id="top-list")
            with TabPane("Categories", id="categories-tab"):
                with Horizontal(id="main"):
                    with Vertical(id="left"):
                        yield Static("Sections", classes="pane-title")
                        yield ListView(id="sections-list")
                    yield Rule(orientation="vertical")
                    with Vertical(id="right"):
                        yield Static("Headlines", classes="pane-title")
                        yield ListView(id="category-list")
            with TabPane("For You", id="foryou-tab"):
                yield ListView(id="foryou-list")
            with TabPane("Search", id="search-tab"):
                yield Input(placeholder="Search news...", id="search-input")
                yield ListView(id="search-list")
        yield StatusBar()

    def on_mount(self) -> None:
        self.analytics.track_app_open()
        for theme in load_themes().values():
            self.register_theme(theme)
        self._apply_theme()

        keybindings_text = self.config.get("ui", {}).get(
            "statusbar_keybindings", UI_DEFAULTS["statusbar_keybindings"]
        )
        self.query_one(StatusBar).set_keybindings(
            keybindings_text.format(color=self.get_keybinding_style())
        )

        if not self.aggregator.sources.get_all_sources():
            self.push_screen(
                ErrorScreen(
                    "No news sources configured",
                    "Add an API key to `~/.config/newshub/config.json` "
                    "or set `NEWSAPI_KEY` in the environment.",
                )
            )
            return

        self._unsubscribe.append(
            self.aggregator.subscribe(lambda feed: self.post_message(FeedUpdated(feed)))
        )
        self._unsubscribe.append(
            self.preferences.subscribe(lambda field: self.post_message(PreferencesChanged(field)))
        )
        self.scheduler.bind(self.preferences)

        self._load_sections()
        self.aggregator.fetch_top_headlines()
        self.aggregator.fetch_personalized_news()
        self._load_weather()
        self.query_one("#top-list", ListView).focus()

    def on_unmount(self) -> None:
        self.analytics.track_session_duration(int(time.monotonic() - self._started_at))
        self.scheduler.stop()
        for unsubscribe in self._unsubscribe:
            unsubscribe()

    def _apply_theme(self) -> None:
        self.theme = theme_name_for(self.preferences.theme, self.preferences.dark_mode)
        for screen in self.screen_stack:
            self.apply_theme_styles(screen)

    # --- sections ---
    def _load_sections(self) -> None:
        sections = [
            FeedSection(category.capitalize(), "category", category)
            for category in self.preferences.visible_category_names()
            if self.aggregator.sources.supports_category(category)
        ]
        if self.aggregator.sources.get_source("guardian"):
            for section in self.config.get("guardian_sections", []):
                sections.append(FeedSection(f"Guardian: {section.capitalize()}", "guardian", section))
        self.sections = sections

        view = self.main_screen.query_one("#sections-list", ListView)
        view.clear()
        for section in sections:
            view.append(SectionListItem(section))

    def _section_feed(self, section: Optional[FeedSection]) -> Optional[str]:
        if section is None:
            return None
        if section.kind == "guardian":
            return guardian_feed(section.key)
        return category_feed(section.key)

    def _load_section(self, section: FeedSection) -> None:
        self.current_section = section
        self._render_feed("#category-list", self._section_feed(section))
        if section.kind == "guardian":
            self.aggregator.fetch_guardian_section(section.key)
        else:
            self.aggregator.fetch_category_news(section.key)

    # --- weather ---
    def _load_weather(self) -> None:
        location = self.config.get("location")
        if not self.weather or not location:
            return
        self.run_worker(
            lambda: self.weather.fetch_current(location["lat"], location["lon"]),
            name="weather_loader",
            thread=True,
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "weather_loader":
            return
        if event.state is WorkerState.SUCCESS:
            report: Optional[WeatherReport] = event.worker.result
            self.main_screen.query_one(WeatherLine).show_report(report)
        elif event.state is WorkerState.ERROR:
            logger.error("Weather worker failed: %s", event.worker.error)

    # --- rendering ---
    def _render_feed(self, selector: str, feed: Optional[str]) -> None:
        if feed is None:
            return
        view = self.main_screen.query_one(selector, ListView)
        view.clear()
        state = self.aggregator.feed(feed)
        articles = self.aggregator.articles(feed)

        if state.last_error is not None:
            view.append(ListItem(ErrorMessage(f"Failed to load: {state.last_error}. Press r to retry.")))
        if state.is_loading and not articles:
            view.append(ListItem(LoadingIndicator()))

        read = self.preferences.read_article_urls
        bookmarked = {a.url for a in self.preferences.bookmarks}
        # Unread first
        for article in sorted(articles, key=lambda a: a.url in read):
            item = ArticleItem(article, read=article.url in read, bookmarked=article.url in bookmarked)
            if item.read:
                item.add_class("read")
            view.append(item)

        loading = [
            name
            for name in (TOP_HEADLINES, PERSONALIZED_NEWS, SEARCH_RESULTS, self._section_feed(self.current_section))
            if name and self.aggregator.feed(name).is_loading
        ]
        self.main_screen.query_one(StatusBar).loading_status = "Loading..." if loading else ""

    def _render_all(self) -> None:
        for feed, selector in FEED_LISTS.items():
            self._render_feed(selector, feed)
        self._render_feed("#category-list", self._section_feed(self.current_section))

    def on_feed_updated(self, message: FeedUpdated) -> None:
        feed = message.feed
        if feed == TRENDING_TOPICS:
            self.main_screen.query_one(TrendingBar).show_topics(self.aggregator.trending_topics)
        elif feed == RELATED_ARTICLES:
            if isinstance(self.screen, ArticleScreen):
                self.screen.show_related(self.aggregator.related_articles)
        elif feed in FEED_LISTS:
            self._render_feed(FEED_LISTS[feed], feed)
        elif feed == self._section_feed(self.current_section):
            self._render_feed("#category-list", feed)

    def on_preferences_changed(self, message: PreferencesChanged) -> None:
        field = message.field_name
        if field in ("theme", "dark_mode", "font_size"):
            self._apply_theme()
        elif field == "selected_country":
            self.aggregator.fetch_top_headlines()
            if self.current_section and self.current_section.kind == "category":
                self._load_section(self.current_section)
        elif field == "interests":
            self.aggregator.fetch_personalized_news()
        elif field == "visible_categories":
            self._load_sections()
        elif field in ("bookmarks", "reading_history"):
            self._render_all()

    # --- events ---
    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if event.list_view.id == "sections-list":
            if isinstance(event.item, SectionListItem):
                self._load_section(event.item.section)
        elif isinstance(event.item, ArticleItem):
            self.open_article(event.item.article)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search-input":
            self.aggregator.search_news(event.value)
            self.main_screen.query_one("#search-list", ListView).focus()

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        if event.tabbed_content.id != "tabs":
            return
        feed = TAB_FEEDS.get(event.tabbed_content.active)
        if feed is None and event.tabbed_content.active == "categories-tab":
            feed = self._section_feed(self.current_section)
        if feed:
            self.aggregator.ensure_fresh(feed)

    def open_article(self, article: Article) -> None:
        self.preferences.mark_as_read(article)
        self.push_screen(ArticleScreen(article))

    # --- actions ---
    def _active_tab(self) -> str:
        return self.main_screen.query_one(TabbedContent).active

    def action_refresh(self) -> None:
        tab = self._active_tab()
        if tab == "top-tab":
            self.aggregator.fetch_top_headlines()
        elif tab == "foryou-tab":
            self.aggregator.fetch_personalized_news()
        elif tab == "search-tab":
            self.aggregator.retry(SEARCH_RESULTS)
        elif self.current_section is not None:
            self._load_section(self.current_section)

    def action_refresh_all(self) -> None:
        self.aggregator.refresh_all()

    def action_bookmark(self) -> None:
        focused = self.focused
        if not isinstance(focused, ListView):
            return
        item = focused.highlighted_child
        if isinstance(item, ArticleItem):
            bookmarked = self.preferences.toggle_bookmark(item.article)
            self.notify("Bookmarked." if bookmarked else "Bookmark removed.")

    def action_show_bookmarks(self) -> None:
        self.push_screen(BookmarksScreen())

    def action_show_history(self) -> None:
        self.push_screen(HistoryScreen())

    def action_show_settings(self) -> None:
        """Show the settings screen."""
        self.push_screen(SettingsScreen())

    def action_focus_search(self) -> None:
        """Switch to the search tab and focus its input."""
        self.main_screen.query_one(TabbedContent).active = "search-tab"
        self.main_screen.query_one("#search-input", Input).focus()
