from __future__ import annotations

import webbrowser
from datetime import datetime
from typing import List

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import Screen
from textual.widgets import (
    Checkbox,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    ListView,
    Markdown,
    Select,
    Switch,
    TabbedContent,
    TabPane,
)

from .config import logger
from .datamodels import COUNTRIES, Article
from .preferences import AppTheme, FontSize
from .widgets import ArticleItem, CategoryCheckbox, InterestCheckbox, StatusBar

AUTO_REFRESH_CHOICES = [("Off", 0), ("5 minutes", 5), ("15 minutes", 15), ("30 minutes", 30), ("1 hour", 60)]


def article_markdown(article: Article, summary: str) -> str:
    byline = " · ".join(
        part for part in (article.source_name, article.author, article.published_at) if part
    )
    parts = [f"# {article.title}\n", f"*{byline}*  \n~{article.reading_time_minutes} min read\n"]
    if article.description:
        parts.append(f"> {article.description}\n")
    if article.content:
        parts.append(f"{article.content}\n")
    parts.append(f"## Summary\n\n{summary}\n")
    parts.append(f"[Read the full article]({article.url})\n")
    return "\n".join(parts)


# --- Article screen ---
class ArticleScreen(Screen):
    BINDINGS = [
        Binding("escape,q,left", "app.pop_screen", "Back"),
        Binding("o", "open_in_browser", "Open in browser"),
        Binding("b", "bookmark", "Bookmark"),
        Binding("down", "scroll_down", "Scroll Down"),
        Binding("up", "scroll_up", "Scroll Up"),
    ]

    def __init__(self, article: Article):
        super().__init__()
        self.article = article

    def compose(self) -> ComposeResult:
        yield Header()
        yield StatusBar()
        yield VerticalScroll(
            Markdown("", id="article-markdown"),
            Label("Related", classes="pane-title"),
            ListView(id="related-list"),
            id="article-scroll",
        )

    def on_mount(self) -> None:
        self.title = self.article.source_name
        summary = self.app.summarizer.summarize(self.article)
        self.app.analytics.track_feature_used("article_summary")
        self.query_one("#article-markdown", Markdown).update(
            article_markdown(self.article, summary)
        )
        self.query_one("#article-scroll").focus()
        self.app.aggregator.fetch_related_articles(self.article)
        self._update_status()

        progress = self.app.preferences.progress_for(self.article.url)
        if progress:
            scroll = self.query_one("#article-scroll", VerticalScroll)
            self.call_after_refresh(
                lambda: scroll.scroll_to(y=scroll.max_scroll_y * progress, animate=False)
            )

    def _update_status(self) -> None:
        style = self.app.get_keybinding_style()
        mark = "bookmarked" if self.app.preferences.is_bookmarked(self.article) else "not bookmarked"
        self.query_one(StatusBar).set_keybindings(
            f"{mark} | [b {style}]b[/] bookmark, [b {style}]o[/] open"
        )

    def show_related(self, articles: List[Article]) -> None:
        related = self.query_one("#related-list", ListView)
        related.clear()
        for article in articles:
            related.append(ArticleItem(article, read=self.app.preferences.is_read(article)))

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, ArticleItem):
            event.stop()
            self.app.open_article(event.item.article)

    def _record_progress(self) -> None:
        scroll = self.query_one("#article-scroll", VerticalScroll)
        if scroll.max_scroll_y > 0:
            self.app.preferences.update_progress(
                self.article.url, scroll.scroll_y / scroll.max_scroll_y
            )

    def action_open_in_browser(self) -> None:
        webbrowser.open(self.article.url)
        self.app.analytics.track_article_shared(self.article, platform="browser")

    def action_bookmark(self) -> None:
        self.app.preferences.toggle_bookmark(self.article)
        self._update_status()

    def action_scroll_down(self) -> None:
        self.query_one("#article-scroll").scroll_down()
        self._record_progress()

    def action_scroll_up(self) -> None:
        self.query_one("#article-scroll").scroll_up()
        self._record_progress()


class ErrorScreen(Screen):
    def __init__(self, title: str, message: str):
        super().__init__()
        self.title = title
        self.message = message

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label(self.title, classes="error-title")
        yield Markdown(self.message)
        yield Footer()

    def on_mount(self) -> None:
        self.bind("q", "quit", "Quit")


class BookmarksScreen(Screen):
    BINDINGS = [
        Binding("escape,q,left", "app.pop_screen", "Back"),
        Binding("d", "delete_bookmark", "Delete"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()
        yield DataTable(id="bookmarks-table")

    def on_mount(self) -> None:
        self.title = "Bookmarks"
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.add_column("Title", key="title")
        table.add_column("Source", key="source")
        for article in self.app.preferences.bookmarks:
            table.add_row(article.title, article.source_name, key=article.url)
        self.app.apply_theme_styles(self)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        url = str(event.row_key.value)
        for article in self.app.preferences.bookmarks:
            if article.url == url:
                self.app.open_article(article)
                break

    def action_delete_bookmark(self) -> None:
        """Delete the selected bookmark."""
        table = self.query_one(DataTable)
        if not table.is_valid_row_index(table.cursor_row):
            return

        row_key = table.get_row_key(table.cursor_row)
        self.app.preferences.remove_bookmark(str(row_key.value))
        table.remove_row(row_key)

        self.app.notify("Bookmark deleted.")


class HistoryScreen(Screen):
    BINDINGS = [
        Binding("escape,q,left", "app.pop_screen", "Back"),
        Binding("c", "clear_history", "Clear history"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()
        yield DataTable(id="history-table")

    def on_mount(self) -> None:
        self.title = "Reading history"
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.add_column("Read", key="read")
        table.add_column("Progress", key="progress")
        table.add_column("Title", key="title")
        for entry in self.app.preferences.reading_history:
            read_at = datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M")
            table.add_row(read_at, f"{entry.progress:.0%}", entry.article.title, key=entry.id)
        self.app.apply_theme_styles(self)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        entry_id = str(event.row_key.value)
        for entry in self.app.preferences.reading_history:
            if entry.id == entry_id:
                self.app.open_article(entry.article)
                break

    def action_clear_history(self) -> None:
        self.app.preferences.clear_reading_history()
        self.query_one(DataTable).clear()
        self.app.notify("Reading history cleared.")


class SettingsScreen(Screen):
    """Screen for app settings. Every change is stored immediately."""

    BINDINGS = [
        Binding("escape,q", "app.pop_screen", "Back"),
    ]

    def compose(self) -> ComposeResult:
        prefs = self.app.preferences
        yield Header()
        yield Footer()
        with TabbedContent(id="settings-tabs"):
            with TabPane("General", id="general-tab"):
                with Vertical():
                    yield Label("Country", classes="settings-label")
                    yield Select(
                        [(f"{c.flag} {c.name}", c.code) for c in COUNTRIES],
                        value=prefs.selected_country.code,
                        allow_blank=False,
                        id="country-select",
                    )
                    yield Label("Theme", classes="settings-label")
                    yield Select(
                        [(t.title, int(t)) for t in AppTheme],
                        value=int(prefs.theme),
                        allow_blank=False,
                        id="theme-select",
                    )
                    yield Label("Font size", classes="settings-label")
                    yield Select(
                        [(f.title, int(f)) for f in FontSize],
                        value=int(prefs.font_size),
                        allow_blank=False,
                        id="font-select",
                    )
                    yield Label("Auto refresh", classes="settings-label")
                    yield Select(
                        AUTO_REFRESH_CHOICES,
                        value=prefs.auto_refresh_interval
                        if prefs.auto_refresh_interval in dict(AUTO_REFRESH_CHOICES).values()
                        else 0,
                        allow_blank=False,
                        id="refresh-select",
                    )
                    yield Label("Dark mode", classes="settings-label")
                    yield Switch(value=prefs.dark_mode, id="dark-mode-switch")
                    yield Label("Notifications", classes="settings-label")
                    yield Switch(value=prefs.notifications_enabled, id="notifications-switch")
            with TabPane("Interests", id="interests-tab"):
                with VerticalScroll():
                    yield Input(placeholder="Add an interest and press enter", id="interest-input")
                    for interest in self._interest_choices():
                        yield InterestCheckbox(
                            interest, prefs.is_interest_selected(interest), interest=interest
                        )
            with TabPane("Categories", id="categories-tab"):
                with VerticalScroll():
                    visible = prefs.visible_categories
                    for category in prefs.all_categories():
                        yield CategoryCheckbox(
                            category.capitalize(), visible.get(category, True), category=category
                        )

    def _interest_choices(self) -> List[str]:
        prefs = self.app.preferences
        choices = prefs.interests
        for suggestion in prefs.suggested_interests():
            if suggestion not in choices:
                choices.append(suggestion)
        return choices

    def on_mount(self) -> None:
        self.title = "Settings"
        self.app.apply_theme_styles(self)

    def on_select_changed(self, event: Select.Changed) -> None:
        prefs = self.app.preferences
        if event.select.id == "country-select" and event.value != prefs.selected_country.code:
            prefs.selected_country = event.value
        elif event.select.id == "theme-select" and event.value != int(prefs.theme):
            prefs.theme = AppTheme(event.value)
        elif event.select.id == "font-select" and event.value != int(prefs.font_size):
            prefs.font_size = FontSize(event.value)
        elif event.select.id == "refresh-select" and event.value != prefs.auto_refresh_interval:
            prefs.auto_refresh_interval = event.value

    def on_switch_changed(self, event: Switch.Changed) -> None:
        prefs = self.app.preferences
        if event.switch.id == "dark-mode-switch" and event.value != prefs.dark_mode:
            prefs.dark_mode = event.value
        elif event.switch.id == "notifications-switch" and event.value != prefs.notifications_enabled:
            prefs.notifications_enabled = event.value

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        prefs = self.app.preferences
        checkbox = event.checkbox
        if isinstance(checkbox, InterestCheckbox):
            if event.value != prefs.is_interest_selected(checkbox.interest):
                prefs.toggle_interest(checkbox.interest)
        elif isinstance(checkbox, CategoryCheckbox):
            if event.value != prefs.visible_categories.get(checkbox.category, True):
                prefs.toggle_category_visibility(checkbox.category, event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "interest-input":
            return
        interest = event.value.strip()
        event.input.value = ""
        if not interest:
            return
        prefs = self.app.preferences
        if prefs.is_interest_selected(interest):
            self.app.notify(f"'{interest}' is already one of your interests.")
            return
        prefs.toggle_interest(interest)
        logger.info("Added interest %s", interest)
        scroll = self.query_one("#interests-tab VerticalScroll")
        scroll.mount(InterestCheckbox(interest, True, interest=interest), after=event.input)
        self.app.notify(f"Added '{interest}'.")
