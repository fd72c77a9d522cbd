from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widgets import Checkbox, ListItem, Static

from .datamodels import Article, WeatherReport
from .sources.weather import wind_direction


@dataclass
class FeedSection:
    """An entry of the categories pane: a provider category or a long-form section."""

    title: str
    kind: str  # "category" or "guardian"
    key: str


class CategoryCheckbox(Checkbox):
    def __init__(self, label: str, value: bool, category: str):
        super().__init__(label, value)
        self.category = category


class InterestCheckbox(Checkbox):
    def __init__(self, label: str, value: bool, interest: str):
        super().__init__(label, value)
        self.interest = interest


# --- UI Widgets ---
class SectionListItem(ListItem):
    def __init__(self, section: FeedSection):
        super().__init__()
        self.section = section

    def compose(self) -> ComposeResult:
        yield Static(self.section.title)


class ArticleItem(ListItem):
    def __init__(self, article: Article, read: bool = False, bookmarked: bool = False):
        super().__init__()
        self.article = article
        self.read = read
        self.bookmarked = bookmarked

    def compose(self) -> ComposeResult:
        flag = "★" if self.bookmarked else ""
        with Horizontal(classes="headline-container"):
            yield Static(self.article.source_name, classes="headline-source")
            yield Static(f"{self.article.reading_time_minutes} min", classes="headline-time")
            yield Static(flag, classes="headline-flag")
            yield Static(self.article.title, classes="headline-title")


class TrendingBar(Static):
    def show_topics(self, topics: List[str]) -> None:
        if not topics:
            self.update("")
            return
        text = Text("Trending: ", style="bold")
        text.append("  ".join(f"#{topic}" for topic in topics))
        self.update(text)


class WeatherLine(Static):
    def show_report(self, report: Optional[WeatherReport]) -> None:
        if report is None:
            self.update("")
            return
        line = (
            f"{report.city}: {report.temperature:.0f}°C, {report.description} "
            f"(feels {report.feels_like:.0f}°C, humidity {report.humidity}%)"
        )
        if report.wind_speed is not None and report.wind_deg is not None:
            line += f", wind {report.wind_speed:.0f} m/s {wind_direction(report.wind_deg)}"
        self.update(line)


class StatusBar(Static):
    loading_status = reactive("")
    keybinding_hint = reactive("")

    def on_mount(self) -> None:
        self.update_display()

    def set_keybindings(self, hint: str) -> None:
        """Set the keybinding hint text."""
        self.keybinding_hint = hint

    def update_display(self) -> None:
        """Update the status bar display."""
        status_items = []
        if self.loading_status:
            status_items.append(self.loading_status)

        if self.keybinding_hint:
            status_items.append(self.keybinding_hint)

        self.update(" | ".join(status_items))

    def watch_loading_status(self, loading_status: str) -> None:
        self.update_display()

    def watch_keybinding_hint(self, keybinding_hint: str) -> None:
        self.update_display()


class ErrorMessage(Static):
    def __init__(self, message: str):
        super().__init__(Text(message, style="bold red"))
