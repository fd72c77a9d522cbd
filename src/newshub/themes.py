from __future__ import annotations

from typing import Dict

from textual.theme import Theme

from .preferences import AppTheme

# --- Theme Configuration ---
BUILTIN_DARK = "textual-dark"
BUILTIN_LIGHT = "textual-light"

CUSTOM_THEMES: Dict[AppTheme, Theme] = {
    AppTheme.BLUE: Theme(
        name="newshub-blue",
        primary="#0080E6",
        secondary="#3A6EA5",
        accent="#0080E6",
        foreground="#1B1F24",
        background="#E6F2FF",
        surface="#D6E8FA",
        panel="#C4DDF5",
        dark=False,
    ),
    AppTheme.GREEN: Theme(
        name="newshub-green",
        primary="#1AB366",
        secondary="#2E8B57",
        accent="#1AB366",
        foreground="#1B241F",
        background="#E6FFF2",
        surface="#D3F5E3",
        panel="#BFEBD3",
        dark=False,
    ),
    AppTheme.ORANGE: Theme(
        name="newshub-orange",
        primary="#FF801A",
        secondary="#C8641E",
        accent="#FF801A",
        foreground="#26201B",
        background="#FFFAF2",
        surface="#FCEEDC",
        panel="#F7E0C4",
        dark=False,
    ),
}


def load_themes() -> Dict[str, Theme]:
    """Themes the app registers on mount, keyed by Textual theme name."""
    return {theme.name: theme for theme in CUSTOM_THEMES.values()}


def theme_name_for(theme: AppTheme, dark_mode: bool = False) -> str:
    """Textual theme name for a preference; the system theme follows dark mode."""
    if theme in CUSTOM_THEMES:
        return CUSTOM_THEMES[theme].name
    if theme is AppTheme.LIGHT:
        return BUILTIN_LIGHT
    if theme is AppTheme.DARK:
        return BUILTIN_DARK
    return BUILTIN_DARK if dark_mode else BUILTIN_LIGHT


def theme_from_name(name: str) -> AppTheme:
    """Parse a command line theme name such as ``blue`` or ``system``."""
    try:
        return AppTheme[name.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown theme: {name}") from None
