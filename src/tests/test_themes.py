import unittest

from textual.theme import Theme

from newshub import themes
from newshub.preferences import AppTheme


class TestThemes(unittest.TestCase):
    def test_custom_themes_are_loaded(self):
        loaded_themes = themes.load_themes()
        self.assertEqual(
            set(loaded_themes), {"newshub-blue", "newshub-green", "newshub-orange"}
        )
        for name, theme in loaded_themes.items():
            self.assertIsInstance(theme, Theme)
            self.assertEqual(theme.name, name)

    def test_theme_name_for_custom_theme(self):
        self.assertEqual(themes.theme_name_for(AppTheme.BLUE), "newshub-blue")
        self.assertEqual(themes.theme_name_for(AppTheme.ORANGE, dark_mode=True), "newshub-orange")

    def test_light_and_dark_ignore_dark_mode(self):
        self.assertEqual(themes.theme_name_for(AppTheme.LIGHT, dark_mode=True), "textual-light")
        self.assertEqual(themes.theme_name_for(AppTheme.DARK, dark_mode=False), "textual-dark")

    def test_system_theme_follows_dark_mode(self):
        self.assertEqual(themes.theme_name_for(AppTheme.SYSTEM, dark_mode=True), "textual-dark")
        self.assertEqual(themes.theme_name_for(AppTheme.SYSTEM, dark_mode=False), "textual-light")

    def test_theme_from_name(self):
        self.assertIs(themes.theme_from_name(" Green "), AppTheme.GREEN)
        with self.assertRaises(ValueError):
            themes.theme_from_name("dracula")

    def test_every_preference_has_a_theme_name(self):
        for theme in AppTheme:
            self.assertTrue(themes.theme_name_for(theme))


if __name__ == "__main__":
    unittest.main()
