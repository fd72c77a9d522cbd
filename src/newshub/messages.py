from textual.message import Message


class FeedUpdated(Message):
    """A message that an aggregated collection changed."""
    def __init__(self, feed: str) -> None:
        self.feed = feed
        super().__init__()


class PreferencesChanged(Message):
    """A message that a stored preference changed."""
    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__()
