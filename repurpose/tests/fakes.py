"""Test doubles shared across the suite."""
from repurpose.features.generation.providers import ProviderError


LONG_TEXT = (
    "Remote work has changed how teams communicate. Async updates replace meetings, "
    "written decisions outlive hallway chats, and clear ownership matters more than ever."
)


class FakeProvider:
    """Scripted TextProvider: returns `reply` or raises ProviderError(`error`)."""

    def __init__(self, name="fake", reply="generated text", error=None, configured=True, on_call=None):
        self.name = name
        self.reply = reply
        self.error = error
        self._configured = configured
        self.on_call = on_call
        self.prompts = []

    @property
    def configured(self):
        return self._configured

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.on_call:
            self.on_call(prompt)
        if self.error is not None:
            raise ProviderError(self.error, provider=self.name)
        return self.reply
