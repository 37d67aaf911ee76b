"""Collaborator Fakes — notification sender, media store and summarizer.

Invariants:
    - Each fake records every call for assertions
    - Failures are opt-in via `fail` flags / sets, raising ExternalServiceError
      like the real clients do
"""

from factsnap.core.errors import ExternalServiceError


class FakeNotifier:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, tokens, title, body, data=None):
        if self.fail:
            raise ExternalServiceError("expo", "push gateway unavailable")
        self.sent.append(
            {"tokens": list(tokens), "title": title, "body": body, "data": data},
        )


class FakeMediaStore:
    def __init__(self):
        self.deleted: list[str] = []
        self.fail_for: set[str] = set()

    async def delete(self, key_or_url):
        if key_or_url in self.fail_for:
            raise ExternalServiceError("minio", f"cannot delete {key_or_url}")
        self.deleted.append(key_or_url)


class FakeSummarizer:
    def __init__(self, reply: str = "- Respondents say it is busy."):
        self.reply = reply
        self.prompts: list[str] = []

    async def prompt(self, text):
        self.prompts.append(text)
        return self.reply
