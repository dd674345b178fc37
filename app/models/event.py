"""Canonical, provider-agnostic webhook event.

Built per inbound request by the normalizer. Never stored as a row of its
own: it is summarized into a ``WebhookLog`` and embedded in a ``WebhookTask``.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.webhook import WebhookProvider


class EventRepository(BaseModel):
    id: str
    name: str
    full_name: str
    url: str = ""


class EventSender(BaseModel):
    id: str
    username: str
    avatar_url: str = ""


class FileChange(BaseModel):
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0


class CommitInfo(BaseModel):
    id: str
    message: str = ""
    author: str = ""
    timestamp: int | None = None  # epoch milliseconds


class EventChanges(BaseModel):
    files: list[FileChange] = Field(default_factory=list)
    commits: list[CommitInfo] = Field(default_factory=list)


class PullRequestInfo(BaseModel):
    number: int
    title: str = ""
    branch: str
    base_branch: str
    state: str = ""
    url: str = ""


class WebhookEvent(BaseModel):
    provider: WebhookProvider
    event: str
    repository: EventRepository
    sender: EventSender
    changes: EventChanges | None = None
    pull_request: PullRequestInfo | None = None
    timestamp: datetime

    def changed_files(self) -> list[str]:
        if self.changes is None:
            return []
        return [f.filename for f in self.changes.files]
