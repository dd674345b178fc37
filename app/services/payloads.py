"""Provider payload shapes.

Only the fields the normalizer reads are declared; everything else a
provider sends is ignored. Required fields are the ones whose absence makes
an event unusable, so validation failure means "reject with 400".
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── GitHub ────────────────────────────────────────────────────


class GitHubRepository(_Payload):
    id: int | str
    name: str
    full_name: str
    html_url: str = ""


class GitHubUser(_Payload):
    id: int | str
    login: str
    avatar_url: str = ""


class GitHubCommitAuthor(_Payload):
    name: str = ""


class GitHubCommit(_Payload):
    id: str
    message: str = ""
    timestamp: str | None = None
    author: GitHubCommitAuthor = Field(default_factory=GitHubCommitAuthor)
    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)


class GitHubBranchRef(_Payload):
    ref: str


class GitHubPullRequest(_Payload):
    number: int
    title: str = ""
    state: str = ""
    html_url: str = ""
    head: GitHubBranchRef
    base: GitHubBranchRef


class GitHubPayload(_Payload):
    repository: GitHubRepository
    sender: GitHubUser
    commits: list[GitHubCommit] | None = None
    pull_request: GitHubPullRequest | None = None


# ── GitLab ────────────────────────────────────────────────────


class GitLabProject(_Payload):
    id: int | str | None = None
    name: str | None = None
    path_with_namespace: str | None = None
    web_url: str | None = None


class GitLabCommitAuthor(_Payload):
    name: str = ""


class GitLabCommit(_Payload):
    id: str
    message: str = ""
    timestamp: str | None = None
    author: GitLabCommitAuthor = Field(default_factory=GitLabCommitAuthor)
    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)


class GitLabMergeAttributes(_Payload):
    iid: int
    title: str = ""
    source_branch: str
    target_branch: str
    state: str = ""
    url: str = ""


class GitLabPayload(_Payload):
    object_kind: str | None = None
    user_id: int | str | None = None
    user_username: str | None = None
    user_avatar: str | None = None
    project: GitLabProject | None = None
    commits: list[GitLabCommit] | None = None
    object_attributes: dict[str, Any] | None = None
    # Merge request events carry the author under "user" instead of user_*
    user: dict[str, Any] | None = None
