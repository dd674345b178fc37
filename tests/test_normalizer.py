"""Event normalization tests for GitHub and GitLab payloads."""

from datetime import datetime, timezone

from app.models.webhook import WebhookProvider
from app.services.normalizer import normalize

NOW = datetime(2026, 10, 16, 12, 0, 0)


def _github_push(commits: list[dict] | None = None) -> dict:
    return {
        "ref": "refs/heads/main",
        "repository": {
            "id": 9007199254740993,  # beyond float precision
            "name": "Hello-World",
            "full_name": "octocat/Hello-World",
            "html_url": "https://github.com/octocat/Hello-World",
        },
        "sender": {
            "id": 583231,
            "login": "octocat",
            "avatar_url": "https://avatars.githubusercontent.com/u/583231",
        },
        "commits": commits if commits is not None else [],
    }


def test_github_push_flattens_files():
    payload = _github_push([
        {
            "id": "abc123",
            "message": "Fix login",
            "timestamp": "2026-10-15T08:30:00Z",
            "author": {"name": "Mona"},
            "added": ["a.py"],
            "modified": ["b.py"],
            "removed": ["c.py"],
        }
    ])

    event = normalize(payload, WebhookProvider.GITHUB, now=NOW)

    assert event is not None
    assert event.event == "push"
    assert event.changes is not None
    assert {f.filename for f in event.changes.files} == {"a.py", "b.py", "c.py"}
    assert all(f.status == "modified" for f in event.changes.files)
    assert event.pull_request is None
    assert event.timestamp == NOW


def test_github_files_across_commits_keep_order():
    payload = _github_push([
        {"id": "1", "added": ["x.ts"], "modified": [], "removed": []},
        {"id": "2", "added": [], "modified": ["y.ts"], "removed": ["z.ts"]},
    ])
    event = normalize(payload, WebhookProvider.GITHUB, now=NOW)
    assert event is not None
    assert event.changed_files() == ["x.ts", "y.ts", "z.ts"]


def test_github_ids_are_exact_strings():
    event = normalize(_github_push(), WebhookProvider.GITHUB, now=NOW)
    assert event is not None
    assert event.repository.id == "9007199254740993"
    assert event.sender.id == "583231"
    assert event.sender.username == "octocat"
    assert event.repository.full_name == "octocat/Hello-World"


def test_github_commit_timestamp_to_epoch_ms():
    payload = _github_push([
        {
            "id": "abc",
            "message": "m",
            "timestamp": "2026-10-15T08:30:00+00:00",
            "author": {"name": "Mona"},
        }
    ])
    event = normalize(payload, WebhookProvider.GITHUB, now=NOW)
    assert event is not None
    commit = event.changes.commits[0]
    assert commit.timestamp == int(datetime(2026, 10, 15, 8, 30, tzinfo=timezone.utc).timestamp() * 1000)
    assert commit.author == "Mona"


def test_github_pull_request_event():
    payload = _github_push()
    del payload["commits"]
    payload["action"] = "opened"
    payload["pull_request"] = {
        "number": 42,
        "title": "Add auth",
        "state": "open",
        "html_url": "https://github.com/octocat/Hello-World/pull/42",
        "head": {"ref": "feature/auth"},
        "base": {"ref": "main"},
    }

    event = normalize(payload, WebhookProvider.GITHUB, now=NOW)

    assert event is not None
    assert event.event == "pull_request"
    assert event.pull_request is not None
    assert event.pull_request.number == 42
    assert event.pull_request.branch == "feature/auth"
    assert event.pull_request.base_branch == "main"
    assert event.changes is None


def test_github_missing_repository_returns_none():
    payload = _github_push()
    del payload["repository"]
    assert normalize(payload, WebhookProvider.GITHUB, now=NOW) is None


def test_github_missing_sender_login_returns_none():
    payload = _github_push()
    del payload["sender"]["login"]
    assert normalize(payload, WebhookProvider.GITHUB, now=NOW) is None


def test_non_object_payload_returns_none():
    assert normalize(["not", "a", "dict"], WebhookProvider.GITHUB, now=NOW) is None


def test_gitlab_push():
    payload = {
        "object_kind": "push",
        "user_id": 4,
        "user_username": "jsmith",
        "user_avatar": "https://gitlab.example/avatar.png",
        "project": {
            "id": 15,
            "name": "Diaspora",
            "path_with_namespace": "mike/diaspora",
            "web_url": "https://gitlab.example/mike/diaspora",
        },
        "commits": [
            {
                "id": "b6568db1",
                "message": "Update Catalan translation",
                "timestamp": "2011-12-12T14:27:31+02:00",
                "author": {"name": "Jordi Mallach"},
                "added": ["CHANGELOG"],
                "modified": ["app/controller/application.rb"],
                "removed": [],
            }
        ],
    }

    event = normalize(payload, WebhookProvider.GITLAB, now=NOW)

    assert event is not None
    assert event.event == "push"
    assert event.repository.id == "15"
    assert event.repository.full_name == "mike/diaspora"
    assert event.sender.id == "4"
    assert event.sender.username == "jsmith"
    assert event.changed_files() == ["CHANGELOG", "app/controller/application.rb"]


def test_gitlab_missing_fields_default_empty():
    event = normalize({}, WebhookProvider.GITLAB, now=NOW)
    assert event is not None
    assert event.event == "push"
    assert event.repository.name == ""
    assert event.repository.full_name == ""
    assert event.sender.username == ""
    assert event.changes is None


def test_gitlab_object_kind_passthrough():
    event = normalize({"object_kind": "tag_push"}, WebhookProvider.GITLAB, now=NOW)
    assert event is not None
    assert event.event == "tag_push"


def test_gitlab_merge_request_maps_branches():
    payload = {
        "object_kind": "merge_request",
        "user": {"id": 1, "username": "root", "avatar_url": ""},
        "project": {"id": 1, "name": "Gitlab Test", "path_with_namespace": "gitlabhq/gitlab-test"},
        "object_attributes": {
            "iid": 1,
            "title": "MS-Viewport",
            "source_branch": "ms-viewport",
            "target_branch": "master",
            "state": "opened",
            "url": "https://gitlab.example/gitlabhq/gitlab-test/merge_requests/1",
        },
    }

    event = normalize(payload, WebhookProvider.GITLAB, now=NOW)

    assert event is not None
    assert event.event == "merge_request"
    assert event.sender.username == "root"
    assert event.pull_request is not None
    assert event.pull_request.branch == "ms-viewport"
    assert event.pull_request.base_branch == "master"


def test_gitlab_merge_request_without_branches_keeps_event():
    payload = {
        "object_kind": "merge_request",
        "project": {"id": 1},
        "object_attributes": {"title": "x"},
    }

    event = normalize(payload, WebhookProvider.GITLAB, now=NOW)

    assert event is not None
    assert event.event == "merge_request"
    assert event.repository.id == "1"
    assert event.pull_request is None


def test_bitbucket_has_no_mapping():
    assert normalize(_github_push(), WebhookProvider.BITBUCKET, now=NOW) is None
