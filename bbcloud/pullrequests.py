"""Pull request models and endpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from .client import Client, Link, Paginated, User, _parse_time


class PRState(StrEnum):
    """The state of a pull request."""

    OPEN = "OPEN"
    MERGED = "MERGED"
    DECLINED = "DECLINED"


class MergeStrategy(StrEnum):
    """How a pull request is merged."""

    MERGE_COMMIT = "merge_commit"
    SQUASH = "squash"
    FAST_FORWARD = "fast_forward"


def _parse_state(value: str | None) -> PRState | str:
    """Return a PRState for known values, the raw text otherwise."""
    if not value:
        return ""
    try:
        return PRState(value)
    except ValueError:
        return value


def _format_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _links(data) -> dict:
    return (data or {}).get("links") or {}


@dataclass
class Commit:
    """A git commit reference."""

    hash: str = ""
    self_link: Link = field(default_factory=Link)
    html_link: Link = field(default_factory=Link)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        links = _links(data)
        return cls(
            hash=data.get("hash") or "",
            self_link=Link.from_dict(links.get("self")),
            html_link=Link.from_dict(links.get("html")),
        )


@dataclass
class Branch:
    """A git branch reference."""

    name: str = ""

    @classmethod
    def from_dict(cls, data):
        return cls(name=(data or {}).get("name") or "")


@dataclass
class Repository:
    """A repository as referenced from a pull request."""

    uuid: str = ""
    name: str = ""
    full_name: str = ""
    slug: str = ""
    self_link: Link = field(default_factory=Link)
    html_link: Link = field(default_factory=Link)
    avatar_link: Link = field(default_factory=Link)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        links = _links(data)
        return cls(
            uuid=data.get("uuid") or "",
            name=data.get("name") or "",
            full_name=data.get("full_name") or "",
            slug=data.get("slug") or "",
            self_link=Link.from_dict(links.get("self")),
            html_link=Link.from_dict(links.get("html")),
            avatar_link=Link.from_dict(links.get("avatar")),
        )


@dataclass
class PRRef:
    """The source or destination of a pull request."""

    branch: Branch = field(default_factory=Branch)
    commit: Commit = field(default_factory=Commit)
    repository: Repository | None = None

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            branch=Branch.from_dict(data.get("branch")),
            commit=Commit.from_dict(data.get("commit")),
            repository=Repository.from_dict(data["repository"]) if data.get("repository") else None,
        )


@dataclass
class Participant:
    """A participant or reviewer of a pull request."""

    user: User = field(default_factory=User)
    role: str = ""
    approved: bool = False
    state: str = ""
    participated_on: str = ""

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            user=User.from_dict(data.get("user")),
            role=data.get("role") or "",
            approved=bool(data.get("approved")),
            state=data.get("state") or "",
            participated_on=data.get("participated_on") or "",
        )


@dataclass
class PRLinks:
    """Links related to a pull request."""

    self_link: Link = field(default_factory=Link)
    html: Link = field(default_factory=Link)
    commits: Link = field(default_factory=Link)
    approve: Link = field(default_factory=Link)
    diff: Link = field(default_factory=Link)
    diffstat: Link = field(default_factory=Link)
    comments: Link = field(default_factory=Link)
    activity: Link = field(default_factory=Link)
    merge: Link = field(default_factory=Link)
    decline: Link = field(default_factory=Link)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            self_link=Link.from_dict(data.get("self")),
            html=Link.from_dict(data.get("html")),
            commits=Link.from_dict(data.get("commits")),
            approve=Link.from_dict(data.get("approve")),
            diff=Link.from_dict(data.get("diff")),
            diffstat=Link.from_dict(data.get("diffstat")),
            comments=Link.from_dict(data.get("comments")),
            activity=Link.from_dict(data.get("activity")),
            merge=Link.from_dict(data.get("merge")),
            decline=Link.from_dict(data.get("decline")),
        )


@dataclass
class PullRequest:
    """A pull request."""

    id: int = 0
    title: str = ""
    description: str = ""
    state: PRState | str = ""
    author: User = field(default_factory=User)
    source: PRRef = field(default_factory=PRRef)
    destination: PRRef = field(default_factory=PRRef)
    merge_commit: Commit | None = None
    close_source_branch: bool = False
    closed_by: User | None = None
    reason: str = ""
    created_on: datetime | None = None
    updated_on: datetime | None = None
    links: PRLinks = field(default_factory=PRLinks)
    participants: list[Participant] = field(default_factory=list)
    reviewers: list[User] = field(default_factory=list)
    comment_count: int = 0
    task_count: int = 0

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            id=int(data.get("id") or 0),
            title=data.get("title") or "",
            description=data.get("description") or "",
            state=_parse_state(data.get("state")),
            author=User.from_dict(data.get("author")),
            source=PRRef.from_dict(data.get("source")),
            destination=PRRef.from_dict(data.get("destination")),
            merge_commit=Commit.from_dict(data["merge_commit"]) if data.get("merge_commit") else None,
            close_source_branch=bool(data.get("close_source_branch")),
            closed_by=User.from_dict(data["closed_by"]) if data.get("closed_by") else None,
            reason=data.get("reason") or "",
            created_on=_parse_time(data.get("created_on")),
            updated_on=_parse_time(data.get("updated_on")),
            links=PRLinks.from_dict(data.get("links")),
            participants=[Participant.from_dict(p) for p in data.get("participants") or []],
            reviewers=[User.from_dict(u) for u in data.get("reviewers") or []],
            comment_count=int(data.get("comment_count") or 0),
            task_count=int(data.get("task_count") or 0),
        )

    def to_summary(self) -> dict:
        """A flat, JSON-ready view of the pull request."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "state": str(self.state),
            "author": self.author.display_name,
            "source_branch": self.source.branch.name,
            "destination_branch": self.destination.branch.name,
            "created_on": _format_time(self.created_on),
            "updated_on": _format_time(self.updated_on),
            "url": self.links.html.href,
            "close_source_branch": self.close_source_branch,
            "comment_count": self.comment_count,
            "task_count": self.task_count,
        }


@dataclass
class PRComment:
    """A comment on a pull request."""

    id: int = 0
    raw: str = ""
    markup: str = ""
    html: str = ""
    user: User = field(default_factory=User)
    created_on: datetime | None = None
    updated_on: datetime | None = None
    inline_path: str = ""
    inline_from: int | None = None
    inline_to: int | None = None
    parent_id: int | None = None
    self_link: Link = field(default_factory=Link)
    html_link: Link = field(default_factory=Link)

    @property
    def is_inline(self) -> bool:
        return bool(self.inline_path)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        content = data.get("content") or {}
        inline = data.get("inline") or {}
        parent = data.get("parent") or {}
        links = _links(data)
        return cls(
            id=int(data.get("id") or 0),
            raw=content.get("raw") or "",
            markup=content.get("markup") or "",
            html=content.get("html") or "",
            user=User.from_dict(data.get("user")),
            created_on=_parse_time(data.get("created_on")),
            updated_on=_parse_time(data.get("updated_on")),
            inline_path=inline.get("path") or "",
            inline_from=inline.get("from"),
            inline_to=inline.get("to"),
            parent_id=parent.get("id"),
            self_link=Link.from_dict(links.get("self")),
            html_link=Link.from_dict(links.get("html")),
        )


@dataclass
class CommitStatus:
    """A build status; state is SUCCESSFUL, FAILED, INPROGRESS or STOPPED."""

    uuid: str = ""
    key: str = ""
    name: str = ""
    description: str = ""
    state: str = ""
    url: str = ""
    created_on: datetime | None = None
    updated_on: datetime | None = None
    self_link: Link = field(default_factory=Link)
    commit_link: Link = field(default_factory=Link)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        links = _links(data)
        return cls(
            uuid=data.get("uuid") or "",
            key=data.get("key") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
            state=data.get("state") or "",
            url=data.get("url") or "",
            created_on=_parse_time(data.get("created_on")),
            updated_on=_parse_time(data.get("updated_on")),
            self_link=Link.from_dict(links.get("self")),
            commit_link=Link.from_dict(links.get("commit")),
        )


@dataclass
class PRListOptions:
    """Filters for listing pull requests."""

    state: PRState | str = ""
    author: str = ""
    page: int = 0
    limit: int = 0

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.state:
            params["state"] = str(self.state)
        if self.author:
            params["q"] = f'author.username="{self.author}"'
        if self.page > 0:
            params["page"] = str(self.page)
        if self.limit > 0:
            params["pagelen"] = str(self.limit)
        return params


@dataclass
class PRCreateOptions:
    """Settings for creating or updating a pull request; reviewers are user UUIDs."""

    title: str = ""
    description: str = ""
    source_branch: str = ""
    source_repo: str = ""
    destination_branch: str = ""
    close_source_branch: bool = False
    reviewers: list[str] = field(default_factory=list)

    def to_create_body(self) -> dict:
        body: dict = {"title": self.title}
        if self.description:
            body["description"] = self.description
        source: dict = {"branch": {"name": self.source_branch}}
        if self.source_repo:
            source["repository"] = {"full_name": self.source_repo}
        body["source"] = source
        body["destination"] = {"branch": {"name": self.destination_branch}}
        body["close_source_branch"] = self.close_source_branch
        if self.reviewers:
            body["reviewers"] = [{"uuid": uuid} for uuid in self.reviewers]
        return body

    def to_update_body(self) -> dict:
        body: dict = {}
        if self.title:
            body["title"] = self.title
        if self.description:
            body["description"] = self.description
        if self.destination_branch:
            body["destination"] = {"branch": {"name": self.destination_branch}}
        body["close_source_branch"] = self.close_source_branch
        if self.reviewers:
            body["reviewers"] = [{"uuid": uuid} for uuid in self.reviewers]
        return body


@dataclass
class PRMergeOptions:
    """Settings for merging a pull request."""

    message: str = ""
    close_source_branch: bool = False
    merge_strategy: MergeStrategy | str = ""

    def to_body(self) -> dict:
        body: dict = {}
        if self.message:
            body["message"] = self.message
        body["close_source_branch"] = self.close_source_branch
        if self.merge_strategy:
            body["merge_strategy"] = str(self.merge_strategy)
        return body


@dataclass
class AddPRCommentOptions:
    """A new comment; set parent_id to reply, path and line for an inline comment."""

    content: str = ""
    parent_id: int = 0
    path: str = ""
    line: int = 0

    def to_body(self) -> dict:
        body: dict = {"content": {"raw": self.content}}
        if self.parent_id > 0:
            body["parent"] = {"id": self.parent_id}
        if self.path:
            body["inline"] = {"to": self.line, "path": self.path}
        return body


class PullRequestsAPI:
    """Pull request endpoints."""

    def __init__(self, client: Client):
        self.client = client

    @staticmethod
    def _base(workspace, repo_slug) -> str:
        return f"/repositories/{workspace}/{repo_slug}/pullrequests"

    def _pr(self, workspace, repo_slug, pr_id) -> str:
        return f"{self._base(workspace, repo_slug)}/{int(pr_id)}"

    def list(self, workspace, repo_slug, options=None) -> Paginated[PullRequest]:
        params = options.to_params() if options is not None else {}
        response = self.client.get(self._base(workspace, repo_slug), params)
        return Paginated.from_dict(json.loads(response.body), PullRequest.from_dict)

    def get(self, workspace, repo_slug, pr_id) -> PullRequest:
        response = self.client.get(self._pr(workspace, repo_slug, pr_id))
        return PullRequest.from_dict(json.loads(response.body))

    def create(self, workspace, repo_slug, options) -> PullRequest:
        response = self.client.post(self._base(workspace, repo_slug), options.to_create_body())
        return PullRequest.from_dict(json.loads(response.body))

    def update(self, workspace, repo_slug, pr_id, options) -> PullRequest:
        response = self.client.put(self._pr(workspace, repo_slug, pr_id), options.to_update_body())
        return PullRequest.from_dict(json.loads(response.body))

    def merge(self, workspace, repo_slug, pr_id, options=None) -> PullRequest:
        body = options.to_body() if options is not None else None
        response = self.client.post(f"{self._pr(workspace, repo_slug, pr_id)}/merge", body)
        return PullRequest.from_dict(json.loads(response.body))

    def decline(self, workspace, repo_slug, pr_id) -> PullRequest:
        response = self.client.post(f"{self._pr(workspace, repo_slug, pr_id)}/decline")
        return PullRequest.from_dict(json.loads(response.body))

    def reopen(self, workspace, repo_slug, pr_id) -> PullRequest:
        response = self.client.put(self._pr(workspace, repo_slug, pr_id), {"state": "OPEN"})
        return PullRequest.from_dict(json.loads(response.body))

    def approve(self, workspace, repo_slug, pr_id) -> Participant:
        response = self.client.post(f"{self._pr(workspace, repo_slug, pr_id)}/approve")
        return Participant.from_dict(json.loads(response.body))

    def unapprove(self, workspace, repo_slug, pr_id) -> None:
        self.client.delete(f"{self._pr(workspace, repo_slug, pr_id)}/approve")

    def request_changes(self, workspace, repo_slug, pr_id) -> Participant:
        response = self.client.post(f"{self._pr(workspace, repo_slug, pr_id)}/request-changes")
        return Participant.from_dict(json.loads(response.body))

    def diff(self, workspace, repo_slug, pr_id) -> str:
        response = self.client.get(
            f"{self._pr(workspace, repo_slug, pr_id)}/diff", headers={"Accept": "text/plain"}
        )
        return response.body.decode("utf-8", errors="replace")

    def list_comments(self, workspace, repo_slug, pr_id) -> Paginated[PRComment]:
        response = self.client.get(f"{self._pr(workspace, repo_slug, pr_id)}/comments")
        return Paginated.from_dict(json.loads(response.body), PRComment.from_dict)

    def add_comment(self, workspace, repo_slug, pr_id, options) -> PRComment:
        response = self.client.post(f"{self._pr(workspace, repo_slug, pr_id)}/comments", options.to_body())
        return PRComment.from_dict(json.loads(response.body))

    def statuses(self, workspace, repo_slug, pr_id) -> Paginated[CommitStatus]:
        response = self.client.get(f"{self._pr(workspace, repo_slug, pr_id)}/statuses")
        return Paginated.from_dict(json.loads(response.body), CommitStatus.from_dict)