# bbcloud

A small, typed Python client for the pull request endpoints of the Bitbucket
Cloud REST API (version 2.0). Responses are turned into dataclasses.

## Installation

```
pip install bbcloud
```

## Modules

- `bbcloud.client`: `Client`, the HTTP layer; `APIError`; the shared models
  `Link`, `User`, `Paginated` and `Response`.
- `bbcloud.pullrequests`: `PullRequestsAPI` and the pull request models
  (`PullRequest`, `PRComment`, `Participant`, `CommitStatus`, ...) and option
  classes (`PRListOptions`, `PRCreateOptions`, `PRMergeOptions`,
  `AddPRCommentOptions`), with the enums `PRState` and `MergeStrategy`.

## Usage

```python
from bbcloud.client import Client, APIError
from bbcloud.pullrequests import (
    AddPRCommentOptions,
    MergeStrategy,
    PRCreateOptions,
    PRListOptions,
    PRMergeOptions,
    PRState,
    PullRequestsAPI,
)

client = Client(token="token")  # base_url defaults to https://api.bitbucket.org/2.0
prs = PullRequestsAPI(client)

page = prs.list("myworkspace", "myrepo", PRListOptions(state=PRState.OPEN, limit=10))
for pr in page.values:
    print(pr.id, pr.title, pr.source.branch.name, "->", pr.destination.branch.name)

created = prs.create(
    "myworkspace",
    "myrepo",
    PRCreateOptions(
        title="New feature",
        source_branch="feature/x",
        destination_branch="main",
        close_source_branch=True,
        reviewers=["{reviewer-uuid}"],
    ),
)

print(prs.diff("myworkspace", "myrepo", created.id))
prs.add_comment("myworkspace", "myrepo", created.id, AddPRCommentOptions(content="Looks good"))
prs.approve("myworkspace", "myrepo", created.id)
prs.merge(
    "myworkspace",
    "myrepo",
    created.id,
    PRMergeOptions(message="Squash merge", merge_strategy=MergeStrategy.SQUASH),
)
```

`PullRequestsAPI` also offers `get`, `update`, `decline`, `reopen`,
`unapprove`, `request_changes`, `list_comments` and `statuses`.
`PullRequest.to_summary()` gives a flat dictionary ready for `json.dumps`.

List calls return a `Paginated` object with `size`, `page`, `pagelen`,
`next`, `previous` and `values`. Only the requested page is fetched; use the
`page` option to ask for another.

`Client` can also be used directly: `get`, `post`, `put`, `delete` and
`request` send JSON, and `request_multipart` sends `multipart/form-data`
built from form fields and `(field name, filename, content)` tuples. All of
them return a `Response` holding the status code, headers and raw body.

## Errors

Any response with a status of 400 or above raises `APIError`, carrying
`status_code`, `message`, `detail` and `fields`. These are taken from the
API's `{"error": {...}}` body when it has a message; otherwise the message is
the standard HTTP reason phrase.

```python
try:
    prs.get("myworkspace", "myrepo", 999)
except APIError as exc:
    print(exc.status_code, exc.message)
```

## What this package does not do

- It has typed endpoints for pull requests only. Repositories, projects,
  snippets and other API resources have no models or helper classes here,
  though `Client` can still send raw requests to them.
- It has no command-line tool.
- It does not store or look up credentials; pass a token to `Client` yourself.
- It does not follow `next` links to fetch every page automatically.

## Running the tests

```
pip install -e ".[test]"
pytest
```