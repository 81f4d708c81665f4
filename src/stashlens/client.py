from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

from . import __version__
from .decoder import check_status, decode_json
from .extract import (
    extract_comment,
    extract_comment_page,
    extract_diff_report,
    extract_pull_request,
    extract_user,
)
from .models import (
    BasicAuth,
    Comment,
    CommentReport,
    Credentials,
    DiffReport,
    IssueType,
    Page,
    PullRequest,
    PullRequestRef,
    Task,
    User,
)
from .pagination import fetch_all
from .transport import Transport

logger = logging.getLogger(__name__)

_API = "/rest/api/1.0"
DEFAULT_TIMEOUT = 10.0


def _segment(value: str | int) -> str:
    return quote(str(value), safe="")


def _pull_request_path(ref: PullRequestRef) -> str:
    return (
        f"{_API}/projects/{_segment(ref.project)}/repos/{_segment(ref.repository)}"
        f"/pull-requests/{ref.pull_request_id:d}"
    )


class StashClient:
    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        timeout: float = DEFAULT_TIMEOUT,
        client_version: str = __version__,
    ) -> None:
        self._credentials = credentials
        self._transport = Transport(base_url, credentials, timeout, client_version)

    def __enter__(self) -> StashClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._transport.close()

    @property
    def base_url(self) -> str:
        return self._transport.base_url

    @property
    def login(self) -> str | None:
        if isinstance(self._credentials, BasicAuth):
            return self._credentials.login
        return None

    @property
    def user_slug(self) -> str | None:
        """Slug of the account the client acts as, falling back to the login."""
        if isinstance(self._credentials, BasicAuth):
            return self._credentials.user_slug or self._credentials.login
        return None

    def post_comment_on_pull_request(self, ref: PullRequestRef, text: str) -> None:
        response = self._transport.execute(
            "POST", f"{_pull_request_path(ref)}/comments", json={"text": text}
        )
        check_status(response, {201}, f"Posting comment on pull request {ref.pull_request_id}")

    def get_pull_request_comments(self, ref: PullRequestRef, path: str) -> CommentReport:
        url = f"{_pull_request_path(ref)}/comments"
        action = f"Listing comments of pull request {ref.pull_request_id}"

        def fetch_page(start: int) -> Page[Comment]:
            response = self._transport.execute("GET", url, params={"path": path, "start": start})
            return extract_comment_page(decode_json(response, {200}, action))

        comments = fetch_all(fetch_page, key=lambda c: c.id)
        logger.debug("%d comments on %s for %s", len(comments), ref.pull_request_id, path)
        return CommentReport(comments)

    def post_comment_line_on_pull_request(
        self,
        ref: PullRequestRef,
        text: str,
        path: str,
        line: int,
        issue_type: IssueType,
    ) -> Comment:
        issue_type = IssueType(issue_type)
        anchor = {
            "line": line,
            "lineType": issue_type.value,
            "fileType": "FROM" if issue_type is IssueType.REMOVED else "TO",
            "path": path,
            "srcPath": path,
        }
        response = self._transport.execute(
            "POST",
            f"{_pull_request_path(ref)}/comments",
            json={"text": text, "anchor": anchor},
        )
        payload = decode_json(
            response, {201}, f"Posting comment on pull request {ref.pull_request_id} at {path}:{line}"
        )
        return extract_comment(payload)

    def delete_pull_request_comment(self, ref: PullRequestRef, comment: Comment) -> None:
        response = self._transport.execute(
            "DELETE",
            f"{_pull_request_path(ref)}/comments/{comment.id:d}",
            params={"version": comment.version},
        )
        check_status(response, {204}, f"Deleting comment {comment.id}")

    def get_pull_request_diffs(self, ref: PullRequestRef) -> DiffReport:
        response = self._transport.execute(
            "GET", f"{_pull_request_path(ref)}/diff", params={"withComments": "true"}
        )
        payload = decode_json(response, {200}, f"Fetching diff of {ref.pull_request_id}")
        return extract_diff_report(payload)

    def get_pull_request(self, ref: PullRequestRef) -> PullRequest:
        response = self._transport.execute("GET", _pull_request_path(ref))
        payload = decode_json(response, {200}, f"Fetching pull request {ref.pull_request_id}")
        return extract_pull_request(payload, ref)

    def approve_pull_request(self, ref: PullRequestRef) -> None:
        response = self._transport.execute("POST", f"{_pull_request_path(ref)}/approve")
        check_status(response, {200, 204}, f"Approving pull request {ref.pull_request_id}")

    def reset_pull_request_approval(self, ref: PullRequestRef) -> None:
        response = self._transport.execute("DELETE", f"{_pull_request_path(ref)}/approve")
        check_status(
            response, {200, 204}, f"Resetting approval of pull request {ref.pull_request_id}"
        )

    def add_pull_request_reviewer(
        self, ref: PullRequestRef, version: int, reviewers: Iterable[User]
    ) -> None:
        body = {
            "id": ref.pull_request_id,
            "version": version,
            "reviewers": [{"user": {"name": user.name}} for user in reviewers],
        }
        response = self._transport.execute("PUT", _pull_request_path(ref), json=body)
        check_status(response, {200}, f"Updating reviewers of {ref.pull_request_id}")

    def get_user(self, slug: str) -> User:
        response = self._transport.execute("GET", f"{_API}/users/{_segment(slug)}")
        return extract_user(decode_json(response, {200}, f"Fetching user {slug}"))

    def post_task_on_comment(self, text: str, comment_id: int) -> None:
        body = {
            "anchor": {"id": comment_id, "type": "COMMENT"},
            "text": text,
            "state": "OPEN",
        }
        response = self._transport.execute("POST", f"{_API}/tasks", json=body)
        check_status(response, {201}, f"Posting task on comment {comment_id}")

    def delete_task_on_comment(self, task: Task) -> None:
        response = self._transport.execute("DELETE", f"{_API}/tasks/{task.id:d}")
        check_status(response, {204}, f"Deleting task {task.id}")
