"""Build entities from decoded JSON payloads.

Every function here fails closed: a record missing a required key, or
carrying a value of the wrong type, raises ReportExtractionError instead of
being skipped.
"""
from __future__ import annotations

from typing import Any

from .errors import ReportExtractionError
from .models import (
    Comment,
    Diff,
    DiffReport,
    IssueType,
    Page,
    PullRequest,
    PullRequestRef,
    Task,
    User,
)


def _object(node: Any, what: str) -> dict[str, Any]:
    if not isinstance(node, dict):
        raise ReportExtractionError(f"{what}: expected a JSON object, got {type(node).__name__}")
    return node


def _list(node: dict[str, Any], key: str, what: str, required: bool = False) -> list[Any]:
    value = node.get(key)
    if value is None:
        if required:
            raise ReportExtractionError(f"{what}: missing '{key}'")
        return []
    if not isinstance(value, list):
        raise ReportExtractionError(f"{what}: '{key}' is not a list")
    return value


def _int(node: dict[str, Any], key: str, what: str) -> int:
    value = node.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ReportExtractionError(f"{what}: '{key}' must be an integer, got {value!r}")
    return value


def _str(node: dict[str, Any], key: str, what: str, default: str | None = None) -> str:
    value = node.get(key, default)
    if not isinstance(value, str):
        raise ReportExtractionError(f"{what}: '{key}' must be a string, got {value!r}")
    return value


def extract_user(node: Any) -> User:
    node = _object(node, "user")
    return User(
        id=_int(node, "id", "user"),
        name=_str(node, "name", "user"),
        slug=_str(node, "slug", "user"),
        email=_str(node, "email", "user", default=""),
    )


def extract_task(node: Any) -> Task:
    node = _object(node, "task")
    operations = _object(node.get("permittedOperations", {}), "task permittedOperations")
    deletable = operations.get("deletable", False)
    if not isinstance(deletable, bool):
        raise ReportExtractionError(f"task: 'deletable' must be a boolean, got {deletable!r}")
    return Task(
        id=_int(node, "id", "task"),
        text=_str(node, "text", "task"),
        state=_str(node, "state", "task"),
        deletable=deletable,
    )


def extract_comment(node: Any, path: str | None = None, line: int | None = None) -> Comment:
    """Build a Comment; *path*/*line* override the anchor (diff payloads)."""
    node = _object(node, "comment")
    if node.get("author") is None:
        raise ReportExtractionError(f"comment {node.get('id')!r} has no author")

    anchor = node.get("anchor")
    if anchor is not None:
        anchor = _object(anchor, "comment anchor")
        if path is None:
            path = anchor.get("path")
        if line is None:
            line = anchor.get("line")
    if path is not None and not isinstance(path, str):
        raise ReportExtractionError(f"comment anchor path must be a string, got {path!r}")
    if line is not None and (isinstance(line, bool) or not isinstance(line, int)):
        raise ReportExtractionError(f"comment anchor line must be an integer, got {line!r}")

    return Comment(
        id=_int(node, "id", "comment"),
        text=_str(node, "text", "comment"),
        path=path,
        line=line,
        author=extract_user(node["author"]),
        version=_int(node, "version", "comment"),
        tasks=tuple(extract_task(t) for t in _list(node, "tasks", "comment")),
    )


def extract_comment_page(payload: Any) -> Page[Comment]:
    payload = _object(payload, "comment page")
    next_page_start = payload.get("nextPageStart")
    if next_page_start is not None and (
        isinstance(next_page_start, bool) or not isinstance(next_page_start, int)
    ):
        raise ReportExtractionError(f"comment page: bad nextPageStart {next_page_start!r}")
    return Page(
        values=[extract_comment(c) for c in _list(payload, "values", "comment page")],
        is_last_page=payload.get("isLastPage") is True,
        next_page_start=next_page_start,
    )


def extract_pull_request(payload: Any, ref: PullRequestRef) -> PullRequest:
    payload = _object(payload, "pull request")
    reviewers = []
    for entry in _list(payload, "reviewers", "pull request"):
        reviewers.append(extract_user(_object(entry, "reviewer").get("user")))
    return PullRequest(
        id=ref.pull_request_id,
        project=ref.project,
        repository=ref.repository,
        version=_int(payload, "version", "pull request"),
        title=_str(payload, "title", "pull request", default=""),
        description=_str(payload, "description", "pull request", default=""),
        reviewers=tuple(reviewers),
    )


def extract_diff_report(payload: Any) -> DiffReport:
    payload = _object(payload, "diff report")
    report = DiffReport()
    for raw_diff in _list(payload, "diffs", "diff report"):
        raw_diff = _object(raw_diff, "diff")
        destination = raw_diff.get("destination")
        # deleted files have no destination
        if destination is None:
            continue
        path = _str(_object(destination, "diff destination"), "toString", "diff destination")

        line_comments = {}
        for raw_comment in _list(raw_diff, "lineComments", "diff"):
            raw_comment = _object(raw_comment, "line comment")
            line_comments[_int(raw_comment, "id", "line comment")] = raw_comment

        for hunk in _list(raw_diff, "hunks", "diff"):
            for segment in _list(_object(hunk, "hunk"), "segments", "hunk", required=True):
                segment = _object(segment, "segment")
                issue_type = _issue_type(segment.get("type"))
                for raw_line in _list(segment, "lines", "segment", required=True):
                    raw_line = _object(raw_line, "diff line")
                    diff = Diff(
                        type=issue_type,
                        path=path,
                        source=_int(raw_line, "source", "diff line"),
                        destination=_int(raw_line, "destination", "diff line"),
                    )
                    for comment_id in _list(raw_line, "commentIds", "diff line"):
                        if isinstance(comment_id, bool) or not isinstance(comment_id, int):
                            raise ReportExtractionError(f"diff line: bad comment id {comment_id!r}")
                        raw_comment = line_comments.get(comment_id)
                        if raw_comment is not None:
                            diff.add_comment(extract_comment(raw_comment, path, diff.destination))
                    report.add(diff)

        file_comments = _list(raw_diff, "fileComments", "diff")
        if file_comments:
            diff = Diff(type=IssueType.CONTEXT, path=path, source=0, destination=0)
            for raw_comment in file_comments:
                diff.add_comment(extract_comment(raw_comment, path, 0))
            report.add(diff)
    return report


def _issue_type(value: Any) -> IssueType:
    try:
        return IssueType(value)
    except (TypeError, ValueError) as exc:
        raise ReportExtractionError(f"segment: unknown type {value!r}") from exc
