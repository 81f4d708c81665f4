from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class IssueType(str, enum.Enum):
    CONTEXT = "CONTEXT"
    ADDED = "ADDED"
    REMOVED = "REMOVED"


@dataclass(frozen=True)
class PullRequestRef:
    project: str
    repository: str
    pull_request_id: int


@dataclass(frozen=True)
class NoAuth:
    pass


@dataclass(frozen=True)
class BasicAuth:
    login: str
    password: str = ""
    user_slug: str | None = None


Credentials = Union[NoAuth, BasicAuth]


@dataclass(frozen=True)
class User:
    id: int
    name: str
    slug: str
    email: str


@dataclass(frozen=True)
class Task:
    id: int
    text: str
    state: str
    deletable: bool


@dataclass(frozen=True)
class Comment:
    id: int
    text: str
    path: str | None
    line: int | None
    author: User
    version: int
    tasks: tuple[Task, ...] = ()

    def contains_permanent_tasks(self) -> bool:
        return any(not task.deletable for task in self.tasks)

    def with_line(self, line: int | None) -> Comment:
        return dataclasses.replace(self, line=line)


class CommentReport:
    """Comments of one pull request, in the order the server returned them."""

    def __init__(self, comments: Iterable[Comment] = ()) -> None:
        self._comments: list[Comment] = list(comments)

    def add(self, comment: Comment) -> None:
        self._comments.append(comment)

    @property
    def comments(self) -> list[Comment]:
        return list(self._comments)

    def size(self) -> int:
        return len(self._comments)

    def __len__(self) -> int:
        return len(self._comments)

    def __iter__(self) -> Iterator[Comment]:
        return iter(self._comments)

    def contains(self, text: str, path: str | None, line: int | None) -> bool:
        return any(
            c.text == text and c.path == path and c.line == line for c in self._comments
        )

    def apply_diff_report(self, diff_report: DiffReport) -> CommentReport:
        """Re-anchor comments sitting on CONTEXT lines to the diff's source line.

        The server anchors comments on context lines by their source line
        number, while new analysis results are reported against the
        destination file.
        """
        result = CommentReport()
        for comment in self._comments:
            diff = diff_report.get_diff_by_comment(comment.id)
            if diff is not None and diff.is_type_of_context():
                comment = comment.with_line(diff.source)
            result.add(comment)
        return result


@dataclass
class Diff:
    type: IssueType
    path: str
    source: int
    destination: int
    comments: list[Comment] = field(default_factory=list)

    def add_comment(self, comment: Comment) -> None:
        self.comments.append(comment)

    def contains_comment(self, comment_id: int) -> bool:
        return any(c.id == comment_id for c in self.comments)

    def is_type_of_context(self) -> bool:
        return self.type is IssueType.CONTEXT


class DiffReport:
    """Line-level entries of a pull request diff, one per line of each hunk."""

    def __init__(self, diffs: Iterable[Diff] = ()) -> None:
        self._diffs: list[Diff] = list(diffs)

    def add(self, diff: Diff) -> None:
        self._diffs.append(diff)

    @property
    def diffs(self) -> list[Diff]:
        return list(self._diffs)

    def __len__(self) -> int:
        return len(self._diffs)

    def get_type(self, path: str, destination: int, vicinity_range: int = 0) -> IssueType | None:
        """Classify *destination* in *path*, or ``None`` if it is outside the diff.

        Line 0 is a file-level comment and always counts as CONTEXT. The same
        line may show up in several entries (duplicated hunks, a context line
        next to an added one); an ADDED/REMOVED entry for the exact line wins.
        """
        in_context = False
        for diff in self._diffs:
            if diff.path != path:
                continue
            if destination == 0:
                return IssueType.CONTEXT
            if diff.destination == destination and not diff.is_type_of_context():
                return diff.type
            if diff.is_type_of_context() and abs(diff.destination - destination) <= vicinity_range:
                in_context = True
        return IssueType.CONTEXT if in_context else None

    def get_line(self, path: str, destination: int) -> int:
        for diff in self._diffs:
            if diff.path == path and diff.destination == destination:
                return diff.source if diff.is_type_of_context() else diff.destination
        return 0

    def get_diff_by_comment(self, comment_id: int) -> Diff | None:
        for diff in self._diffs:
            if diff.contains_comment(comment_id):
                return diff
        return None

    @property
    def comments(self) -> list[Comment]:
        seen: set[int] = set()
        result: list[Comment] = []
        for diff in self._diffs:
            for comment in diff.comments:
                if comment.id not in seen:
                    seen.add(comment.id)
                    result.append(comment)
        return result


@dataclass(frozen=True)
class PullRequest:
    id: int
    project: str
    repository: str
    version: int
    title: str
    description: str
    reviewers: tuple[User, ...] = ()

    def get_reviewer(self, user: User) -> User | None:
        for reviewer in self.reviewers:
            if reviewer.slug == user.slug:
                return reviewer
        return None

    def contains_reviewer(self, user: User) -> bool:
        return self.get_reviewer(user) is not None


@dataclass(frozen=True)
class Page(Generic[T]):
    values: list[T]
    is_last_page: bool
    next_page_start: int | None = None
