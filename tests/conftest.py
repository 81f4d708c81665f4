"""Shared factories and fixtures for the test suite."""
from __future__ import annotations

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from stashlens.client import StashClient
from stashlens.models import BasicAuth, Comment, PullRequestRef, Task, User

BASE_URL = "http://stash.test"
PR_PATH = "/rest/api/1.0/projects/Project/repos/Repository/pull-requests/1"
PR_URL = f"{BASE_URL}{PR_PATH}"

# ---------------------------------------------------------------------------
# REST payload factories — return raw dicts that mirror API responses
# ---------------------------------------------------------------------------


def user_node(
    id: int = 1,
    name: str = "SonarQube",
    slug: str = "sonarqube",
    email: str = "sq@email.com",
) -> dict:
    return {"id": id, "name": name, "slug": slug, "email": email}


def task_node(
    id: int = 1111,
    text: str = "some text",
    state: str = "OPEN",
    deletable: bool = True,
) -> dict:
    return {
        "id": id,
        "text": text,
        "state": state,
        "permittedOperations": {"deletable": deletable},
    }


def comment_node(
    id: int = 1234,
    text: str = "message",
    path: str | None = "path",
    line: int | None = 5,
    author: dict | None = None,
    version: int = 0,
    with_author: bool = True,
    tasks: list | None = None,
) -> dict:
    node: dict = {"id": id, "text": text, "version": version}
    if path is not None:
        anchor: dict = {"path": path}
        if line is not None:
            anchor["line"] = line
        node["anchor"] = anchor
    if with_author:
        node["author"] = author or user_node()
    if tasks is not None:
        node["tasks"] = tasks
    return node


def comment_page(
    values: list[dict],
    is_last_page: bool | None = None,
    next_page_start: int | None = None,
) -> dict:
    page: dict = {"values": values}
    if is_last_page is not None:
        page["isLastPage"] = is_last_page
    if next_page_start is not None:
        page["nextPageStart"] = next_page_start
    return page


def error_body(
    message: str = "A detailed error message.",
    exception_name: str = "seriousException",
) -> dict:
    return {"errors": [{"context": None, "message": message, "exceptionName": exception_name}]}


def diff_line(source: int, destination: int, comment_ids: list[int] | None = None) -> dict:
    line: dict = {"source": source, "destination": destination}
    if comment_ids is not None:
        line["commentIds"] = comment_ids
    return line


def diff_report_payload(tasks: list | str | None = None) -> dict:
    """Two files: one modified file with four line entries and one deleted file."""
    commented = comment_node(id=12345, text="Issue on line 20", path=None, tasks=tasks)
    return {
        "diffs": [
            {
                "source": {"toString": "path/to/diff1"},
                "destination": {"toString": "path/to/diff1"},
                "hunks": [
                    {
                        "segments": [
                            {"type": "CONTEXT", "lines": [diff_line(10, 20, [12345])]},
                            {"type": "ADDED", "lines": [diff_line(11, 21), diff_line(11, 22)]},
                            {"type": "REMOVED", "lines": [diff_line(12, 22)]},
                        ]
                    }
                ],
                "lineComments": [commented],
            },
            {
                "source": {"toString": "path/to/deleted"},
                "destination": None,
                "hunks": [
                    {"segments": [{"type": "REMOVED", "lines": [diff_line(1, 1)]}]}
                ],
            },
        ]
    }


# ---------------------------------------------------------------------------
# Model object factories — construct typed model instances
# ---------------------------------------------------------------------------


def make_user(
    id: int = 1,
    name: str = "userName",
    slug: str = "userSlug",
    email: str = "email",
) -> User:
    return User(id=id, name=name, slug=slug, email=email)


def make_comment(
    id: int = 1234,
    text: str = "message",
    path: str | None = "path",
    line: int | None = 42,
    author: User | None = None,
    version: int = 0,
    tasks: tuple[Task, ...] = (),
) -> Comment:
    return Comment(
        id=id,
        text=text,
        path=path,
        line=line,
        author=author or make_user(),
        version=version,
        tasks=tasks,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def pr_ref() -> PullRequestRef:
    return PullRequestRef("Project", "Repository", 1)


@pytest.fixture
def client():
    with StashClient(
        BASE_URL,
        BasicAuth("login@email.com", "password"),
        timeout=0.8,
        client_version="dummyVersion",
    ) as c:
        yield c


@pytest.fixture(autouse=True)
def no_dotenv(mocker):
    """Prevent tests from loading a real .env file."""
    mocker.patch("stashlens.cli.load_dotenv")


class _SlowHandler(BaseHTTPRequestHandler):
    """Answers with a user payload, either late or one byte at a time."""

    mode = "drip"
    body = json.dumps({"id": 1, "name": "n", "slug": "s", "email": "e"}).encode()

    def do_GET(self):
        try:
            if self.mode == "delay":
                time.sleep(2.0)
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(self.body)))
            self.end_headers()
            for byte in self.body:
                self.wfile.write(bytes([byte]))
                self.wfile.flush()
                if self.mode == "drip":
                    time.sleep(0.3)
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def slow_server(request):
    """Local HTTP server; ``@pytest.mark.parametrize("slow_server", ["delay"], indirect=True)`` picks the mode."""
    handler = type("Handler", (_SlowHandler,), {"mode": getattr(request, "param", "drip")})
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
