"""Collect issue records from GitHub activity.

Three strategies are supported and exactly one is chosen per run:

``EXPLICIT``
    A comma separated list of keys supplied by the caller.
``TAG_RANGE``
    Every commit between two tags, as reported by the compare API.
``CURRENT_CONTEXT``
    The pull requests associated with the commit being deployed, falling
    back to the commit message itself.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from tracker.issue_keys import DEFAULT_KEY_PREFIX, extract_issue_keys
from tracker.models import IssueRecord
from tracker.version import __version__

logger = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"
USER_AGENT = f"issue-sheet-sync/{__version__}"


class GitHubError(RuntimeError):
    """Raised when the GitHub API cannot be queried."""


class SourceStrategy(Enum):
    EXPLICIT = "explicit"
    TAG_RANGE = "tag-range"
    CURRENT_CONTEXT = "current-context"


def normalize_environment(value: str) -> str:
    """Map free-form environment names (``prod``, ``InternalTest``) to a known stage."""

    text = (value or "").strip().lower()
    if text.startswith("int"):
        return "internal"
    if text.startswith("stage"):
        return "stage"
    if text.startswith("prod"):
        return "production"
    return ""


def extract_all_issue_keys(text: str, *, prefix: str = DEFAULT_KEY_PREFIX) -> List[str]:
    return extract_issue_keys(text, prefix=prefix)


def select_strategy(jira_tickets: str = "", base_tag: str = "", head_tag: str = "") -> SourceStrategy:
    if jira_tickets.strip():
        return SourceStrategy.EXPLICIT
    if base_tag.strip() and head_tag.strip():
        return SourceStrategy.TAG_RANGE
    return SourceStrategy.CURRENT_CONTEXT


@dataclass
class GitHubClient:
    """Minimal read-only client for the GitHub REST API."""

    token: str
    repo: str
    opener: Optional[Callable[[urllib.request.Request], Any]] = None
    api_root: str = API_ROOT

    def get_json(self, path: str) -> Any:
        url = f"{self.api_root}/repos/{self.repo}/{path.lstrip('/')}"
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        request = urllib.request.Request(url, headers=headers)
        opener = self.opener or urllib.request.urlopen
        try:
            with opener(request) as response:
                payload = response.read()
        except urllib.error.HTTPError as exc:
            raise GitHubError(f"GitHub request failed ({exc.code}): {url}") from exc
        except urllib.error.URLError as exc:
            raise GitHubError(f"Unable to reach GitHub: {exc.reason}") from exc
        try:
            return json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise GitHubError(f"GitHub returned invalid JSON for {url}") from exc

    def compare(self, base: str, head: str) -> Dict[str, Any]:
        quoted = f"{urllib.parse.quote(base, safe='')}...{urllib.parse.quote(head, safe='')}"
        return self.get_json(f"compare/{quoted}")

    def pulls_for_commit(self, sha: str) -> List[Dict[str, Any]]:
        return list(self.get_json(f"commits/{sha}/pulls") or [])

    def commit(self, sha: str) -> Dict[str, Any]:
        return self.get_json(f"commits/{sha}")


def _login(payload: Optional[Dict[str, Any]]) -> str:
    if not payload:
        return ""
    return str(payload.get("login") or "")


def from_explicit_tickets(text: str, app: str, environment: str) -> List[IssueRecord]:
    records: List[IssueRecord] = []
    for part in (text or "").split(","):
        key = part.strip().upper()
        if not key:
            continue
        records.append(IssueRecord(issue_key=key, environment=environment, app=app))
    return records


def from_tag_range(
    client: GitHubClient,
    base_tag: str,
    head_tag: str,
    app: str,
    environment: str,
    *,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> List[IssueRecord]:
    comparison = client.compare(base_tag, head_tag)
    commits = comparison.get("commits", []) or []
    logger.info("Found %d commits between %s and %s", len(commits), base_tag, head_tag)

    records: List[IssueRecord] = []
    for commit in commits:
        details = commit.get("commit", {}) or {}
        message = str(details.get("message", ""))
        keys = extract_all_issue_keys(message, prefix=prefix)
        if not keys:
            continue
        author = _login(commit.get("author")) or str((details.get("author") or {}).get("name", ""))
        title = message.splitlines()[0] if message else ""
        url = str(commit.get("html_url", ""))

        sha = str(commit.get("sha", ""))
        try:
            pulls = client.pulls_for_commit(sha) if sha else []
        except GitHubError as exc:
            logger.warning("Skipping pull request lookup for %s: %s", sha[:7], exc)
            pulls = []
        if pulls:
            pull = pulls[0]
            title = str(pull.get("title", title))
            url = str(pull.get("html_url", url))
            author = _login(pull.get("user")) or author

        for key in keys:
            records.append(
                IssueRecord(issue_key=key, title=title, author=author, environment=environment, app=app, url=url)
            )
    return records


def from_current_context(
    client: GitHubClient,
    sha: str,
    app: str,
    environment: str,
    *,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> List[IssueRecord]:
    try:
        pulls = client.pulls_for_commit(sha)
    except GitHubError as exc:
        logger.warning("Pull request lookup for %s failed, using the commit message: %s", sha[:7], exc)
        pulls = []

    records: List[IssueRecord] = []
    for pull in pulls:
        try:
            title = str(pull["title"])
            branch = str((pull.get("head") or {}).get("ref", ""))
        except (KeyError, TypeError) as exc:
            logger.warning("Skipping pull request #%s: unexpected payload (%s)", pull.get("number", "?"), exc)
            continue
        keys = extract_all_issue_keys(f"{title} {branch}", prefix=prefix)
        if not keys:
            logger.warning("Skipping PR #%s: no issue key in %r", pull.get("number", "?"), title)
            continue
        for key in keys:
            records.append(
                IssueRecord(
                    issue_key=key,
                    title=title,
                    author=_login(pull.get("user")),
                    environment=environment,
                    app=app,
                    url=str(pull.get("html_url", "")),
                )
            )

    if records:
        return records

    commit = client.commit(sha)
    message = str((commit.get("commit") or {}).get("message", ""))
    for key in extract_all_issue_keys(message, prefix=prefix):
        records.append(
            IssueRecord(
                issue_key=key,
                title=message.splitlines()[0] if message else "",
                author=_login(commit.get("author")),
                environment=environment,
                app=app,
                url=str(commit.get("html_url", "")),
            )
        )
    return records


def dedupe_records(records: Iterable[IssueRecord]) -> List[IssueRecord]:
    seen = set()
    unique: List[IssueRecord] = []
    for record in records:
        if record.issue_key in seen:
            continue
        seen.add(record.issue_key)
        unique.append(record)
    return unique


def collect_issue_records(
    app: str,
    environment: str,
    *,
    jira_tickets: str = "",
    base_tag: str = "",
    head_tag: str = "",
    client: Optional[GitHubClient] = None,
    sha: str = "",
    prefix: str = DEFAULT_KEY_PREFIX,
) -> List[IssueRecord]:
    """Run the strategy selected by the inputs and return unique records."""

    strategy = select_strategy(jira_tickets, base_tag, head_tag)
    logger.info("Collecting issues using the %s strategy", strategy.value)

    if strategy is SourceStrategy.EXPLICIT:
        records = from_explicit_tickets(jira_tickets, app, environment)
    else:
        if client is None:
            raise GitHubError("A GitHub repository and token are required to look up issues.")
        if strategy is SourceStrategy.TAG_RANGE:
            records = from_tag_range(client, base_tag, head_tag, app, environment, prefix=prefix)
        else:
            if not sha:
                raise GitHubError("A commit SHA is required to look up the current pull request.")
            records = from_current_context(client, sha, app, environment, prefix=prefix)

    unique = dedupe_records(records)
    logger.info("Collected %d issues", len(unique))
    return unique


__all__ = [
    "GitHubClient",
    "GitHubError",
    "SourceStrategy",
    "collect_issue_records",
    "dedupe_records",
    "extract_all_issue_keys",
    "from_current_context",
    "from_explicit_tickets",
    "from_tag_range",
    "normalize_environment",
    "select_strategy",
]
