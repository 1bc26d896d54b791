"""Build commit descriptors from GitHub event payloads or a local git checkout."""

import json
import logging
import os
import re
import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .storage.models import Actor, Commit

logger = logging.getLogger(__name__)

_SCP_REMOTE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>[^/].*)$")


class CommitLookupError(RuntimeError):
    """A commit descriptor could not be determined."""


def load_event(path: Path | str) -> dict[str, Any]:
    """Load a GitHub event payload (the file named by GITHUB_EVENT_PATH)."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        msg = f"Event payload not found: {path}"
        raise CommitLookupError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in event payload {path}: {e}"
        raise CommitLookupError(msg) from e


def commit_from_event(payload: Mapping[str, Any]) -> Commit:
    """Extract the commit descriptor from a push or pull_request payload.

    Push events carry ``head_commit`` which is stored as-is. Pull request
    events only name the head SHA, so the descriptor is assembled from the
    PR title, the head user and the head repository's update time.

    Raises:
        CommitLookupError: If the payload has neither shape
    """
    try:
        head_commit = payload.get("head_commit")
        if head_commit:
            return Commit.model_validate(head_commit)

        pr = payload.get("pull_request")
        if pr:
            sha = pr["head"]["sha"]
            login = pr["head"]["user"]["login"]
            user = Actor(name=login, username=login)
            return Commit(
                author=user,
                committer=user,
                id=sha,
                message=pr["title"],
                timestamp=pr["head"]["repo"]["updated_at"],
                url=f"{pr['html_url']}/commits/{sha}",
            )
    except (KeyError, TypeError, ValidationError) as e:
        msg = f"Malformed event payload: {e}"
        raise CommitLookupError(msg) from e

    msg = "No commit information is found in payload (expected head_commit or pull_request)"
    raise CommitLookupError(msg)


def _git(args: list[str], cwd: Path) -> str:
    return subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        stderr=subprocess.DEVNULL,
    ).decode("utf-8").strip()


def normalize_remote_url(remote: str) -> str:
    """Turn a git remote (ssh, scp-like or https) into a browsable https URL."""
    url = remote.strip()
    if url.endswith(".git"):
        url = url[:-4]

    if "://" not in url:
        match = _SCP_REMOTE.match(url)
        if match:
            return f"https://{match.group('host')}/{match.group('path')}"
        return url

    scheme, rest = url.split("://", 1)
    host_and_path = rest.split("@", 1)[-1] if "@" in rest.split("/", 1)[0] else rest
    if scheme in ("ssh", "git"):
        host, _, path = host_and_path.partition("/")
        host = host.split(":", 1)[0]
        return f"https://{host}/{path}"
    return f"{scheme}://{host_and_path}"


def resolve_repo_url(env: Mapping[str, str] | None = None, repo_path: Path | None = None) -> str:
    """Repository URL from the GitHub Actions environment or the origin remote."""
    if env is None:
        env = os.environ

    repository = env.get("GITHUB_REPOSITORY")
    if repository:
        server = env.get("GITHUB_SERVER_URL", "https://github.com").rstrip("/")
        return f"{server}/{repository}"

    try:
        remote = _git(["config", "--get", "remote.origin.url"], repo_path or Path.cwd())
    except (subprocess.CalledProcessError, FileNotFoundError):
        logger.debug("No origin remote configured")
        return ""
    return normalize_remote_url(remote) if remote else ""


def commit_from_git(
    repo_path: Path | None = None,
    ref: str = "HEAD",
    repo_url: str | None = None,
) -> Commit:
    """Describe a commit of a local checkout.

    Args:
        repo_path: Repository directory (defaults to cwd)
        ref: Revision to describe
        repo_url: Browsable repository URL used to build the commit URL

    Returns:
        Commit descriptor

    Raises:
        CommitLookupError: If git is unavailable or the ref does not resolve
    """
    if repo_path is None:
        repo_path = Path.cwd()

    fmt = "%H%x00%an%x00%ae%x00%cn%x00%ce%x00%cI%x00%T%x00%B"
    try:
        output = _git(["log", "-1", f"--format={fmt}", ref, "--"], repo_path)
    except FileNotFoundError as e:
        msg = "git executable not found"
        raise CommitLookupError(msg) from e
    except subprocess.CalledProcessError as e:
        msg = f"Cannot resolve '{ref}' in {repo_path}"
        raise CommitLookupError(msg) from e

    parts = output.split("\x00", 7)
    if len(parts) != 8:
        msg = f"Unexpected git log output for '{ref}'"
        raise CommitLookupError(msg)

    sha, author_name, author_email, committer_name, committer_email, timestamp, tree_id, message = parts
    if repo_url is None:
        repo_url = resolve_repo_url(repo_path=repo_path)

    return Commit(
        author=Actor(name=author_name, email=author_email or None),
        committer=Actor(name=committer_name, email=committer_email or None),
        id=sha,
        message=message.strip(),
        timestamp=timestamp,
        tree_id=tree_id,
        url=f"{repo_url}/commit/{sha}" if repo_url else "",
    )
