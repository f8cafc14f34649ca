"""Object store backed by the ``git`` executable."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Sequence, TypeVar

from . import exec as exec_util
from . import log as dit_log
from .errors import NotACommit, NotFound, StoreCommandFailed
from .store import ZERO_ID, RawCommit, StoredRef

ParsedT = TypeVar("ParsedT")


def _log_debug(message: str) -> None:
    dit_log.debug(f"[store] {message}")


def git_command(args: list[str], *, git_path: str | None = None) -> list[str]:
    """Build a git command using an optional executable path.

    Example:
        >>> git_command(["status"], git_path="/usr/bin/git")
        ['/usr/bin/git', 'status']
    """
    resolved = git_path.strip() if isinstance(git_path, str) else ""
    if not resolved:
        resolved = "git"
    return [resolved, *args]


def git_repo_root(start: Path, *, git_path: str | None = None) -> Path | None:
    """Return the git repository root for a starting path, if any."""
    result = exec_util.run_with_runner(
        exec_util.CommandRequest(
            argv=tuple(
                git_command(["-C", str(start), "rev-parse", "--show-toplevel"], git_path=git_path)
            )
        )
    )
    if result is None:
        raise StoreCommandFailed("missing required command: git")
    if result.returncode != 0:
        return None
    resolved = result.stdout.strip()
    if not resolved:
        return None
    return Path(resolved)


def parse_commit_object(object_id: str, payload: str) -> RawCommit:
    """Parse ``git cat-file commit`` output into a ``RawCommit``."""
    header, _, message = payload.partition("\n\n")
    parents = tuple(
        line.split(" ", 1)[1].strip() for line in header.splitlines() if line.startswith("parent ")
    )
    return RawCommit(id=object_id, parents=parents, raw=message.encode("utf-8"))


def parse_ref_listing(result: exec_util.CommandResult) -> list[StoredRef]:
    """Parse ``for-each-ref --format='%(objectname) %(refname)'`` output."""
    refs: list[StoredRef] = []
    for line in result.stdout.splitlines():
        target, _, name = line.strip().partition(" ")
        if target and name:
            refs.append(StoredRef(name=name, target=target))
    return sorted(refs)


def _stdout_id(result: exec_util.CommandResult) -> str:
    object_id = result.stdout.strip()
    if not object_id:
        raise ValueError("empty object id")
    return object_id


class GitStore:
    """``ObjectStore`` implementation that shells out to git.

    Reference updates use ``git update-ref <name> <new> <old>``, which git
    performs atomically under the reference lock.
    """

    def __init__(
        self,
        repo_dir: Path,
        *,
        git_path: str | None = None,
        env: Mapping[str, str] | None = None,
        runner: exec_util.CommandRunner | None = None,
    ) -> None:
        self.repo_dir = repo_dir
        self.git_path = git_path
        self.env = env
        self.runner = runner

    def _request(self, args: list[str], *, input_text: str | None = None) -> exec_util.CommandRequest:
        return exec_util.CommandRequest(
            argv=tuple(git_command(["-C", str(self.repo_dir), *args], git_path=self.git_path)),
            env=self.env,
            input_text=input_text,
        )

    def _run(self, args: list[str], *, input_text: str | None = None) -> exec_util.CommandResult:
        result = exec_util.run_with_runner(
            self._request(args, input_text=input_text), runner=self.runner
        )
        if result is None:
            raise StoreCommandFailed("missing required command: git")
        _log_debug(f"git {' '.join(args)} rc={result.returncode}")
        return result

    def _query(
        self,
        args: list[str],
        parser: Callable[[exec_util.CommandResult], ParsedT],
        *,
        input_text: str | None = None,
        context: str | None = None,
    ) -> ParsedT:
        spec = exec_util.CommandSpec(
            request=self._request(args, input_text=input_text), parser=parser, context=context
        )
        _log_debug(f"git {' '.join(args)}")
        try:
            return exec_util.run_typed(spec, runner=self.runner)
        except (exec_util.CommandExecutionError, exec_util.CommandParseError) as exc:
            raise StoreCommandFailed(str(exc)) from exc

    def resolve(self, rev: str) -> str:
        result = self._run(["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"])
        object_id = result.stdout.strip()
        if result.returncode != 0 or not object_id:
            raise NotFound(f"cannot resolve revision {rev!r}")
        return object_id

    def read_message(self, object_id: str) -> RawCommit:
        kind = self._run(["cat-file", "-t", object_id])
        if kind.returncode != 0:
            raise NotFound(f"object {object_id} does not exist")
        if kind.stdout.strip() != "commit":
            raise NotACommit(object_id)
        return self._query(
            ["cat-file", "commit", object_id],
            lambda result: parse_commit_object(object_id, result.stdout),
            context="commit object",
        )

    def empty_tree(self) -> str:
        return self._query(["mktree"], _stdout_id, input_text="", context="empty tree")

    def create_message(self, parents: Sequence[str], raw: bytes) -> str:
        args = ["commit-tree", self.empty_tree()]
        for parent in parents:
            args.extend(["-p", parent])
        return self._query(args, _stdout_id, input_text=raw.decode("utf-8"), context="commit id")

    def list_references(self, prefix: str) -> list[StoredRef]:
        return self._query(
            ["for-each-ref", "--format=%(objectname) %(refname)", prefix.rstrip("/")],
            parse_ref_listing,
            context="reference listing",
        )

    def compare_and_swap_reference(self, name: str, expected_old: str | None, new: str) -> bool:
        result = self._run(
            ["update-ref", "-m", f"git-dit: set {name}", name, new, expected_old or ZERO_ID]
        )
        if result.returncode != 0:
            _log_debug(f"update-ref rejected ref={name} detail={result.stderr.strip() or 'none'}")
            return False
        return True

    def reference_target(self, name: str) -> str | None:
        result = self._run(["rev-parse", "--verify", "--quiet", name])
        target = result.stdout.strip()
        if result.returncode != 0 or not target:
            return None
        return target

    def delete_reference(self, name: str, expected: str | None = None) -> bool:
        if self.reference_target(name) is None:
            raise NotFound(f"reference {name} does not exist")
        args = ["update-ref", "-d", name]
        if expected is not None:
            args.append(expected)
        result = self._run(args)
        return result.returncode == 0

    def fetch(self, remote: str, refspecs: Sequence[str]) -> None:
        self._query(["fetch", remote, *refspecs], lambda _result: None)

    def push(self, remote: str, refspecs: Sequence[str]) -> None:
        self._query(["push", remote, *refspecs], lambda _result: None)

    def config_get(self, key: str) -> str | None:
        result = self._run(["config", "--get", key])
        if result.returncode != 0:
            return None
        value = result.stdout.strip()
        return value or None
