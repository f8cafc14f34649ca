"""Failure contracts for issue parsing, traversal and reference updates.

Core operations raise ``DitError`` subclasses on expected failures and never
retry or swallow them. Callers catch ``DitError`` and handle per their
interface (the CLI logs and exits non-zero). Programmer bugs raise normal
exceptions.
"""

from __future__ import annotations

from typing import Literal

DitErrorCode = Literal[
    "malformed_message",
    "not_found",
    "unresolved_object",
    "not_a_commit",
    "no_issue_found",
    "reference_conflict",
    "head_exists",
    "cycle_detected",
    "store_command_failed",
    "invalid_config",
]


class DitError(Exception):
    """Expected failure of a gitdit operation."""

    def __init__(
        self,
        code: DitErrorCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recovery_hint = recovery_hint


class MalformedMessage(DitError):
    """Message text does not follow the subject/blank-line/body layout."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("malformed_message", message, recovery_hint=recovery_hint)


class NotFound(DitError):
    """A revision, object or reference does not exist in the store."""

    def __init__(
        self,
        message: str,
        *,
        code: DitErrorCode = "not_found",
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(code, message, recovery_hint=recovery_hint)


class UnresolvedObject(NotFound):
    """A traversal reached an object id missing from the store."""

    def __init__(self, object_id: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            f"object {object_id} is not present in the store",
            code="unresolved_object",
            recovery_hint=recovery_hint or "fetch the issue from a remote that has it",
        )
        self.object_id = object_id


class NotACommit(DitError):
    """An object id resolves to something other than a commit."""

    def __init__(self, object_id: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "not_a_commit", f"object {object_id} is not a commit", recovery_hint=recovery_hint
        )
        self.object_id = object_id


class NoIssueFound(DitError):
    """No issue could be associated with a message."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("no_issue_found", message, recovery_hint=recovery_hint)


class ReferenceConflict(DitError):
    """A compare-and-swap reference update lost a race or found a divergent ref."""

    def __init__(
        self,
        refname: str,
        detail: str | None = None,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        message = f"reference {refname} was updated concurrently"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(
            "reference_conflict",
            message,
            recovery_hint=recovery_hint or "re-read the reference and retry",
        )
        self.refname = refname


class HeadExists(DitError):
    """An issue head already exists and replacing it was not requested."""

    def __init__(self, refname: str, target: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "head_exists",
            f"head reference {refname} already points to {target}",
            recovery_hint=recovery_hint or "pass replace_existing=True to move the head",
        )
        self.refname = refname
        self.target = target


class CycleDetected(DitError):
    """The message graph contains a back-edge."""

    def __init__(self, object_id: str, *, recovery_hint: str | None = None) -> None:
        super().__init__(
            "cycle_detected",
            f"message graph contains a cycle through {object_id}",
            recovery_hint=recovery_hint,
        )
        self.object_id = object_id


class StoreCommandFailed(DitError):
    """The backing store failed in a way not covered by another kind."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("store_command_failed", message, recovery_hint=recovery_hint)
