import pytest

import gitdit.refs as refs
from gitdit.errors import HeadExists, ReferenceConflict
from gitdit.store import MemoryStore, StoredRef
from tests.gitdit.helpers import make_issue, make_message, set_head, set_leaf

ISSUE = "a" * 40
LEAF = "b" * 40


@pytest.mark.parametrize(
    ("name", "kind", "remote", "leaf"),
    [
        (f"refs/dit/{ISSUE}/head", refs.RefKind.HEAD, None, None),
        (f"refs/dit/{ISSUE}/leaves/{LEAF}", refs.RefKind.LEAF, None, LEAF),
        (f"refs/remotes/origin/dit/{ISSUE}/head", refs.RefKind.HEAD, "origin", None),
        (f"refs/remotes/up/dit/{ISSUE}/leaves/{LEAF}", refs.RefKind.LEAF, "up", LEAF),
        (f"refs/dit/{ISSUE}/other", refs.RefKind.UNRECOGNIZED, None, None),
        ("refs/dit/short/head", refs.RefKind.UNRECOGNIZED, None, None),
        (f"refs/heads/dit/{ISSUE}/head", refs.RefKind.UNRECOGNIZED, None, None),
    ],
)
def test_classify(name: str, kind: refs.RefKind, remote: str | None, leaf: str | None) -> None:
    classified = refs.classify(name)

    assert classified.kind is kind
    assert classified.remote == remote
    assert classified.leaf == leaf
    if kind is not refs.RefKind.UNRECOGNIZED:
        assert classified.issue == ISSUE


def test_ref_names_round_trip_through_classify() -> None:
    assert refs.classify(refs.head_ref_name(ISSUE, "origin")).remote == "origin"
    assert refs.classify(refs.leaf_ref_name(ISSUE, LEAF)).leaf == LEAF


def test_issue_ref_from_stored_skips_unrecognized() -> None:
    assert refs.IssueRef.from_stored(StoredRef("refs/heads/main", LEAF)) is None
    parsed = refs.IssueRef.from_stored(StoredRef(f"refs/dit/{ISSUE}/head", LEAF))
    assert parsed is not None
    assert parsed.is_local
    assert parsed.target == LEAF


def test_refspecs() -> None:
    assert refs.issue_refspec("origin", ISSUE) == (
        f"+refs/dit/{ISSUE}/*:refs/remotes/origin/dit/{ISSUE}/*"
    )
    assert refs.all_issues_refspec("origin") == "+refs/dit/*:refs/remotes/origin/dit/*"


def test_remote_priority_positions() -> None:
    priority = refs.RemotePriority.parse("upstream, *, origin")

    assert priority.priority_for_remote(None) == 0
    assert priority.priority_for_remote("upstream") == 1
    assert priority.priority_for_remote("origin") == 2
    assert priority.includes("anything")


def test_remote_priority_excludes_unlisted_remotes() -> None:
    priority = refs.RemotePriority.parse(["origin"])

    assert priority.priority_for_remote("fork") is None
    assert not priority.includes("fork")
    assert refs.RemotePriority.parse("").entries == ("*",)
    assert refs.RemotePriority.parse(None).entries == ("*",)


def test_select_ref_prefers_local_then_priority_order() -> None:
    def ref(remote: str | None, target: str) -> refs.IssueRef:
        return refs.IssueRef(
            name=refs.head_ref_name(ISSUE, remote),
            target=target,
            kind=refs.RefKind.HEAD,
            issue=ISSUE,
            remote=remote,
        )

    local = ref(None, "1" * 40)
    origin = ref("origin", "2" * 40)
    upstream = ref("upstream", "3" * 40)
    fork = ref("fork", "4" * 40)
    priority = refs.RemotePriority.parse("upstream,origin")

    assert priority.select_ref([origin, upstream, local]) == local
    assert priority.select_ref([origin, upstream, fork]) == upstream
    assert priority.select_ref([fork]) is None
    assert priority.select_ref([]) is None


def test_issue_refs_filters_by_type_and_scope(memory_store: MemoryStore) -> None:
    issue = make_issue(memory_store, "Issue")
    reply = make_message(memory_store, "Re: Issue", parents=[issue])
    set_leaf(memory_store, issue, reply)
    set_head(memory_store, issue, reply, remote="origin")
    other = make_issue(memory_store, "Other")
    scheme = refs.ReferenceScheme(memory_store)

    assert [ref.kind for ref in scheme.issue_refs(issue, refs.RefType.HEAD)] == [
        refs.RefKind.HEAD,
        refs.RefKind.HEAD,
    ]
    assert [ref.remote for ref in scheme.issue_refs(issue, scope=refs.RefScope.REMOTE)] == ["origin"]
    assert [ref.leaf for ref in scheme.issue_refs(issue, refs.RefType.LEAF)] == [reply]
    assert all(ref.issue == other for ref in scheme.issue_refs(other))


def test_update_head_requires_replace_flag(memory_store: MemoryStore) -> None:
    issue = make_issue(memory_store, "Issue")
    reply = make_message(memory_store, "Re: Issue", parents=[issue])
    scheme = refs.ReferenceScheme(memory_store)

    with pytest.raises(HeadExists):
        scheme.update_head(issue, reply)
    with pytest.raises(HeadExists):
        scheme.update_head(issue, issue)
    assert scheme.update_head(issue, reply, replace_existing=True) == issue
    assert scheme.target_of(refs.head_ref_name(issue)) == reply


def test_update_head_creates_missing_head(memory_store: MemoryStore) -> None:
    issue = make_message(memory_store, "Issue")
    scheme = refs.ReferenceScheme(memory_store)

    assert scheme.update_head(issue, issue) is None
    assert memory_store.refs[refs.head_ref_name(issue)] == issue


def test_update_head_reports_lost_race(memory_store: MemoryStore) -> None:
    issue = make_issue(memory_store, "Issue")
    reply = make_message(memory_store, "Re: Issue", parents=[issue])
    scheme = refs.ReferenceScheme(memory_store)
    original_cas = memory_store.compare_and_swap_reference

    def racing_cas(name: str, expected_old: str | None, new: str) -> bool:
        memory_store.refs[name] = reply
        return original_cas(name, expected_old, new)

    memory_store.compare_and_swap_reference = racing_cas  # type: ignore[method-assign]

    with pytest.raises(ReferenceConflict):
        scheme.update_head(issue, issue, replace_existing=True)


def test_create_leaf_is_idempotent(memory_store: MemoryStore) -> None:
    issue = make_issue(memory_store, "Issue")
    reply = make_message(memory_store, "Re: Issue", parents=[issue])
    scheme = refs.ReferenceScheme(memory_store)

    name = scheme.create_leaf(issue, reply)

    assert scheme.create_leaf(issue, reply) == name
    memory_store.refs[name] = issue
    with pytest.raises(ReferenceConflict):
        scheme.create_leaf(issue, reply)
