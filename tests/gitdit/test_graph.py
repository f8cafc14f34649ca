import pytest

import gitdit.graph as graph
from gitdit.errors import CycleDetected, UnresolvedObject
from gitdit.store import MemoryStore
from tests.gitdit.helpers import insert_raw, make_message


def _diamond(store: MemoryStore) -> dict[str, str]:
    root = make_message(store, "Root")
    left = make_message(store, "Left", parents=[root])
    right = make_message(store, "Right", parents=[root])
    merge = make_message(store, "Merge", parents=[left, right])
    return {"root": root, "left": left, "right": right, "merge": merge}


def test_all_parents_visits_each_message_once(memory_store: MemoryStore) -> None:
    ids = _diamond(memory_store)
    messages = graph.MessageGraph(memory_store)

    walked = list(messages.walk(ids["merge"]).ids())

    assert walked == [ids["merge"], ids["left"], ids["root"], ids["right"]]


def test_walk_is_restartable(memory_store: MemoryStore) -> None:
    ids = _diamond(memory_store)
    walk = graph.MessageGraph(memory_store).walk(ids["merge"])

    assert list(walk.ids()) == list(walk.ids())


def test_first_parent_chain_stops_at_until(memory_store: MemoryStore) -> None:
    ids = _diamond(memory_store)
    messages = graph.MessageGraph(memory_store)

    chain = [message.subject for message in messages.first_parent_chain(ids["merge"], until=ids["left"])]

    assert chain == ["Merge", "Left"]


def test_until_stops_expansion_but_other_branches_continue(memory_store: MemoryStore) -> None:
    ids = _diamond(memory_store)
    messages = graph.MessageGraph(memory_store)

    reached = messages.ancestors(ids["merge"], until=ids["left"])

    assert reached == {ids["merge"], ids["left"], ids["right"], ids["root"]}
    assert messages.ancestors(ids["left"], until=ids["left"]) == {ids["left"]}


def test_multiple_starts_share_visited_set(memory_store: MemoryStore) -> None:
    ids = _diamond(memory_store)
    messages = graph.MessageGraph(memory_store)

    walked = list(messages.walk([ids["left"], ids["right"]]).ids())

    assert walked == [ids["left"], ids["root"], ids["right"]]


def test_first_parent_starts_stop_when_joining(memory_store: MemoryStore) -> None:
    ids = _diamond(memory_store)
    messages = graph.MessageGraph(memory_store)

    walked = list(
        messages.walk(
            [ids["left"], ids["right"]], graph.TraversalMode.FIRST_PARENT_ONLY
        ).ids()
    )

    assert walked == [ids["left"], ids["root"], ids["right"]]


def test_missing_parent_raises_unresolved(memory_store: MemoryStore) -> None:
    insert_raw(memory_store, "a" * 40, ["f" * 40], "Orphan\n")
    messages = graph.MessageGraph(memory_store)

    with pytest.raises(UnresolvedObject) as excinfo:
        list(messages.walk("a" * 40))

    assert excinfo.value.object_id == "f" * 40


def test_cycles_are_detected_in_both_modes(memory_store: MemoryStore) -> None:
    insert_raw(memory_store, "a" * 40, ["b" * 40], "A\n")
    insert_raw(memory_store, "b" * 40, ["a" * 40], "B\n")
    messages = graph.MessageGraph(memory_store)

    with pytest.raises(CycleDetected):
        list(messages.walk("a" * 40))
    with pytest.raises(CycleDetected):
        list(messages.first_parent_chain("a" * 40))


def test_messages_are_cached(memory_store: MemoryStore) -> None:
    object_id = make_message(memory_store, "Subject")
    messages = graph.MessageGraph(memory_store)

    first = messages.message(object_id)
    del memory_store.objects[object_id]

    assert messages.message(object_id) is first


def test_ancestors_read_parent_ids_only(memory_store: MemoryStore) -> None:
    insert_raw(memory_store, "c" * 40, [], "Plain commit\nwithout a blank second line\n")
    insert_raw(memory_store, "d" * 40, ["c" * 40], "Reply\n")
    messages = graph.MessageGraph(memory_store)

    assert messages.ancestors("d" * 40) == {"c" * 40, "d" * 40}
    assert messages.parents("d" * 40) == ("c" * 40,)


def test_ancestors_report_missing_and_cyclic_history(memory_store: MemoryStore) -> None:
    insert_raw(memory_store, "a" * 40, ["b" * 40], "A\n")
    insert_raw(memory_store, "b" * 40, ["a" * 40], "B\n")
    insert_raw(memory_store, "e" * 40, ["f" * 40], "Orphan\n")
    messages = graph.MessageGraph(memory_store)

    with pytest.raises(CycleDetected):
        messages.ancestors("a" * 40)
    with pytest.raises(UnresolvedObject) as excinfo:
        messages.ancestors("e" * 40)
    assert excinfo.value.object_id == "f" * 40


def test_walk_within_skips_foreign_parents(memory_store: MemoryStore) -> None:
    insert_raw(memory_store, "c" * 40, [], "Plain commit\nwithout a blank second line\n")
    root = make_message(memory_store, "Root")
    reply = make_message(memory_store, "Reply", parents=[root, "c" * 40])
    messages = graph.MessageGraph(memory_store)

    members = messages.descendants(root, messages.ancestors(reply))

    assert members == {root, reply}
    assert set(messages.walk(reply, within=members).ids()) == {root, reply}
