import asyncio
import json

from lio_agent.store.json_store import WorkspaceStore
from lio_agent.store.models import ConversationMessage, ImagePart, Memory, Task, TextPart, User


def test_messages_are_scoped_limited_and_oldest_first(tmp_path):
    store = WorkspaceStore(tmp_path)

    async def _run():
        for i in range(5):
            await store.create_message(
                ConversationMessage(user_id="u1", role="user", content=f"m{i}", created_at=f"2024-01-01T00:00:0{i}")
            )
        await store.create_message(ConversationMessage(user_id="u2", role="user", content="other"))
        return await store.get_messages_by_user_id("u1", limit=3)

    rows = asyncio.run(_run())
    assert [r.content for r in rows] == ["m2", "m3", "m4"]


def test_message_content_parts_round_trip_on_disk(tmp_path):
    store = WorkspaceStore(tmp_path)
    message = ConversationMessage(user_id="u", role="user", content=[TextPart("hi"), ImagePart("https://x/1.png")])

    asyncio.run(store.create_message(message))
    raw = json.loads((tmp_path / "state" / "store" / "messages.json").read_text(encoding="utf-8"))
    loaded = asyncio.run(store.get_messages_by_user_id("u"))

    assert raw["items"][0]["userId"] == "u"
    assert raw["items"][0]["content"][1] == {"type": "image", "url": "https://x/1.png"}
    assert loaded[0].content == [TextPart("hi"), ImagePart("https://x/1.png")]


def test_create_tasks_is_idempotent_by_id(tmp_path):
    store = WorkspaceStore(tmp_path)
    task = Task(user_id="u", title="開會", id="fixed-id")

    asyncio.run(store.create_tasks([task]))
    asyncio.run(store.create_tasks([task]))

    assert len(asyncio.run(store.get_tasks_by_user_id("u"))) == 1


def test_update_and_delete_respect_ownership(tmp_path):
    store = WorkspaceStore(tmp_path)
    task = asyncio.run(store.create_task(Task(user_id="owner", title="t", priority="low")))

    assert asyncio.run(store.update_task_by_id(task.id, {"completed": True}, user_id="intruder")) is None
    updated = asyncio.run(
        store.update_task_by_id(task.id, {"completed": True, "title": None}, user_id="owner")
    )
    assert updated.completed is True
    assert updated.title == "t"

    assert asyncio.run(store.delete_task_by_id(task.id, user_id="intruder")) is False
    assert asyncio.run(store.delete_task_by_id(task.id, user_id="owner")) is True
    assert asyncio.run(store.get_tasks_by_user_id("owner")) == []


def test_memory_search_is_case_insensitive(tmp_path):
    store = WorkspaceStore(tmp_path)
    asyncio.run(store.create_memory(Memory(user_id="u", content="Likes Coffee")))
    asyncio.run(store.create_memory(Memory(user_id="u", content="住在台北")))

    found = asyncio.run(store.search_memories_by_user_id("u", "coffee"))
    assert [m.content for m in found] == ["Likes Coffee"]


def test_users_lookup_by_line_id(tmp_path):
    store = WorkspaceStore(tmp_path)
    asyncio.run(store.create_user(User(line_user_id="U123", display_name="小美")))

    assert asyncio.run(store.get_user_by_line_id("U123")).display_name == "小美"
    assert asyncio.run(store.get_user_by_line_id("U999")) is None


def test_corrupt_collection_reads_as_empty(tmp_path):
    store = WorkspaceStore(tmp_path)
    (tmp_path / "state" / "store" / "tasks.json").write_text("{not json", encoding="utf-8")

    assert asyncio.run(store.get_tasks_by_user_id("u")) == []
    assert list((tmp_path / "state" / "store").glob("tasks.json.corrupt-*"))


def _write_tasks(tmp_path, items):
    path = tmp_path / "state" / "store" / "tasks.json"
    path.write_text(json.dumps({"items": items}), encoding="utf-8")
    return path


def _read_task_ids(path):
    return [item.get("id") for item in json.loads(path.read_text(encoding="utf-8"))["items"]]


def test_delete_keeps_unparseable_rows_of_other_users(tmp_path):
    store = WorkspaceStore(tmp_path)
    valid = {"id": "t1", "user_id": "a", "title": "done soon"}
    legacy = {"id": "legacy", "user_id": "b"}
    path = _write_tasks(tmp_path, [valid, legacy])

    assert asyncio.run(store.delete_task_by_id("t1", user_id="a")) is True
    assert _read_task_ids(path) == ["legacy"]
    assert json.loads(path.read_text(encoding="utf-8"))["items"][0] == legacy


def test_update_keeps_unparseable_rows_of_other_users(tmp_path):
    store = WorkspaceStore(tmp_path)
    legacy = {"id": "legacy", "user_id": "b"}
    path = _write_tasks(tmp_path, [{"id": "t1", "user_id": "a", "title": "old"}, legacy])

    updated = asyncio.run(store.update_task_by_id("t1", {"title": "new"}, user_id="a"))

    assert updated is not None and updated.title == "new"
    items = json.loads(path.read_text(encoding="utf-8"))["items"]
    assert [i["id"] for i in items] == ["t1", "legacy"]
    assert items[0]["title"] == "new"
    assert items[1] == legacy


def test_update_of_malformed_row_leaves_file_untouched(tmp_path):
    store = WorkspaceStore(tmp_path)
    path = _write_tasks(tmp_path, [{"id": "legacy", "user_id": "b"}])
    before = path.read_text(encoding="utf-8")

    assert asyncio.run(store.update_task_by_id("legacy", {"title": "x"}, user_id="b")) is None
    assert path.read_text(encoding="utf-8") == before


def test_append_after_truncation_moves_damaged_file_aside(tmp_path):
    store = WorkspaceStore(tmp_path)
    for i in range(3):
        asyncio.run(store.create_task(Task(user_id="u", title=f"t{i}", id=f"task-{i}")))
    path = tmp_path / "state" / "store" / "tasks.json"
    damaged = path.read_text(encoding="utf-8")[:-10]
    path.write_text(damaged, encoding="utf-8")

    asyncio.run(store.create_task(Task(user_id="u", title="fresh", id="task-new")))

    assert _read_task_ids(path) == ["task-new"]
    aside = list(path.parent.glob("tasks.json.corrupt-*"))
    assert len(aside) == 1
    assert aside[0].read_text(encoding="utf-8") == damaged
    assert "task-0" in damaged
