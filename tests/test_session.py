"""End-to-end tests for EditorSession against real and in-memory stores."""

import asyncio

import pytest

from legit_editor.config import EditorConfig, SelectionPolicy
from legit_editor.core.paths import DocumentPaths
from legit_editor.core.session import EditorSession
from legit_editor.models.diff import SegmentKind

FAST = EditorConfig(poll_interval=0.01)
PATHS = DocumentPaths.from_config(FAST)


async def wait_for_head(session, oid, timeout=5.0):
    """Wait until the session has published ``oid`` as its head."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while session.state.head != oid:
        if loop.time() > deadline:
            raise AssertionError(f"head never became {oid}")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_bootstrap_scenario(git_store):
    """A fresh repository loads as one editable commit."""
    root = git_store.read_path(PATHS.head)

    async with EditorSession(git_store, FAST) as session:
        state = session.state

        assert len(state.history) == 1
        assert state.history[0].oid == root
        assert state.history[0].message == "Initial commit"
        assert state.selection == root
        assert state.can_edit
        assert session.editor.text == "Hello World"


@pytest.mark.asyncio
async def test_edit_and_save_scenario(git_store):
    async with EditorSession(git_store, FAST) as session:
        root = session.state.head
        assert session.edit("Hello World!!")

        assert await session.save()
        new_head = git_store.read_path(PATHS.head)
        await wait_for_head(session, new_head)

        state = session.state
        assert len(state.history) == 2
        assert state.history[1].oid == root
        assert state.selection == new_head
        assert state.can_edit
        assert session.editor.text == "Hello World!!"

        segments = session.controller.diff_for(new_head)
        assert [(s.kind, s.text) for s in segments] == [
            (SegmentKind.EQUAL, "Hello World"),
            (SegmentKind.INSERT, "!!"),
        ]


@pytest.mark.asyncio
async def test_browse_history_scenario(git_store):
    git_store.write_path(PATHS.tip, "Hello World!!")

    async with EditorSession(git_store, FAST) as session:
        root = session.state.history[-1].oid
        assert session.checkout(root)

        assert session.editor.text == "Hello World"
        assert session.editor.read_only
        assert not session.edit("tampered")
        assert session.editor.text == "Hello World"


@pytest.mark.asyncio
async def test_external_advancement_scenario(git_store):
    async with EditorSession(git_store, FAST) as session:
        assert session.editor.editable

        external = git_store.write_path(session.paths.tip, "Written elsewhere")
        await wait_for_head(session, external)

        assert session.state.selection == external
        assert session.editor.editable
        assert session.editor.text == "Written elsewhere"


@pytest.mark.asyncio
async def test_pre_initialization_scenario(empty_store):
    """An unpopulated store yields an empty, read-only editor without errors."""
    session = EditorSession(empty_store, FAST)

    await session.start()
    state = await session.refresh()
    await session.stop()

    assert state.history == ()
    assert state.selection is None
    assert not session.editor.editable


@pytest.mark.asyncio
async def test_history_missing_while_head_exists(memory_store):
    memory_store.fail_reads.add(PATHS.history)

    session = EditorSession(memory_store, FAST)
    await session.sync()

    assert session.state.history == ()
    assert not session.editor.editable
    # The head is sampled again on the next tick
    assert session.poller.observed_head is None

    memory_store.fail_reads.clear()
    await session.sync()
    assert session.editor.editable


@pytest.mark.asyncio
async def test_rejected_save_scenario(git_store):
    git_store.write_path(PATHS.tip, "Hello World!!")

    async with EditorSession(git_store, FAST) as session:
        head = git_store.read_path(PATHS.head)
        root = session.state.history[-1].oid
        session.checkout(root)
        draft = session.state.draft

        assert await session.save() is False

        assert git_store.read_path(PATHS.head) == head
        assert session.state.draft == draft
        assert session.state.selection == root


@pytest.mark.asyncio
async def test_idempotent_polling(memory_store):
    session = EditorSession(memory_store, FAST)
    await session.sync()
    published = []
    session.controller.subscribe(published.append)
    state = session.state

    for _ in range(5):
        await session.sync()

    assert published == []
    assert session.state is state


@pytest.mark.asyncio
async def test_history_head_matches_head_read(memory_store):
    for i in range(3):
        memory_store.commit(f"v{i}")

    session = EditorSession(memory_store, FAST)
    await session.sync()

    assert session.state.history[0].oid == memory_store.head


@pytest.mark.asyncio
async def test_stale_history_is_reloaded(memory_store):
    memory_store.commit("second")
    memory_store.stale_history_reads = 1

    session = EditorSession(memory_store, FAST)
    state = await session.refresh()

    assert state.head == memory_store.head
    assert len(state.history) == 2
    history_reads = [p for p in memory_store.reads if p.endswith("/history")]
    assert len(history_reads) == 2


@pytest.mark.asyncio
async def test_unsettled_history_is_published_and_resampled(memory_store):
    memory_store.commit("second")
    memory_store.stale_history_reads = 10

    session = EditorSession(memory_store, EditorConfig(reconcile_attempts=2))
    state = await session.refresh()

    assert len(state.history) == 1
    assert session.poller.observed_head is None


@pytest.mark.asyncio
async def test_stop_discards_refresh_in_flight(memory_store):
    gate = asyncio.Event()
    memory_store.gates["history"] = gate
    session = EditorSession(memory_store, FAST)

    pending = asyncio.create_task(session.refresh())
    await asyncio.sleep(0.01)
    await session.stop()
    gate.set()
    await pending

    assert session.state.history == ()
    assert session.state.selection is None


@pytest.mark.asyncio
async def test_save_races_with_external_write(memory_store):
    """The head the store reports wins over the client's own write."""
    session = EditorSession(memory_store, FAST)
    await session.sync()
    session.edit("mine")

    assert await session.save()
    external = memory_store.commit("theirs")
    await session.sync()

    state = session.state
    assert state.head == external
    assert state.selection == external
    assert state.draft == "theirs"
    assert [c.new_content for c in state.history] == ["theirs", "mine", "Hello World"]


@pytest.mark.asyncio
async def test_pinned_selection_survives_head_advance(memory_store):
    session = EditorSession(memory_store, FAST)
    await session.sync()
    root = session.state.head
    memory_store.commit("second")
    await session.sync()
    session.checkout(root)

    memory_store.commit("third")
    await session.sync()

    assert session.state.selection == root
    assert session.editor.read_only
    assert session.editor.text == "Hello World"


@pytest.mark.asyncio
async def test_follow_policy_moves_selection(memory_store):
    config = EditorConfig(poll_interval=0.01, selection_policy=SelectionPolicy.FOLLOW)
    session = EditorSession(memory_store, config)
    await session.sync()
    root = session.state.head
    memory_store.commit("second")
    await session.sync()
    session.checkout(root)

    memory_store.commit("third")
    await session.sync()

    assert session.state.selection == memory_store.head
    assert session.editor.editable
    assert session.editor.text == "third"


@pytest.mark.asyncio
async def test_restart_loads_head_immediately(memory_store):
    session = EditorSession(memory_store, EditorConfig(poll_interval=60))
    await session.start()
    await session.stop()
    memory_store.commit("while stopped")
    session.poller.reset()

    await session.start()
    try:
        assert session.poller.observed_head == memory_store.head
        assert session.state.head == memory_store.head
        assert session.editor.text == "while stopped"
    finally:
        await session.stop()
