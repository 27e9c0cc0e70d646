import pytest

from screen_pilot.conversation import Conversation, SubGoalTracker
from screen_pilot.models import ImagePart, SubGoal, TextPart

def _statuses(tracker: SubGoalTracker) -> dict[int, str]:
    return {g.index: g.status for g in tracker.goals}

# ---------------------------------------------------------------------------
# Sub-Goal Lifecycle Tests
# ---------------------------------------------------------------------------

def test_replace_promotes_first_pending():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1, description="a"), SubGoal(index=2, description="b")])
    assert _statuses(tracker) == {1: "running", 2: "pending"}
    assert tracker.current.index == 1

def test_mark_finished_advances_to_next():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1), SubGoal(index=2)])
    tracker.mark_finished([1])
    assert _statuses(tracker) == {1: "finished", 2: "running"}

def test_mark_finished_unknown_index_is_ignored():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1), SubGoal(index=2)])
    before = tracker.goals
    tracker.mark_finished([99])
    assert tracker.goals == before

def test_replace_respects_declared_finished_entries():
    tracker = SubGoalTracker()
    tracker.replace([
        SubGoal(index=1, status="finished"),
        SubGoal(index=2),
        SubGoal(index=3),
    ])
    assert _statuses(tracker) == {1: "finished", 2: "running", 3: "pending"}

def test_replace_keeps_single_running_and_drops_duplicate_indexes():
    tracker = SubGoalTracker()
    tracker.replace([
        SubGoal(index=1, status="running", description="first"),
        SubGoal(index=1, description="duplicate"),
        SubGoal(index=2, status="running"),
    ])
    goals = tracker.goals
    assert [g.description for g in goals] == ["first", ""]
    assert _statuses(tracker) == {1: "running", 2: "pending"}

def test_replace_deep_copies_input():
    source = [SubGoal(index=1, description="original")]
    tracker = SubGoalTracker()
    tracker.replace(source)
    source[0].description = "mutated outside"
    source[0].status = "finished"
    assert tracker.goals[0].description == "original"
    assert tracker.goals[0].status == "running"

def test_goals_property_returns_copies():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1)])
    tracker.goals[0].status = "finished"
    assert tracker.current.index == 1

def test_mark_all_finished():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1), SubGoal(index=2), SubGoal(index=3)])
    tracker.mark_all_finished()
    assert set(_statuses(tracker).values()) == {"finished"}
    assert tracker.current is None

def test_update_description_and_forward_status():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1, description="a"), SubGoal(index=2, description="b")])
    assert tracker.update(2, description="b, revised") is True
    assert tracker.update(1, status="finished") is True
    assert _statuses(tracker) == {1: "finished", 2: "running"}
    assert tracker.goals[1].description == "b, revised"

def test_update_unknown_index_returns_false():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1)])
    assert tracker.update(7, description="nope") is False

def test_update_refuses_backward_move():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1)])
    tracker.mark_finished([1])
    with pytest.raises(ValueError, match="cannot move"):
        tracker.update(1, status="pending")

def test_update_refuses_second_running():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1), SubGoal(index=2)])
    with pytest.raises(ValueError, match="already running"):
        tracker.update(2, status="running")

def test_render_text_format():
    tracker = SubGoalTracker()
    assert tracker.render_text() == ""
    tracker.replace([
        SubGoal(index=1, description="Fill in the Name field with 'John'"),
        SubGoal(index=2, description="Fill in the Email field with 'john@example.com'"),
    ])
    assert tracker.render_text() == (
        "Sub-goals:\n"
        "1. Fill in the Name field with 'John' (running)\n"
        "2. Fill in the Email field with 'john@example.com' (pending)\n"
        "Current sub-goal is: Fill in the Name field with 'John'"
    )

def test_render_text_without_running_goal():
    tracker = SubGoalTracker()
    tracker.replace([SubGoal(index=1, description="only")])
    tracker.mark_all_finished()
    assert tracker.render_text() == "Sub-goals:\n1. only (finished)"

# ---------------------------------------------------------------------------
# Transcript Tests
# ---------------------------------------------------------------------------

def test_system_turn_is_first():
    convo = Conversation("system prompt")
    turns = convo.snapshot()
    assert len(turns) == 1
    assert turns[0].role == "system"
    assert turns[0].content == "system prompt"

def test_append_alternating_turns():
    convo = Conversation("sys")
    convo.append_user([TextPart(text="hello")])
    convo.append_assistant("<thought>hi</thought>")
    convo.append_user("next")
    assert [t.role for t in convo.snapshot()] == ["system", "user", "assistant", "user"]

def test_consecutive_user_turns_merge():
    convo = Conversation("sys")
    convo.append_user("first")
    convo.append_user([TextPart(text="second")])
    turns = convo.snapshot()
    assert len(turns) == 2
    assert [p.text for p in turns[1].content] == ["first", "second"]

def test_attach_image_is_idempotent_per_turn():
    convo = Conversation("sys")
    convo.append_user("instruction")
    assert convo.attach_image("AAAA") is True
    assert convo.attach_image("BBBB") is False
    content = convo.last_turn.content
    images = [p for p in content if isinstance(p, ImagePart)]
    assert len(images) == 1
    assert images[0].image == "AAAA"

def test_attach_image_after_assistant_opens_user_turn():
    convo = Conversation("sys")
    convo.append_user("instruction")
    convo.append_assistant("answer")
    assert convo.attach_image("CCCC") is True
    last = convo.last_turn
    assert last.role == "user"
    assert last.has_image()

def test_attach_image_never_touches_system_turn():
    convo = Conversation("sys")
    convo.attach_image("DDDD")
    turns = convo.snapshot()
    assert turns[0].content == "sys"
    assert turns[1].role == "user"

def test_snapshot_is_independent():
    convo = Conversation("sys")
    convo.append_user("hello")
    snap = convo.snapshot()
    snap[1].content[0].text = "tampered"
    snap.append(snap[0])
    assert convo.snapshot()[1].content[0].text == "hello"
    assert len(convo) == 2

# ---------------------------------------------------------------------------
# Memory Tests
# ---------------------------------------------------------------------------

def test_memory_log_and_render():
    convo = Conversation("sys")
    assert convo.render_memory_text() == ""
    convo.attach_memory("")
    convo.attach_memory(None)
    assert convo.memories == []

    convo.attach_memory("Name is John")
    convo.attach_memory("Email is john@example.com")
    assert convo.render_memory_text() == (
        "Memories from previous steps:\n---\n"
        "Name is John\n---\nEmail is john@example.com\n"
    )

def test_render_context_combines_memory_and_sub_goals():
    convo = Conversation("sys")
    convo.attach_memory("remember me")
    convo.sub_goals.replace([SubGoal(index=1, description="go")])
    assert convo.render_context() == (
        "\n\nMemories from previous steps:\n---\nremember me\n"
        "Sub-goals:\n1. go (running)\nCurrent sub-goal is: go"
    )

# ---------------------------------------------------------------------------
# Compression Tests
# ---------------------------------------------------------------------------

def _conversation_with(turns: int) -> Conversation:
    convo = Conversation("sys")
    for i in range(turns - 1):
        if i % 2 == 0:
            convo.append_user(f"user {i}")
        else:
            convo.append_assistant(f"assistant {i}")
    return convo

def test_compress_below_threshold_is_noop():
    convo = _conversation_with(20)
    assert convo.compress(threshold=20, keep_count=5) is False
    assert len(convo) == 20

def test_compress_replaces_older_turns_with_placeholder():
    convo = _conversation_with(21)
    original = convo.snapshot()

    assert convo.compress(threshold=20, keep_count=5) is True

    turns = convo.snapshot()
    assert len(turns) == 6
    assert turns[0].role == "user"
    assert "16 previous conversation messages have been omitted" in turns[0].content[0].text
    assert turns[1:] == original[-5:]

def test_compress_can_drop_system_turn():
    convo = _conversation_with(21)
    convo.compress(threshold=20, keep_count=5)
    assert all(t.role != "system" for t in convo.snapshot())

def test_recompress_counts_turns_behind_earlier_placeholder():
    convo = _conversation_with(21)
    convo.compress(threshold=20, keep_count=5)   # 16 dropped, 6 turns left
    for i in range(2):
        convo.append_user(f"user late {i}")
        convo.append_assistant(f"assistant late {i}")
    assert len(convo) == 10

    assert convo.compress(threshold=8, keep_count=5) is True

    turns = convo.snapshot()
    assert len(turns) == 6
    # 16 behind the old placeholder + 4 real turns dropped alongside it
    assert "20 previous conversation messages have been omitted" in turns[0].content[0].text

def test_compress_keep_zero():
    convo = _conversation_with(4)
    assert convo.compress(threshold=2, keep_count=0) is True
    turns = convo.snapshot()
    assert len(turns) == 1
    assert "4 previous conversation messages have been omitted" in turns[0].content[0].text
