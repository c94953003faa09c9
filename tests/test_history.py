from history import HISTORY_LIMIT, HistoryManager
from layers import LayerStack

RED = (255, 0, 0, 255)


def _stack_marked(value: int) -> LayerStack:
    stack = LayerStack(2, 2)
    stack.active.buffer.set(0, 0, (value % 256, value // 256, 0, 255))
    return stack


def test_undo_returns_snapshot_and_redo_returns_later_state():
    history = HistoryManager()
    s = LayerStack(3, 3)
    s.active.buffer.set(1, 1, RED)
    history.snapshot(s)

    later = s.clone()
    later.add_layer("Ink")
    later.active.buffer.fill((0, 0, 255, 255))
    later.rename_layer(0, "Renamed")

    restored = history.undo(later)
    assert restored == s
    assert history.redo(restored) == later


def test_snapshot_is_not_aliased_to_live_stack():
    history = HistoryManager()
    live = LayerStack(2, 2)
    history.snapshot(live)
    live.active.buffer.set(0, 0, RED)
    live.active.opacity = 0.2
    restored = history.undo(live)
    assert restored.active.buffer.get(0, 0) == (0, 0, 0, 0)
    assert restored.active.opacity == 1.0


def test_undo_and_redo_on_empty_history_are_noops():
    history = HistoryManager()
    stack = LayerStack(1, 1)
    assert history.undo(stack) is None
    assert history.redo(stack) is None
    assert not history.can_undo()
    assert not history.can_redo()
    assert history.get_stats()['redo_count'] == 0


def test_new_snapshot_clears_redo():
    history = HistoryManager()
    a = _stack_marked(1)
    history.snapshot(a)
    history.undo(_stack_marked(2))
    assert history.can_redo()
    history.snapshot(a)
    assert not history.can_redo()


def test_undo_depth_is_capped_and_evicts_oldest():
    history = HistoryManager()
    for i in range(200):
        history.snapshot(_stack_marked(i))
        assert len(history.undo_stack) <= HISTORY_LIMIT
    assert HISTORY_LIMIT == 50
    assert len(history.undo_stack) == 50
    assert history.get_stats()['undo_full']
    # entries 150..199 survive, oldest first
    assert history.undo_stack[0] == _stack_marked(150)
    assert history.undo_stack[-1] == _stack_marked(199)


def test_redo_depth_is_capped():
    history = HistoryManager(limit=5)
    for i in range(10):
        history.snapshot(_stack_marked(i))
    current = _stack_marked(99)
    for _ in range(5):
        current = history.undo(current)
    assert len(history.redo_stack) == 5
    assert history.undo(current) is None

    history = HistoryManager(limit=3)
    history.undo_stack.extend(_stack_marked(i) for i in range(3))
    history.redo_stack.extend(_stack_marked(100 + i) for i in range(3))
    history.undo(_stack_marked(7))
    assert len(history.redo_stack) == 3
    assert history.redo_stack[0] == _stack_marked(101)
    assert history.redo_stack[-1] == _stack_marked(7)


def test_undo_walks_back_in_order():
    history = HistoryManager()
    states = [_stack_marked(i) for i in range(4)]
    for s in states[:3]:
        history.snapshot(s)
    current = states[3]
    for expected in reversed(states[:3]):
        current = history.undo(current)
        assert current == expected
    for expected in states[1:]:
        current = history.redo(current)
        assert current == expected
