"""형제 항목 순서 재정렬 규칙 단위 테스트입니다."""

from formbuilder.services import ordering


class Item:
    def __init__(self, name, order_index=None, id=None):
        self.name = name
        self.order_index = order_index
        self.id = id

    def __repr__(self):
        return f"Item({self.name}, {self.order_index})"


def _names(items):
    return [item.name for item in items]


def _items(*names):
    return [Item(name, order_index=i, id=i + 1) for i, name in enumerate(names)]


def test_insert_appends_when_index_missing_and_clamps_out_of_range():
    items = _items("a", "b")
    ordering.insert(items, Item("c"))
    assert _names(items) == ["a", "b", "c"]
    assert ordering.is_dense(items)

    ordering.insert(items, Item("first"), -5)
    ordering.insert(items, Item("last"), 99)
    assert _names(items) == ["first", "a", "b", "c", "last"]
    assert [item.order_index for item in items] == [0, 1, 2, 3, 4]


def test_insert_in_the_middle_shifts_followers():
    items = _items("a", "b", "c")
    ordering.insert(items, Item("x"), 1)
    assert _names(items) == ["a", "x", "b", "c"]
    assert ordering.is_dense(items)


def test_remove_closes_the_gap():
    items = _items("a", "b", "c", "d")
    ordering.remove(items, items[1])
    assert _names(items) == ["a", "c", "d"]
    assert [item.order_index for item in items] == [0, 1, 2]


def test_move_within_forward_and_backward():
    items = _items("a", "b", "c", "d")
    ordering.move_within(items, 0, 2)
    assert _names(items) == ["b", "c", "a", "d"]
    ordering.move_within(items, 3, 0)
    assert _names(items) == ["d", "b", "c", "a"]
    assert ordering.is_dense(items)


def test_move_across_reindexes_both_containers():
    source = _items("a", "b", "c")
    destination = _items("x", "y")
    moved = source[1]
    ordering.move_across(source, destination, moved, 1)
    assert _names(source) == ["a", "c"]
    assert _names(destination) == ["x", "b", "y"]
    assert ordering.is_dense(source)
    assert ordering.is_dense(destination)


def test_move_across_without_index_appends():
    source = _items("a")
    destination = _items("x", "y")
    ordering.move_across(source, destination, source[0])
    assert source == []
    assert _names(destination) == ["x", "y", "a"]


def test_sorted_siblings_breaks_ties_by_id():
    rows = [Item("late", 0, id=5), Item("early", 0, id=2), Item("next", 1, id=1)]
    assert _names(ordering.sorted_siblings(rows)) == ["early", "late", "next"]


def test_apply_requested_order_keeps_unrequested_relative_order():
    items = _items("a", "b", "c", "d")
    result = ordering.apply_requested_order(items, [(items[3], 0)])
    assert _names(result) == ["d", "a", "b", "c"]
    assert ordering.is_dense(result)


def test_apply_requested_order_later_request_lands_later_on_ties():
    items = _items("a", "b", "c")
    result = ordering.apply_requested_order(items, [(items[2], 0), (items[1], 0)])
    assert _names(result) == ["c", "b", "a"]


def test_apply_requested_order_last_request_for_same_item_wins():
    items = _items("a", "b", "c")
    result = ordering.apply_requested_order(items, [(items[0], 0), (items[0], 2)])
    assert _names(result) == ["b", "c", "a"]


def test_apply_requested_order_on_empty_container():
    new_items = [Item("x"), Item("y"), Item("z")]
    result = ordering.apply_requested_order([], [(new_items[0], 5), (new_items[1], 0), (new_items[2], 5)])
    assert _names(result) == ["y", "x", "z"]
    assert [item.order_index for item in result] == [0, 1, 2]
