"""형제 항목(섹션 내 질문, 폼 루트 질문, 폼 내 섹션)의 orderIndex 재정렬 규칙입니다.

모든 변경 후 같은 컨테이너 안의 order_index 는 0부터 빈틈없이 이어진다.
함수들은 ``order_index`` 속성을 가진 임의의 객체 리스트를 다루며 DB에 직접 접근하지 않는다.
"""

from typing import Iterable, MutableSequence, Optional, Sequence, TypeVar

T = TypeVar("T")


def clamp_index(index: Optional[int], length: int) -> int:
    if index is None:
        return length
    return max(0, min(int(index), length))


def sorted_siblings(items: Iterable[T]) -> list[T]:
    """현재 order_index 기준 정렬. 동률은 id(생성 순서)로 정한다."""
    return sorted(
        items,
        key=lambda item: (
            getattr(item, "order_index", None) if getattr(item, "order_index", None) is not None else 0,
            getattr(item, "id", None) or 0,
        ),
    )


def reindex(items: Sequence[T]) -> Sequence[T]:
    for position, item in enumerate(items):
        item.order_index = position
    return items


def insert(items: MutableSequence[T], item: T, index: Optional[int] = None) -> MutableSequence[T]:
    """index 가 없으면 맨 뒤에 추가한다. 범위를 벗어난 index 는 잘라낸다."""
    items.insert(clamp_index(index, len(items)), item)
    reindex(items)
    return items


def remove(items: MutableSequence[T], item: T) -> MutableSequence[T]:
    items.remove(item)
    reindex(items)
    return items


def move_within(items: MutableSequence[T], from_index: int, to_index: int) -> MutableSequence[T]:
    if not items:
        return items
    source = max(0, min(int(from_index), len(items) - 1))
    moved = items.pop(source)
    items.insert(clamp_index(to_index, len(items)), moved)
    reindex(items)
    return items


def move_across(
    source: MutableSequence[T],
    destination: MutableSequence[T],
    item: T,
    to_index: Optional[int] = None,
) -> tuple[MutableSequence[T], MutableSequence[T]]:
    """source 에서 빼고 destination 의 to_index 위치에 넣은 뒤 양쪽을 모두 재정렬한다.

    컨테이너 참조(section_id 등) 변경은 호출하는 쪽 책임이다.
    """
    remove(source, item)
    insert(destination, item, to_index)
    return source, destination


def apply_requested_order(items: Sequence[T], requested: Sequence[tuple[T, int]]) -> list[T]:
    """요청된 위치대로 배치한 뒤 0..n-1 로 다시 매긴다.

    requested 에 없는 항목은 기존 상대 순서를 유지한 채 남은 자리를 채운다.
    같은 위치를 요청한 항목끼리는 요청 목록에서 나중에 나온 항목이 뒤에 온다.
    같은 항목이 여러 번 요청되면 마지막 요청만 반영한다.
    """
    latest: dict[int, tuple[T, int]] = {}
    for item, target in requested:
        latest.pop(id(item), None)
        latest[id(item)] = (item, int(target))

    ordered = [item for item in sorted_siblings(items) if id(item) not in latest]
    placed: dict[int, int] = {}
    for item, target in sorted(latest.values(), key=lambda pair: pair[1]):
        position = clamp_index(target, len(ordered))
        while position < len(ordered) and placed.get(id(ordered[position])) == target:
            position += 1
        ordered.insert(position, item)
        placed[id(item)] = target
    reindex(ordered)
    return ordered


def is_dense(items: Iterable[T]) -> bool:
    indexes = sorted(getattr(item, "order_index") for item in items)
    return indexes == list(range(len(indexes)))
