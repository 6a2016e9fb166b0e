"""
Persistent Vector.

An immutable indexable sequence stored as a fixed-depth trie of small tuples.
``set`` copies only the path from the root to the modified leaf; every other
node is shared with the original vector, which is never mutated.
"""

from typing import Any, Generic, Iterable, Iterator, Tuple, TypeVar

T = TypeVar("T")

BITS = 3
WIDTH = 1 << BITS
MASK = WIDTH - 1


def _build(items: Tuple[Any, ...], shift: int) -> Tuple[Any, ...]:
  if shift == 0:
    return items
  span = 1 << shift
  return tuple(_build(items[i : i + span], shift - BITS) for i in range(0, len(items), span))


class PVector(Generic[T]):
  """
  Fixed-length persistent vector.

  Args:
      items: Initial contents.
  """

  __slots__ = ("_root", "_shift", "_size")

  def __init__(self, items: Iterable[T] = ()):
    values = tuple(items)
    shift = 0
    while (1 << (shift + BITS)) < len(values):
      shift += BITS
    self._shift = shift
    self._size = len(values)
    self._root = _build(values, shift)

  @classmethod
  def _from_parts(cls, root: Tuple[Any, ...], shift: int, size: int) -> "PVector[T]":
    vec = cls.__new__(cls)
    vec._root = root
    vec._shift = shift
    vec._size = size
    return vec

  def __len__(self) -> int:
    return self._size

  def _check(self, index: int) -> int:
    if index < 0:
      index += self._size
    if not 0 <= index < self._size:
      raise IndexError("PVector index out of range")
    return index

  def get(self, index: int) -> T:
    index = self._check(index)
    node = self._root
    shift = self._shift
    while shift > 0:
      node = node[(index >> shift) & MASK]
      shift -= BITS
    return node[index & MASK]

  __getitem__ = get

  def set(self, index: int, value: T) -> "PVector[T]":
    """
    Returns a new vector with ``value`` at ``index``.

    Only the nodes on the path to ``index`` are copied.
    """
    index = self._check(index)

    def assoc(node: Tuple[Any, ...], shift: int) -> Tuple[Any, ...]:
      slot = (index >> shift) & MASK
      child = value if shift == 0 else assoc(node[slot], shift - BITS)
      return node[:slot] + (child,) + node[slot + 1 :]

    return PVector._from_parts(assoc(self._root, self._shift), self._shift, self._size)

  def __iter__(self) -> Iterator[T]:
    def leaves(node: Tuple[Any, ...], shift: int) -> Iterator[Any]:
      if shift == 0:
        yield from node
      else:
        for child in node:
          yield from leaves(child, shift - BITS)

    return leaves(self._root, self._shift)

  def __repr__(self) -> str:
    return f"PVector({list(self)!r})"
