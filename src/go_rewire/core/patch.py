"""
Patch Engine.

Passes never edit source text directly. They register ``Insert`` and
``Replace`` patches addressed by byte offsets into the *original* file, and
the engine renders all accepted patches in one pass over the original bytes.

Conflict rule: a patch that intersects an already accepted patch is rejected
(first writer wins). Two patches intersect when their non-empty ranges
overlap, or when an insertion lies strictly inside a replaced range.
Insertions at the same offset never conflict and render in registration
order.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from go_rewire.syntax import nodes as ast

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Patch:
  start: int
  end: int
  text: str

  def intersects(self, other: "Patch") -> bool:
    if self.start == self.end and other.start == other.end:
      return False
    if self.start == self.end:
      return other.start < self.start < other.end
    if other.start == other.end:
      return self.start < other.start < self.end
    return self.start < other.end and other.start < self.end


def Insert(pos: int, text: str) -> Patch:
  """Inserts ``text`` before the byte at ``pos``."""
  return Patch(pos, pos, text)


def Replace(start: Union[int, ast.Node], end: Optional[int] = None, text: str = "") -> Patch:
  """
  Replaces ``[start, end)`` with ``text``.

  A node may be passed instead of offsets: ``Replace(node, text=...)``.
  """
  if isinstance(start, ast.Node):
    return Patch(start.start, start.end, text)
  if end is None or end < start:
    raise ValueError(f"invalid replacement range [{start}, {end})")
  return Patch(start, end, text)


class PatchSet:
  """Ordered collection of mutually non-intersecting patches."""

  def __init__(self, patches: Iterable[Patch] = ()):
    self._patches: List[Tuple[int, Patch]] = []
    self._seq = 0
    self.extend(patches)

  def add(self, patch: Patch) -> bool:
    """
    Accepts ``patch`` unless it intersects an accepted one.

    Returns:
        bool: True if the patch was accepted.
    """
    for _, accepted in self._patches:
      if patch.intersects(accepted):
        logger.debug("rejected patch %r: intersects %r", patch, accepted)
        return False
    self._patches.append((self._seq, patch))
    self._seq += 1
    return True

  def extend(self, patches: Iterable[Patch]) -> int:
    """Adds patches in order; returns how many were accepted."""
    return sum(1 for p in list(patches) if self.add(p))

  def __iter__(self) -> Iterator[Patch]:
    ordered = sorted(self._patches, key=lambda item: (item[1].start, item[1].end, item[0]))
    return (p for _, p in ordered)

  def registered(self) -> List[Patch]:
    """Patches in registration order."""
    return [p for _, p in self._patches]

  def __len__(self) -> int:
    return len(self._patches)

  def __bool__(self) -> bool:
    return bool(self._patches)

  def __repr__(self) -> str:
    return f"PatchSet({self.registered()!r})"


class PatchableFile:
  """
  A parsed source file plus the helpers passes need to address it.

  Attributes:
      path: File location (used for messages and output naming).
      source: Original UTF-8 bytes.
      tree: The parsed syntax tree.
  """

  def __init__(self, path: Union[str, Path], source: bytes, tree: ast.File):
    self.path = Path(path)
    self.source = source
    self.tree = tree
    self._line_starts: Optional[List[int]] = None

  @classmethod
  def parse(cls, path: Union[str, Path], source: Optional[Union[str, bytes]] = None) -> "PatchableFile":
    """Reads (unless ``source`` is given) and parses a Go file."""
    from go_rewire.syntax.parser import parse_source

    if source is None:
      data = Path(path).read_bytes()
    else:
      data = source.encode("utf-8") if isinstance(source, str) else source
    return cls(path, data, parse_source(data, str(path)))

  def text(self, node: ast.Node) -> str:
    """Original text of ``node``."""
    return self.slice(node.start, node.end)

  def slice(self, start: int, end: int) -> str:
    return self.source[start:end].decode("utf-8")

  def position(self, offset: int) -> Tuple[int, int]:
    """Converts a byte offset to a 1-based (line, column) pair; columns count bytes."""
    if self._line_starts is None:
      starts = [0]
      for i, byte in enumerate(self.source):
        if byte == 0x0A:
          starts.append(i + 1)
      self._line_starts = starts
    lo, hi = 0, len(self._line_starts) - 1
    while lo < hi:
      mid = (lo + hi + 1) // 2
      if self._line_starts[mid] <= offset:
        lo = mid
      else:
        hi = mid - 1
    return lo + 1, offset - self._line_starts[lo] + 1

  def location(self, offset: int) -> str:
    line, col = self.position(offset)
    return f"{self.path}:{line}:{col}"

  def render_range(self, start: int, end: int, patches: Iterable[Patch]) -> str:
    """
    Renders ``[start, end)`` of the original applying the patches that lie inside it.

    Args:
        start: First byte of the range.
        end: One past the last byte.
        patches: Candidate patches; those reaching outside the range are ignored.

    Returns:
        str: The rendered text.
    """
    out: List[bytes] = []
    cursor = start
    for patch in sorted((p for p in patches if start <= p.start and p.end <= end), key=lambda p: (p.start, p.end)):
      if patch.start < cursor:
        continue
      out.append(self.source[cursor : patch.start])
      out.append(patch.text.encode("utf-8"))
      cursor = patch.end
    out.append(self.source[cursor:end])
    return b"".join(out).decode("utf-8")

  def render(self, patches: Union[PatchSet, Iterable[Patch]]) -> str:
    """Renders the whole file with ``patches`` applied."""
    if not isinstance(patches, PatchSet):
      patches = PatchSet(patches)
    out: List[bytes] = []
    cursor = 0
    for patch in patches:
      out.append(self.source[cursor : patch.start])
      out.append(patch.text.encode("utf-8"))
      cursor = patch.end
    out.append(self.source[cursor:])
    return b"".join(out).decode("utf-8")
