"""
Points and spans within script text, for the benefit of whatever prints error messages.
A SourceRange is never consulted for control flow.
"""
from bisect import bisect_right
from functools import cached_property
from pathlib import Path
from typing import NamedTuple, Optional

from boozetools.support.failureprone import SourceText, illustration

class Origin:
	""" One piece of script text, plus enough bookkeeping to turn parser positions into offsets. """

	def __init__(self, text:str, path:Optional[Path]=None):
		self.text, self.path = text, path
		self._line_starts = [0]
		for line in text.split("\n"):
			self._line_starts.append(self._line_starts[-1] + len(line) + 1)

	def __str__(self): return str(self.path) if self.path else "<script>"

	def offset(self, line:int, column:int) -> int:
		"""
		Python's parser reports one-based lines and columns in UTF-8 bytes.
		Convert that to a character offset into the text.
		"""
		line = max(1, min(line, len(self._line_starts) - 1))
		start = self._line_starts[line - 1]
		text = self.text[start:self._line_starts[line] - 1]
		prefix = text.encode("utf-8")[:max(column, 0)].decode("utf-8", errors="ignore")
		return start + len(prefix)

	def row_col(self, offset:int) -> tuple[int, int]:
		row = bisect_right(self._line_starts, offset)
		return row, offset - self._line_starts[row - 1] + 1

	@cached_property
	def source_text(self) -> SourceText:
		return SourceText(self.text, filename=str(self))


class SourceRange(NamedTuple):
	origin: Optional[Origin]
	start: int
	stop: int

	def __str__(self):
		if self.origin is None:
			return "<built-in>"
		row, col = self.origin.row_col(self.start)
		return "%s:%d:%d" % (self.origin, row, col)

	def text(self) -> str:
		if self.origin is None: return ""
		return self.origin.text[self.start:self.stop]

	def illustrate(self, caption:str="") -> str:
		if self.origin is None:
			return caption
		source = self.origin.source_text
		row, col = source.find_row_col(self.start)
		single_line = source.line_of_text(row)
		width = max(1, min(self.stop - self.start, len(single_line) - col))
		return illustration(single_line, col, width, prefix='% 6d |' % row, caption=caption)

NOWHERE = SourceRange(None, 0, 0)
