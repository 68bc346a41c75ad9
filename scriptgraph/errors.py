"""
Everything that can stop the compilation of a definition.

Each of these carries the SourceRange where trouble was detected,
so the embedding environment can produce a precise message
without going back to the syntax tree.
"""
from enum import Enum

from .location import SourceRange

class Capability(Enum):
	AS_VALUE = "as_value"
	ATTR = "attr"
	AS_TUPLE = "as_tuple"
	CALL = "call"
	UNROLLED_FOR = "unrolled_for"

_COMPLAINT = {
	Capability.AS_VALUE: "%s cannot be used as a value",
	Capability.ATTR: "attribute lookup is not defined on %s",
	Capability.AS_TUPLE: "%s cannot be used as a tuple",
	Capability.CALL: "cannot call a %s",
	Capability.UNROLLED_FOR: "%s is not iterable",
}

class CompilationError(Exception):
	loc: SourceRange

	def __init__(self, message:str, loc:SourceRange):
		super().__init__(message)
		self.loc = loc

	@property
	def message(self) -> str: return self.args[0]

	def __str__(self): return "%s: %s" % (self.loc, self.message)

class ScriptSyntaxError(CompilationError):
	""" Text that does not parse, or a construct the lowering does not handle. """

class CapabilityError(CompilationError):
	def __init__(self, kind:str, operation:Capability, loc:SourceRange):
		super().__init__(_COMPLAINT[operation] % kind, loc)
		self.kind, self.operation = kind, operation

class UnresolvedNameError(CompilationError):
	def __init__(self, name:str, loc:SourceRange):
		super().__init__("undefined value %s" % name, loc)
		self.name = name

class MissingAttributeError(CompilationError):
	def __init__(self, kind:str, field:str, loc:SourceRange):
		super().__init__("%s has no attribute '%s'" % (kind, field), loc)
		self.kind, self.field = kind, field

class ArityMismatchError(CompilationError):
	def __init__(self, expected:int, actual:int, loc:SourceRange, at_least:bool=False):
		need = ("at least %d" if at_least else "%d") % expected
		super().__init__("expected %s result(s) here but found %d" % (need, actual), loc)
		self.expected, self.actual, self.at_least = expected, actual, at_least

class SignatureError(CompilationError):
	""" A callee exists but this call does not fit it. """
	def __init__(self, callee:str, problem:str, loc:SourceRange):
		super().__init__("%s: %s" % (callee, problem), loc)
		self.callee = callee

class TypeMismatchError(CompilationError):
	""" Two ways of reaching the same point disagree about what type a value has. """
	def __init__(self, what:str, first:str, second:str, loc:SourceRange):
		super().__init__("%s is %s on one path but %s on the other" % (what, first, second), loc)
		self.what, self.first, self.second = what, first, second

class DuplicateDefinitionError(CompilationError):
	def __init__(self, name:str, loc:SourceRange):
		super().__init__("%s is already defined" % name, loc)
		self.name = name
