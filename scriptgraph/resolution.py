"""
Resolvers decide what free variables mean.

The compiler consults a resolver only for names not bound in the current
lexical scope, once per reference, by exact name. A resolver must not mind
being asked the same question any number of times. Absence is reported by
returning None; the compiler turns that into an UnresolvedNameError.
"""
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Mapping, Optional

from .errors import DuplicateDefinitionError
from .ir import Graph
from .location import SourceRange, NOWHERE
from .operators import OperatorTable, DEFAULT_OPERATORS
from .sugar import SugaredValue, BuiltinFunction, BuiltinModule, FunctionValue

class Resolver(ABC):
	@abstractmethod
	def resolve(self, name:str) -> Optional[SugaredValue]:
		pass

class NullResolver(Resolver):
	""" Knows nothing. """
	def resolve(self, name:str) -> Optional[SugaredValue]:
		return None

class FunctionResolver(Resolver):
	""" Adapts a plain lookup function. """
	def __init__(self, lookup:Callable[[str], Optional[SugaredValue]]):
		self._lookup = lookup
	def resolve(self, name:str) -> Optional[SugaredValue]:
		return self._lookup(name)

class NamespaceResolver(Resolver):
	def __init__(self, bindings:Mapping[str, SugaredValue]):
		self._bindings = dict(bindings)
	def resolve(self, name:str) -> Optional[SugaredValue]:
		return self._bindings.get(name)

class ChainResolver(Resolver):
	""" First hit wins, in the order given. """
	def __init__(self, *resolvers:Resolver):
		self._resolvers = resolvers
	def resolve(self, name:str) -> Optional[SugaredValue]:
		for r in self._resolvers:
			found = r.resolve(name)
			if found is not None:
				return found

class BuiltinResolver(Resolver):
	"""
	Built-in operators by their bare names (`relu(x)`), plus one or more
	module-like names whose attributes are the same operators (`ops.relu(x)`).
	"""
	def __init__(self, operators:OperatorTable=DEFAULT_OPERATORS, module_names:Iterable[str]=("ops",)):
		self._operators = operators
		self._module_names = frozenset(module_names)

	def resolve(self, name:str) -> Optional[SugaredValue]:
		if name in self._module_names:
			return BuiltinModule(name)
		if name in self._operators:
			return BuiltinFunction(name)

class FunctionTable(Resolver):
	"""
	Functions compiled so far, by name.
	This is how a later definition in a batch gets to call an earlier one.
	"""
	def __init__(self):
		self._graphs: dict[str, Graph] = {}

	def define(self, name:str, graph:Graph, loc:SourceRange=NOWHERE):
		if name in self._graphs:
			raise DuplicateDefinitionError(name, loc)
		self._graphs[name] = graph

	def __contains__(self, name:str) -> bool: return name in self._graphs
	def __getitem__(self, name:str) -> Graph: return self._graphs[name]
	def names(self) -> list[str]: return list(self._graphs)

	def resolve(self, name:str) -> Optional[SugaredValue]:
		graph = self._graphs.get(name)
		if graph is not None:
			return FunctionValue(name, graph)

def as_resolver(resolver) -> Resolver:
	if isinstance(resolver, Resolver): return resolver
	if resolver is None: return NullResolver()
	if callable(resolver): return FunctionResolver(resolver)
	if isinstance(resolver, Mapping): return NamespaceResolver(resolver)
	raise TypeError("Not a resolver: %r" % (resolver,))
