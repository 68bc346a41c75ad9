"""
The IR graph, such as it is.

The graph owns every node, block and value. Everything else holds handles
into it and never copies them. Nodes live in blocks; prim::If and prim::Loop
nodes carry nested blocks of their own. The textual form is deterministic,
which is handy for comparing two compilations of the same definition.
"""
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from .location import SourceRange, NOWHERE

TENSOR = "Tensor"
INT = "int"
FLOAT = "float"
BOOL = "bool"
SCALAR_TYPES = frozenset([INT, FLOAT, BOOL])
ALL_TYPES = SCALAR_TYPES | {TENSOR}

CONSTANT = "prim::Constant"
IF = "prim::If"
LOOP = "prim::Loop"

def type_of_constant(value) -> str:
	# bool first: it is a subclass of int.
	if isinstance(value, bool): return BOOL
	if isinstance(value, int): return INT
	if isinstance(value, float): return FLOAT
	raise TypeError(value)

class Value:
	""" A handle on one typed datum. The graph that made it is its owner. """
	__slots__ = ("unique", "type", "producer", "debug_name")

	def __init__(self, unique:int, type_:str, producer):
		self.unique, self.type, self.producer = unique, type_, producer
		self.debug_name = None

	def __repr__(self): return "%" + (self.debug_name or str(self.unique))


class Node:
	kind: str
	inputs: list[Value]
	outputs: list[Value]
	blocks: list["Block"]
	attributes: dict[str, Any]
	loc: SourceRange

	def __init__(self, graph:"Graph", kind:str, inputs:Sequence[Value], attributes, loc:SourceRange):
		self._graph = graph
		self.kind = kind
		self.inputs = list(inputs)
		self.attributes = dict(attributes or {})
		self.loc = loc
		self.outputs = []
		self.blocks = []

	def add_output(self, type_:str, name:Optional[str]=None) -> Value:
		value = self._graph.fresh_value(type_, self, name)
		self.outputs.append(value)
		return value

	def add_block(self) -> "Block":
		block = Block(self._graph, self)
		self.blocks.append(block)
		return block

	def __repr__(self): return "<Node %s>" % self.kind


class Block:
	def __init__(self, graph:"Graph", owner:Optional[Node]):
		self.graph, self.owner = graph, owner
		self.inputs: list[Value] = []
		self.nodes: list[Node] = []
		self.outputs: list[Value] = []

	def add_input(self, type_:str, name:Optional[str]=None) -> Value:
		value = self.graph.fresh_value(type_, self, name)
		self.inputs.append(value)
		return value

	def register_output(self, value:Value):
		self.outputs.append(value)


class Graph:
	def __init__(self):
		self._next_unique = 0
		self._names_in_use = set()
		self.block = Block(self, None)
		self._insertion_block = self.block

	@property
	def inputs(self) -> list[Value]: return self.block.inputs

	@property
	def outputs(self) -> list[Value]: return self.block.outputs

	def add_input(self, type_:str=TENSOR, name:Optional[str]=None) -> Value:
		return self.block.add_input(type_, name)

	def register_output(self, value:Value):
		self.block.register_output(value)

	def fresh_value(self, type_:str, producer, name:Optional[str]=None) -> Value:
		assert type_ in ALL_TYPES, type_
		value = Value(self._next_unique, type_, producer)
		self._next_unique += 1
		if name: self.name_value(value, name)
		return value

	def name_value(self, value:Value, name:str):
		""" Give a value a readable name, suffixed as needed to stay unique within this graph. """
		if value.debug_name is not None:
			return
		candidate, suffix = name, 0
		while candidate in self._names_in_use:
			suffix += 1
			candidate = "%s.%d" % (name, suffix)
		self._names_in_use.add(candidate)
		value.debug_name = candidate

	@contextmanager
	def insertion_point(self, block:Block) -> Iterator[Block]:
		assert block.graph is self
		prior = self._insertion_block
		self._insertion_block = block
		try: yield block
		finally: self._insertion_block = prior

	def append_node(self, kind:str, inputs:Sequence[Value], output_types:Sequence[str], attributes=None, loc:SourceRange=NOWHERE) -> Node:
		""" Append an operator node at the insertion point and give it outputs of the given types. """
		node = Node(self, kind, inputs, attributes, loc)
		for type_ in output_types:
			node.add_output(type_)
		self._insertion_block.nodes.append(node)
		return node

	def insert_constant(self, value, loc:SourceRange=NOWHERE) -> Value:
		node = self.append_node(CONSTANT, (), [type_of_constant(value)], {"value": value}, loc)
		return node.outputs[0]

	def inline(self, callee:"Graph", inputs:Sequence[Value]) -> list[Value]:
		""" Copy the callee's nodes in at the insertion point, with its inputs replaced by these. """
		assert len(inputs) == len(callee.inputs)
		value_map = dict(zip(callee.inputs, inputs))
		self._copy_nodes(callee.block.nodes, value_map)
		return [value_map[v] for v in callee.outputs]

	def _copy_nodes(self, nodes:Sequence[Node], value_map:dict):
		for node in nodes:
			inputs = [value_map[v] for v in node.inputs]
			copy = self.append_node(node.kind, inputs, [v.type for v in node.outputs], node.attributes, node.loc)
			value_map.update(zip(node.outputs, copy.outputs))
			for block in node.blocks:
				new_block = copy.add_block()
				for v in block.inputs:
					value_map[v] = new_block.add_input(v.type)
				with self.insertion_point(new_block):
					self._copy_nodes(block.nodes, value_map)
				for v in block.outputs:
					new_block.register_output(value_map[v])

	def all_nodes(self) -> Iterator[Node]:
		""" Every node, depth-first, in program order. """
		def walk(block:Block):
			for node in block.nodes:
				yield node
				for inner in node.blocks:
					yield from walk(inner)
		return walk(self.block)

	def node_count(self) -> int:
		return sum(1 for _ in self.all_nodes())

	def operator_sequence(self) -> list[str]:
		return [node.kind for node in self.all_nodes()]

	def __str__(self):
		lines = ["graph(%s) {" % _typed(self.inputs)]
		_print_nodes(self.block.nodes, "  ", lines)
		lines.append("  return (%s);" % _listing(self.outputs))
		lines.append("}")
		return "\n".join(lines)

def _listing(values:Sequence[Value]) -> str:
	return ", ".join(map(repr, values))

def _typed(values:Sequence[Value]) -> str:
	return ", ".join("%r : %s" % (v, v.type) for v in values)

def _print_nodes(nodes:Sequence[Node], indent:str, lines:list[str]):
	for node in nodes:
		attrs = ""
		if node.attributes:
			attrs = "[%s]" % ", ".join("%s=%r" % kv for kv in sorted(node.attributes.items()))
		lhs = _typed(node.outputs) + " = " if node.outputs else ""
		lines.append("%s%s%s%s(%s)" % (indent, lhs, node.kind, attrs, _listing(node.inputs)))
		for i, block in enumerate(node.blocks):
			lines.append("%s  block%d(%s) {" % (indent, i, _typed(block.inputs)))
			_print_nodes(block.nodes, indent + "    ", lines)
			lines.append("%s    -> (%s)" % (indent, _listing(block.outputs)))
			lines.append("%s  }" % indent)
