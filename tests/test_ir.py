import unittest

from scriptgraph.ir import Graph, TENSOR, INT, BOOL, FLOAT, IF, CONSTANT, type_of_constant

class GraphTests(unittest.TestCase):
	def test_value_names_stay_unique(self):
		g = Graph()
		a, b, c = g.add_input(TENSOR, "x"), g.add_input(TENSOR, "x"), g.add_input(INT)
		self.assertEqual(["%x", "%x.1", "%2"], [repr(v) for v in (a, b, c)])
		g.name_value(a, "renamed")
		self.assertEqual("%x", repr(a))

	def test_constants(self):
		g = Graph()
		self.assertEqual([BOOL, INT, FLOAT], [g.insert_constant(v).type for v in (True, 3, 2.5)])
		self.assertEqual([CONSTANT] * 3, g.operator_sequence())
		with self.assertRaises(TypeError):
			type_of_constant("text")

	def test_printing(self):
		g = Graph()
		x = g.add_input(TENSOR, "x")
		c = g.add_input(BOOL, "c")
		node = g.append_node(IF, [c], [TENSOR])
		yes, no = node.add_block(), node.add_block()
		with g.insertion_point(yes):
			yes.register_output(g.append_node("aten::neg", [x], [TENSOR]).outputs[0])
		no.register_output(x)
		g.register_output(node.outputs[0])
		self.assertEqual("\n".join([
			"graph(%x : Tensor, %c : bool) {",
			"  %2 : Tensor = prim::If(%c)",
			"    block0() {",
			"      %3 : Tensor = aten::neg(%x)",
			"      -> (%3)",
			"    }",
			"    block1() {",
			"      -> (%x)",
			"    }",
			"  return (%2);",
			"}",
		]), str(g))

	def test_inline_copies_nested_blocks(self):
		callee = Graph()
		a = callee.add_input(TENSOR, "a")
		c = callee.add_input(BOOL, "c")
		node = callee.append_node(IF, [c], [TENSOR])
		yes, no = node.add_block(), node.add_block()
		with callee.insertion_point(yes):
			yes.register_output(callee.append_node("aten::relu", [a], [TENSOR], {"inplace": False}).outputs[0])
		no.register_output(a)
		callee.register_output(node.outputs[0])

		caller = Graph()
		x, flag = caller.add_input(TENSOR, "x"), caller.add_input(BOOL, "flag")
		[result] = caller.inline(callee, [x, flag])
		self.assertEqual([IF, "aten::relu"], caller.operator_sequence())
		[copy] = caller.block.nodes
		self.assertIsNot(copy, node)
		self.assertEqual([flag], copy.inputs)
		self.assertIs(result, copy.outputs[0])
		self.assertEqual([x], copy.blocks[0].nodes[0].inputs)
		self.assertEqual({"inplace": False}, copy.blocks[0].nodes[0].attributes)
		self.assertEqual([x], copy.blocks[1].outputs)
		# The callee is left as it was.
		self.assertEqual([a], node.blocks[0].nodes[0].inputs)


if __name__ == '__main__':
	unittest.main()
