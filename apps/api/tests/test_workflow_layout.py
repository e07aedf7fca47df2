from __future__ import annotations

import unittest

from agent_console.config import EditorConfig
from agent_console.workflows.converter import to_graph
from agent_console.workflows.layout import (
    LayoutOptions,
    apply_layout,
    layered_layout,
    node_dimensions,
)
from workflow_samples import chain_config, sample_config


def _transitions(count: int) -> dict:
    return {"transitions": [{"condition": "always", "target": "x"}] * count}


class NodeDimensionTests(unittest.TestCase):
    def test_fixed_size_nodes(self) -> None:
        self.assertEqual(node_dimensions("endCallNode", _transitions(3)), (220.0, 140.0))
        self.assertEqual(node_dimensions("agentTransferNode"), (280.0, 180.0))

    def test_height_grows_with_transitions(self) -> None:
        self.assertEqual(node_dimensions("standardNode", {}), (340.0, 168.0))
        self.assertEqual(node_dimensions("standardNode", _transitions(2)), (340.0, 240.0))
        self.assertEqual(node_dimensions("apiCallNode", _transitions(1)), (340.0, 204.0))

    def test_hidden_rows_add_footer(self) -> None:
        self.assertEqual(node_dimensions("retrieveVariableNode", _transitions(5)), (340.0, 300.0))
        self.assertEqual(node_dimensions("retrieveVariableNode", _transitions(9)), (340.0, 320.0))


class LayeredLayoutTests(unittest.TestCase):
    def test_chain_stacks_vertically(self) -> None:
        graph = to_graph(chain_config())
        placed = layered_layout(graph["nodes"], graph["edges"], LayoutOptions())

        xs = [item["position"]["x"] for item in placed]
        ys = [item["position"]["y"] for item in placed]
        self.assertEqual(xs, [120.0, 120.0, 120.0])
        self.assertLess(ys[0], ys[1])
        self.assertLess(ys[1], ys[2])

    def test_left_to_right_uses_x_axis(self) -> None:
        graph = to_graph(chain_config())
        placed = layered_layout(graph["nodes"], graph["edges"], LayoutOptions(direction="LR"))

        xs = [item["position"]["x"] for item in placed]
        self.assertLess(xs[0], xs[1])
        self.assertLess(xs[1], xs[2])

    def test_bottom_to_top_reverses_ranks(self) -> None:
        graph = to_graph(chain_config())
        placed = layered_layout(graph["nodes"], graph["edges"], LayoutOptions(direction="BT"))

        ys = [item["position"]["y"] for item in placed]
        self.assertGreater(ys[0], ys[1])
        self.assertGreater(ys[1], ys[2])

    def test_siblings_share_a_rank(self) -> None:
        graph = to_graph(sample_config())
        placed = {item["id"]: item for item in layered_layout(graph["nodes"], graph["edges"])}

        def center_y(node_id: str) -> float:
            node = placed[node_id]
            return node["position"]["y"] + node_dimensions(node["type"], node["data"])[1] / 2

        self.assertEqual(center_y("collect"), center_y("goodbye"))
        self.assertNotEqual(placed["collect"]["position"]["x"], placed["goodbye"]["position"]["x"])
        self.assertLess(center_y("greeting"), center_y("collect"))
        self.assertLess(center_y("collect"), center_y("lookup"))

    def test_input_nodes_are_not_mutated(self) -> None:
        graph = to_graph(chain_config())
        layered_layout(graph["nodes"], graph["edges"])
        self.assertEqual(graph["nodes"][0]["position"], {"x": 100.0, "y": 100.0})

    def test_empty_input(self) -> None:
        self.assertEqual(layered_layout([], []), [])


class ApplyLayoutTests(unittest.TestCase):
    def test_custom_layout_function_is_used(self) -> None:
        calls = []

        def diagonal(nodes, edges, options):
            calls.append(options.direction)
            return [
                {**node, "position": {"x": index * 10, "y": index * 10}}
                for index, node in enumerate(nodes)
            ]

        graph = to_graph(chain_config())
        laid_out = apply_layout(graph, options=LayoutOptions(direction="RL"), layout=diagonal)

        self.assertEqual(calls, ["RL"])
        self.assertEqual(laid_out["nodes"][2]["position"], {"x": 20.0, "y": 20.0})
        self.assertIs(laid_out["edges"][0], graph["edges"][0])

    def test_options_from_config(self) -> None:
        settings = EditorConfig(layout_direction="LR", layout_rank_spacing=100.0)
        options = LayoutOptions.from_config(settings)
        self.assertEqual(options.direction, "LR")
        self.assertEqual(options.rank_spacing, 100.0)
        self.assertEqual(LayoutOptions.from_config(settings, direction="bt").direction, "BT")
        self.assertEqual(LayoutOptions.from_config(settings, direction="diagonal").direction, "TB")


if __name__ == "__main__":
    unittest.main()
