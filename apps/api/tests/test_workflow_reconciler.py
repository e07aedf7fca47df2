from __future__ import annotations

import copy
import unittest

from agent_console.workflows.converter import to_graph
from agent_console.workflows.reconciler import (
    EditorSession,
    add_node,
    connect_nodes,
    delete_node,
    remove_edges,
    replace_transitions,
    sync_transitions,
    transitions_equal,
    update_edge,
    update_node_data,
)
from workflow_samples import chain_config


def _node(graph: dict, node_id: str) -> dict:
    return next(item for item in graph["nodes"] if item["id"] == node_id)


class SyncTransitionsTests(unittest.TestCase):
    def test_loaded_graph_is_already_consistent(self) -> None:
        graph = to_graph(chain_config())
        result = sync_transitions(graph)
        self.assertFalse(result.changed)
        self.assertIs(result.graph, graph)

    def test_stale_cache_is_recomputed(self) -> None:
        graph = to_graph(chain_config())
        _node(graph, "A")["data"]["transitions"] = []

        result = sync_transitions(graph)
        self.assertEqual(result.updated_node_ids, ["A"])
        self.assertEqual(
            _node(result.graph, "A")["data"]["transitions"],
            [{"condition": "always", "target": "B", "priority": 0}],
        )
        self.assertIs(_node(result.graph, "B"), _node(graph, "B"))

    def test_second_sync_is_a_no_op(self) -> None:
        graph = to_graph(chain_config())
        _node(graph, "B")["data"]["transitions"] = [{"condition": "always", "target": "A", "priority": 0}]
        once = sync_transitions(graph).graph
        twice = sync_transitions(once)
        self.assertFalse(twice.changed)
        self.assertIs(twice.graph, once)

    def test_transitions_compare_strictly(self) -> None:
        left = [{"condition": "always", "target": "B", "priority": 0}]
        self.assertTrue(transitions_equal(left, [{"target": "B", "condition": "always", "priority": 0}]))
        self.assertFalse(transitions_equal(left, [{"condition": "always", "target": "B", "priority": 1}]))
        self.assertFalse(transitions_equal(left, []))


class CanvasEditTests(unittest.TestCase):
    def test_connect_appends_edge_and_updates_source(self) -> None:
        graph = to_graph(chain_config())
        connected = connect_nodes(graph, "A", "C")

        self.assertEqual(connected["edges"][-1]["id"], "A-C-2")
        self.assertEqual(connected["edges"][-1]["data"], {"condition": "always", "priority": 0})
        self.assertEqual(
            [item["target"] for item in _node(connected, "A")["data"]["transitions"]],
            ["B", "C"],
        )
        self.assertIs(_node(connected, "C"), _node(graph, "C"))

    def test_connect_requires_both_ends(self) -> None:
        graph = to_graph(chain_config())
        self.assertIs(connect_nodes(graph, "A", ""), graph)

    def test_remove_edge_clears_transition(self) -> None:
        graph = to_graph(chain_config())
        trimmed = remove_edges(graph, ["B-C-0"])
        self.assertEqual([edge["id"] for edge in trimmed["edges"]], ["A-B-0"])
        self.assertEqual(_node(trimmed, "B")["data"]["transitions"], [])
        self.assertIs(remove_edges(graph, ["missing"]), graph)

    def test_relabel_edge(self) -> None:
        graph = to_graph(chain_config())
        relabeled = update_edge(graph, "A-B-0", condition="timeout:5s", priority=2)

        edge = relabeled["edges"][0]
        self.assertEqual(edge["label"], "timeout:5s")
        self.assertEqual(edge["data"], {"condition": "timeout:5s", "priority": 2})
        self.assertEqual(
            _node(relabeled, "A")["data"]["transitions"],
            [{"condition": "timeout:5s", "target": "B", "priority": 2}],
        )

    def test_delete_node_cascades_edges(self) -> None:
        graph = to_graph(chain_config())
        pruned = delete_node(graph, "B")

        self.assertEqual([item["id"] for item in pruned["nodes"]], ["A", "C"])
        self.assertEqual(pruned["edges"], [])
        self.assertEqual(_node(pruned, "A")["data"]["transitions"], [])

    def test_edits_leave_input_untouched(self) -> None:
        graph = to_graph(chain_config())
        snapshot = copy.deepcopy(graph)

        connect_nodes(graph, "A", "C")
        update_edge(graph, "A-B-0", condition="api_failed")
        replace_transitions(graph, "A", [])
        update_node_data(graph, "A", {"name": "Renamed"})
        delete_node(graph, "B")

        self.assertEqual(graph, snapshot)


class PanelEditTests(unittest.TestCase):
    def test_replace_rebuilds_outgoing_edges(self) -> None:
        graph = to_graph(chain_config())
        replaced = replace_transitions(
            graph,
            "A",
            [
                {"condition": "always", "target": "C", "priority": 0},
                {"condition": "user_responded", "target": "B", "priority": 0},
            ],
        )

        self.assertEqual([edge["id"] for edge in replaced["edges"]], ["B-C-0", "A-C-0", "A-B-1"])
        self.assertEqual(
            [item["target"] for item in _node(replaced, "A")["data"]["transitions"]],
            ["C", "B"],
        )

    def test_replace_on_missing_node_is_ignored(self) -> None:
        graph = to_graph(chain_config())
        self.assertIs(replace_transitions(graph, "ghost", []), graph)

    def test_update_node_data_merges_fields(self) -> None:
        graph = to_graph(chain_config())
        updated = update_node_data(graph, "B", {"id": "other", "static_text": "Hold on."})

        node = _node(updated, "B")
        self.assertEqual(node["data"]["id"], "B")
        self.assertEqual(node["data"]["static_text"], "Hold on.")
        self.assertEqual(node["data"]["transitions"], _node(graph, "B")["data"]["transitions"])

    def test_type_change_updates_visual_type(self) -> None:
        graph = to_graph(chain_config())
        updated = update_node_data(graph, "B", {"type": "api_call"})
        self.assertEqual(_node(updated, "B")["type"], "apiCallNode")

    def test_transitions_update_routes_through_replace(self) -> None:
        graph = to_graph(chain_config())
        updated = update_node_data(
            graph,
            "B",
            {"transitions": [{"condition": "max_turns:3", "target": "A", "priority": 0}]},
        )
        self.assertEqual(
            [edge["id"] for edge in updated["edges"]],
            ["A-B-0", "B-A-0"],
        )


class AddNodeTests(unittest.TestCase):
    def test_generated_id_and_defaults(self) -> None:
        graph, node_id = add_node({"nodes": [], "edges": []}, "api_call", {"x": 5, "y": 6})

        self.assertRegex(node_id, r"^api_call_\d+_[a-z0-9]{7}$")
        node = graph["nodes"][0]
        self.assertEqual(node["type"], "apiCallNode")
        self.assertEqual(node["position"], {"x": 5, "y": 6})
        self.assertEqual(node["data"]["api_call"]["method"], "GET")
        self.assertEqual(node["data"]["api_call"]["timeout_seconds"], 30)

    def test_default_data_per_type(self) -> None:
        graph, node_id = add_node({"nodes": [], "edges": []}, "standard", {"x": 0, "y": 0}, node_id="s1")
        self.assertEqual(node_id, "s1")
        self.assertEqual(graph["nodes"][0]["data"]["system_prompt"], "You are a helpful AI assistant.")
        self.assertTrue(graph["nodes"][0]["data"]["interruptions_enabled"])

        graph, _ = add_node(graph, "agent_transfer", {"x": 0, "y": 0}, node_id="t1")
        transfer = graph["nodes"][1]["data"]
        self.assertEqual(transfer["target_agent_id"], "")
        self.assertFalse(transfer["transfer_context"])


class EditorSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = EditorSession.from_config(chain_config())

    def test_selection_is_exclusive(self) -> None:
        self.session.select_node("A")
        self.session.select_edge("A-B-0")
        self.assertIsNone(self.session.selected_node_id)
        self.assertEqual(self.session.selected_edge_id, "A-B-0")
        self.session.clear_selection()
        self.assertIsNone(self.session.selected_edge_id)

    def test_deleting_selected_node_clears_selection(self) -> None:
        self.session.select_node("B")
        self.session.delete_node("B")
        self.assertIsNone(self.session.selected_node_id)

    def test_deleting_node_clears_dangling_edge_selection(self) -> None:
        self.session.select_edge("B-C-0")
        self.session.delete_node("C")
        self.assertIsNone(self.session.selected_edge_id)

    def test_undo_restores_previous_graph(self) -> None:
        before = self.session.graph
        self.session.connect("A", "C")
        self.assertEqual(len(self.session.graph["edges"]), 3)

        self.assertTrue(self.session.undo())
        self.assertIs(self.session.graph, before)
        self.assertFalse(self.session.undo())

    def test_no_op_edit_does_not_record_history(self) -> None:
        self.session.relabel_edge("missing", condition="always")
        self.assertFalse(self.session.undo())

    def test_session_saves_through_compiler(self) -> None:
        self.session.set_transitions("B", [])
        node_id = self.session.add_node("end_call", {"x": 0, "y": 0}, node_id="end2")
        self.session.connect("B", node_id)

        config = self.session.to_config(chain_config())
        middle = config["workflow"]["nodes"][1]
        self.assertEqual(middle["transitions"], [{"condition": "always", "target": "end2", "priority": 0}])
        self.assertEqual(config["workflow"]["nodes"][-1], {"id": "end2", "type": "end_call", "name": "End Call"})


if __name__ == "__main__":
    unittest.main()
