from __future__ import annotations

import unittest

from agent_console.workflows.reconciler import connect_nodes, update_node_data
from agent_console.workflows.service import (
    WorkflowValidationError,
    canonical_hash,
    compute_dirty_state,
    condition_catalog,
    deploy_workflow,
    load_workflow_graph,
    reconcile_graph,
)
from workflow_samples import chain_config, sample_config


class LoadWorkflowGraphTests(unittest.TestCase):
    def test_load_without_layout_keeps_stored_positions(self) -> None:
        graph = load_workflow_graph(sample_config())
        self.assertEqual(graph["nodes"][0]["position"], {"x": 10, "y": 20})

    def test_load_with_layout_repositions_nodes(self) -> None:
        graph = load_workflow_graph(chain_config(), apply_auto_layout=True, direction="TB")
        self.assertEqual([item["position"]["x"] for item in graph["nodes"]], [120.0, 120.0, 120.0])


class DirtyStateTests(unittest.TestCase):
    def test_freshly_loaded_graph_is_clean(self) -> None:
        config = sample_config()
        state = compute_dirty_state(load_workflow_graph(config), config)
        self.assertFalse(state["dirty"])
        self.assertEqual(state["hash"], canonical_hash(state["config"]))

    def test_layout_alone_does_not_dirty(self) -> None:
        config = chain_config()
        graph = load_workflow_graph(config, apply_auto_layout=True)
        self.assertFalse(compute_dirty_state(graph, config)["dirty"])

    def test_edits_make_the_graph_dirty(self) -> None:
        config = chain_config()
        graph = connect_nodes(load_workflow_graph(config), "A", "C")
        self.assertTrue(compute_dirty_state(graph, config)["dirty"])

        renamed = update_node_data(load_workflow_graph(config), "B", {"name": "Renamed"})
        self.assertTrue(compute_dirty_state(renamed, config)["dirty"])

    def test_settings_edit_makes_the_graph_dirty(self) -> None:
        config = chain_config()
        state = compute_dirty_state(load_workflow_graph(config), config, settings_edits={"history_window": 4})
        self.assertTrue(state["dirty"])
        self.assertEqual(state["config"]["workflow"]["history_window"], 4)

    def test_new_workflow_is_always_dirty(self) -> None:
        state = compute_dirty_state({"nodes": [], "edges": []}, None)
        self.assertTrue(state["dirty"])

    def test_hash_ignores_key_order(self) -> None:
        self.assertEqual(canonical_hash({"a": 1, "b": 2}), canonical_hash({"b": 2, "a": 1}))


class DeployTests(unittest.TestCase):
    def test_valid_workflow_deploys(self) -> None:
        config = sample_config()
        deployed = deploy_workflow(load_workflow_graph(config), config)
        self.assertEqual(deployed, sample_config())

    def test_invalid_workflow_is_rejected(self) -> None:
        config = chain_config()
        graph = update_node_data(load_workflow_graph(config), "C", {"type": "standard"})

        with self.assertRaises(WorkflowValidationError) as ctx:
            deploy_workflow(graph, config)
        self.assertFalse(ctx.exception.result.valid)
        self.assertIn(
            "Workflow has no terminal state: at least one end_call node is required",
            ctx.exception.result.errors,
        )

    def test_unknown_initial_node_is_rejected(self) -> None:
        config = chain_config()
        with self.assertRaises(WorkflowValidationError) as ctx:
            deploy_workflow(load_workflow_graph(config), config, settings_edits={"initial_node": "Z"})
        self.assertEqual(
            [item.code for item in ctx.exception.result.diagnostics],
            ["INITIAL_NODE_MISSING"],
        )


class ReconcileAndCatalogTests(unittest.TestCase):
    def test_reconcile_reports_updated_nodes(self) -> None:
        graph = load_workflow_graph(chain_config())
        graph["nodes"][0]["data"]["transitions"] = []
        result = reconcile_graph(graph)
        self.assertEqual(result["updated_node_ids"], ["A"])

    def test_catalog_is_serializable(self) -> None:
        catalog = condition_catalog("standard")
        self.assertTrue(all(isinstance(item["kind"], str) for item in catalog))
        self.assertIn("timeout", [item["kind"] for item in catalog])
        self.assertNotIn("api_success", [item["kind"] for item in catalog])


if __name__ == "__main__":
    unittest.main()
