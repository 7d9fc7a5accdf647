"""
Tests for configuration loading and the behavior graph loader
"""

import json

import pytest
from unittest.mock import patch

from behavior_orchestrator.errors import GraphValidationError
from behavior_orchestrator.loader import load_behaviors, load_behaviors_file
from behavior_orchestrator.main import CheckType, ExecutionStrategy, OrchestratorConfig, StepKind

GRAPH = {
    "behaviors": [
        {
            "id": "sign-up",
            "title": "Sign Up",
            "page_path": "/sign-up",
            "scenarios": [
                {
                    "name": "Default",
                    "steps": [
                        {"act": 'Type "a@example.com" into the email field'},
                        {"check": "URL contains /dashboard"},
                        {"check": "The dashboard greets the user", "check_type": "semantic"},
                    ],
                },
            ],
        },
        {
            "id": "create-item",
            "title": "Create Item",
            "dependencies": [{"behavior_id": "sign-up", "scenario_name": "Default"}],
        },
        {
            "id": "delete-item",
            "title": "Delete Item",
            "dependencies": ["create-item"],
        },
    ],
}


class TestOrchestratorConfig:
    """Tests for OrchestratorConfig loaders"""

    def test_config_from_env(self):
        """Should load config from environment"""
        env = {
            "ORCH_STRATEGY": "isolated",
            "ORCH_BASE_URL": "http://localhost:5173",
            "ORCH_BEHAVIOR_TIMEOUT_MS": "60000",
            "ORCH_CHECK_MAX_ATTEMPTS": "5",
            "ORCH_STRICT_CHAIN_CYCLES": "true",
            "ORCH_EVENT_GATEWAY_URL": "http://gateway:8080",
        }
        with patch.dict("os.environ", env):
            config = OrchestratorConfig.from_env()

        assert config.strategy == ExecutionStrategy.ISOLATED
        assert config.base_url == "http://localhost:5173"
        assert config.behavior_timeout_ms == 60000
        assert config.check_max_attempts == 5
        assert config.strict_chain_cycles is True
        assert config.event_gateway_url == "http://gateway:8080"

    def test_config_from_env_defaults(self):
        """Unset variables fall back to defaults"""
        with patch.dict("os.environ", {}, clear=True):
            config = OrchestratorConfig.from_env()

        assert config.strategy == ExecutionStrategy.CONTINUOUS
        assert config.base_url == "http://localhost:3000"
        assert config.credential_injection_window == 5
        assert config.event_gateway_url is None

    def test_config_from_yaml(self, tmp_path):
        """Should load config from a YAML file"""
        path = tmp_path / "orchestrator.yaml"
        path.write_text(
            "strategy: isolated\n"
            "check_max_attempts: 2\n"
            "probe_ports: [3000, 8080]\n"
            "auth_order: [sign-up, sign-in]\n"
        )

        config = OrchestratorConfig.from_yaml(str(path))

        assert config.strategy == ExecutionStrategy.ISOLATED
        assert config.check_max_attempts == 2
        assert config.probe_ports == [3000, 8080]
        assert config.auth_order == ["sign-up", "sign-in"]

    def test_config_from_empty_yaml(self, tmp_path):
        """An empty file gives the defaults"""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert OrchestratorConfig.from_yaml(str(path)).check_max_attempts == 3


class TestLoader:
    """Tests for load_behaviors and load_behaviors_file"""

    def test_load_graph(self):
        """A valid document builds the behavior map in declaration order"""
        behaviors = load_behaviors(GRAPH)

        assert list(behaviors) == ["sign-up", "create-item", "delete-item"]
        sign_up = behaviors["sign-up"]
        assert sign_up.page_path == "/sign-up"

        steps = sign_up.scenarios[0].steps
        assert steps[0].kind == StepKind.ACT
        assert steps[1].check_type == CheckType.DETERMINISTIC
        assert steps[2].check_type == CheckType.SEMANTIC

    def test_dependency_forms(self):
        """Dependencies may be plain ids or objects with a scenario"""
        behaviors = load_behaviors(GRAPH)

        create = behaviors["create-item"].dependencies[0]
        assert create.behavior_id == "sign-up"
        assert create.scenario_name == "Default"
        assert behaviors["delete-item"].dependency_ids == ["create-item"]

    @pytest.mark.parametrize("step", [
        {},
        {"act": "Click", "check": "Shown"},
        {"act": "Click", "check_type": "semantic"},
        {"check": "Shown", "check_type": "fuzzy"},
    ])
    def test_invalid_steps(self, step):
        """Steps must define exactly one kind"""
        data = {"behaviors": [{
            "id": "a", "title": "A", "scenarios": [{"name": "S", "steps": [step]}],
        }]}
        with pytest.raises(GraphValidationError):
            load_behaviors(data)

    def test_duplicate_ids(self):
        """Behavior ids must be unique"""
        data = {"behaviors": [{"id": "a", "title": "A"}, {"id": "a", "title": "Again"}]}
        with pytest.raises(GraphValidationError, match="duplicate behavior id"):
            load_behaviors(data)

    def test_relative_page_path(self):
        """page_path must be absolute"""
        with pytest.raises(GraphValidationError):
            load_behaviors({"behaviors": [{"id": "a", "title": "A", "page_path": "tasks"}]})

    def test_missing_behaviors_key(self):
        """A document without behaviors is rejected"""
        with pytest.raises(GraphValidationError):
            load_behaviors({})

    def test_load_json_file(self, tmp_path):
        """JSON files are loaded"""
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(GRAPH))
        assert len(load_behaviors_file(path)) == 3

    def test_load_yaml_file(self, tmp_path):
        """YAML files are loaded"""
        path = tmp_path / "graph.yml"
        path.write_text(
            "behaviors:\n"
            "  - id: sign-up\n"
            "    title: Sign Up\n"
            "    scenarios:\n"
            "      - name: Default\n"
            "        steps:\n"
            "          - act: Click the sign up button\n"
            "          - check: The dashboard is shown\n"
            "  - id: create-item\n"
            "    title: Create Item\n"
            "    dependencies: [sign-up]\n"
        )

        behaviors = load_behaviors_file(str(path))

        assert behaviors["create-item"].dependency_ids == ["sign-up"]
        assert behaviors["sign-up"].scenarios[0].steps[1].check_type == CheckType.SEMANTIC

    def test_non_mapping_file(self, tmp_path):
        """A file that is not a mapping is rejected"""
        path = tmp_path / "graph.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(GraphValidationError):
            load_behaviors_file(path)
