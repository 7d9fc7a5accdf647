"""
Behavior Graph Loader

Validates an already-structured behavior graph (parsed JSON or YAML) and
builds the behavior map the orchestrator consumes.

Document shape:

    behaviors:
      - id: sign-up
        title: Sign Up
        page_path: /sign-up
        scenarios:
          - name: Default
            steps:
              - act: Type "a@b.com" into the email field
              - check: The dashboard is shown
      - id: create-item
        title: Create Item
        dependencies: [sign-up]
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import GraphValidationError
from .main import Behavior, CheckType, Dependency, Scenario, Step

logger = logging.getLogger(__name__)


class StepModel(BaseModel):
    """One step: exactly one of act or check"""

    act: Optional[str] = Field(default=None, description="Action instruction")
    check: Optional[str] = Field(default=None, description="Condition to verify")
    check_type: Optional[Literal["deterministic", "semantic"]] = Field(
        default=None, description="Override the classification of a check"
    )

    @model_validator(mode="after")
    def exactly_one_kind(self) -> "StepModel":
        if (self.act is None) == (self.check is None):
            raise ValueError("step must define exactly one of 'act' or 'check'")
        if self.act is not None and self.check_type is not None:
            raise ValueError("check_type only applies to check steps")
        return self

    def to_step(self) -> Step:
        if self.act is not None:
            return Step.act(self.act)
        check_type = CheckType(self.check_type) if self.check_type else None
        return Step.check(self.check, check_type)


class ScenarioModel(BaseModel):
    name: str = Field(..., description="Scenario name, unique within its behavior")
    steps: List[StepModel] = Field(default_factory=list)


class DependencyModel(BaseModel):
    behavior_id: str = Field(..., description="Id of the prerequisite behavior")
    scenario_name: Optional[str] = Field(
        default=None, description="Scenario of the prerequisite to run in chains"
    )


class BehaviorModel(BaseModel):
    id: str = Field(..., min_length=1, description="Stable slug, unique in the graph")
    title: str = Field(..., description="Human-readable name")
    description: str = Field(default="")
    page_path: Optional[str] = Field(default=None, description="Location hint for navigation")
    dependencies: List[Union[str, DependencyModel]] = Field(default_factory=list)
    scenarios: List[ScenarioModel] = Field(default_factory=list)

    @field_validator("page_path")
    @classmethod
    def page_path_is_absolute(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.startswith("/"):
            raise ValueError("page_path must start with '/'")
        return value

    def to_behavior(self) -> Behavior:
        dependencies = [
            Dependency(behavior_id=dep) if isinstance(dep, str)
            else Dependency(behavior_id=dep.behavior_id, scenario_name=dep.scenario_name)
            for dep in self.dependencies
        ]
        return Behavior(
            id=self.id,
            title=self.title,
            description=self.description,
            dependencies=dependencies,
            scenarios=[
                Scenario(name=s.name, steps=[step.to_step() for step in s.steps])
                for s in self.scenarios
            ],
            page_path=self.page_path,
        )


class GraphDocument(BaseModel):
    behaviors: List[BehaviorModel] = Field(..., description="Behaviors in declaration order")

    @model_validator(mode="after")
    def ids_are_unique(self) -> "GraphDocument":
        seen = set()
        for behavior in self.behaviors:
            if behavior.id in seen:
                raise ValueError(f"duplicate behavior id: {behavior.id}")
            seen.add(behavior.id)
        return self


def load_behaviors(data: Dict[str, Any]) -> Dict[str, Behavior]:
    """
    Validate a graph document and build the behavior map.

    Dependencies on unknown ids are not checked here; the scheduler
    reports them when the run starts.

    Raises:
        GraphValidationError: The document does not match the schema
    """
    try:
        document = GraphDocument.model_validate(data)
    except ValidationError as e:
        raise GraphValidationError(f"Invalid behavior graph: {e}") from e

    behaviors = {model.id: model.to_behavior() for model in document.behaviors}
    logger.debug(f"Loaded {len(behaviors)} behaviors")
    return behaviors


def load_behaviors_file(path: Union[str, Path]) -> Dict[str, Behavior]:
    """Load a graph document from a .json, .yaml or .yml file"""
    path = Path(path)
    with open(path, "r") as f:
        if path.suffix in (".yaml", ".yml"):
            import yaml

            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if not isinstance(data, dict):
        raise GraphValidationError(f"{path} does not contain a behavior graph mapping")
    return load_behaviors(data)
