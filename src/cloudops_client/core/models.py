"""Typed result records for the orchestration API.

Field names follow the server's wire format so records can be built straight
from response bodies. Fields the server adds beyond the declared ones are kept
on the record.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DeploymentState(str, Enum):
    """Deployment state enum."""

    ACTIVE = "active"
    PAUSED = "paused"
    FAILED = "failed"
    COMPLETE = "complete"
    CANCELED = "canceled"


class ProcedureState(str, Enum):
    """Procedure state enum."""

    ACTIVE = "active"
    CANCELED = "canceled"
    COMPLETE = "complete"
    FAILED = "failed"


class WireModel(BaseModel):
    """Base for every record parsed from a response body."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ConfigurationItem(WireModel):
    """A configuration item (CI) as stored by the server."""

    ciId: Optional[int] = Field(None, description="Numeric CI identifier")
    ciName: Optional[str] = Field(None, description="CI name, unique within its namespace")
    ciClassName: Optional[str] = Field(None, description="CI class")
    ciState: Optional[str] = Field(None, description="Server-side CI state")
    nsPath: Optional[str] = Field(None, description="Namespace path")
    comments: Optional[str] = None
    ciAttributes: Dict[str, Any] = Field(default_factory=dict)
    ciAttrProps: Dict[str, Any] = Field(default_factory=dict)

    @property
    def owner_props(self) -> Dict[str, Any]:
        owner = self.ciAttrProps.get("owner")
        return dict(owner) if isinstance(owner, dict) else {}


class Environment(ConfigurationItem):
    """An environment of an assembly."""

    def is_in_state(self, state: str) -> bool:
        return self.ciState == state

    @property
    def availability(self) -> Optional[str]:
        return self.ciAttributes.get("availability")


class Platform(ConfigurationItem):
    pass


class Component(ConfigurationItem):
    pass


class Instance(ConfigurationItem):
    pass


class Variable(ConfigurationItem):
    pass


class ProcedureDefinition(ConfigurationItem):
    """A procedure available on a platform."""


class ActionDefinition(ConfigurationItem):
    """An action available on a component."""


class Release(WireModel):
    """A release snapshot of an environment."""

    releaseId: Optional[int] = None
    releaseName: Optional[str] = None
    releaseState: Optional[str] = None
    nsPath: Optional[str] = None
    revision: Optional[int] = None
    description: Optional[str] = None


class Deployment(WireModel):
    """One execution of a release."""

    deploymentId: Optional[int] = None
    releaseId: Optional[int] = None
    deploymentState: Optional[str] = None
    nsPath: Optional[str] = None
    comments: Optional[str] = None
    createdBy: Optional[str] = None

    @property
    def state(self) -> Optional[DeploymentState]:
        if self.deploymentState is None:
            return None
        try:
            return DeploymentState(self.deploymentState)
        except ValueError:
            return None


class Procedure(WireModel):
    """A submitted procedure or action execution."""

    procedureId: Optional[int] = None
    procedureName: Optional[str] = None
    procedureState: Optional[str] = None
    ciId: Optional[int] = None
    procedureCiId: Optional[int] = None
    arglist: Optional[str] = None
    definition: Optional[Any] = None

    @property
    def state(self) -> Optional[ProcedureState]:
        if self.procedureState is None:
            return None
        try:
            return ProcedureState(self.procedureState)
        except ValueError:
            return None


class RedundancyConfig(BaseModel):
    """Scaling bounds of a redundant platform's compute component.

    Serialized with the server's attribute names; every value is sent as text.
    """

    min: int = Field(2, ge=0, description="Minimum number of computes")
    max: int = Field(10, ge=0, description="Maximum number of computes")
    current: int = Field(2, ge=0, description="Desired number of computes")
    step_up: int = Field(1, ge=1, description="Computes added per scale-up")
    step_down: int = Field(1, ge=1, description="Computes removed per scale-down")
    pct_dpmt: int = Field(100, ge=1, le=100, description="Percentage of computes deployed at once")

    @model_validator(mode="after")
    def check_bounds(self) -> "RedundancyConfig":
        if not self.min <= self.current <= self.max:
            raise ValueError("expected min <= current <= max")
        return self

    def relation_attributes(self) -> Dict[str, str]:
        attrs = {key: str(value) for key, value in self.model_dump().items()}
        attrs["flex"] = "true"
        attrs["converge"] = "false"
        return attrs


ModelT = TypeVar("ModelT", bound=WireModel)


def parse_record(model: Type[ModelT], body: Any) -> ModelT:
    """Build a record from a response body; empty bodies give an empty record."""
    return model.model_validate(body if isinstance(body, dict) else {})


def parse_records(model: Type[ModelT], body: Any) -> List[ModelT]:
    """Build a list of records from a JSON array body."""
    if not isinstance(body, list):
        return []
    return [model.model_validate(item) for item in body if isinstance(item, dict)]
