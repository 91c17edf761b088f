"""Operation endpoints: instances, procedures and actions of one environment."""

from typing import Any, List, Sequence, Union

import structlog

from cloudops_client.core.models import (
    ActionDefinition,
    Instance,
    ProcedureDefinition,
)
from cloudops_client.resources.base import ASSEMBLY_URI, Resource, require
from cloudops_client.transport.client import ResourceClient

logger = structlog.get_logger()

RESOURCE_URI = "/operations/environments/"


class Operation(Resource):
    """Operations view of one assembly environment."""

    def __init__(self, client: ResourceClient, assembly: str, environment: str):
        super().__init__(client)
        require(assembly, "Missing assembly name")
        require(environment, "Missing environment name")
        self.assembly = assembly
        self.environment = environment
        self.env_uri = ASSEMBLY_URI + assembly + RESOURCE_URI + environment

    def _component_uri(self, platform: str, component: str) -> str:
        return self.env_uri + "/platforms/" + platform + "/components/" + component

    def list_instances(self, platform: str, component: str) -> List[Instance]:
        """All instances of a component, whatever their state."""
        require(platform, "Missing platform name to fetch details")
        require(component, "Missing component name to fetch details")
        return self._list(
            Instance,
            self._component_uri(platform, component) + "/instances",
            "Failed to get instances",
            params={"instances_state": "all"},
        )

    def set_instances_state(self, instance_ids: Sequence[Union[int, str]], state: str) -> Any:
        """Put a state marker (e.g. "replace") on a batch of instances."""
        require(instance_ids, "Missing instance ids to update")
        require(state, "Missing instance state to set")
        response = self._request(
            "PUT",
            ASSEMBLY_URI + self.assembly + "/operations/instances/state",
            f"Failed to set {state} marker on instance(s)",
            body={"ids": list(instance_ids), "state": state},
        )
        logger.info(
            "Set instance state",
            assembly=self.assembly,
            state=state,
            instance_ids=list(instance_ids),
        )
        return response.body

    def list_procedures(self, platform: str) -> List[ProcedureDefinition]:
        require(platform, "Missing platform name to fetch details")
        return self._list(
            ProcedureDefinition,
            self.env_uri + "/platforms/" + platform + "/procedures",
            "Failed to get procedures",
        )

    def list_actions(self, platform: str, component: str) -> List[ActionDefinition]:
        require(platform, "Missing platform name to fetch details")
        require(component, "Missing component name to fetch details")
        return self._list(
            ActionDefinition,
            self._component_uri(platform, component) + "/actions/",
            "Failed to get actions",
        )

