"""Drives an environment through commit, deploy and follow-up state changes."""

import json
from typing import Any, Dict, Optional, Sequence, Union

import structlog

from cloudops_client.core.config import Settings
from cloudops_client.core.exceptions import CloudOpsClientError, ReleaseNotFoundError
from cloudops_client.core.models import (
    Deployment,
    DeploymentState,
    Environment,
    Procedure,
    ProcedureState,
)
from cloudops_client.deploy.lookup import find_id_by_name
from cloudops_client.resources.base import require
from cloudops_client.resources.operation import Operation
from cloudops_client.resources.payloads import build_resource_body
from cloudops_client.resources.procedures import Procedures
from cloudops_client.resources.transition import Transition
from cloudops_client.transport.client import ResourceClient
from cloudops_client.utils.logging import client_context
from cloudops_client.utils.polling import CancellationToken, PollPolicy, poll_while

logger = structlog.get_logger()

REPLACE_STATE = "replace"
REALIZED_AS_RELATION = "base.RealizedAs"
DEFAULT_ROLL_AT = 100


class DeploymentDriver:
    """Commit/deploy handshake and operational actions for one assembly.

    Every call re-reads server state; nothing is cached between calls.
    """

    def __init__(
        self,
        client: ResourceClient,
        assembly: str,
        organization: Optional[str] = None,
        poll_policy: Optional[PollPolicy] = None,
    ):
        require(assembly, "Missing assembly name")
        self.client = client
        self.assembly = assembly
        self.poll_policy = poll_policy or PollPolicy()
        self.transition = Transition(client, assembly, organization=organization)
        self.procedures = Procedures(client)

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[ResourceClient] = None) -> "DeploymentDriver":
        if not settings.assembly:
            raise CloudOpsClientError("Missing assembly name in settings", code="config")
        return cls(
            client or ResourceClient.from_settings(settings),
            settings.assembly,
            organization=settings.organization,
            poll_policy=settings.poll_policy,
        )

    def operations(self, environment: str) -> Operation:
        return Operation(self.client, self.assembly, environment)

    # Commit and deploy

    def commit(
        self,
        environment: str,
        exclude_platforms: Optional[Sequence[Union[int, str]]] = None,
        comment: Optional[str] = None,
        policy: Optional[PollPolicy] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Environment:
        """Commit the environment's open changes and wait for the deployment plan.

        After the commit is accepted the environment is fetched repeatedly,
        sleeping ``policy.interval_seconds`` between fetches, while its state
        equals ``policy.lock_state``. With the default policy the wait has no
        upper bound.

        Args:
            environment: Environment name
            exclude_platforms: Platform ids left out of the commit
            comment: Commit description
            policy: Overrides the driver's poll policy for this call
            cancel_token: Interrupts the wait when cancelled

        Returns:
            The first environment snapshot that is no longer locked

        Raises:
            MissingParameterError: If environment is empty
            RequestFailedError: If the commit or any fetch fails
            PollTimeoutError: If a bounded policy runs out
            PollCancelledError: If cancel_token fires
        """
        require(environment, "Missing environment name to commit")
        with client_context(self.assembly, environment):
            policy = policy or self.poll_policy

            self.transition.commit(environment, exclude_platforms=exclude_platforms, comment=comment)
            snapshot = poll_while(
                lambda: self.transition.get_environment(environment),
                lambda env: env.ciState,
                policy=policy,
                cancel_token=cancel_token,
                description=f"environment {environment}",
            )
            logger.info("Commit finished", environment=environment, state=snapshot.ciState)
            return snapshot

    def deploy(self, environment: str, comment: Optional[str] = None) -> Deployment:
        """Start a deployment of the environment's open bill-of-materials release.

        Raises:
            ReleaseNotFoundError: If there is no release to deploy; no
                deployment request is sent in that case
            RequestFailedError: If the release lookup fails with any status
                other than 404, or the deployment is rejected
        """
        require(environment, "Missing environment name to deploy")
        with client_context(self.assembly, environment):
            release = self.transition.get_bom_release(environment)
            if release is None or release.releaseId is None or release.nsPath is None:
                raise ReleaseNotFoundError(
                    f"Failed to find release id to be deployed for environment {environment}"
                )

            deployment = self.transition.create_deployment(
                environment,
                release.releaseId,
                release.nsPath,
                comments=comment,
            )
            logger.info(
                "Deployment started",
                environment=environment,
                release_id=release.releaseId,
                deployment_id=deployment.deploymentId,
            )
            return deployment

    # Deployment state

    def _update_deployment_state(
        self,
        environment: str,
        deployment_id: str,
        release_id: Optional[Union[int, str]],
        state: DeploymentState,
    ) -> Deployment:
        require(environment, "Missing environment name to fetch details")
        require(None if deployment_id is None else str(deployment_id), "Missing deployment to fetch details")
        deployment = self.transition.update_deployment(environment, deployment_id, release_id, state.value)
        logger.info(
            "Deployment state updated",
            environment=environment,
            deployment_id=deployment_id,
            state=state.value,
        )
        return deployment

    def approve(self, environment: str, deployment_id: str, release_id: Optional[Union[int, str]]) -> Deployment:
        return self._update_deployment_state(environment, deployment_id, release_id, DeploymentState.ACTIVE)

    def retry(self, environment: str, deployment_id: str, release_id: Optional[Union[int, str]]) -> Deployment:
        return self._update_deployment_state(environment, deployment_id, release_id, DeploymentState.ACTIVE)

    def cancel(self, environment: str, deployment_id: str, release_id: Optional[Union[int, str]]) -> Deployment:
        return self._update_deployment_state(environment, deployment_id, release_id, DeploymentState.CANCELED)

    def get_deployment(self, environment: str, deployment_id: str) -> Deployment:
        return self.transition.get_deployment(environment, deployment_id)

    def get_deployment_status(self, environment: str, deployment_id: str) -> Deployment:
        return self.transition.get_deployment_status(environment, deployment_id)

    def get_deployment_log(self, environment: str, deployment_id: str, rfc_id: str) -> Any:
        return self.transition.get_deployment_rfc_log(environment, deployment_id, rfc_id)

    # Instance replacement

    def mark_instances_for_replacement(
        self,
        environment: str,
        platform: str,
        component: str,
        instance_ids: Optional[Sequence[Union[int, str]]] = None,
    ) -> Any:
        """Put the replace marker on instances of a component.

        Without ``instance_ids`` (or with an empty list) every current instance
        of the component is listed first and all of them are marked.
        """
        require(environment, "Missing environment name to fetch details")
        require(platform, "Missing platform name to fetch details")
        require(component, "Missing component name to fetch details")
        with client_context(self.assembly, environment):
            ops = self.operations(environment)
            if not instance_ids:
                instance_ids = [i.ciId for i in ops.list_instances(platform, component) if i.ciId is not None]
                logger.info(
                    "Replacing all instances",
                    environment=environment,
                    platform=platform,
                    component=component,
                    count=len(instance_ids),
                )
            return ops.set_instances_state(list(instance_ids), REPLACE_STATE)

    def mark_instance_for_replacement(
        self,
        environment: str,
        platform: str,
        component: str,
        instance_id: Union[int, str],
    ) -> Any:
        require(None if instance_id is None else str(instance_id), "Missing instance id to replace")
        return self.mark_instances_for_replacement(environment, platform, component, [instance_id])

    # Procedures and actions

    def execute_procedure(
        self,
        environment: str,
        platform: str,
        procedure_name: str,
        arglist: str = "",
    ) -> Procedure:
        """Run a named platform procedure.

        The procedure name is resolved against the platform's procedure
        listing; the first match wins.
        """
        require(environment, "Missing environment name to fetch details")
        require(platform, "Missing platform name to fetch details")
        require(procedure_name, "Missing procedure name to fetch details")
        with client_context(self.assembly, environment):
            ops = self.operations(environment)

            platform_id = self.transition.get_platform(environment, platform).ciId
            procedure_id = find_id_by_name(ops.list_procedures(platform), procedure_name, "procedure")
            body = build_resource_body(
                "cms_procedure",
                properties={
                    "procedureState": ProcedureState.ACTIVE.value,
                    "arglist": arglist,
                    "definition": None,
                    "ciId": None if platform_id is None else str(platform_id),
                    "procedureCiId": str(procedure_id),
                },
            )
            procedure = self.procedures.create(body)
            logger.info(
                "Procedure submitted",
                environment=environment,
                platform=platform,
                procedure=procedure_name,
                procedure_id=procedure.procedureId,
            )
            return procedure

    def execute_action(
        self,
        environment: str,
        platform: str,
        component: str,
        action_name: str,
        instance_ids: Sequence[Union[int, str]],
        arglist: str = "",
        roll_at: int = DEFAULT_ROLL_AT,
    ) -> Procedure:
        """Run a component action against selected instances.

        Args:
            roll_at: Percentage of the instances the server may process in one batch
        """
        require(environment, "Missing environment name to fetch details")
        require(platform, "Missing platform name to fetch details")
        require(component, "Missing component name to fetch details")
        require(action_name, "Missing action name to fetch details")
        require(instance_ids, "Missing instances list to fetch details")
        with client_context(self.assembly, environment):
            component_id = find_id_by_name(
                self.transition.list_platform_components(environment, platform),
                component,
                "component",
            )
            definition = build_action_definition(action_name, instance_ids)
            body = build_resource_body(
                "cms_procedure",
                properties={
                    "procedureState": ProcedureState.ACTIVE.value,
                    "arglist": arglist,
                    "ciId": str(component_id),
                    "force": "true",
                    "procedureCiId": "0",
                    "definition": json.dumps(definition),
                },
            )
            body["roll_at"] = str(roll_at)
            body["critical"] = "true"

            procedure = self.procedures.create(body)
            logger.info(
                "Action submitted",
                environment=environment,
                platform=platform,
                component=component,
                action=action_name,
                instances=len(instance_ids),
                roll_at=roll_at,
                procedure_id=procedure.procedureId,
            )
            return procedure

    def get_procedure_status(self, procedure_id: Union[int, str]) -> Procedure:
        return self.procedures.get(procedure_id)

    def cancel_procedure(self, procedure_id: Union[int, str]) -> Procedure:
        body = build_resource_body(
            "cms_procedure",
            properties={"procedureState": ProcedureState.CANCELED.value},
        )
        procedure = self.procedures.update(procedure_id, body, action="cancel")
        logger.info("Procedure cancel requested", procedure_id=procedure_id)
        return procedure

    def get_procedure_log(
        self,
        procedure_id: Union[int, str],
        action_ids: Optional[Sequence[Union[int, str]]] = None,
    ) -> Any:
        return self.procedures.get_log_data(procedure_id, action_ids)


def build_action_definition(action_name: str, instance_ids: Sequence[Union[int, str]]) -> Dict[str, Any]:
    """Execution definition of a single-step action over ``instance_ids``."""
    action: Dict[str, Any] = {
        "isInheritable": None,
        "actionName": action_name,
        "inherited": None,
        "isCritical": "true",
        "stepNumber": "1",
        "extraInfo": None,
    }
    flow: Dict[str, Any] = {
        "targetIds": list(instance_ids),
        "relationName": REALIZED_AS_RELATION,
        "direction": "from",
        "actions": [action],
    }
    return {"name": action_name, "flow": [flow]}
