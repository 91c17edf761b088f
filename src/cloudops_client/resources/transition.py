"""Transition endpoints: environments, releases, deployments and their platforms."""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from cloudops_client.core.exceptions import RequestFailedError
from cloudops_client.core.models import (
    Component,
    Deployment,
    Environment,
    Platform,
    RedundancyConfig,
    Release,
    Variable,
    parse_record,
)
from cloudops_client.resources.base import ASSEMBLY_URI, Resource, require
from cloudops_client.resources.payloads import build_resource_body
from cloudops_client.transport.client import ResourceClient

logger = structlog.get_logger()

RESOURCE_URI = "/transition/environments/"
MANIFEST_OWNER = "manifest"
NOT_FOUND_STATUS = 404


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


class Transition(Resource):
    """Environment-side (transition) view of one assembly."""

    def __init__(self, client: ResourceClient, assembly: str, organization: Optional[str] = None):
        super().__init__(client)
        require(assembly, "Missing assembly name")
        self.assembly = assembly
        self.organization = organization
        self.env_uri = ASSEMBLY_URI + assembly + RESOURCE_URI

    # Environments

    def get_environment(self, environment: str) -> Environment:
        require(environment, "Missing environment name to fetch details")
        response = self._request(
            "GET",
            self.env_uri + environment,
            f"Failed to get environment with name {environment}",
        )
        return parse_record(Environment, response.body)

    def list_environments(self) -> List[Environment]:
        return self._list(Environment, self.env_uri, "Failed to list environments")

    def create_environment(
        self,
        environment: str,
        availability: str,
        clouds: Mapping[str, Mapping[str, str]],
        attributes: Optional[Mapping[str, str]] = None,
        platform_availability: Optional[Mapping[str, str]] = None,
        description: Optional[str] = None,
    ) -> Environment:
        """Create an environment within the assembly.

        Args:
            environment: Environment name
            availability: Default availability mode, e.g. "redundant"
            clouds: Cloud id -> cloud settings (priority, pct_scale, ...)
            attributes: Extra environment attributes
            platform_availability: Platform id -> availability; omitted when empty
            description: Free-text description
        """
        require(environment, "Missing environment name to create environment")
        require(availability, "Missing availability to create environment")
        require(clouds, "Missing clouds map to create environment")

        attrs: Dict[str, Any] = dict(attributes or {})
        attrs["availability"] = availability
        if description is not None:
            attrs["description"] = description

        ns_path = f"{self.organization}/{self.assembly}" if self.organization else None
        body = build_resource_body(
            "cms_ci",
            properties={"ciName": environment, "nsPath": ns_path},
            attributes=attrs,
        )
        if platform_availability:
            body["platform_availability"] = dict(platform_availability)
        body["clouds"] = {key: dict(value) for key, value in clouds.items()}

        response = self._request(
            "POST",
            self.env_uri,
            f"Failed to create environment with name {environment}",
            body=body,
        )
        logger.info("Created environment", assembly=self.assembly, environment=environment)
        return parse_record(Environment, response.body)

    def delete_environment(self, environment: str) -> Environment:
        require(environment, "Missing environment name to delete")
        response = self._request(
            "DELETE",
            self.env_uri + environment,
            f"Failed to delete environment with name {environment}",
        )
        logger.info("Deleted environment", assembly=self.assembly, environment=environment)
        return parse_record(Environment, response.body)

    def commit(
        self,
        environment: str,
        exclude_platforms: Optional[Sequence[Union[int, str]]] = None,
        comment: Optional[str] = None,
    ) -> None:
        """Submit a commit of the environment's open changes.

        Only submits the request; the caller waits for the lock to clear.
        """
        require(environment, "Missing environment name to commit")
        body: Dict[str, Any] = {}
        if exclude_platforms:
            body["exclude_platforms"] = ",".join(str(p) for p in exclude_platforms)
        if comment and comment.strip():
            body["desc"] = comment
        self._request(
            "POST",
            self.env_uri + environment + "/commit",
            "Failed to commit environment",
            body=body,
        )
        logger.info("Submitted commit", assembly=self.assembly, environment=environment)

    def pull_design(self, environment: str) -> Environment:
        """Pull the latest design changes into the environment."""
        require(environment, "Missing environment name to pull design")
        response = self._request(
            "POST",
            self.env_uri + environment + "/pull",
            f"Failed to pull design for environment {environment}",
            body={},
        )
        return parse_record(Environment, response.body)

    def disable_platforms(self, environment: str, platform_ids: Sequence[Union[int, str]]) -> Environment:
        """Mark the given platforms of the environment for delete."""
        require(environment, "Missing environment name to disable platforms")
        require(platform_ids, "Missing platforms list to be disabled")
        response = self._request(
            "PUT",
            self.env_uri + environment + "/disable",
            f"Failed to disable platforms for environment with name {environment}",
            body={"platformCiIds": list(platform_ids)},
        )
        logger.info("Disabled platforms", environment=environment, platform_ids=list(platform_ids))
        return parse_record(Environment, response.body)

    def disable_all_platforms(self, environment: str) -> Environment:
        require(environment, "Missing environment name to disable all platforms")
        platform_ids = [p.ciId for p in self.list_platforms(environment) if p.ciId is not None]
        return self.disable_platforms(environment, platform_ids)

    # Releases

    def _get_release(self, environment: str, kind: str) -> Optional[Release]:
        require(environment, "Missing environment name to fetch details")
        failure = f"Failed to get {kind} releases for environment {environment}"
        response = self._send("GET", self.env_uri + environment + "/releases/" + kind, failure)
        if response.status_code == NOT_FOUND_STATUS:
            logger.info("No release found", kind=kind, environment=environment)
            return None
        if not response.ok:
            raise RequestFailedError(
                f"{failure} due to {response.status_line}",
                status_code=response.status_code,
                status_line=response.status_line,
            )
        return parse_record(Release, response.body)

    def get_latest_release(self, environment: str) -> Optional[Release]:
        """Latest release of the environment, or None when the server answers 404."""
        return self._get_release(environment, "latest")

    def get_bom_release(self, environment: str) -> Optional[Release]:
        """Open bill-of-materials release, or None when the server answers 404."""
        return self._get_release(environment, "bom")

    # Deployments

    def create_deployment(
        self,
        environment: str,
        release_id: Union[int, str],
        ns_path: str,
        comments: Optional[str] = None,
    ) -> Deployment:
        require(environment, "Missing environment name to deploy")
        require(release_id, "Missing release id to deploy")
        require(ns_path, "Missing namespace path to deploy")
        properties = {"nsPath": ns_path, "releaseId": str(release_id)}
        if comments and comments.strip():
            properties["comments"] = comments
        response = self._request(
            "POST",
            self.env_uri + environment + "/deployments/",
            f"Failed to start deployment for environment {environment}",
            body=build_resource_body("cms_deployment", properties=properties),
        )
        return parse_record(Deployment, response.body)

    def get_deployment(self, environment: str, deployment_id: str) -> Deployment:
        require(environment, "Missing environment name to fetch details")
        require(deployment_id, "Missing deployment Id to fetch details")
        response = self._request(
            "GET",
            self.env_uri + environment + "/deployments/" + str(deployment_id),
            f"Failed to get deployment details for environment {environment} for id {deployment_id}",
        )
        return parse_record(Deployment, response.body)

    def update_deployment(
        self,
        environment: str,
        deployment_id: str,
        release_id: Optional[Union[int, str]],
        state: str,
    ) -> Deployment:
        require(environment, "Missing environment name to fetch details")
        require(deployment_id, "Missing deployment to fetch details")
        properties = {
            "deploymentState": state,
            "releaseId": None if release_id is None else str(release_id),
        }
        response = self._request(
            "PUT",
            self.env_uri + environment + "/deployments/" + str(deployment_id),
            f"Failed to update deployment state to {state} for environment {environment} "
            f"with deployment Id {deployment_id}",
            body=build_resource_body("cms_deployment", properties=properties),
        )
        return parse_record(Deployment, response.body)

    def get_deployment_status(self, environment: str, deployment_id: str) -> Deployment:
        require(environment, "Missing environment name to fetch details")
        require(deployment_id, "Missing deployment to fetch details")
        response = self._request(
            "GET",
            self.env_uri + environment + "/deployments/" + str(deployment_id) + "/status",
            f"Failed to get deployment status for environment {environment} "
            f"with deployment Id {deployment_id}",
        )
        return parse_record(Deployment, response.body)

    def get_latest_deployment(self, environment: str) -> Deployment:
        require(environment, "Missing environment name to fetch details")
        response = self._request(
            "GET",
            self.env_uri + environment + "/deployments/latest",
            f"Failed to get latest deployment for environment {environment}",
        )
        return parse_record(Deployment, response.body)

    def get_deployment_rfc_log(self, environment: str, deployment_id: str, rfc_id: str) -> Any:
        """Log lines recorded for one change record (rfc) of a deployment."""
        require(environment, "Missing environment name to fetch details")
        require(deployment_id, "Missing deployment Id to fetch details")
        require(rfc_id, "Missing rfc Id to fetch details")
        response = self._request(
            "GET",
            self.env_uri + environment + "/deployments/" + str(deployment_id) + "/log_data",
            f"Failed to get deployment logs for environment {environment}, "
            f"deployment id {deployment_id} and rfcId {rfc_id}",
            params={"rfcId": rfc_id},
        )
        return response.body

    # Platforms and components

    def list_platforms(self, environment: str) -> List[Platform]:
        require(environment, "Missing environment name list platforms")
        return self._list(
            Platform,
            self.env_uri + environment + "/platforms",
            f"Failed to list platforms for environment {environment}",
        )

    def get_platform(self, environment: str, platform: str) -> Platform:
        require(environment, "Missing environment name to get platform details")
        require(platform, "Missing platform name to get platform details")
        response = self._request(
            "GET",
            self.env_uri + environment + "/platforms/" + platform,
            f"Failed to get platform {platform} for environment {environment}",
        )
        return parse_record(Platform, response.body)

    def _components_uri(self, environment: str, platform: str) -> str:
        return self.env_uri + environment + "/platforms/" + platform + "/components"

    def list_platform_components(self, environment: str, platform: str) -> List[Component]:
        require(environment, "Missing environment name to list platform components")
        require(platform, "Missing platform name to list platform components")
        return self._list(
            Component,
            self._components_uri(environment, platform),
            f"Failed to list components of platform {platform}",
        )

    def get_platform_component(self, environment: str, platform: str, component: str) -> Component:
        require(environment, "Missing environment name to get environment platform component details")
        require(platform, "Missing platform name to get environment platform component details")
        require(component, "Missing component name to get environment platform component details")
        response = self._request(
            "GET",
            self._components_uri(environment, platform) + "/" + component,
            "Failed to get environment platform component details",
        )
        return parse_record(Component, response.body)

    def update_platform_component(
        self,
        environment: str,
        platform: str,
        component: str,
        attributes: Mapping[str, str],
    ) -> Component:
        """Merge ``attributes`` onto the component and mark each one as manifest-owned."""
        require(environment, "Missing environment name to update component attributes")
        require(platform, "Missing platform name to update component attributes")
        require(component, "Missing component name to update component attributes")
        require(attributes, "Missing attributes list to be updated")

        current = self.get_platform_component(environment, platform, component)
        merged = dict(current.ciAttributes)
        merged.update(attributes)
        owner = current.owner_props
        for key in attributes:
            owner[key] = MANIFEST_OWNER

        response = self._request(
            "PUT",
            self._components_uri(environment, platform) + "/" + str(current.ciId),
            f"Failed to update component {component}",
            body=build_resource_body("cms_dj_ci", attributes=merged, owner_props=owner),
        )
        logger.info(
            "Updated component",
            environment=environment,
            platform=platform,
            component=component,
            attributes=sorted(attributes),
        )
        return parse_record(Component, response.body)

    def touch_platform_component(self, environment: str, platform: str, component: str) -> Component:
        require(environment, "Missing environment name to touch component")
        require(platform, "Missing platform name to touch component")
        require(component, "Missing component name to touch component")
        response = self._request(
            "POST",
            self._components_uri(environment, platform) + "/" + component + "/touch",
            f"Failed to touch component {component}",
            body={},
        )
        return parse_record(Component, response.body)

    # Scaling

    def update_platform_redundancy_config(
        self,
        environment: str,
        platform: str,
        component: str,
        config: RedundancyConfig,
    ) -> Platform:
        """Set the scaling bounds of a redundant platform.

        The bounds live on the platform's ``depends_on`` relation to the
        compute ``component``; every bound is marked as manifest-owned.
        """
        require(environment, "Missing environment name to be updated")
        require(platform, "Missing platform name to be updated")
        require(component, "Missing component name to be updated")
        require(config, "Missing redundancy config to be updated")

        attrs = config.relation_attributes()
        compute = self.get_platform_component(environment, platform, component)
        relation = {
            "relationAttributes": attrs,
            "relationAttrProps": {"owner": {key: MANIFEST_OWNER for key in attrs}},
        }
        response = self._request(
            "PUT",
            self.env_uri + environment + "/platforms/" + platform,
            f"Failed to update platforms redundancy for environment with name {environment}",
            body={"depends_on": {str(compute.ciId): relation}},
        )
        logger.info(
            "Updated platform redundancy",
            environment=environment,
            platform=platform,
            min=config.min,
            max=config.max,
            current=config.current,
        )
        return parse_record(Platform, response.body)

    def update_platform_cloud_scale(
        self,
        environment: str,
        platform: str,
        cloud_id: Union[int, str],
        cloud_attributes: Mapping[str, str],
    ) -> Platform:
        """Update one cloud's settings (priority, pct_scale, ...) for a platform."""
        require(environment, "Missing environment name to be updated")
        require(platform, "Missing platform name to be updated")
        require(None if cloud_id is None else str(cloud_id), "Missing cloud ID to be updated")
        require(cloud_attributes, "Missing cloud info to be updated")

        response = self._request(
            "PUT",
            self.env_uri + environment + "/platforms/" + platform + "/cloud_configuration",
            f"Failed to update platforms cloud scale with cloud id {cloud_id}",
            body={"cloud_id": str(cloud_id), "attributes": dict(cloud_attributes)},
        )
        logger.info("Updated platform cloud scale", environment=environment, platform=platform, cloud_id=cloud_id)
        return parse_record(Platform, response.body)

    # Variables

    def list_platform_variables(self, environment: str, platform: str) -> List[Variable]:
        require(environment, "Missing environment name to list environment platform variables")
        require(platform, "Missing platform name to list environment platform variables")
        return self._list(
            Variable,
            self.env_uri + environment + "/platforms/" + platform + "/variables",
            "Failed to get list of environment platforms variables",
        )

    def update_platform_variables(
        self,
        environment: str,
        platform: str,
        variables: Mapping[str, str],
        secure: bool = False,
    ) -> bool:
        require(environment, "Missing environment name to update variables")
        require(platform, "Missing platform name to update variables")
        require(variables, "Missing variables list to be updated")
        base = self.env_uri + environment + "/platforms/" + platform + "/variables/"
        return self._update_variables(base, variables, secure)

    def list_global_variables(self, environment: str) -> List[Variable]:
        require(environment, "Missing environment name to list environment variables")
        return self._list(
            Variable,
            self.env_uri + environment + "/variables",
            "Failed to get list of environment variables",
        )

    def update_global_variables(
        self,
        environment: str,
        variables: Mapping[str, str],
        secure: bool = False,
    ) -> bool:
        require(environment, "Missing environment name to update variables")
        require(variables, "Missing variables list to be updated")
        return self._update_variables(self.env_uri + environment + "/variables/", variables, secure)

    def _update_variables(self, base_uri: str, variables: Mapping[str, str], secure: bool) -> bool:
        """Set each variable's value, keeping its other attributes.

        Variables the server returns without attributes are skipped.
        """
        for name, value in variables.items():
            uri = base_uri + name
            failure = f"Failed to update variable {name}"
            current = parse_record(Variable, self._send("GET", uri, failure).body)
            if not current.ciAttributes:
                logger.debug("Skipping variable without attributes", variable=name)
                continue

            attrs = {key: _as_text(val) for key, val in current.ciAttributes.items()}
            if secure:
                attrs["secure"] = "true"
                attrs["encrypted_value"] = value
            else:
                attrs["secure"] = "false"
                attrs["value"] = value
            self._request("PUT", uri, failure, body=build_resource_body("cms_dj_ci", attributes=attrs))
            logger.info("Updated variable", variable=name, secure=secure)
        return True
