"""Tests for the transition endpoints."""

import pytest
from pydantic import ValidationError

from cloudops_client.core.exceptions import MissingParameterError, RequestFailedError
from cloudops_client.core.models import RedundancyConfig
from cloudops_client.resources.transition import Transition

from conftest import ENV_URI, connect_error

ENVS_URI = "/assemblies/shop/transition/environments/"
COMPONENTS_URI = ENV_URI + "/platforms/web/components"


@pytest.fixture
def transition(client):
    return Transition(client, "shop", organization="acme")


def test_get_environment(api, transition):
    api.add("GET", ENV_URI, 200, {"ciId": 1, "ciName": "prod", "ciAttributes": {"availability": "redundant"}})

    env = transition.get_environment("prod")

    assert env.ciName == "prod"
    assert env.availability == "redundant"


def test_get_environment_failure_message(api, transition):
    api.add("GET", ENV_URI, 404)

    with pytest.raises(RequestFailedError) as exc_info:
        transition.get_environment("prod")

    assert str(exc_info.value) == "Failed to get environment with name prod due to HTTP/1.1 404 Not Found"
    assert exc_info.value.status_line == "HTTP/1.1 404 Not Found"
    assert not exc_info.value.null_response


def test_list_environments(api, transition):
    api.add("GET", ENVS_URI, 200, [{"ciName": "prod"}, {"ciName": "qa"}])

    assert [e.ciName for e in transition.list_environments()] == ["prod", "qa"]


def test_create_environment_body(api, transition):
    api.add("POST", ENVS_URI, 200, {"ciId": 3, "ciName": "prod"})

    transition.create_environment(
        "prod",
        "redundant",
        {"cloud-east": {"priority": "1", "pct_scale": "100"}},
        attributes={"debug": "false"},
        description="production",
    )

    assert api.body(api.calls("POST", ENVS_URI)[0]) == {
        "cms_ci": {
            "ciName": "prod",
            "nsPath": "acme/shop",
            "ciAttributes": {"debug": "false", "availability": "redundant", "description": "production"},
        },
        "clouds": {"cloud-east": {"priority": "1", "pct_scale": "100"}},
    }


def test_create_environment_platform_availability(api, transition):
    api.add("POST", ENVS_URI, 200, {"ciId": 3})

    transition.create_environment("prod", "single", {"c1": {"priority": "1"}}, platform_availability={"55": "single"})

    assert api.body(api.calls("POST", ENVS_URI)[0])["platform_availability"] == {"55": "single"}


def test_create_environment_requires_clouds(api, transition):
    with pytest.raises(MissingParameterError):
        transition.create_environment("prod", "single", {})

    assert api.requests == []


def test_delete_environment(api, transition):
    api.add("DELETE", ENV_URI, 200, {"ciId": 1})

    assert transition.delete_environment("prod").ciId == 1


def test_pull_design(api, transition):
    api.add("POST", ENV_URI + "/pull", 200, {"ciId": 1, "ciState": "default"})

    assert transition.pull_design("prod").ciState == "default"


def test_disable_all_platforms(api, transition):
    api.add("GET", ENV_URI + "/platforms", 200, [{"ciId": 55, "ciName": "web"}, {"ciId": 56, "ciName": "db"}])
    api.add("PUT", ENV_URI + "/disable", 200, {"ciId": 1})

    transition.disable_all_platforms("prod")

    assert api.body(api.calls("PUT", ENV_URI + "/disable")[0]) == {"platformCiIds": [55, 56]}


@pytest.mark.parametrize("kind", ["latest", "bom"])
def test_missing_release_is_none(api, transition, kind):
    api.add("GET", ENV_URI + "/releases/" + kind, 404)

    getter = transition.get_latest_release if kind == "latest" else transition.get_bom_release
    assert getter("prod") is None


@pytest.mark.parametrize("status", [401, 500, 503])
def test_release_lookup_failure_raises(api, transition, status):
    api.add("GET", ENV_URI + "/releases/latest", status)

    with pytest.raises(RequestFailedError) as exc_info:
        transition.get_latest_release("prod")

    assert exc_info.value.status_code == status
    assert str(exc_info.value).startswith("Failed to get latest releases for environment prod due to HTTP/1.1 " + str(status))


def test_latest_release(api, transition):
    api.add("GET", ENV_URI + "/releases/latest", 200, {"releaseId": 40, "releaseState": "closed"})

    assert transition.get_latest_release("prod").releaseId == 40


def test_null_release_response_raises(api, transition):
    api.add_handler("GET", ENV_URI + "/releases/latest", connect_error)

    with pytest.raises(RequestFailedError):
        transition.get_latest_release("prod")


def test_latest_deployment(api, transition):
    api.add("GET", ENV_URI + "/deployments/latest", 200, {"deploymentId": 9})

    assert transition.get_latest_deployment("prod").deploymentId == 9


def test_update_component_merges_and_marks_owner(api, transition):
    api.add(
        "GET",
        COMPONENTS_URI + "/tomcat",
        200,
        {
            "ciId": 32,
            "ciName": "tomcat",
            "ciAttributes": {"port": "8080", "max_threads": "50"},
            "ciAttrProps": {"owner": {"port": "design"}},
        },
    )
    api.add("PUT", COMPONENTS_URI + "/32", 200, {"ciId": 32})

    transition.update_platform_component("prod", "web", "tomcat", {"max_threads": "200"})

    assert api.body(api.calls("PUT", COMPONENTS_URI + "/32")[0]) == {
        "cms_dj_ci": {
            "ciAttributes": {"port": "8080", "max_threads": "200"},
            "ciAttrProps": {"owner": {"port": "design", "max_threads": "manifest"}},
        }
    }


def test_touch_component(api, transition):
    api.add("POST", COMPONENTS_URI + "/tomcat/touch", 200, {"ciId": 32})

    assert transition.touch_platform_component("prod", "web", "tomcat").ciId == 32


def test_update_global_variables(api, transition):
    uri = ENV_URI + "/variables/"
    api.add("GET", uri + "db_pass", 200, {"ciId": 70, "ciAttributes": {"value": "", "secure": False}})
    api.add("PUT", uri + "db_pass", 200, {"ciId": 70})
    api.add("GET", uri + "missing", 404, {"error": "not found"})

    assert transition.update_global_variables("prod", {"db_pass": "hunter2", "missing": "x"}, secure=True)

    assert api.body(api.calls("PUT", uri + "db_pass")[0]) == {
        "cms_dj_ci": {"ciAttributes": {"value": "", "secure": "true", "encrypted_value": "hunter2"}}
    }
    assert api.calls("PUT", uri + "missing") == []


def test_update_platform_variables_plain(api, transition):
    uri = ENV_URI + "/platforms/web/variables/heap"
    api.add("GET", uri, 200, {"ciId": 71, "ciAttributes": {"value": "1g"}})
    api.add("PUT", uri, 200, {"ciId": 71})

    transition.update_platform_variables("prod", "web", {"heap": "2g"})

    assert api.body(api.calls("PUT", uri)[0]) == {
        "cms_dj_ci": {"ciAttributes": {"value": "2g", "secure": "false"}}
    }


def test_list_variables(api, transition):
    api.add("GET", ENV_URI + "/variables", 200, [{"ciName": "a"}])
    api.add("GET", ENV_URI + "/platforms/web/variables", 200, [{"ciName": "b"}, {"ciName": "c"}])

    assert [v.ciName for v in transition.list_global_variables("prod")] == ["a"]
    assert [v.ciName for v in transition.list_platform_variables("prod", "web")] == ["b", "c"]


def test_non_list_body_is_rejected(api, transition):
    api.add("GET", ENV_URI + "/platforms", 200, {"unexpected": True})

    with pytest.raises(RequestFailedError) as exc_info:
        transition.list_platforms("prod")

    assert str(exc_info.value) == (
        "Failed to list platforms for environment prod due to unexpected response body of type dict"
    )
    assert exc_info.value.status_code == 200
    assert not exc_info.value.null_response


def test_update_redundancy_config(api, transition):
    api.add("GET", COMPONENTS_URI + "/compute", 200, {"ciId": 31, "ciName": "compute"})
    api.add("PUT", ENV_URI + "/platforms/web", 200, {"ciId": 55, "ciName": "web"})

    platform = transition.update_platform_redundancy_config(
        "prod", "web", "compute", RedundancyConfig(min=2, max=8, current=3, step_up=2, step_down=1, pct_dpmt=50)
    )

    body = api.body(api.calls("PUT", ENV_URI + "/platforms/web")[0])
    relation = body["depends_on"]["31"]
    assert relation["relationAttributes"] == {
        "min": "2",
        "max": "8",
        "current": "3",
        "step_up": "2",
        "step_down": "1",
        "pct_dpmt": "50",
        "flex": "true",
        "converge": "false",
    }
    assert relation["relationAttrProps"]["owner"] == {key: "manifest" for key in relation["relationAttributes"]}
    assert platform.ciId == 55


def test_update_redundancy_config_requires_config(api, transition):
    with pytest.raises(MissingParameterError):
        transition.update_platform_redundancy_config("prod", "web", "compute", None)

    assert api.requests == []


def test_redundancy_config_bounds():
    with pytest.raises(ValidationError):
        RedundancyConfig(min=3, max=2, current=2)
    with pytest.raises(ValidationError):
        RedundancyConfig(pct_dpmt=0)


def test_update_redundancy_config_failure(api, transition):
    api.add("GET", COMPONENTS_URI + "/compute", 200, {"ciId": 31})
    api.add("PUT", ENV_URI + "/platforms/web", 422)

    with pytest.raises(RequestFailedError) as exc_info:
        transition.update_platform_redundancy_config("prod", "web", "compute", RedundancyConfig())

    assert str(exc_info.value).startswith(
        "Failed to update platforms redundancy for environment with name prod due to HTTP/1.1 422"
    )
    assert exc_info.value.status_code == 422


def test_update_cloud_scale(api, transition):
    uri = ENV_URI + "/platforms/web/cloud_configuration"
    api.add("PUT", uri, 200, {"ciId": 55})

    transition.update_platform_cloud_scale("prod", "web", 1234, {"pct_scale": "50", "priority": "2"})

    assert api.body(api.calls("PUT", uri)[0]) == {
        "cloud_id": "1234",
        "attributes": {"pct_scale": "50", "priority": "2"},
    }


@pytest.mark.parametrize(
    "cloud_id, attributes",
    [(None, {"priority": "1"}), ("", {"priority": "1"}), ("1234", {})],
)
def test_update_cloud_scale_validation(api, transition, cloud_id, attributes):
    with pytest.raises(MissingParameterError):
        transition.update_platform_cloud_scale("prod", "web", cloud_id, attributes)

    assert api.requests == []


def test_update_cloud_scale_failure(api, transition):
    api.add("PUT", ENV_URI + "/platforms/web/cloud_configuration", 500)

    with pytest.raises(RequestFailedError) as exc_info:
        transition.update_platform_cloud_scale("prod", "web", "1234", {"priority": "1"})

    assert str(exc_info.value).startswith("Failed to update platforms cloud scale with cloud id 1234 due to")
