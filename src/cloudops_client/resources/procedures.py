"""Procedure endpoints, shared by every assembly and environment."""

from typing import Any, Dict, Optional, Sequence, Union

from cloudops_client.core.models import Procedure, parse_record
from cloudops_client.resources.base import Resource, require

PROCEDURES_URI = "/operations/procedures/"


def _require_procedure_id(procedure_id: Optional[Union[int, str]]) -> None:
    require(None if procedure_id is None else str(procedure_id), "Missing procedure Id to fetch details")


class Procedures(Resource):
    """Submit, inspect and cancel procedure executions."""

    def create(self, body: Dict[str, Any]) -> Procedure:
        response = self._request("POST", PROCEDURES_URI, "Failed to execute procedures", body=body)
        return parse_record(Procedure, response.body)

    def get(self, procedure_id: Union[int, str]) -> Procedure:
        _require_procedure_id(procedure_id)
        response = self._request(
            "GET",
            PROCEDURES_URI + str(procedure_id),
            f"Failed to get procedure status with the given Id {procedure_id}",
        )
        return parse_record(Procedure, response.body)

    def update(
        self,
        procedure_id: Union[int, str],
        body: Dict[str, Any],
        action: str = "update",
    ) -> Procedure:
        _require_procedure_id(procedure_id)
        response = self._request(
            "PUT",
            PROCEDURES_URI + str(procedure_id),
            f"Failed to {action} procedure with the given Id {procedure_id}",
            body=body,
        )
        return parse_record(Procedure, response.body)

    def get_log_data(
        self,
        procedure_id: Union[int, str],
        action_ids: Optional[Sequence[Union[int, str]]] = None,
    ) -> Any:
        """Log lines of a procedure, optionally narrowed to some of its actions."""
        _require_procedure_id(procedure_id)
        params: Dict[str, Any] = {"procedure_id": str(procedure_id)}
        if action_ids:
            params["action_ids"] = [str(a) for a in action_ids]
        response = self._request(
            "GET",
            PROCEDURES_URI + "log_data",
            f"Failed to get log data for procedure {procedure_id}",
            params=params,
        )
        return response.body
