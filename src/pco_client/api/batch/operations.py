"""Batch operation variants.

Operations form a closed set tagged by ``action``. Each variant knows how to
turn itself into a request descriptor, so the executor never inspects types.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pco_client.api.requests import RequestDescriptor


class BaseOperation(BaseModel):
    """Fields shared by every operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoint: str = Field(min_length=1, description="Path relative to the base URL")

    def to_request(self) -> RequestDescriptor:  # pragma: no cover - overridden
        raise NotImplementedError


def _resource_body(
    resource_type: str,
    attributes: dict[str, Any],
    relationships: dict[str, Any] | None,
    resource_id: str | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"type": resource_type}
    if resource_id is not None:
        data["id"] = resource_id
    data["attributes"] = attributes
    if relationships:
        data["relationships"] = relationships
    return {"data": data}


class CreateOperation(BaseOperation):
    """POST a new resource."""

    action: Literal["create"] = "create"
    type: str = Field(min_length=1, description="JSON:API resource type")
    attributes: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] | None = None

    def to_request(self) -> RequestDescriptor:
        return RequestDescriptor(
            method="POST",
            endpoint=self.endpoint,
            body=_resource_body(self.type, self.attributes, self.relationships),
        )


class UpdateOperation(BaseOperation):
    """PATCH an existing resource."""

    action: Literal["update"] = "update"
    type: str = Field(min_length=1, description="JSON:API resource type")
    id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] | None = None

    def to_request(self) -> RequestDescriptor:
        return RequestDescriptor(
            method="PATCH",
            endpoint=self.endpoint,
            body=_resource_body(self.type, self.attributes, self.relationships, self.id),
        )


class DeleteOperation(BaseOperation):
    """DELETE a resource."""

    action: Literal["delete"] = "delete"

    def to_request(self) -> RequestDescriptor:
        return RequestDescriptor(method="DELETE", endpoint=self.endpoint)


class GetOperation(BaseOperation):
    """GET a resource or collection page."""

    action: Literal["get"] = "get"
    params: dict[str, Any] = Field(default_factory=dict)

    def to_request(self) -> RequestDescriptor:
        return RequestDescriptor(method="GET", endpoint=self.endpoint, params=dict(self.params))


BatchOperation = Annotated[
    CreateOperation | UpdateOperation | DeleteOperation | GetOperation,
    Field(discriminator="action"),
]

_operation_adapter: TypeAdapter[BatchOperation] = TypeAdapter(BatchOperation)


def parse_operation(value: BatchOperation | dict[str, Any]) -> BatchOperation:
    """Validate a plain dict into its operation variant."""
    if isinstance(value, BaseOperation):
        return value  # type: ignore[return-value]
    return _operation_adapter.validate_python(value)
