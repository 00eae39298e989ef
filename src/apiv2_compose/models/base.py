"""Data models for composed operation descriptors.

Every contributor writes into these models; the document assembler turns
them into an OpenAPI v2 structure with ``to_dict``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

REF_PREFIX = "#/definitions/"


class DataType(str, Enum):
    """Primitive data types understood by OpenAPI v2."""

    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    FILE = "file"


class ParameterIn(str, Enum):
    """Where a parameter is read from in the request."""

    QUERY = "query"
    PATH = "path"
    HEADER = "header"
    FORM_DATA = "formData"
    BODY = "body"
    COOKIE = "cookie"


class Schema(BaseModel):
    """A schema fragment, either inline or pointing into the definitions map."""

    name: str | None = None
    reference: str | None = None
    description: str | None = None
    data_type: DataType | None = None
    format: str | None = None
    items: "Schema | None" = None
    properties: dict[str, "Schema"] = {}
    required: list[str] = []
    enum: list[Any] = []
    additional_properties: "Schema | bool | None" = None

    def retain_ref(self) -> None:
        """Drop everything but the reference, if this fragment has one."""
        if self.reference is None:
            return
        self.description = None
        self.data_type = None
        self.format = None
        self.items = None
        self.properties = {}
        self.required = []
        self.enum = []
        self.additional_properties = None

    def body(self) -> "Schema":
        """Inline form of this fragment, as stored in the definitions map."""
        return self.model_copy(update={"reference": None}, deep=True)

    def children(self) -> list["Schema"]:
        nested = []
        if self.items is not None:
            nested.append(self.items)
        nested.extend(self.properties.values())
        if isinstance(self.additional_properties, Schema):
            nested.append(self.additional_properties)
        return nested

    def to_dict(self) -> dict:
        if self.reference is not None:
            return {"$ref": self.reference}

        data: dict[str, Any] = {}
        if self.data_type is not None:
            data["type"] = self.data_type.value
        if self.format:
            data["format"] = self.format
        if self.description:
            data["description"] = self.description
        if self.enum:
            data["enum"] = list(self.enum)
        if self.items is not None:
            data["items"] = self.items.to_dict()
        if self.properties:
            data["properties"] = {k: v.to_dict() for k, v in self.properties.items()}
        if self.required:
            data["required"] = list(self.required)
        if isinstance(self.additional_properties, Schema):
            data["additionalProperties"] = self.additional_properties.to_dict()
        elif self.additional_properties is not None:
            data["additionalProperties"] = self.additional_properties
        return data


class Parameter(BaseModel):
    """A single operation parameter."""

    model_config = ConfigDict(populate_by_name=True)

    in_: ParameterIn = Field(alias="in")
    name: str
    required: bool = False
    schema_: Schema | None = Field(default=None, alias="schema")
    data_type: DataType | None = None
    format: str | None = None
    description: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "in": self.in_.value,
            "name": self.name,
            "required": self.required,
        }
        if self.schema_ is not None:
            data["schema"] = self.schema_.to_dict()
        if self.data_type is not None:
            data["type"] = self.data_type.value
        if self.format:
            data["format"] = self.format
        if self.description:
            data["description"] = self.description
        return data


class Response(BaseModel):
    """A response entry, keyed by status code in ``Operation.responses``."""

    model_config = ConfigDict(populate_by_name=True)

    description: str | None = None
    schema_: Schema | None = Field(default=None, alias="schema")

    def to_dict(self) -> dict:
        # v2 makes the description mandatory
        data: dict[str, Any] = {"description": self.description or ""}
        if self.schema_ is not None:
            data["schema"] = self.schema_.to_dict()
        return data


class SecurityScheme(BaseModel):
    """A named entry of ``securityDefinitions``."""

    model_config = ConfigDict(populate_by_name=True)

    type_: str = Field(alias="type")  # basic / apiKey / oauth2
    name: str | None = None
    in_: str | None = Field(default=None, alias="in")
    flow: str | None = None
    authorization_url: str | None = Field(default=None, alias="authorizationUrl")
    token_url: str | None = Field(default=None, alias="tokenUrl")
    scopes: dict[str, str] = {}
    description: str | None = None

    def append_map(self, name: str, definitions: dict[str, "SecurityScheme"]) -> None:
        """Merge this scheme into ``definitions`` under ``name``.

        A scheme already present keeps its settings and gains any scopes it
        did not know about, so merging the same scheme twice is a no-op.
        """
        existing = definitions.get(name)
        if existing is None:
            definitions[name] = self.model_copy(deep=True)
            return
        for scope, description in self.scopes.items():
            existing.scopes.setdefault(scope, description)

    def to_dict(self) -> dict:
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not self.scopes and self.type_ != "oauth2":
            data.pop("scopes", None)
        elif "scopes" in data:
            data["scopes"] = dict(sorted(self.scopes.items()))
        return data


class Operation(BaseModel):
    """The descriptor of one endpoint operation."""

    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    tags: list[str] = []
    deprecated: bool = False
    parameters: list[Parameter] = []
    responses: dict[str, Response] = {}
    security: list[dict[str, list[str]]] = []

    def sorted_responses(self) -> list[tuple[str, Response]]:
        return sorted(self.responses.items())

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.operation_id:
            data["operationId"] = self.operation_id
        if self.summary:
            data["summary"] = self.summary
        if self.description:
            data["description"] = self.description
        if self.tags:
            data["tags"] = list(self.tags)
        if self.deprecated:
            data["deprecated"] = True
        data["parameters"] = [p.to_dict() for p in self.parameters]
        data["responses"] = {code: r.to_dict() for code, r in self.sorted_responses()}
        if self.security:
            data["security"] = [dict(req) for req in self.security]
        return data


Definitions = dict[str, Schema]
SecurityDefinitions = dict[str, SecurityScheme]
