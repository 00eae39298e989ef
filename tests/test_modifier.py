import datetime
import decimal
import uuid
from typing import Annotated, Any, ClassVar, Optional, Union

import pytest
from pydantic import AnyUrl, BaseModel

from apiv2_compose.errors import CapabilityResolutionError
from apiv2_compose.models.base import (
    DataType,
    Operation,
    Parameter,
    ParameterIn,
    Schema,
    SecurityScheme,
)
from apiv2_compose.modifier.context import (
    HttpRequest,
    HttpResponse,
    NamedFile,
    Payload,
    ReqData,
    Session,
    State,
)
from apiv2_compose.modifier.core import (
    Leaf,
    Option,
    OperationModifier,
    apply_modifier,
    modifier_for,
)
from apiv2_compose.modifier.extractors import (
    Data,
    Form,
    Json,
    Multipart,
    Path,
    QsQuery,
    Query,
)
from apiv2_compose.modifier.result import Result
from apiv2_compose.schema.descriptor import Apiv2Schema
from apiv2_compose.schema.error_map import Apiv2Errors, api_v2_errors


class Pet(BaseModel):
    id: int
    name: str


class Owner(BaseModel):
    name: str
    pets: list[Pet] = []


class PetError(BaseModel, Apiv2Errors):
    ERROR_MAP: ClassVar[dict[int, str]] = {400: "Bad request", 404: "Pet not found"}

    message: str


class PlainError(Exception):
    pass


class OAuth(Apiv2Schema):
    NAME = "petstore_auth"
    SECURITY_SCHEME = SecurityScheme(
        type_="oauth2",
        flow="implicit",
        authorization_url="https://example.com/oauth",
        scopes={"write:pets": "modify pets", "read:pets": "read pets"},
    )


class Tracked(OperationModifier):
    """Adds a header parameter of its own."""

    @classmethod
    def update_parameter(cls, op):
        op.parameters.append(Parameter(in_=ParameterIn.HEADER, name="X-Trace-Id", required=False))


def _apply(annotation):
    op = Operation()
    definitions = {}
    security_definitions = {}
    apply_modifier(modifier_for(annotation), op, definitions, security_definitions)
    return op, definitions, security_definitions


LEAF_TYPES = [
    bool, int, float, str, bytes, bytearray,
    datetime.datetime, datetime.date, uuid.UUID, decimal.Decimal, AnyUrl,
    HttpRequest, HttpResponse, Payload, Session, NamedFile,
    State[Pet], ReqData[Owner], list[int],
]


class TestLeafLaw:
    @pytest.mark.parametrize("annotation", LEAF_TYPES)
    def test_leaf_leaves_everything_unchanged(self, annotation):
        op, definitions, security_definitions = _apply(annotation)
        assert op == Operation()
        assert definitions == {}
        assert security_definitions == {}

    def test_primitive_resolves_to_leaf(self):
        assert modifier_for(int) is Leaf[int]

    def test_model_used_directly_only_adds_definitions(self):
        op, definitions, _ = _apply(Owner)
        assert op == Operation()
        assert set(definitions) == {"Owner", "Pet"}


class TestResolution:
    def test_parametrized_classes_are_cached(self):
        assert Json[Pet] is Json[Pet]
        assert Path[int] is not Query[int]

    def test_custom_modifier_resolves_to_itself(self):
        assert modifier_for(Tracked) is Tracked

    def test_annotated_is_stripped(self):
        assert modifier_for(Annotated[Json[Pet], "doc"]) is Json[Pet]

    def test_optional_resolves_to_option(self):
        assert modifier_for(Optional[Json[Pet]]) is Option[Json[Pet]]
        assert modifier_for(Json[Pet] | None) is Option[Json[Pet]]

    def test_unknown_type_fails(self):
        class Opaque:
            pass

        with pytest.raises(CapabilityResolutionError):
            modifier_for(Opaque)

    def test_any_elements_resolve(self):
        assert modifier_for(dict[str, Any]) is Leaf[dict[str, Any]]
        assert modifier_for(list[Any]) is Leaf[list[Any]]
        op, definitions, _ = _apply(Json[dict[str, Any]])
        assert op.responses["200"].schema_.additional_properties == Schema()
        assert definitions == {}

    def test_non_optional_union_fails(self):
        with pytest.raises(CapabilityResolutionError):
            modifier_for(Union[Pet, Owner])

    def test_json_of_schemaless_type_fails(self):
        class Opaque:
            pass

        with pytest.raises(CapabilityResolutionError):
            modifier_for(Json[Opaque])

    def test_unparametrized_wrapper_fails(self):
        with pytest.raises(CapabilityResolutionError):
            modifier_for(Json)

    def test_optional_of_unknown_fails(self):
        class Opaque:
            pass

        with pytest.raises(CapabilityResolutionError):
            modifier_for(Optional[Opaque])

    def test_wrong_arity(self):
        with pytest.raises(TypeError):
            Result[Json[Pet]]


class TestOptionTransparency:
    @pytest.mark.parametrize("inner", [Json[Pet], Path[int], Multipart, OAuth, Owner, Tracked, int])
    def test_option_matches_inner(self, inner):
        direct_op, direct_defs, direct_security = _apply(inner)
        wrapped_op, wrapped_defs, wrapped_security = _apply(Optional[inner])
        assert wrapped_op.model_dump() == direct_op.model_dump()
        assert wrapped_defs == direct_defs
        assert wrapped_security == direct_security

    def test_option_keeps_required_flag(self):
        # Optional[...] does not clear the inner parameter's required flag
        op, _, _ = _apply(Optional[Query[int]])
        assert op.parameters[0].required is True


class TestBodyWrapper:
    def test_exactly_one_body_parameter(self):
        op, _, _ = _apply(Json[Pet])
        assert len(op.parameters) == 1
        p = op.parameters[0]
        assert p.in_ == ParameterIn.BODY
        assert p.name == "body"
        assert p.required is True
        assert p.schema_.to_dict() == {"$ref": "#/definitions/Pet"}
        assert p.schema_.properties == {}

    def test_exactly_one_ok_response(self):
        op, _, _ = _apply(Json[Pet])
        assert list(op.responses) == ["200"]
        assert op.responses["200"].description == "OK"
        assert op.responses["200"].schema_.to_dict() == {"$ref": "#/definitions/Pet"}

    def test_definitions_include_nested(self):
        _, definitions, _ = _apply(Json[Owner])
        assert set(definitions) == {"Owner", "Pet"}

    def test_json_of_list(self):
        op, definitions, _ = _apply(Json[list[Pet]])
        assert op.parameters[0].schema_.to_dict() == {
            "type": "array",
            "items": {"$ref": "#/definitions/Pet"},
        }
        assert set(definitions) == {"Pet"}

    def test_json_of_primitive_is_inline(self):
        op, definitions, _ = _apply(Json[str])
        assert op.parameters[0].schema_.to_dict() == {"type": "string"}
        assert definitions == {}

    def test_definitions_idempotent(self):
        once = {}
        Json[Owner].update_definitions(once)
        twice = {}
        Json[Owner].update_definitions(twice)
        Json[Owner].update_definitions(twice)
        assert once == twice


class TestFlatPlaceholders:
    @pytest.mark.parametrize("wrapper,location,name", [
        (Path, ParameterIn.PATH, "path"),
        (Query, ParameterIn.QUERY, "query"),
        (QsQuery, ParameterIn.QUERY, "qsquery"),
        (Form, ParameterIn.FORM_DATA, "form"),
        (Data, ParameterIn.HEADER, "data"),
    ])
    @pytest.mark.parametrize("inner", [int, Pet, OAuth])
    def test_single_flat_parameter(self, wrapper, location, name, inner):
        op, definitions, security_definitions = _apply(wrapper[inner])
        assert op.parameters == [Parameter(in_=location, name=name, required=True)]
        assert op.parameters[0].schema_ is None
        assert op.responses == {}
        assert op.security == []
        assert definitions == {}
        assert security_definitions == {}

    def test_inner_need_not_resolve(self):
        class Opaque:
            pass

        op, _, _ = _apply(Path[Opaque])
        assert op.parameters[0].name == "path"


class TestMultipart:
    def test_file_data_parameter(self):
        op, definitions, _ = _apply(Multipart)
        assert op.parameters == [
            Parameter(in_=ParameterIn.FORM_DATA, name="file_data", required=True, data_type=DataType.FILE)
        ]
        assert definitions == {}


class TestOutcomeWrapper:
    def test_response_superset(self):
        success_only, _, _ = _apply(Json[Pet])
        op, _, _ = _apply(Result[Json[Pet], PetError])
        for code, response in success_only.responses.items():
            assert op.responses[code] == response
        assert set(op.responses) == {"200", "400", "404"}
        assert op.responses["404"].description == "Pet not found"
        assert op.responses["404"].schema_.to_dict() == {"$ref": "#/definitions/PetError"}

    def test_error_wins_on_collision(self):
        class Conflicting(Apiv2Errors):
            ERROR_MAP = {200: "Actually an error"}

        op, _, _ = _apply(Result[Json[Pet], Conflicting])
        assert op.responses["200"].description == "Actually an error"
        assert op.responses["200"].schema_ is None

    def test_parameters_forward_to_success(self):
        op, _, _ = _apply(Result[Json[Pet], PetError])
        assert [p.name for p in op.parameters] == ["body"]

    def test_error_definitions_merged(self):
        _, definitions, _ = _apply(Result[Json[Pet], PetError])
        assert set(definitions) == {"Pet", "PetError"}

    def test_plain_failure_falls_back(self):
        op, definitions, _ = _apply(Result[Json[Pet], PlainError])
        assert list(op.responses) == ["200"]
        assert set(definitions) == {"Pet"}

    def test_decorated_failure_type(self):
        @api_v2_errors({409: "Conflict"})
        class DuplicatePet(Exception):
            pass

        assert issubclass(DuplicatePet, Exception)
        op, _, _ = _apply(Result[Json[Pet], DuplicatePet])
        assert set(op.responses) == {"200", "409"}
        assert op.responses["409"].schema_ is None


class TestSecurity:
    def test_security_requirement_and_definition(self):
        op, definitions, security_definitions = _apply(OAuth)
        assert op.security == [{"petstore_auth": ["read:pets", "write:pets"]}]
        assert list(security_definitions) == ["petstore_auth"]
        assert definitions == {}
        assert op.parameters == []

    def test_security_definitions_idempotent(self):
        security_definitions = {}
        modifier_for(OAuth).update_security_definitions(security_definitions)
        snapshot = {k: v.model_copy(deep=True) for k, v in security_definitions.items()}
        modifier_for(OAuth).update_security_definitions(security_definitions)
        assert security_definitions == snapshot


class TestCustomModifier:
    def test_override_is_used(self):
        op, _, _ = _apply(Tracked)
        assert op.parameters[0].name == "X-Trace-Id"

    def test_schema_override(self):
        class Coordinates(Apiv2Schema, OperationModifier):
            NAME = "Coordinates"

            @classmethod
            def raw_schema(cls):
                return Schema(data_type=DataType.OBJECT, properties={"lat": Schema(data_type=DataType.NUMBER)})

        _, definitions, _ = _apply(Coordinates)
        assert list(definitions) == ["Coordinates"]
