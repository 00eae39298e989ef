"""Schema reflection for pydantic models.

Converts the JSON schema pydantic generates for a model into ``Schema``
fragments. Nested models become named fragments carrying a reference, so
that they end up in the definitions map instead of being inlined.
"""

import logging
from functools import lru_cache

from pydantic import BaseModel
from pydantic.json_schema import models_json_schema

from apiv2_compose.models.base import REF_PREFIX, DataType, Schema

logger = logging.getLogger(__name__)

REF_TEMPLATE = REF_PREFIX + "{model}"

_DATA_TYPES = {t.value for t in DataType}


def model_schema(model: type[BaseModel]) -> Schema:
    """Return the schema of ``model`` in its with-reference form."""
    return _model_schema(model).model_copy(deep=True)


@lru_cache(maxsize=None)
def _model_schema(model: type[BaseModel]) -> Schema:
    # top-level name uses the $defs normalization (Page[Pet] -> Page_Pet_)
    refs, doc = models_json_schema([(model, "validation")], ref_template=REF_TEMPLATE)
    defs = doc.get("$defs", {})
    logger.debug("Reflecting %s (%d definitions)", model.__name__, len(defs))
    return _convert(refs[(model, "validation")], defs, frozenset())


def _convert(node: dict, defs: dict, seen: frozenset) -> Schema:
    ref = node.get("$ref")
    if ref:
        name = ref.rsplit("/", 1)[-1]
        if name in seen or name not in defs:
            return Schema(name=name, reference=REF_PREFIX + name)
        schema = _convert(defs[name], defs, seen | {name})
        schema.name = name
        schema.reference = REF_PREFIX + name
        return schema

    for key in ("anyOf", "oneOf"):
        if key in node:
            variants = [v for v in node[key] if v.get("type") != "null"]
            if len(variants) == 1:
                schema = _convert(variants[0], defs, seen)
                if node.get("description") and schema.reference is None:
                    schema.description = node["description"]
                return schema
            # v2 has no union types
            return Schema(description=node.get("description"))

    if "allOf" in node and len(node["allOf"]) == 1:
        return _convert(node["allOf"][0], defs, seen)

    data_type = node.get("type")
    if isinstance(data_type, list):
        data_type = next((t for t in data_type if t != "null"), None)
    if data_type not in _DATA_TYPES:
        data_type = None

    schema = Schema(
        description=node.get("description"),
        data_type=data_type,
        format=node.get("format"),
        enum=node.get("enum", []),
        required=node.get("required", []),
    )
    if "const" in node and not schema.enum:
        schema.enum = [node["const"]]
    if "items" in node and isinstance(node["items"], dict):
        schema.items = _convert(node["items"], defs, seen)
    for prop, sub in node.get("properties", {}).items():
        schema.properties[prop] = _convert(sub, defs, seen)

    extra = node.get("additionalProperties")
    if isinstance(extra, dict):
        schema.additional_properties = _convert(extra, defs, seen)
    elif isinstance(extra, bool):
        schema.additional_properties = extra
    return schema
