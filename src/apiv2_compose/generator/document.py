"""Document assembler - composes every route into one OpenAPI v2 document."""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import yaml
from pydantic import BaseModel

from apiv2_compose.config import DocumentSettings
from apiv2_compose.errors import RouteError
from apiv2_compose.generator.operation import compose_operation
from apiv2_compose.models.base import Definitions, Operation, SecurityDefinitions

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")


class Route(BaseModel):
    path: str
    method: str
    handler: Callable


class ComposedDocument(BaseModel):
    """Result of composing all routes of an ``ApiDocument``."""

    paths: dict[str, dict[str, Operation]] = {}
    definitions: Definitions = {}
    security_definitions: SecurityDefinitions = {}


class ApiDocument:
    """A table of routes and the settings of the document they form."""

    def __init__(self, settings: DocumentSettings | None = None):
        self.settings = settings or DocumentSettings()
        self.routes: list[Route] = []

    def with_settings(self, settings: DocumentSettings) -> "ApiDocument":
        """A copy of this document with the same routes and other settings."""
        document = ApiDocument(settings)
        document.routes = list(self.routes)
        return document

    def add_route(self, path: str, method: str, handler: Callable) -> None:
        method = method.lower()
        if method not in HTTP_METHODS:
            raise RouteError(f"Unsupported method {method.upper()} for {path}", {"path": path})
        if not path.startswith("/"):
            raise RouteError(f"Route path must start with '/': {path}", {"path": path})
        if any(r.path == path and r.method == method for r in self.routes):
            raise RouteError(
                f"Route {method.upper()} {path} is already registered",
                {"path": path, "method": method},
            )
        self.routes.append(Route(path=path, method=method, handler=handler))

    def route(self, path: str, method: str = "get"):
        """Decorator form of ``add_route``."""

        def decorator(handler: Callable) -> Callable:
            self.add_route(path, method, handler)
            return handler

        return decorator

    def compose(self, workers: int = 1) -> ComposedDocument:
        """Compose every route.

        Each route is composed into its own descriptor and maps, which are
        then merged into the shared maps under a lock, so ``workers > 1``
        produces the same document as serial composition.
        """
        result = ComposedDocument()
        lock = threading.Lock()

        def compose_route(route: Route) -> None:
            definitions: Definitions = {}
            security_definitions: SecurityDefinitions = {}
            op = compose_operation(route.handler, definitions, security_definitions)
            with lock:
                merge_definitions(result.definitions, definitions)
                for name, scheme in security_definitions.items():
                    scheme.append_map(name, result.security_definitions)
                result.paths.setdefault(route.path, {})[route.method] = op

        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # list() re-raises the first composition error
                list(pool.map(compose_route, self.routes))
        else:
            for route in self.routes:
                compose_route(route)

        logger.info(
            "Composed %d routes, %d definitions, %d security schemes",
            len(self.routes), len(result.definitions), len(result.security_definitions),
        )
        return result

    def to_dict(self, workers: int = 1) -> dict:
        composed = self.compose(workers=workers)
        s = self.settings

        info = {"title": s.title, "version": s.version}
        if s.description:
            info["description"] = s.description

        doc: dict = {"swagger": "2.0", "info": info}
        if s.host:
            doc["host"] = s.host
        doc["basePath"] = s.base_path
        doc["schemes"] = list(s.schemes)
        doc["consumes"] = list(s.consumes)
        doc["produces"] = list(s.produces)
        doc["paths"] = {
            path: {
                method: composed.paths[path][method].to_dict()
                for method in HTTP_METHODS
                if method in composed.paths[path]
            }
            for path in sorted(composed.paths)
        }
        doc["definitions"] = {
            name: composed.definitions[name].to_dict()
            for name in sorted(composed.definitions)
        }
        if composed.security_definitions:
            doc["securityDefinitions"] = {
                name: composed.security_definitions[name].to_dict()
                for name in sorted(composed.security_definitions)
            }
        return doc

    def to_json(self, workers: int = 1) -> str:
        return json.dumps(self.to_dict(workers=workers), indent=2, ensure_ascii=False)

    def to_yaml(self, workers: int = 1) -> str:
        return yaml.safe_dump(
            self.to_dict(workers=workers), sort_keys=False, allow_unicode=True
        )


def merge_definitions(target: Definitions, source: Definitions) -> None:
    """Insert every entry of ``source`` that ``target`` does not have yet."""
    for name, schema in source.items():
        target.setdefault(name, schema)
