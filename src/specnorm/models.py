"""Canonical Pydantic models shared across all specnorm modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- loaded from JSON config files and environment
variables by :mod:`specnorm.config`:
    :class:`FetchConfig`, :class:`CacheConfig` and :class:`NormalizerConfig`.

**Normalization output models** -- produced by the parser pipeline and handed
to storage, planning and component-generation collaborators:
    :class:`Schema`, :class:`Parameter`, :class:`RequestBody`,
    :class:`Response`, :class:`Endpoint`, :class:`Model`,
    :class:`AuthMethod`, :class:`ParsedSpec` and the tagged
    :class:`NormalizationResult`.

Output models are frozen. Python attribute names are snake_case; the aliases
carry the document vocabulary (``type``, ``in``, ``requestBody``,
``statusCode``, ``baseUrl``) so that ``to_document()`` dumps exactly the JSON
shape downstream consumers store.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from specnorm.exceptions import ErrorKind


# --- Configuration ---


class FetchConfig(BaseModel):
    """Settings for fetching externally referenced documents."""

    timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    max_retries: int = Field(
        default=2, description="Connection retries performed by the HTTP transport"
    )
    follow_redirects: bool = True
    max_documents: int = Field(
        default=50,
        description="Upper bound on external documents fetched in one normalization run",
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers sent with every fetch"
    )


class CacheConfig(BaseModel):
    """Disk cache settings for fetched external documents."""

    enabled: bool = Field(default=False, description="Cache fetched documents on disk")
    ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")
    directory: Optional[str] = Field(
        default=None, description="Cache directory (defaults to the XDG cache dir)"
    )


class NormalizerConfig(BaseModel):
    """Effective engine configuration.

    Resolved by :func:`~specnorm.config.load_config` from the global config
    file, the project-local ``specnorm.json`` and ``SPECNORM_*`` environment
    variables.
    """

    fetch: FetchConfig = Field(default_factory=FetchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    reject_graphql: bool = Field(
        default=False,
        description="Fail GraphQL documents with UnsupportedSpecType instead of "
        "returning an empty spec",
    )


# --- Normalization output ---


class SpecType(str, enum.Enum):
    """Declared type of an input document."""

    OPENAPI = "openapi"
    SWAGGER = "swagger"
    GRAPHQL = "graphql"


class SchemaKind(str, enum.Enum):
    """Canonical schema kinds. ``ANY`` marks a missing schema slot."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    ANY = "any"


class HTTPMethod(str, enum.Enum):
    """HTTP methods extracted as endpoints. Other path-item keys are ignored."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per the ``in`` field."""

    QUERY = "query"
    PATH = "path"
    HEADER = "header"
    COOKIE = "cookie"


class Schema(BaseModel):
    """Canonical, possibly recursive type description.

    ``properties`` and ``required`` are only set on ``object`` schemas and
    ``items`` only on ``array`` schemas. A reference cycle ends in a plain
    ``Schema(kind=SchemaKind.OBJECT)`` with no properties.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: SchemaKind = Field(default=SchemaKind.OBJECT, alias="type")
    format: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[list[Any]] = None
    properties: Optional[dict[str, Schema]] = None
    required: Optional[list[str]] = None
    items: Optional[Schema] = None

    def to_document(self) -> dict[str, Any]:
        """Dump as a JSON Schema fragment that normalizes back to ``self``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Parameter(BaseModel):
    """A single request parameter after path/operation merging."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation = Field(alias="in")
    required: bool = False
    schema_: Schema = Field(default_factory=lambda: Schema(kind=SchemaKind.ANY), alias="schema")
    description: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RequestBody(BaseModel):
    """Request payload restricted to the one selected JSON media type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    required: bool = False
    description: Optional[str] = None
    content: dict[str, Schema]

    def to_openapi(self) -> dict[str, Any]:
        """Render as an OpenAPI *Request Body Object*."""
        body: dict[str, Any] = {
            "required": self.required,
            "content": _content_to_openapi(self.content),
        }
        if self.description is not None:
            body["description"] = self.description
        return body


class Response(BaseModel):
    """Response description for one declared status code."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: str = Field(alias="statusCode")
    description: str = ""
    content: Optional[dict[str, Schema]] = None

    def to_openapi(self) -> dict[str, Any]:
        """Render as an OpenAPI *Response Object* (without the status code key)."""
        response: dict[str, Any] = {"description": self.description}
        if self.content is not None:
            response["content"] = _content_to_openapi(self.content)
        return response


class Endpoint(BaseModel):
    """One (path, HTTP method) operation.

    ``id`` is unique within a :class:`ParsedSpec`; see
    :func:`~specnorm.parser.extractor.extract_endpoints` for how it is chosen
    and disambiguated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    path: str
    method: HTTPMethod
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = Field(default=None, alias="requestBody")
    responses: list[Response] = Field(default_factory=list)
    tags: Optional[list[str]] = None

    def to_document(self) -> dict[str, Any]:
        """Dump in the camelCase shape used by the storage collaborator."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def summary_view(self) -> dict[str, Any]:
        """The subset of fields a planner needs to pick endpoints for a goal."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            include={"id", "path", "method", "summary", "description"},
        )

    def to_operation(self) -> dict[str, Any]:
        """Render as an OpenAPI *Operation Object*.

        Normalizing a document built from these operations yields an
        identical :class:`Endpoint`.
        """
        operation: dict[str, Any] = {"operationId": self.id}
        if self.summary is not None:
            operation["summary"] = self.summary
        if self.description is not None:
            operation["description"] = self.description
        if self.tags is not None:
            operation["tags"] = list(self.tags)
        if self.parameters:
            operation["parameters"] = [param.to_document() for param in self.parameters]
        if self.request_body is not None:
            operation["requestBody"] = self.request_body.to_openapi()
        operation["responses"] = {
            response.status_code: response.to_openapi() for response in self.responses
        }
        return operation


class Model(BaseModel):
    """A named reusable schema from ``components.schemas`` or ``definitions``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: Optional[str] = None
    properties: dict[str, Schema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuthKind(str, enum.Enum):
    """Canonical authentication kinds.

    :attr:`AuthMethod.kind` is a plain string because undeclared scheme types
    (``openIdConnect``, vendor extensions) are passed through unchanged.
    """

    API_KEY = "apiKey"
    BEARER = "bearer"
    BASIC = "basic"
    OAUTH2 = "oauth2"


class AuthMethod(BaseModel):
    """One authentication mechanism declared by the document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: str = Field(alias="type")
    name: Optional[str] = None
    location: Optional[str] = Field(default=None, alias="in")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ParsedSpec(BaseModel):
    """Complete normalized representation of one API description document.

    Built in one go by :func:`~specnorm.normalizer.parse_spec`; a failed run
    never produces a partially filled instance.

    See Also:
        :class:`Endpoint`: Individual operation within the spec.
        :class:`Model`: Named reusable schema.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    endpoints: list[Endpoint] = Field(default_factory=list)
    models: list[Model] = Field(default_factory=list)
    auth_methods: list[AuthMethod] = Field(default_factory=list, alias="authMethods")
    base_url: str = Field(default="", alias="baseUrl")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def get_endpoint(self, endpoint_id: str) -> Optional[Endpoint]:
        """Return the endpoint with *endpoint_id*, or ``None``."""
        for endpoint in self.endpoints:
            if endpoint.id == endpoint_id:
                return endpoint
        return None


class NormalizationFailure(BaseModel):
    """Failure half of a :class:`NormalizationResult`."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class NormalizationResult(BaseModel):
    """Tagged result of :func:`~specnorm.normalizer.normalize`.

    Exactly one of ``spec`` and ``error`` is set.
    """

    model_config = ConfigDict(frozen=True)

    spec: Optional[ParsedSpec] = None
    error: Optional[NormalizationFailure] = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> NormalizationResult:
        if (self.spec is None) == (self.error is None):
            raise ValueError("exactly one of 'spec' and 'error' must be set")
        return self

    @property
    def ok(self) -> bool:
        return self.spec is not None


def _content_to_openapi(content: dict[str, Schema]) -> dict[str, Any]:
    return {
        media_type: {"schema": schema.to_document()}
        for media_type, schema in content.items()
    }
