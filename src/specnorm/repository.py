"""Persistence interface for normalized specs.

The normalization core holds no state between calls.  Callers that want to
keep results inject a :class:`SpecRepository`, which stores a parent record
per spec (base URL, auth methods, error state) and each endpoint and model
as an individually addressable child record keyed by the parent id.

:func:`store_parsed_spec` writes a finished :class:`~specnorm.models.ParsedSpec`
one record at a time, so a repository backed by a remote store may receive
the writes incrementally.  Writes are idempotent per ``(spec_id, record
id)``, which makes replaying a partially stored spec safe.

:class:`InMemorySpecRepository` is the reference implementation, used by the
CLI and the tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from specnorm.models import (
    AuthMethod,
    Endpoint,
    Model,
    NormalizationFailure,
    NormalizationResult,
    NormalizerConfig,
    ParsedSpec,
    SpecType,
)
from specnorm.normalizer import normalize
from specnorm.parser.fetcher import DocumentFetcher

logger = logging.getLogger(__name__)


@runtime_checkable
class SpecRepository(Protocol):
    """Storage collaborator for normalization output."""

    def update_spec_details(
        self, spec_id: str, base_url: str, auth_methods: list[AuthMethod]
    ) -> None:
        """Store the parent-level fields of a spec."""
        ...

    def add_endpoint(self, spec_id: str, endpoint: Endpoint) -> None:
        """Store one endpoint as a child record of *spec_id*."""
        ...

    def add_model(self, spec_id: str, model: Model) -> None:
        """Store one model as a child record of *spec_id*."""
        ...

    def mark_failed(self, spec_id: str, failure: NormalizationFailure) -> None:
        """Record that normalizing *spec_id* failed."""
        ...


@dataclass
class SpecRecord:
    """Everything :class:`InMemorySpecRepository` holds for one spec."""

    spec_id: str
    base_url: str = ""
    auth_methods: list[AuthMethod] = field(default_factory=list)
    endpoints: dict[str, Endpoint] = field(default_factory=dict)
    models: dict[str, Model] = field(default_factory=dict)
    error: Optional[NormalizationFailure] = None

    def to_parsed_spec(self) -> ParsedSpec:
        """Reassemble the stored records into a :class:`ParsedSpec`."""
        return ParsedSpec(
            endpoints=list(self.endpoints.values()),
            models=list(self.models.values()),
            auth_methods=list(self.auth_methods),
            base_url=self.base_url,
        )


class InMemorySpecRepository:
    """Dict-backed :class:`SpecRepository`.

    Child records are keyed by endpoint id and model name, so storing the
    same spec twice leaves one copy of each record.
    """

    def __init__(self) -> None:
        self._records: dict[str, SpecRecord] = {}

    def _record(self, spec_id: str) -> SpecRecord:
        return self._records.setdefault(spec_id, SpecRecord(spec_id=spec_id))

    def update_spec_details(
        self, spec_id: str, base_url: str, auth_methods: list[AuthMethod]
    ) -> None:
        record = self._record(spec_id)
        record.base_url = base_url
        record.auth_methods = list(auth_methods)
        record.error = None

    def add_endpoint(self, spec_id: str, endpoint: Endpoint) -> None:
        self._record(spec_id).endpoints[endpoint.id] = endpoint

    def add_model(self, spec_id: str, model: Model) -> None:
        self._record(spec_id).models[model.name] = model

    def mark_failed(self, spec_id: str, failure: NormalizationFailure) -> None:
        self._record(spec_id).error = failure

    def get(self, spec_id: str) -> Optional[SpecRecord]:
        """Return the record for *spec_id*, or ``None``."""
        return self._records.get(spec_id)

    def get_endpoint(self, spec_id: str, endpoint_id: str) -> Optional[Endpoint]:
        record = self._records.get(spec_id)
        return record.endpoints.get(endpoint_id) if record else None

    def list_specs(self) -> list[str]:
        return sorted(self._records)


def store_parsed_spec(repository: SpecRepository, spec_id: str, parsed: ParsedSpec) -> None:
    """Persist *parsed*: parent details first, then every endpoint and model."""
    repository.update_spec_details(spec_id, parsed.base_url, list(parsed.auth_methods))
    for endpoint in parsed.endpoints:
        repository.add_endpoint(spec_id, endpoint)
    for model in parsed.models:
        repository.add_model(spec_id, model)
    logger.debug(
        "Stored spec %s: %d endpoint(s), %d model(s)",
        spec_id,
        len(parsed.endpoints),
        len(parsed.models),
    )


def normalize_and_store(
    repository: SpecRepository,
    spec_id: str,
    document: Any,
    spec_type: SpecType | str,
    *,
    origin: Optional[str] = None,
    fetcher: Optional[DocumentFetcher] = None,
    config: Optional[NormalizerConfig] = None,
) -> NormalizationResult:
    """Normalize *document* and store the outcome under *spec_id*.

    On success the spec is written with :func:`store_parsed_spec`; on
    failure only the error state is recorded.  The tagged result is
    returned either way.
    """
    result = normalize(document, spec_type, origin=origin, fetcher=fetcher, config=config)
    if result.spec is not None:
        store_parsed_spec(repository, spec_id, result.spec)
    elif result.error is not None:
        logger.warning("Spec %s failed to normalize: %s", spec_id, result.error.message)
        repository.mark_failed(spec_id, result.error)
    return result
