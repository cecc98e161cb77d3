"""Map security scheme declarations onto canonical :class:`~specnorm.models.AuthMethod` records.

Mapping of ``(type, scheme)``:

=================  ===========  ==========
``type``           ``scheme``   kind
=================  ===========  ==========
``http``           ``bearer``   ``bearer``
``http``           other        ``basic``
``apiKey``         --           ``apiKey``
``oauth2``         --           ``oauth2``
anything else      --           unchanged
=================  ===========  ==========

Unknown types (``openIdConnect``, ``mutualTLS``, Swagger 2.0 ``basic``) are
passed through rather than dropped.
"""

from __future__ import annotations

import logging
from typing import Any

from specnorm.models import AuthKind, AuthMethod

logger = logging.getLogger(__name__)


def map_auth_methods(schemes: Any) -> list[AuthMethod]:
    """Translate a ``securitySchemes`` / ``securityDefinitions`` map.

    Args:
        schemes: The resolved scheme map, keyed by scheme name.

    Returns:
        One :class:`~specnorm.models.AuthMethod` per well-formed entry, in
        document order.  ``name`` is the scheme's ``name`` field (the
        header, query or cookie parameter of an API key) or else the scheme
        key; ``location`` is its ``in`` field.
    """
    if not isinstance(schemes, dict):
        return []

    methods: list[AuthMethod] = []
    for key, scheme in schemes.items():
        if not isinstance(scheme, dict):
            logger.debug("Skipping malformed security scheme %r", key)
            continue

        name = scheme.get("name")
        location = scheme.get("in")
        methods.append(
            AuthMethod(
                kind=auth_kind(scheme.get("type"), scheme.get("scheme")),
                name=name if isinstance(name, str) and name else str(key),
                location=location if isinstance(location, str) else None,
            )
        )

    return methods


def auth_kind(scheme_type: Any, scheme: Any = None) -> str:
    """Return the canonical kind for one ``(type, scheme)`` pair."""
    if scheme_type == "http":
        if isinstance(scheme, str) and scheme.lower() == AuthKind.BEARER.value:
            return AuthKind.BEARER.value
        return AuthKind.BASIC.value
    return str(scheme_type) if scheme_type is not None else ""
