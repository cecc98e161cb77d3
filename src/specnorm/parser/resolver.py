"""Resolve ``$ref`` JSON Reference pointers in API description documents.

OpenAPI and Swagger documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition.  This module
performs a recursive traversal of the document, building a new tree in which
every ``$ref`` is replaced with the object it points to.

Internal references (``#/...``) are resolved against the document that
contains them.  External references (``common.yaml#/Error``,
``https://example.com/pet.json``) are resolved against documents fetched
beforehand by :func:`load_external_documents`; relative targets are joined to
the URL or path of the referring document.

Circular references are detected per branch: the set of pointers currently
being expanded is passed down the recursion, and revisiting one of them yields
a :class:`CyclicRef` placeholder instead of recursing again.  The same pointer
may still be expanded any number of times in unrelated branches.

The public entry points are :func:`resolve_refs` and
:func:`load_external_documents`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import unquote, urljoin, urlparse

from specnorm.exceptions import UnresolvableReferenceError
from specnorm.parser.fetcher import DocumentFetcher

logger = logging.getLogger(__name__)

_ABSOLUTE_SCHEMES = frozenset({"http", "https", "file"})


class CyclePolicy(str, enum.Enum):
    """What to do when a reference cycle is found.

    ``IGNORE`` truncates the cycle with a :class:`CyclicRef` placeholder.
    """

    IGNORE = "ignore"


@dataclass(frozen=True)
class CyclicRef:
    """Stand-in for a reference that is already being expanded higher up the tree.

    ``target`` is the absolute pointer key (``<document>#<pointer>``; the
    document part is empty for inline documents).
    """

    target: str


def resolve_refs(
    document: Any,
    origin: Optional[str] = None,
    external: Optional[Mapping[str, Any]] = None,
    cycle_policy: CyclePolicy = CyclePolicy.IGNORE,
) -> Any:
    """Resolve all ``$ref`` pointers in *document*.

    Builds a new tree; the input is never modified.  Reference cycles are
    truncated with :class:`CyclicRef` placeholders.

    Args:
        document: The raw document, as returned by
            :func:`~specnorm.parser.loader.load_document`.
        origin: URL or file path the document was loaded from.  Needed to
            resolve relative external references.
        external: Pre-fetched external documents keyed by absolute URL, as
            returned by :func:`load_external_documents`.
        cycle_policy: How cycles are handled.

    Returns:
        The resolved tree.  Dicts and lists are new objects; subtrees that
        were resolved without hitting a cycle may be shared between the
        places that reference them.

    Raises:
        UnresolvableReferenceError: If a ``$ref`` points to a non-existent
            location, or to an external document that was not loaded.

    Example::

        resolved = resolve_refs(raw)
        # resolved["paths"]["/pets"]["get"]["responses"]["200"]["content"]
        # now contains the inlined schema instead of a $ref pointer.
    """
    return ReferenceResolver(document, origin, external, cycle_policy).resolve()


class ReferenceResolver:
    """Stateful helper behind :func:`resolve_refs`.

    One instance serves one normalization run; it owns the document map and
    a memo of cycle-free expansions.
    """

    def __init__(
        self,
        document: Any,
        origin: Optional[str] = None,
        external: Optional[Mapping[str, Any]] = None,
        cycle_policy: CyclePolicy = CyclePolicy.IGNORE,
    ) -> None:
        self._root_url = origin or ""
        self._documents: dict[str, Any] = dict(external or {})
        self._documents[self._root_url] = document
        self._cycle_policy = cycle_policy
        self._memo: dict[str, Any] = {}
        self._cycles = 0

    @property
    def cycles(self) -> int:
        """Number of :class:`CyclicRef` placeholders emitted so far."""
        return self._cycles

    def resolve(self) -> Any:
        return self._deep_resolve(self._documents[self._root_url], self._root_url, frozenset())

    def _deep_resolve(self, obj: Any, base: str, seen: frozenset[str]) -> Any:
        """Recursively resolve every ``$ref`` within *obj*.

        Args:
            obj: The current node -- a dict (potentially a ``$ref``), a list,
                or a scalar.
            base: URL of the document *obj* belongs to.
            seen: Pointer keys being expanded on the current path from the
                root.  A new set is created for each expansion so that
                sibling branches do not interfere with each other.
        """
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                return self._expand(ref, base, seen)
            return {key: self._deep_resolve(value, base, seen) for key, value in obj.items()}

        if isinstance(obj, list):
            return [self._deep_resolve(item, base, seen) for item in obj]

        return obj

    def _expand(self, ref: str, base: str, seen: frozenset[str]) -> Any:
        doc_url, pointer = split_ref(ref, base)
        key = f"{doc_url}#{pointer}"

        if key in seen:
            logger.debug("Circular $ref %s truncated", key)
            self._cycles += 1
            return CyclicRef(key)

        if key in self._memo:
            return self._memo[key]

        target = self._lookup(doc_url, pointer, ref)
        cycles_before = self._cycles
        resolved = self._deep_resolve(target, doc_url, seen | {key})
        if self._cycles == cycles_before:
            # No cycle below this pointer, so the expansion is the same on every path.
            self._memo[key] = resolved
        return resolved

    def _lookup(self, doc_url: str, pointer: str, ref: str) -> Any:
        if doc_url not in self._documents:
            raise UnresolvableReferenceError(
                f"Cannot resolve $ref '{ref}': document '{doc_url}' was not loaded"
            )
        return resolve_pointer(self._documents[doc_url], pointer, ref)


def split_ref(ref: str, base: str) -> tuple[str, str]:
    """Split *ref* into an absolute document URL and a JSON Pointer.

    Args:
        ref: The ``$ref`` string, e.g. ``"#/components/schemas/Pet"`` or
            ``"common.yaml#/Error"``.
        base: URL or path of the document containing the reference (empty
            for inline documents).

    Raises:
        UnresolvableReferenceError: If the reference is relative and *base*
            is empty.
    """
    doc_part, _, fragment = ref.partition("#")
    pointer = unquote(fragment)
    if not doc_part:
        return base, pointer

    if urlparse(doc_part).scheme in _ABSOLUTE_SCHEMES:
        return doc_part, pointer

    if not base:
        raise UnresolvableReferenceError(
            f"Cannot resolve external $ref '{ref}': the document has no origin "
            "to resolve relative references against"
        )
    return urljoin(base, doc_part), pointer


def resolve_pointer(document: Any, pointer: str, ref: str = "") -> Any:
    """Follow an RFC 6901 JSON Pointer through *document*.

    Handles ``~0`` / ``~1`` escaping and list indices.  An empty pointer
    designates the whole document.

    Raises:
        UnresolvableReferenceError: If any segment does not exist.
    """
    ref = ref or f"#{pointer}"
    if pointer == "":
        return document
    if not pointer.startswith("/"):
        raise UnresolvableReferenceError(
            f"Cannot resolve $ref '{ref}': '{pointer}' is not a JSON Pointer"
        )

    current: Any = document
    for segment in pointer[1:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise UnresolvableReferenceError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found at path"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise UnresolvableReferenceError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise UnresolvableReferenceError(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}"
            )

    return current


def collect_external_urls(document: Any, base: str) -> set[str]:
    """Return the absolute URLs of every external document *document* references.

    References back to *base* itself are not included.  The walk is
    iterative so arbitrarily deep documents do not exhaust the stack.
    """
    urls: set[str] = set()
    stack = [document]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str) and not ref.startswith("#"):
                doc_url, _ = split_ref(ref, base)
                if doc_url != base:
                    urls.add(doc_url)
            stack.extend(node.values())
        elif isinstance(node, list):
            stack.extend(node)
    return urls


async def load_external_documents(
    document: Any,
    origin: Optional[str],
    fetcher: DocumentFetcher,
    max_documents: int = 50,
) -> dict[str, Any]:
    """Fetch every document transitively referenced by *document*.

    Each distinct document is fetched once.  Documents discovered at the
    same depth are fetched concurrently.

    Args:
        document: The raw root document.
        origin: URL or path of the root document, or ``None`` for inline input.
        fetcher: The collaborator performing the actual I/O.
        max_documents: Upper bound on the number of documents fetched.

    Returns:
        Fetched documents keyed by absolute URL, ready to pass to
        :func:`resolve_refs` as ``external``.

    Raises:
        UnresolvableReferenceError: If a fetch fails, a fetched resource is
            not a valid document, or the bound is exceeded.
    """
    root = origin or ""
    loaded: dict[str, Any] = {}
    pending = collect_external_urls(document, root)

    while pending:
        if len(loaded) + len(pending) > max_documents:
            raise UnresolvableReferenceError(
                f"Too many external documents referenced (limit {max_documents})"
            )
        urls = sorted(pending)
        logger.debug("Fetching %d external document(s): %s", len(urls), ", ".join(urls))
        documents = await _fetch_all(fetcher, urls)

        discovered: set[str] = set()
        for url, fetched in zip(urls, documents):
            loaded[url] = fetched
            discovered |= collect_external_urls(fetched, url)
        pending = discovered - loaded.keys() - {root}

    return loaded


async def _fetch_all(fetcher: DocumentFetcher, urls: list[str]) -> list[Any]:
    """Fetch *urls* concurrently; on the first failure cancel and drain the rest."""
    tasks = [asyncio.ensure_future(fetcher.fetch(url)) for url in urls]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
