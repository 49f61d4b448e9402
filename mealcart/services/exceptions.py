from __future__ import annotations

class ServiceError(RuntimeError):
    """Base class for service-layer errors."""

class LLMError(ServiceError):
    """Errors from an LLM-backed collaborator (network, non-2xx, malformed output)."""

class ExtractionError(LLMError):
    """Recipe text extraction failed."""

class ResolverError(LLMError):
    """Canonical-name resolution failed."""

class RepoError(ServiceError):
    """Errors from repositories (I/O, parse, schema)."""
