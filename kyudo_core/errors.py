"""Exceptions raised by kyudo_core.

Every failure is scoped to the single requested operation; ``kind`` and
``status_code`` let the calling layer tell the operator whether to fix the
input, re-fetch and retry, or simply retry.
"""
from __future__ import annotations


class KyudoCoreError(Exception):
    """Base exception for all kyudo_core errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str | None = None, *, details: list[str] | None = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.details = list(details or [])


class InvalidInputError(KyudoCoreError, ValueError):
    """Rejected before any write (bad score, unknown round, missing CSV column)."""

    kind = "validation"
    status_code = 400


class EntryNotFoundError(KyudoCoreError, LookupError):
    """A command referenced an entry id the store does not hold."""

    kind = "not_found"
    status_code = 404


class ConflictError(KyudoCoreError):
    """The command was based on an outdated store version; re-fetch and retry."""

    kind = "conflict"
    status_code = 409


class SquadUpdateError(KyudoCoreError):
    """A squad status change could not be applied to every member; nothing was committed."""

    kind = "squad_update_failed"
    status_code = 409


class StoreTimeoutError(KyudoCoreError, TimeoutError):
    """The store could not serialize the write within the lock timeout."""

    kind = "timeout"
    status_code = 503
