# Overview: Workflow error taxonomy shared by services, routes and the CLI.

from __future__ import annotations


class InsufficientStockError(Exception):
    """Requested quantity exceeds available stock; state is left unchanged."""

    def __init__(self, message: str, *, product_id: int | None = None,
                 requested: int | None = None, available: int | None = None):
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class StorageError(Exception):
    """
    The backing store rejected a read or write.

    failed_step names the workflow step that failed; committed_steps lists
    the steps that were already durable when it failed (empty for atomic
    workflows). stale=True means a write succeeded but the follow-up read
    did not, so any previously returned collection is out of date.
    """

    def __init__(
        self,
        message: str,
        *,
        failed_step: str | None = None,
        committed_steps: tuple[str, ...] = (),
        stale: bool = False,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.failed_step = failed_step
        self.committed_steps = tuple(committed_steps)
        self.stale = stale
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {
            "error": str(self),
            "failed_step": self.failed_step,
            "committed_steps": list(self.committed_steps),
            "stale": self.stale,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigurationError(RuntimeError):
    """A required external resource or setting is missing."""
