"""Errors raised while turning a webhook request into a running script."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

__all__ = [
    "HookError",
    "InvalidWebhookId",
    "ScriptNotFound",
    "ExecutionError",
    "StagingError",
    "LaunchError",
]


class HookError(RuntimeError):
    """Base class; every error knows which webhook it belongs to."""

    def __init__(self, webhook_id: str, message: str) -> None:
        self.webhook_id = webhook_id
        super().__init__(message)


class InvalidWebhookId(HookError, ValueError):
    """Raised before any filesystem access when the id has forbidden characters."""

    def __init__(self, webhook_id: str, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(webhook_id, f"webhook id failed regex test /{pattern}/")


class ScriptNotFound(HookError, LookupError):
    """Raised when no script matches the webhook id."""

    def __init__(self, webhook_id: str, webhooks_dir: Path | str) -> None:
        self.webhooks_dir = Path(webhooks_dir)
        super().__init__(
            webhook_id,
            "unable to resolve script\n\n"
            f"webhooks directory: '{self.webhooks_dir}'\n"
            f"webhook id: '{webhook_id}'\n",
        )


class ExecutionError(HookError):
    """Staging or launching failed. The habitat has already been removed."""

    def __init__(
        self,
        webhook_id: str,
        message: str,
        *,
        habitat_id: Optional[int] = None,
        script_path: Optional[Path] = None,
    ) -> None:
        self.habitat_id = habitat_id
        self.script_path = script_path
        super().__init__(webhook_id, message)


class StagingError(ExecutionError):
    """Copying the script directory into the habitat failed."""


class LaunchError(ExecutionError):
    """The interpreter process could not be started."""
