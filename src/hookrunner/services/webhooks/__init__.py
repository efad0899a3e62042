from .service import WebhookRun, WebhookService, build_envelope

__all__ = ["WebhookRun", "WebhookService", "build_envelope"]
