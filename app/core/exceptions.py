"""Errors raised by the webhook ingestion path.

Each error carries the HTTP status the inbound endpoint answers with and a
``detail`` string that is safe to show to the sender.
"""


class IngestError(Exception):
    status_code: int = 400
    detail: str = "Bad request"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidPayload(IngestError):
    status_code = 400
    detail = "Invalid webhook payload"


class SignatureMissing(IngestError):
    status_code = 401
    detail = "Missing signature"


class SignatureInvalid(IngestError):
    status_code = 401
    detail = "Invalid signature"


class WebhookInactive(IngestError):
    status_code = 403
    detail = "Webhook inactive"


class WebhookNotFound(IngestError):
    status_code = 404
    detail = "Webhook not found"
