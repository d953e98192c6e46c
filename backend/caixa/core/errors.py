"""
Exceções de domínio do caixa.

Os serviços lançam estas exceções; as rotas não as tratam uma a uma,
`create_app()` registra um handler que as traduz para respostas HTTP.
"""
from typing import Optional

from caixa.core.normalizer import format_currency


class ClosingError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ClosingError):
    """Malformed amount, date, name or unknown entry kind."""
    status_code = 422


class InvalidStateTransition(ClosingError):
    status_code = 409

    def __init__(self, receivable_id: int, current: Optional[str], required: str):
        super().__init__(
            f"Receivable {receivable_id} is '{current}', expected '{required}'"
        )
        self.receivable_id = receivable_id
        self.current = current
        self.required = required


class AmountExceedsOutstanding(ClosingError):
    status_code = 422

    def __init__(self, receivable_id: int, amount_received, outstanding):
        super().__init__(
            f"Amount {format_currency(amount_received)} exceeds outstanding "
            f"{format_currency(outstanding)} for receivable {receivable_id}"
        )
        self.receivable_id = receivable_id


class DuplicateSettlement(ClosingError):
    status_code = 422

    def __init__(self, receivable_id: int):
        super().__init__(f"Receivable {receivable_id} selected more than once")
        self.receivable_id = receivable_id


class PermissionDenied(ClosingError):
    status_code = 403


class EditWindowExpired(ClosingError):
    status_code = 403


class NotFound(ClosingError):
    status_code = 404


class StorageError(ClosingError):
    """A failing read/write; `step` names the sub-step that failed."""
    status_code = 500

    def __init__(self, step: str, detail: str):
        super().__init__(f"{step}: {detail}")
        self.step = step
        self.reason = detail
