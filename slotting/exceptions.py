"""Slotting motorunun tipli hata hiyerarşisi.

ValidationError    - hatalı girdi, store'a gidilmeden reddedilir
CapacityError      - lokasyon uygunluk hatası (reason alanı ile)
QuantityRangeError - Kanban miktarı aralık dışı (Underflow / OverMax)
ConflictError      - operatör iptali, transaction çakışması, bayat öneri
NotFoundError      - lokasyon / kategori / ürün / öneri bulunamadı
StoreUnavailableError - backing store'a erişilemedi
"""

from __future__ import annotations

from typing import Optional

from slotting.models.warehouse import PlacementRejection, RejectionReason


class SlottingError(Exception):
    """Tüm slotting hatalarının temel sınıfı."""

    code = "SlottingError"


class ValidationError(SlottingError):
    code = "ValidationError"


class CapacityError(SlottingError):
    """Validator tarafından reddedilen yerleştirme."""

    def __init__(self, rejection: PlacementRejection):
        super().__init__(rejection.message)
        self.rejection = rejection

    @property
    def reason(self) -> RejectionReason:
        return self.rejection.reason

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.rejection.reason.value


class QuantityRangeError(SlottingError):
    code = "RangeError"


class UnderflowError(QuantityRangeError):
    code = "Underflow"


class OverMaxError(QuantityRangeError):
    code = "OverMax"


class ConflictError(SlottingError):
    code = "TransactionConflict"


class CancelledByOperatorError(ConflictError):
    code = "CancelledByOperator"


class ProposalExpiredError(ConflictError):
    code = "ProposalExpired"


class StaleProposalError(ConflictError):
    code = "StaleProposal"


class NotFoundError(SlottingError):
    code = "NotFound"


class LocationNotFoundError(NotFoundError):
    code = "LocationNotFound"


class CategoryNotFoundError(NotFoundError):
    code = "CategoryNotFound"


class ItemNotFoundError(NotFoundError):
    code = "ItemNotFound"


class ProposalNotFoundError(NotFoundError):
    code = "ProposalNotFound"


class StoreUnavailableError(SlottingError):
    """Backing store hatası (botocore ClientError vb. sarmalanır)."""

    code = "StoreUnavailable"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
