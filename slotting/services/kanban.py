"""Kanban Miktar İşlemcisi - adet bazlı kategorilerde stok sayacı.

İki aşamalı protokol:
1. propose_quantity_change: yeni miktarı hesaplar, aralık kontrolü yapar ve
   eşik sınıflandırmasını (reorder / critical) döndürür. Hiçbir şey yazmaz.
2. commit_quantity_change / abort_quantity_change: öneriyi kesinleştirir ya
   da atar.

Commit, kategori dokümanı üzerinde atomik read-modify-write olarak çalışır;
miktar transaction içinde taze değerden yeniden hesaplanır. Eşzamanlı bir
değişiklik eşiği onaylanandan daha kritik bir seviyeye taşıdıysa öneri
bayat sayılır ve yeniden onay gerekir.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from slotting.cache import CollectionCache
from slotting.config import DEFAULT_PROPOSAL_TTL, DEFAULT_TX_ATTEMPTS
from slotting.exceptions import (
    CancelledByOperatorError,
    CategoryNotFoundError,
    OverMaxError,
    ProposalExpiredError,
    ProposalNotFoundError,
    StaleProposalError,
    UnderflowError,
    ValidationError,
)
from slotting.models.warehouse import (
    Category,
    KanbanRules,
    QuantityCommit,
    QuantityProposal,
    StockAlert,
    ThresholdKind,
)
from slotting.store.base import Document, DocumentStore

logger = logging.getLogger(__name__)

CATEGORIES = "categories"
NOTIFICATIONS = "notifications"

_SEVERITY = {None: 0, ThresholdKind.REORDER: 1, ThresholdKind.CRITICAL: 2}

Notifier = Callable[[StockAlert], Any]
ConfirmCallback = Callable[[QuantityProposal], bool]


def classify_threshold(new_quantity: int, rules: KanbanRules) -> Optional[ThresholdKind]:
    """Yeni miktarın geçtiği eşiği döndürür; eşik yoksa None."""
    if new_quantity <= rules.min_quantity:
        return ThresholdKind.CRITICAL
    if new_quantity <= rules.reorder_point:
        return ThresholdKind.REORDER
    return None


def check_quantity_range(new_quantity: int, rules: KanbanRules) -> None:
    if new_quantity < 0:
        raise UnderflowError(
            f"Yeterli stok yok: mevcut={rules.current_quantity}, sonuç={new_quantity}"
        )
    if new_quantity > rules.max_quantity:
        raise OverMaxError(
            f"Miktar maksimum stok seviyesini aşar: {new_quantity} > {rules.max_quantity}"
        )


def build_stock_alert(category: Category, new_quantity: int, kind: ThresholdKind) -> StockAlert:
    """Eşik uyarısı için bildirim alanlarını (konu ve gövde) üretir."""
    rules = category.kanban_rules
    if rules is None:
        raise ValidationError(f"Kategoride Kanban kuralları yok: {category.name}")

    if kind == ThresholdKind.CRITICAL:
        headline = "ACİL: Stok minimum seviyenin altına düştü. Hemen aksiyon alınmalı."
    else:
        headline = "Stok yeniden sipariş noktasına ulaştı. Sipariş süreci başlatılmalı."

    body = "\n".join([
        f"Kategori: {category.name}",
        f"Mevcut stok: {new_quantity} adet",
        f"Minimum seviye: {rules.min_quantity} adet",
        f"Yeniden sipariş noktası: {rules.reorder_point} adet",
        f"Önerilen sipariş miktarı: {rules.reorder_quantity} adet",
        "",
        headline,
        "",
        f"Sabit lokasyonlar: {', '.join(rules.fixed_locations)}",
    ])

    return StockAlert(
        category_id=category.id,
        category_name=category.name,
        kind=kind,
        new_quantity=new_quantity,
        min_quantity=rules.min_quantity,
        reorder_point=rules.reorder_point,
        reorder_quantity=rules.reorder_quantity,
        fixed_locations=list(rules.fixed_locations),
        subject=f"Stok Seviyesi Uyarısı - {category.name}",
        body=body,
    )


def _load_category(doc: Optional[Document], category_id: str) -> Category:
    if doc is None:
        raise CategoryNotFoundError(f"Kategori bulunamadı: {category_id}")
    category = Category.from_document(category_id, doc)
    if category.kanban_rules is None:
        raise ValidationError(f"Kategoride Kanban kuralları yok: {category.name}")
    if not category.is_kanban:
        raise ValidationError(f"Kategoride Kanban takibi kapalı: {category.name}")
    return category


class KanbanQuantityTransactor:
    """Kanban kategorilerinin currentQuantity alanını yöneten tek bileşen."""

    def __init__(
        self,
        store: DocumentStore,
        cache: Optional[CollectionCache] = None,
        clock: Callable[[], float] = time.monotonic,
        proposal_ttl: float = DEFAULT_PROPOSAL_TTL,
        notifier: Optional[Notifier] = None,
        max_attempts: int = DEFAULT_TX_ATTEMPTS,
    ):
        self.store = store
        self.cache = cache or CollectionCache()
        self._clock = clock
        self.proposal_ttl = proposal_ttl
        self.notifier = notifier
        self.max_attempts = max_attempts
        # Onay bekleyen öneriler: {proposal_id: QuantityProposal}
        self._proposals: dict[str, QuantityProposal] = {}
        self._lock = threading.Lock()

    # --- Aşama 1: öneri ---

    def propose_quantity_change(self, category_id: str, delta: int) -> QuantityProposal:
        """Miktar değişikliğini hesaplar ve sınıflandırır; yazma yapmaz."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError(f"Miktar değişimi tam sayı olmalı: {delta!r}")
        if delta == 0:
            raise ValidationError("Miktar değişimi sıfır olamaz")

        category = _load_category(self.store.get(CATEGORIES, category_id), category_id)
        rules = category.kanban_rules
        new_quantity = rules.current_quantity + delta
        check_quantity_range(new_quantity, rules)

        threshold = classify_threshold(new_quantity, rules)
        now = self._clock()
        proposal = QuantityProposal(
            proposal_id=uuid.uuid4().hex,
            category_id=category_id,
            category_name=category.name,
            delta=delta,
            current_quantity=rules.current_quantity,
            new_quantity=new_quantity,
            threshold=threshold,
            created_at=now,
            expires_at=now + self.proposal_ttl,
            alert=build_stock_alert(category, new_quantity, threshold) if threshold else None,
        )
        with self._lock:
            self._proposals[proposal.proposal_id] = proposal

        logger.debug(
            "Miktar önerisi: %s %s -> %s (eşik=%s)",
            category.name, rules.current_quantity, new_quantity,
            threshold.value if threshold else "yok",
        )
        return proposal

    # --- Aşama 2: commit / abort ---

    def commit_quantity_change(self, proposal_id: str) -> QuantityCommit:
        """Öneriyi kategori dokümanı üzerinde atomik olarak uygular."""
        proposal = self._take_proposal(proposal_id)
        if self._clock() > proposal.expires_at:
            raise ProposalExpiredError(f"Öneri süresi doldu: {proposal_id}")

        captured: dict[str, Any] = {}

        def mutation(current: Optional[Document]) -> Document:
            category = _load_category(current, proposal.category_id)
            rules = category.kanban_rules
            new_quantity = rules.current_quantity + proposal.delta
            check_quantity_range(new_quantity, rules)

            threshold = classify_threshold(new_quantity, rules)
            if _SEVERITY[threshold] > _SEVERITY[proposal.threshold]:
                raise StaleProposalError(
                    f"Eşik durumu değişti ({category.name}): yeniden onay gerekli"
                )

            updated_at = datetime.utcnow().isoformat()
            updated = dict(current)
            kanban = dict(updated["kanbanRules"])
            kanban["currentQuantity"] = new_quantity
            updated["kanbanRules"] = kanban
            updated["updatedAt"] = updated_at

            captured.update(
                category=category,
                previous=rules.current_quantity,
                new=new_quantity,
                threshold=threshold,
                updated_at=updated_at,
            )
            return updated

        self.store.transact(CATEGORIES, proposal.category_id, mutation)
        self.cache.invalidate(CATEGORIES)

        category: Category = captured["category"]
        threshold = captured["threshold"]
        alert = build_stock_alert(category, captured["new"], threshold) if threshold else None
        result = QuantityCommit(
            category_id=proposal.category_id,
            previous_quantity=captured["previous"],
            new_quantity=captured["new"],
            threshold=threshold,
            updated_at=captured["updated_at"],
            alert=alert,
        )
        logger.info(
            "Kanban miktarı güncellendi: %s %s -> %s",
            category.name, result.previous_quantity, result.new_quantity,
        )

        if alert is not None:
            self._publish_alert(alert)
        return result

    def abort_quantity_change(self, proposal_id: str) -> QuantityProposal:
        """Öneriyi atar; currentQuantity değişmez."""
        proposal = self._take_proposal(proposal_id)
        logger.info("Miktar önerisi iptal edildi: %s (%+d)", proposal.category_name, proposal.delta)
        return proposal

    def apply_quantity_change(
        self,
        category_id: str,
        delta: int,
        confirm: Optional[ConfirmCallback] = None,
    ) -> QuantityCommit:
        """Öneri + onay + commit akışını tek çağrıda çalıştırır.

        Eşik geçildiğinde confirm çağrılır; False dönerse işlem
        CancelledByOperatorError ile iptal edilir. confirm verilmezse uyarı
        yalnızca bilgilendirme amaçlıdır ve işlem devam eder. Eşzamanlı
        değişiklik nedeniyle bayatlayan öneri baştan yeniden önerilir.
        """
        for attempt in range(1, self.max_attempts + 1):
            proposal = self.propose_quantity_change(category_id, delta)
            if proposal.requires_confirmation and confirm is not None and not confirm(proposal):
                self.abort_quantity_change(proposal.proposal_id)
                raise CancelledByOperatorError(
                    f"İşlem operatör tarafından iptal edildi: {proposal.category_name}"
                )
            try:
                return self.commit_quantity_change(proposal.proposal_id)
            except StaleProposalError:
                logger.debug("Bayat öneri, yeniden deneniyor (%d/%d)", attempt, self.max_attempts)
        raise StaleProposalError(f"Miktar değişikliği onaylanamadı: {category_id}")

    # --- Öneri kayıtları ---

    def pending_proposals(self) -> list[QuantityProposal]:
        with self._lock:
            return list(self._proposals.values())

    def purge_expired(self) -> int:
        """Süresi dolan önerileri atar (zaman aşımı politikası)."""
        now = self._clock()
        with self._lock:
            expired = [pid for pid, p in self._proposals.items() if now > p.expires_at]
            for pid in expired:
                del self._proposals[pid]
        if expired:
            logger.info("%d süresi dolmuş öneri atıldı", len(expired))
        return len(expired)

    def _take_proposal(self, proposal_id: str) -> QuantityProposal:
        with self._lock:
            proposal = self._proposals.pop(proposal_id, None)
        if proposal is None:
            raise ProposalNotFoundError(f"Öneri bulunamadı: {proposal_id}")
        return proposal

    # --- Bildirim ---

    def _publish_alert(self, alert: StockAlert) -> None:
        """Eşik uyarısını notifications koleksiyonuna yazar; hata commit'i bozmaz."""
        alert_type = "CRITICAL_ALERT" if alert.kind == ThresholdKind.CRITICAL else "REORDER_ALERT"
        try:
            self.store.create(NOTIFICATIONS, {
                "type": alert_type,
                "categoryId": alert.category_id,
                "categoryName": alert.category_name,
                "currentQuantity": alert.new_quantity,
                "minQuantity": alert.min_quantity,
                "reorderPoint": alert.reorder_point,
                "reorderQuantity": alert.reorder_quantity,
                "subject": alert.subject,
                "body": alert.body,
                "status": "pending",
                "timestamp": datetime.utcnow().isoformat(),
            })
        except Exception as e:
            logger.warning("Uyarı kaydı yazılamadı (%s): %s", alert.category_name, e)

        if self.notifier is None:
            return
        try:
            self.notifier(alert)
        except Exception as e:
            logger.warning("Uyarı bildirimi gönderilemedi (%s): %s", alert.category_name, e)
