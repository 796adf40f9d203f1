"""Kanban miktar işlemcisi unit testleri."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from slotting.cache import CollectionCache
from slotting.exceptions import (
    CancelledByOperatorError,
    CategoryNotFoundError,
    OverMaxError,
    ProposalExpiredError,
    ProposalNotFoundError,
    QuantityRangeError,
    StaleProposalError,
    UnderflowError,
    ValidationError,
)
from slotting.models.warehouse import Category, KanbanRules, ThresholdKind
from slotting.services.kanban import KanbanQuantityTransactor, build_stock_alert, classify_threshold
from slotting.store.memory import InMemoryDocumentStore


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _create_transactor(current=25, minimum=10, reorder=20, maximum=100, notifier=None, clock=None):
    store = InMemoryDocumentStore()
    category_id = store.create("categories", {
        "name": "Paletler",
        "prefix": "PAL",
        "description": "",
        "isDefault": False,
        "kanbanRules": {
            "goodsIn": True,
            "minQuantity": minimum,
            "maxQuantity": maximum,
            "reorderPoint": reorder,
            "reorderQuantity": 50,
            "currentQuantity": current,
            "fixedLocations": ["K01-1-1", "K01-1-2"],
        },
    })
    transactor = KanbanQuantityTransactor(
        store, CollectionCache(), clock=clock or FakeClock(), notifier=notifier
    )
    return transactor, store, category_id


def _quantity(store, category_id):
    return store.get("categories", category_id)["kanbanRules"]["currentQuantity"]


class TestThresholdClassification:
    """Senaryo C: reorder ve critical eşikleri."""

    def test_reorder_then_critical(self):
        transactor, store, category_id = _create_transactor()

        first = transactor.apply_quantity_change(category_id, -10)
        assert first.new_quantity == 15
        assert first.threshold == ThresholdKind.REORDER

        second = transactor.apply_quantity_change(category_id, -10)
        assert second.new_quantity == 5
        assert second.threshold == ThresholdKind.CRITICAL
        assert _quantity(store, category_id) == 5

    def test_no_threshold_above_reorder_point(self):
        transactor, _, category_id = _create_transactor()
        proposal = transactor.propose_quantity_change(category_id, 5)
        assert proposal.threshold is None
        assert proposal.requires_confirmation is False
        assert proposal.alert is None

    def test_boundaries_inclusive(self):
        rules = KanbanRules(True, 10, 100, 20, 50, 25, ["K01-1-1"])
        assert classify_threshold(20, rules) == ThresholdKind.REORDER
        assert classify_threshold(10, rules) == ThresholdKind.CRITICAL
        assert classify_threshold(21, rules) is None


class TestRangeChecks:
    """Aralık dışı değişiklikler hiçbir şey yazmaz."""

    def test_underflow_leaves_quantity(self):
        """Senaryo D: 5 - 10 -> Underflow, miktar 5 kalır."""
        transactor, store, category_id = _create_transactor(current=5)
        with pytest.raises(UnderflowError) as exc:
            transactor.apply_quantity_change(category_id, -10)
        assert exc.value.code == "Underflow"
        assert isinstance(exc.value, QuantityRangeError)
        assert _quantity(store, category_id) == 5

    def test_over_max(self):
        transactor, store, category_id = _create_transactor(current=95)
        with pytest.raises(OverMaxError):
            transactor.propose_quantity_change(category_id, 10)
        assert _quantity(store, category_id) == 95

    def test_exact_max_allowed(self):
        transactor, _, category_id = _create_transactor(current=95)
        assert transactor.apply_quantity_change(category_id, 5).new_quantity == 100

    def test_invalid_delta(self):
        transactor, _, category_id = _create_transactor()
        with pytest.raises(ValidationError):
            transactor.propose_quantity_change(category_id, 0)
        with pytest.raises(ValidationError):
            transactor.propose_quantity_change(category_id, 1.5)

    def test_missing_category(self):
        transactor, _, _ = _create_transactor()
        with pytest.raises(CategoryNotFoundError):
            transactor.propose_quantity_change("yok", -1)

    def test_category_without_rules(self):
        transactor, store, _ = _create_transactor()
        plain_id = store.create("categories", {"name": "Bobin", "prefix": "RAW", "kanbanRules": None})
        with pytest.raises(ValidationError):
            transactor.propose_quantity_change(plain_id, -1)

    def test_category_with_kanban_disabled(self):
        transactor, store, category_id = _create_transactor()
        rules = store.get("categories", category_id)["kanbanRules"]
        disabled_id = store.create("categories", {
            "name": "Eski Paletler", "prefix": "EPL", "kanbanRules": {**rules, "goodsIn": False},
        })
        with pytest.raises(ValidationError):
            transactor.propose_quantity_change(disabled_id, -1)

    def test_kanban_disabled_between_propose_and_commit(self):
        transactor, store, category_id = _create_transactor()
        proposal = transactor.propose_quantity_change(category_id, -5)
        rules = store.get("categories", category_id)["kanbanRules"]
        store.update("categories", category_id, {"kanbanRules": {**rules, "goodsIn": False}})
        with pytest.raises(ValidationError):
            transactor.commit_quantity_change(proposal.proposal_id)
        assert _quantity(store, category_id) == 25

    def test_alert_for_category_without_rules(self):
        category = Category(id="c1", name="Bobin", prefix="RAW")
        with pytest.raises(ValidationError):
            build_stock_alert(category, 5, ThresholdKind.CRITICAL)


class TestTwoPhaseProtocol:
    """propose -> commit / abort."""

    def test_propose_does_not_write(self):
        transactor, store, category_id = _create_transactor()
        proposal = transactor.propose_quantity_change(category_id, -10)
        assert proposal.new_quantity == 15
        assert proposal.requires_confirmation is True
        assert "Paletler" in proposal.alert.subject
        assert _quantity(store, category_id) == 25

    def test_commit_writes_quantity_and_timestamp(self):
        transactor, store, category_id = _create_transactor()
        proposal = transactor.propose_quantity_change(category_id, -10)
        result = transactor.commit_quantity_change(proposal.proposal_id)
        assert result.previous_quantity == 25
        assert result.new_quantity == 15
        doc = store.get("categories", category_id)
        assert doc["kanbanRules"]["currentQuantity"] == 15
        assert doc["updatedAt"] == result.updated_at

    def test_abort_leaves_quantity(self):
        transactor, store, category_id = _create_transactor()
        proposal = transactor.propose_quantity_change(category_id, -10)
        transactor.abort_quantity_change(proposal.proposal_id)
        assert _quantity(store, category_id) == 25
        with pytest.raises(ProposalNotFoundError):
            transactor.commit_quantity_change(proposal.proposal_id)

    def test_operator_cancel(self):
        transactor, store, category_id = _create_transactor()
        seen = []

        def confirm(proposal):
            seen.append(proposal.threshold)
            return False

        with pytest.raises(CancelledByOperatorError):
            transactor.apply_quantity_change(category_id, -10, confirm=confirm)
        assert seen == [ThresholdKind.REORDER]
        assert _quantity(store, category_id) == 25
        assert transactor.pending_proposals() == []

    def test_confirm_not_asked_without_threshold(self):
        transactor, _, category_id = _create_transactor()
        calls = []
        transactor.apply_quantity_change(category_id, 1, confirm=lambda p: calls.append(p) or True)
        assert calls == []

    def test_expired_proposal_rejected(self):
        clock = FakeClock()
        transactor, store, category_id = _create_transactor(clock=clock)
        proposal = transactor.propose_quantity_change(category_id, -1)
        clock.now += transactor.proposal_ttl + 1
        with pytest.raises(ProposalExpiredError):
            transactor.commit_quantity_change(proposal.proposal_id)
        assert _quantity(store, category_id) == 25

    def test_purge_expired(self):
        clock = FakeClock()
        transactor, _, category_id = _create_transactor(clock=clock)
        transactor.propose_quantity_change(category_id, -1)
        clock.now += transactor.proposal_ttl + 1
        transactor.propose_quantity_change(category_id, -2)
        assert transactor.purge_expired() == 1
        assert [p.delta for p in transactor.pending_proposals()] == [-2]

    def test_stale_proposal_needs_reconfirmation(self):
        """Onaylanan eşikten daha kritik sonuç commit edilmez."""
        transactor, store, category_id = _create_transactor()
        first = transactor.propose_quantity_change(category_id, -10)
        second = transactor.propose_quantity_change(category_id, -10)
        transactor.commit_quantity_change(second.proposal_id)

        with pytest.raises(StaleProposalError):
            transactor.commit_quantity_change(first.proposal_id)
        assert _quantity(store, category_id) == 15

    def test_commit_recomputes_from_fresh_quantity(self):
        transactor, store, category_id = _create_transactor(current=60)
        first = transactor.propose_quantity_change(category_id, -5)
        second = transactor.propose_quantity_change(category_id, -5)
        transactor.commit_quantity_change(first.proposal_id)
        result = transactor.commit_quantity_change(second.proposal_id)
        assert result.new_quantity == 50
        assert _quantity(store, category_id) == 50


class TestNotifications:
    """Eşik geçişinde en iyi çaba bildirim."""

    def test_alert_written_and_notifier_called(self):
        alerts = []
        transactor, store, category_id = _create_transactor(notifier=alerts.append)
        transactor.apply_quantity_change(category_id, -20)

        assert len(alerts) == 1
        assert alerts[0].kind == ThresholdKind.CRITICAL
        assert "ACİL" in alerts[0].body
        notifications = store.query("notifications")
        assert notifications[0]["type"] == "CRITICAL_ALERT"
        assert notifications[0]["currentQuantity"] == 5
        assert notifications[0]["status"] == "pending"

    def test_no_alert_without_threshold(self):
        alerts = []
        transactor, store, category_id = _create_transactor(notifier=alerts.append)
        transactor.apply_quantity_change(category_id, 1)
        assert alerts == []
        assert store.query("notifications") == []

    def test_notifier_failure_does_not_undo_commit(self):
        def broken(alert):
            raise RuntimeError("smtp kapalı")

        transactor, store, category_id = _create_transactor(notifier=broken)
        result = transactor.apply_quantity_change(category_id, -10)
        assert result.threshold == ThresholdKind.REORDER
        assert _quantity(store, category_id) == 15

    def test_commit_invalidates_category_cache(self):
        transactor, _, category_id = _create_transactor()
        transactor.cache.set("categories", ["eski"])
        transactor.apply_quantity_change(category_id, 1)
        assert transactor.cache.get("categories") is None


class TestConcurrency:
    """Eşzamanlı commit'ler sayacı bozmaz ve güncelleme kaybetmez."""

    def test_concurrent_deltas_linearizable(self):
        transactor, store, category_id = _create_transactor(current=60)
        deltas = [1, -1, 2, -2, 3, -3, 1, 1, -1, -1] * 3

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(
                lambda d: transactor.apply_quantity_change(category_id, d), deltas
            ))

        assert len(results) == len(deltas)
        assert _quantity(store, category_id) == 60 + sum(deltas)

    def test_concurrent_decrements_never_underflow(self):
        transactor, store, category_id = _create_transactor(current=5)

        def take(_):
            try:
                transactor.apply_quantity_change(category_id, -1)
                return True
            except UnderflowError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(take, range(12)))

        assert results.count(True) == 5
        assert _quantity(store, category_id) == 0
