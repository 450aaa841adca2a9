from decimal import Decimal

import pytest

from balances import aggregate_balances, check_lone_balance, check_zero_sum, creditors, debtors, settled
from conftest import A, B, C, FAMILY, TOL, expense, net_of, settlement
from errors import DataIntegrityFault, DegenerateInputFault
from models import Entity, EntityBalance, EntityRef, EntityType


class TestAggregation:

    def test_single_expense_split_equally(self):
        balances = aggregate_balances([expense("e1", "100", A, {A: "50", B: "50"})], [], "BRL")
        assert net_of(balances, A) == Decimal("50")
        assert net_of(balances, B) == Decimal("-50")

    def test_payer_in_own_split_gets_both_updates(self):
        balances = aggregate_balances([expense("e1", "100", A, {A: "50", B: "50"})], [], "BRL")
        alice = [b for b in balances if b.ref == A][0]
        assert alice.total_paid == Decimal("100")
        assert alice.total_owed == Decimal("50")

    def test_payer_outside_split(self):
        balances = aggregate_balances([expense("e1", "60", A, {B: "30", C: "30"})], [], "BRL")
        alice = [b for b in balances if b.ref == A][0]
        assert alice.total_owed == Decimal("0")
        assert alice.net_balance == Decimal("60")

    def test_foreign_currency_paid_total(self):
        e = expense("e1", "100", A, {A: "50", B: "50"}, currency="USD", rate="5.78")
        balances = aggregate_balances([e], [], "BRL")
        alice = [b for b in balances if b.ref == A][0]
        assert alice.total_paid == Decimal("578")

    def test_multi_expense_trip(self, dinner_trip):
        balances = aggregate_balances(dinner_trip, [], "BRL")
        assert net_of(balances, A) == Decimal("171.1")
        assert net_of(balances, B) == Decimal("-55")
        assert net_of(balances, C) == Decimal("-116.1")

    def test_zero_sum(self, dinner_trip):
        balances = aggregate_balances(dinner_trip, [settlement("s1", B, A, "20")], "BRL")
        assert abs(sum(b.net_balance for b in balances)) <= TOL

    def test_sorted_by_net_descending_then_id(self):
        balances = aggregate_balances(
            [expense("e1", "90", A, {A: "30", C: "30", B: "30"})], [], "BRL"
        )
        assert [b.entity_id for b in balances] == ["alice", "bob", "carol"]

    def test_no_fabricated_entities(self, roster):
        balances = aggregate_balances([expense("e1", "100", A, {A: "50", B: "50"})], [], "BRL", roster)
        assert {b.ref for b in balances} == {A, B}

    def test_roster_display_names(self, roster):
        balances = aggregate_balances([expense("e1", "100", A, {A: "50", B: "50"})], [], "BRL", roster)
        assert {b.display_name for b in balances} == {"Alice", "Bob"}

    def test_display_name_defaults_to_id(self):
        balances = aggregate_balances([expense("e1", "100", A, {A: "50", B: "50"})], [], "BRL")
        assert {b.display_name for b in balances} == {"alice", "bob"}

    def test_group_is_a_single_balance_line(self, roster):
        balances = aggregate_balances(
            [expense("e1", "120", FAMILY, {FAMILY: "80", A: "40"})], [], "BRL", roster
        )
        family = [b for b in balances if b.ref == FAMILY][0]
        assert family.entity_type == EntityType.GROUP
        assert family.net_balance == Decimal("40")
        assert len(balances) == 2

    def test_same_id_different_type_are_distinct(self):
        guest_alice = EntityRef("alice", EntityType.GUEST)
        balances = aggregate_balances([expense("e1", "10", A, {guest_alice: "10"})], [], "BRL")
        assert len(balances) == 2


class TestRecordedSettlements:

    def test_settlement_moves_net_balances(self):
        balances = aggregate_balances(
            [expense("e1", "100", A, {A: "50", B: "50"})],
            [settlement("s1", B, A, "20")],
            "BRL",
        )
        assert net_of(balances, A) == Decimal("30")
        assert net_of(balances, B) == Decimal("-30")

    def test_settlement_adjusts_owed_and_paid(self):
        balances = aggregate_balances(
            [expense("e1", "100", A, {A: "50", B: "50"})],
            [settlement("s1", B, A, "20")],
            "BRL",
        )
        alice = [b for b in balances if b.ref == A][0]
        bob = [b for b in balances if b.ref == B][0]
        assert bob.total_owed == Decimal("30")
        assert bob.total_paid == Decimal("0")
        assert alice.total_paid == Decimal("80")
        assert alice.total_owed == Decimal("50")

    def test_full_settlement_leaves_other_entities_alone(self):
        exps = [expense("e1", "90", A, {A: "30", B: "30", C: "30"})]
        before = aggregate_balances(exps, [], "BRL")
        after = aggregate_balances(exps, [settlement("s1", B, A, "30")], "BRL")
        assert net_of(after, B) == Decimal("0")
        assert net_of(after, C) == net_of(before, C)

    def test_settlement_parties_appear_without_expenses(self):
        balances = aggregate_balances([], [settlement("s1", B, A, "20")], "BRL")
        assert net_of(balances, B) == Decimal("20")
        assert net_of(balances, A) == Decimal("-20")

    def test_negative_settlement_rejected(self):
        with pytest.raises(DegenerateInputFault):
            aggregate_balances([], [settlement("s1", B, A, "-5")], "BRL")

    def test_self_settlement_rejected(self):
        with pytest.raises(DegenerateInputFault):
            aggregate_balances([], [settlement("s1", A, A, "5")], "BRL")


class TestFaults:

    def test_split_sum_mismatch(self):
        with pytest.raises(DataIntegrityFault) as exc:
            aggregate_balances([expense("e1", "100", A, {A: "45", B: "45"})], [], "BRL")
        assert exc.value.details["expense"] == "e1"

    def test_split_sum_within_tolerance_accepted(self):
        balances = aggregate_balances([expense("e1", "100", A, {A: "33.33", B: "66.66"})], [], "BRL")
        assert len(balances) == 2

    def test_negative_split(self):
        with pytest.raises(DegenerateInputFault):
            aggregate_balances([expense("e1", "100", A, {A: "150", B: "-50"})], [], "BRL")

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_non_positive_expense(self, amount):
        with pytest.raises(DegenerateInputFault):
            aggregate_balances([expense("e1", amount, A, {A: amount})], [], "BRL")

    def test_unknown_entity(self, roster):
        stranger = EntityRef("mallory")
        with pytest.raises(DataIntegrityFault, match="does not resolve"):
            aggregate_balances([expense("e1", "100", A, {A: "50", stranger: "50"})], [], "BRL", roster)

    def test_duplicate_roster_entry(self):
        with pytest.raises(DataIntegrityFault, match="ambiguous"):
            aggregate_balances([], [], "BRL", [Entity(A, "Alice"), Entity(A, "Alice again")])

    def test_zero_sum_violation(self):
        lopsided = [
            EntityBalance("alice", EntityType.USER, "alice", Decimal("10"), Decimal("0"), Decimal("10")),
            EntityBalance("bob", EntityType.USER, "bob", Decimal("0"), Decimal("5"), Decimal("-5")),
        ]
        with pytest.raises(DataIntegrityFault):
            check_zero_sum(lopsided)


class TestFilters:

    def test_partition(self, dinner_trip):
        balances = aggregate_balances(
            dinner_trip + [expense("e4", "10", EntityRef("zoe"), {EntityRef("zoe"): "10"})], [], "BRL"
        )
        assert [b.entity_id for b in creditors(balances)] == ["alice"]
        assert {b.entity_id for b in debtors(balances)} == {"bob", "carol"}
        assert [b.entity_id for b in settled(balances)] == ["zoe"]


class TestSplitResiduals:

    def test_residuals_within_tolerance_across_expenses(self):
        thirds = {A: "33.33", B: "33.33", C: "33.33"}
        balances = aggregate_balances(
            [expense("e1", "100", A, thirds), expense("e2", "100", B, thirds), expense("e3", "100", C, thirds)],
            [],
            "BRL",
        )
        assert sum(b.net_balance for b in balances) == Decimal("0")
        assert all(b.net_balance == Decimal("0") for b in balances)

    def test_payer_keeps_the_leftover_cent(self):
        thirds = {A: "33.33", B: "33.33", C: "33.33"}
        balances = aggregate_balances([expense("e1", "100", A, thirds), expense("e2", "100", B, thirds)], [], "BRL")
        alice = [b for b in balances if b.ref == A][0]
        assert alice.total_paid == Decimal("100")
        assert alice.total_owed == Decimal("66.67")
        assert net_of(balances, C) == Decimal("-66.66")

    def test_residual_in_foreign_currency(self):
        thirds = {A: "3.33", B: "3.33", C: "3.33"}
        exps = [expense(eid, "10", A, thirds, currency="USD", rate="5.78") for eid in ("e1", "e2")]
        balances = aggregate_balances(exps, [], "BRL")
        assert sum(b.net_balance for b in balances) == Decimal("0")


class TestLoneBalance:

    def test_lone_open_balance_is_degenerate(self):
        dan = EntityRef("dan")
        with pytest.raises(DegenerateInputFault, match="exactly one entity"):
            aggregate_balances([expense("e1", "0.03", A, {B: "0.01", C: "0.01", dan: "0.01"})], [], "BRL")

    def test_check_lone_balance_direct(self):
        lone = [
            EntityBalance("alice", EntityType.USER, "alice", Decimal("5"), Decimal("0"), Decimal("5")),
            EntityBalance("bob", EntityType.USER, "bob", Decimal("0"), Decimal("0.005"), Decimal("-0.005")),
        ]
        with pytest.raises(DegenerateInputFault):
            check_lone_balance(lone)
        check_lone_balance(lone[1:])
