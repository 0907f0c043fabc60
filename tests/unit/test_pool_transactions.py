"""Тесты транзакционной границы пула.

Coverage:
- События: ровно одно на успешную операцию, ни одного на отменённую
- Откат при отказе / исключении ledger
- Защита от reentrancy
- Валидация контрактов событий и снапшотов
- Журнал событий с ограничением длины
"""

import threading

import pytest

from src.core.domain.events import DepositEvent, EventKind, SwapEvent, WithdrawalEvent
from src.core.errors import (
    AssetTransferRejected,
    InvalidStateError,
    RollbackIncomplete,
    SlippageViolation,
)
from src.ledger import AssetLedger
from src.pool import LiquidityPool, PoolConfig

ISSUER = "issuer"
ALICE = "alice"
BOB = "bob"
PATH = ["TKX", "TKY"]


def fund(pool, identity, x=0, y=0):
    if x:
        pool.ledger_x.mint(ISSUER, identity, x)
        pool.ledger_x.approve(identity, pool.address, x)
    if y:
        pool.ledger_y.mint(ISSUER, identity, y)
        pool.ledger_y.approve(identity, pool.address, y)


class ExplodingLedger(AssetLedger):
    """Ledger, бросающий исключение на выплате."""

    def transfer(self, sender, to, amount):
        raise RuntimeError("ledger offline")


class RefusingLedger(AssetLedger):
    """Ledger, возвращающий False на выплате."""

    def transfer(self, sender, to, amount):
        return False


class ReentrantLedger(AssetLedger):
    """Ledger, вызывающий пул обратно во время выплаты."""

    pool = None
    reentry_error = None

    def transfer(self, sender, to, amount):
        if self.pool is None:
            return super().transfer(sender, to, amount)
        try:
            self.pool.withdraw(to, 1, 0, 0, to)
        except InvalidStateError as e:
            self.reentry_error = e
            raise
        return super().transfer(sender, to, amount)


class BareLedger:
    """Ledger только с balance_of / transfer / transfer_from, без allowance и checkpoint."""

    def __init__(self, asset_id, balances=None, refuse_pulls=False):
        self.asset_id = asset_id
        self.balances = dict(balances or {})
        self.refuse_pulls = refuse_pulls

    def balance_of(self, identity):
        return self.balances.get(identity, 0)

    def transfer(self, sender, to, amount):
        if self.balance_of(sender) < amount:
            return False
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount
        return True

    def transfer_from(self, spender, owner, to, amount):
        if self.refuse_pulls:
            return False
        return self.transfer(owner, to, amount)


class InterleavingLedger(BareLedger):
    """Ledger, во время pull которого другой пул успевает завершить операцию."""

    def __init__(self, asset_id, interleave):
        super().__init__(asset_id, refuse_pulls=True)
        self.interleave = interleave

    def transfer_from(self, spender, owner, to, amount):
        self.interleave()
        return super().transfer_from(spender, owner, to, amount)


@pytest.fixture
def pool():
    return LiquidityPool(AssetLedger("TKX", ISSUER), AssetLedger("TKY", ISSUER))


class TestEvents:
    """Тесты публикации событий."""

    def test_one_event_per_successful_operation(self, pool):
        received = []
        pool.subscribe(received.append)
        fund(pool, ALICE, 1000, 1000)
        fund(pool, BOB, 100)

        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        pool.swap(BOB, 100, 0, PATH, BOB)
        pool.withdraw(ALICE, 500, 0, 0, ALICE)

        assert [type(e) for e in received] == [DepositEvent, SwapEvent, WithdrawalEvent]
        assert [e.sequence for e in received] == [1, 2, 3]
        deposit, swap, withdrawal = received
        assert (deposit.recipient, deposit.used_x, deposit.used_y, deposit.shares_issued) == (
            ALICE, 1000, 1000, 1000,
        )
        assert (swap.caller, swap.amount_in, swap.amount_out) == (BOB, 100, 90)
        assert (withdrawal.recipient, withdrawal.out_x, withdrawal.out_y) == (ALICE, 550, 455)
        assert withdrawal.kind == EventKind.WITHDRAWAL
        assert pool.event_log.tail(10) == received

    def test_no_event_on_aborted_operation(self, pool):
        received = []
        pool.subscribe(received.append)
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        fund(pool, BOB, 100)

        with pytest.raises(SlippageViolation):
            pool.swap(BOB, 100, 91, PATH, BOB)

        assert len(received) == 1
        assert len(pool.event_log) == 1

    def test_sequence_not_consumed_by_aborted_operation(self, pool):
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        fund(pool, BOB, 200)
        with pytest.raises(SlippageViolation):
            pool.swap(BOB, 100, 91, PATH, BOB)

        pool.swap(BOB, 100, 90, PATH, BOB)

        assert pool.event_log.tail(1)[0].sequence == 2
        assert pool.snapshot().sequence == 2

    def test_unsubscribe(self, pool):
        received = []
        unsubscribe = pool.subscribe(received.append)
        unsubscribe()
        fund(pool, ALICE, 10, 10)
        pool.deposit(ALICE, 10, 10, 0, 0, ALICE)
        assert received == []

    def test_event_log_maxlen(self):
        pool = LiquidityPool(
            AssetLedger("TKX", ISSUER), AssetLedger("TKY", ISSUER),
            config=PoolConfig(event_log_maxlen=2),
        )
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        for _ in range(3):
            pool.withdraw(ALICE, 10, 0, 0, ALICE)

        assert len(pool.event_log) == 2
        assert [e.sequence for e in pool.event_log.tail()] == [3, 4]
        assert pool.event_log.tail(0) == []


class TestRollback:
    """Тесты отката при отказе ledger."""

    def test_payout_exception_rolls_back_everything(self):
        ledger_x = AssetLedger("TKX", ISSUER)
        ledger_y = ExplodingLedger("TKY", ISSUER)
        pool = LiquidityPool(ledger_x, ledger_y)
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        fund(pool, BOB, 100)

        with pytest.raises(AssetTransferRejected) as exc_info:
            pool.swap(BOB, 100, 0, PATH, BOB)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.operation == "transfer"
        assert pool.get_reserves() == (1000, 1000)
        assert ledger_x.balance_of(BOB) == 100
        assert ledger_x.balance_of(pool.address) == 1000

    def test_falsy_payout_rolls_back_withdrawal(self):
        ledger_x = AssetLedger("TKX", ISSUER)
        ledger_y = RefusingLedger("TKY", ISSUER)
        pool = LiquidityPool(ledger_x, ledger_y)
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        # выплата X возвращается через transfer_from у получателя
        ledger_x.approve(ALICE, pool.address, 1000)

        with pytest.raises(AssetTransferRejected):
            pool.withdraw(ALICE, 1000, 0, 0, ALICE)

        assert pool.shares_of(ALICE) == 1000
        assert pool.total_shares == 1000
        assert ledger_x.balance_of(ALICE) == 0
        assert ledger_x.balance_of(pool.address) == 1000

    def test_unrecoverable_payout_reported(self):
        ledger_x = AssetLedger("TKX", ISSUER)
        ledger_y = RefusingLedger("TKY", ISSUER)
        pool = LiquidityPool(ledger_x, ledger_y)
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)

        with pytest.raises(RollbackIncomplete) as exc_info:
            pool.withdraw(ALICE, 1000, 0, 0, ALICE)

        assert exc_info.value.transfers == [("TKX", "out", ALICE, 1000)]
        assert isinstance(exc_info.value.__cause__, AssetTransferRejected)
        assert pool.shares_of(ALICE) == 1000
        assert ledger_x.balance_of(ALICE) == 1000

    def test_pool_state_restored_on_bare_ledgers(self):
        pool = LiquidityPool(
            BareLedger("TKX", {ALICE: 1000, BOB: 100}),
            BareLedger("TKY", {ALICE: 1000}),
        )
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)

        with pytest.raises(SlippageViolation):
            pool.swap(BOB, 100, 91, PATH, BOB)

        assert pool.get_reserves() == (1000, 1000)
        assert pool.total_shares == 1000

    def test_partial_deposit_refunded_on_bare_ledger(self):
        ledger_x = BareLedger("TKX", {ALICE: 1000})
        ledger_y = BareLedger("TKY", {ALICE: 1000}, refuse_pulls=True)
        pool = LiquidityPool(ledger_x, ledger_y)

        with pytest.raises(AssetTransferRejected) as exc_info:
            pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)

        assert exc_info.value.asset_id == "TKY"
        assert pool.get_reserves() == (0, 0)
        assert pool.total_shares == 0
        assert ledger_x.balance_of(ALICE) == 1000
        assert ledger_x.balance_of(pool.address) == 0
        assert len(pool.event_log) == 0

    def test_rollback_keeps_other_pool_transfers_on_shared_ledger(self):
        shared_x = AssetLedger("TKX", ISSUER)
        pool_b = LiquidityPool(shared_x, AssetLedger("TKZ", ISSUER))
        fund(pool_b, BOB, 1000, 1000)
        pool_a = LiquidityPool(
            shared_x,
            InterleavingLedger("TKY", lambda: pool_b.deposit(BOB, 1000, 1000, 0, 0, BOB)),
        )
        shared_x.mint(ISSUER, ALICE, 1000)
        shared_x.approve(ALICE, pool_a.address, 1000)

        with pytest.raises(AssetTransferRejected):
            pool_a.deposit(ALICE, 1000, 1000, 0, 0, ALICE)

        assert pool_a.get_reserves() == (0, 0)
        assert shared_x.balance_of(ALICE) == 1000
        assert shared_x.balance_of(pool_a.address) == 0
        assert pool_b.reserve_x == 1000
        assert shared_x.balance_of(pool_b.address) == 1000
        assert shared_x.balance_of(BOB) == 0

    def test_concurrent_pools_on_shared_ledger(self):
        shared_x = AssetLedger("TKX", ISSUER)
        pulled = threading.Event()
        committed = threading.Event()

        class StallingLedger(BareLedger):
            def transfer_from(self, spender, owner, to, amount):
                pulled.set()
                committed.wait(timeout=5)
                return False

        pool_a = LiquidityPool(shared_x, StallingLedger("TKY", {ALICE: 1000}))
        pool_b = LiquidityPool(shared_x, AssetLedger("TKZ", ISSUER))
        shared_x.mint(ISSUER, ALICE, 1000)
        shared_x.approve(ALICE, pool_a.address, 1000)
        fund(pool_b, BOB, 1000, 1000)

        errors = []

        def run_a():
            try:
                pool_a.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
            except AssetTransferRejected as e:
                errors.append(e)

        thread_a = threading.Thread(target=run_a)
        thread_a.start()
        assert pulled.wait(timeout=5)
        pool_b.deposit(BOB, 1000, 1000, 0, 0, BOB)
        committed.set()
        thread_a.join(timeout=5)

        assert len(errors) == 1
        assert shared_x.balance_of(ALICE) == 1000
        assert shared_x.balance_of(pool_b.address) == pool_b.reserve_x == 1000
        assert shared_x.balance_of(BOB) == 0


class TestReentrancy:
    """Тесты защиты от вложенных вызовов."""

    def test_reentrant_call_is_rejected_and_rolled_back(self):
        ledger_x = AssetLedger("TKX", ISSUER)
        ledger_y = ReentrantLedger("TKY", ISSUER)
        pool = LiquidityPool(ledger_x, ledger_y)
        ledger_y.pool = pool
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        fund(pool, BOB, 100)

        with pytest.raises(InvalidStateError, match="reentrant"):
            pool.swap(BOB, 100, 0, PATH, ALICE)

        assert ledger_y.reentry_error is not None
        assert pool.get_reserves() == (1000, 1000)
        assert pool.shares_of(ALICE) == 1000

    def test_pool_usable_after_rejected_reentry(self):
        ledger_x = AssetLedger("TKX", ISSUER)
        ledger_y = ReentrantLedger("TKY", ISSUER)
        pool = LiquidityPool(ledger_x, ledger_y)
        ledger_y.pool = pool
        fund(pool, ALICE, 1000, 1000)
        pool.deposit(ALICE, 1000, 1000, 0, 0, ALICE)
        fund(pool, BOB, 100)
        with pytest.raises(InvalidStateError):
            pool.swap(BOB, 100, 0, PATH, ALICE)

        ledger_y.pool = None
        assert pool.swap(BOB, 100, 0, PATH, BOB).amount_out == 90


class TestContractValidation:
    """Тесты validate_contracts."""

    def test_snapshot_and_events_validated(self):
        pool = LiquidityPool(
            AssetLedger("TKX", ISSUER), AssetLedger("TKY", ISSUER),
            config=PoolConfig(validate_contracts=True),
        )
        fund(pool, ALICE, 1000, 2000)
        pool.deposit(ALICE, 1000, 2000, 0, 0, ALICE)

        snap = pool.snapshot()

        assert snap.holders == {ALICE: 1000}
        assert snap.reserve_x * snap.reserve_y == 2_000_000
