"""LiquidityPool — двухактивный пул ликвидности x*y=k без комиссии.

Единственный компонент с реальной логикой: атомарные переходы состояния
для deposit / withdraw / swap, сохраняющие инвариант ценообразования и
пропорциональные доли депозиторов.

States:
- EMPTY: total_shares == 0
- FUNDED: total_shares > 0

Переходы:
- deposit в пустой пул: единственный переход EMPTY → FUNDED
- withdraw последней share: единственный переход FUNDED → EMPTY
- swap / get_price требуют FUNDED

Транзакционная граница (_transaction):
- RLock сериализует операции разных вызывающих
- busy-флаг отклоняет вложенный (reentrant) вызов в тот же пул
- копия собственного состояния пула; при любой ошибке она восстанавливается
- журнал выполненных переводов; при ошибке каждый перевод компенсируется
  обратным переводом (pull → transfer назад владельцу, выплата →
  transfer_from у получателя), чужие переводы в тех же ledger не затрагиваются
- события буферизуются и публикуются только после commit

Порядок внутри операции: pull входящих сумм → обновление резервов/shares →
выплата получателю (effects before outward calls).
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple
import logging
import threading

from pydantic import ValidationError

from src.core.contracts import validate_pool_event, validate_pool_snapshot
from src.core.domain.assets import AssetPair, AssetRole, SwapPath
from src.core.domain.events import AnyPoolEvent, DepositEvent, SwapEvent, WithdrawalEvent
from src.core.domain.pool_state import PoolSnapshot, PoolStatus
from src.core.errors import (
    AssetTransferRejected,
    ConfigurationError,
    InsufficientBalanceError,
    InvalidArgumentError,
    InvalidStateError,
    PoolError,
    RollbackIncomplete,
    SlippageViolation,
)
from src.core.math import constant_product
from src.core.math.int_safeguards import validate_amount, validate_identity, validate_positive_amount
from src.ledger.protocols import FungibleAsset
from src.pool.config import PoolConfig
from src.pool.event_log import EventListener, EventLog

logger = logging.getLogger(__name__)

INBOUND = "in"
OUTBOUND = "out"


class DepositResult(NamedTuple):
    used_x: int
    used_y: int
    shares_issued: int


class WithdrawResult(NamedTuple):
    out_x: int
    out_y: int


class SwapResult(NamedTuple):
    amount_in: int
    amount_out: int


@dataclass
class _PoolLedgerState:
    """Изменяемое состояние пула; владеет им только LiquidityPool."""
    reserve_x: int = 0
    reserve_y: int = 0
    total_shares: int = 0
    shares: Dict[str, int] = field(default_factory=dict)
    sequence: int = 0

    def copy(self) -> "_PoolLedgerState":
        return _PoolLedgerState(
            reserve_x=self.reserve_x,
            reserve_y=self.reserve_y,
            total_shares=self.total_shares,
            shares=dict(self.shares),
            sequence=self.sequence,
        )


class _Transfer(NamedTuple):
    """Выполненный пулом перевод: INBOUND (pull от party) или OUTBOUND (выплата party)."""
    ledger: FungibleAsset
    direction: str
    party: str
    amount: int


@dataclass
class _Transaction:
    operation: str
    events: List[AnyPoolEvent] = field(default_factory=list)
    transfers: List[_Transfer] = field(default_factory=list)


class LiquidityPool:
    """Пул ликвидности для фиксированной пары активов asset_x / asset_y.

    Вызывающий (caller) передаётся явно в каждую изменяющую операцию.
    Перед deposit / swap вызывающий должен выдать пулу allowance в ledger
    соответствующего актива (approve на address пула).

    Откат уже выполненной выплаты возможен только через transfer_from у
    получателя; если ledger его отклоняет, операция завершается
    RollbackIncomplete с перечнем невозвращённых переводов.
    """

    quote = staticmethod(constant_product.quote)
    quote_in = staticmethod(constant_product.quote_in)

    def __init__(
        self,
        ledger_x: FungibleAsset,
        ledger_y: FungibleAsset,
        address: Optional[str] = None,
        config: Optional[PoolConfig] = None,
    ):
        """
        Args:
            ledger_x: ledger актива X (вход свопа)
            ledger_y: ledger актива Y (выход свопа)
            address: идентичность пула в ledger (default: "pool:<X>/<Y>")
            config: конфигурация пула

        Raises:
            ConfigurationError: отсутствующие, пустые или совпадающие активы
        """
        if ledger_x is None or ledger_y is None:
            raise ConfigurationError("both asset ledgers are required")
        try:
            self.pair = AssetPair(
                asset_x=getattr(ledger_x, "asset_id", None),
                asset_y=getattr(ledger_y, "asset_id", None),
            )
        except ValidationError as e:
            raise ConfigurationError(f"invalid asset pair: {e}") from e

        self.ledger_x = ledger_x
        self.ledger_y = ledger_y
        self._ledgers: Dict[AssetRole, FungibleAsset] = {
            AssetRole.ASSET_X: ledger_x,
            AssetRole.ASSET_Y: ledger_y,
        }
        self.config = config or PoolConfig()
        self.address = address or f"pool:{self.pair.label}"

        self._state = _PoolLedgerState()
        self._lock = threading.RLock()
        self._busy = False
        self.event_log = EventLog(maxlen=self.config.event_log_maxlen)

        logger.info("pool created: %s at %s", self.pair.label, self.address)

    # =========================================================================
    # READ-ONLY ACCESSORS
    # =========================================================================

    @property
    def asset_x(self) -> str:
        return self.pair.asset_x

    @property
    def asset_y(self) -> str:
        return self.pair.asset_y

    @property
    def reserve_x(self) -> int:
        return self._state.reserve_x

    @property
    def reserve_y(self) -> int:
        return self._state.reserve_y

    @property
    def total_shares(self) -> int:
        return self._state.total_shares

    @property
    def status(self) -> PoolStatus:
        return PoolStatus.FUNDED if self._state.total_shares > 0 else PoolStatus.EMPTY

    def shares_of(self, identity: str) -> int:
        return self._state.shares.get(identity, 0)

    def get_reserves(self) -> Tuple[int, int]:
        return self._state.reserve_x, self._state.reserve_y

    def k_last(self) -> int:
        return self._state.reserve_x * self._state.reserve_y

    def get_price(self, asset_a: str, asset_b: str) -> int:
        """Цена asset_x в единицах asset_y с масштабом config.price_scale.

        Пара проверяется с учётом порядка: asset_a должен быть asset_x.

        Raises:
            InvalidArgumentError: пара не совпадает с парой пула
            InvalidStateError: пул пуст
        """
        if not self.pair.matches(asset_a, asset_b):
            raise InvalidArgumentError(
                f"pair {asset_a!r}/{asset_b!r} does not match pool pair {self.pair.label}"
            )
        self._require_funded("get_price")
        return constant_product.spot_price(
            self._state.reserve_x, self._state.reserve_y, self.config.price_scale
        )

    def snapshot(self) -> PoolSnapshot:
        snap = PoolSnapshot(
            asset_x=self.asset_x,
            asset_y=self.asset_y,
            status=self.status,
            reserve_x=self._state.reserve_x,
            reserve_y=self._state.reserve_y,
            total_shares=self._state.total_shares,
            holders={k: v for k, v in self._state.shares.items() if v > 0},
            sequence=self._state.sequence,
        )
        if self.config.validate_contracts:
            validate_pool_snapshot(snap)
        return snap

    def subscribe(self, listener: EventListener):
        """Подписка на события пула. Возвращает функцию отписки."""
        return self.event_log.subscribe(listener)

    # =========================================================================
    # PREVIEWS
    # =========================================================================

    def preview_deposit(self, desired_x: int, desired_y: int) -> DepositResult:
        """Результат deposit для текущих резервов без переводов и без проверки минимумов."""
        s = self._state
        amounts = constant_product.match_deposit(
            desired_x, desired_y, s.reserve_x, s.reserve_y, s.total_shares
        )
        return DepositResult(*amounts)

    def preview_withdraw(self, shares: int) -> WithdrawResult:
        s = self._state
        amounts = constant_product.redeem_shares(shares, s.reserve_x, s.reserve_y, s.total_shares)
        return WithdrawResult(*amounts)

    # =========================================================================
    # STATE-CHANGING OPERATIONS
    # =========================================================================

    def deposit(
        self,
        caller: str,
        desired_x: int,
        desired_y: int,
        min_x: int,
        min_y: int,
        recipient: str,
    ) -> DepositResult:
        """Депозит пары активов в пул.

        Пустой пул принимает desired суммы целиком, shares_issued = used_x.
        Funded пул подгоняет суммы под текущее соотношение резервов, чтобы
        депозитор не сдвинул цену.

        Returns:
            DepositResult(used_x, used_y, shares_issued)

        Raises:
            InvalidArgumentError: невалидный caller/recipient, desired < min,
                нулевые суммы первого депозита, нулевой выпуск shares
            SlippageViolation: used_x < min_x или used_y < min_y
            AssetTransferRejected: ledger отклонил transfer_from
        """
        validate_identity(caller, "caller")
        validate_identity(recipient, "recipient")
        for name, value in (
            ("desired_x", desired_x), ("desired_y", desired_y), ("min_x", min_x), ("min_y", min_y)
        ):
            validate_amount(value, name)
        if desired_x < min_x or desired_y < min_y:
            raise InvalidArgumentError(
                f"desired amounts ({desired_x}, {desired_y}) below minimums ({min_x}, {min_y})"
            )

        with self._transaction("deposit") as tx:
            s = self._state
            used_x, used_y, shares_issued = constant_product.match_deposit(
                desired_x, desired_y, s.reserve_x, s.reserve_y, s.total_shares
            )
            if used_x < min_x:
                raise SlippageViolation("min_x", min_x, used_x)
            if used_y < min_y:
                raise SlippageViolation("min_y", min_y, used_y)
            if used_x <= 0 or used_y <= 0 or shares_issued <= 0:
                raise InvalidArgumentError(
                    f"deposit too small: used=({used_x}, {used_y}), shares_issued={shares_issued}"
                )

            self._pull(tx, self.ledger_x, caller, used_x)
            self._pull(tx, self.ledger_y, caller, used_y)

            s.reserve_x += used_x
            s.reserve_y += used_y
            s.total_shares += shares_issued
            s.shares[recipient] = s.shares.get(recipient, 0) + shares_issued

            tx.events.append(DepositEvent(
                sequence=self._next_sequence(),
                recipient=recipient,
                used_x=used_x,
                used_y=used_y,
                shares_issued=shares_issued,
            ))

        logger.info(
            "deposit %s: recipient=%s used=(%d, %d) shares=%d reserves=(%d, %d)",
            self.pair.label, recipient, used_x, used_y, shares_issued, s.reserve_x, s.reserve_y,
        )
        return DepositResult(used_x, used_y, shares_issued)

    def withdraw(
        self,
        caller: str,
        shares: int,
        min_x: int,
        min_y: int,
        recipient: str,
    ) -> WithdrawResult:
        """Погашение собственных shares вызывающего.

        out = shares * reserve / total_shares (floor, в пользу пула).
        Погашение последней share возвращает пул в EMPTY.

        Raises:
            InvalidArgumentError: shares <= 0, невалидный caller/recipient
            InsufficientBalanceError: у caller меньше shares, чем запрошено
            SlippageViolation: out_x < min_x или out_y < min_y
            AssetTransferRejected: ledger отклонил выплату
            RollbackIncomplete: уже выплаченную сумму не удалось вернуть
        """
        validate_identity(caller, "caller")
        validate_identity(recipient, "recipient")
        validate_positive_amount(shares, "shares")
        validate_amount(min_x, "min_x")
        validate_amount(min_y, "min_y")

        with self._transaction("withdraw") as tx:
            s = self._state
            held = s.shares.get(caller, 0)
            if held < shares:
                raise InsufficientBalanceError(f"{caller} holds {held} shares, requested {shares}")

            out_x, out_y = constant_product.redeem_shares(
                shares, s.reserve_x, s.reserve_y, s.total_shares
            )
            if out_x < min_x:
                raise SlippageViolation("min_x", min_x, out_x)
            if out_y < min_y:
                raise SlippageViolation("min_y", min_y, out_y)

            s.reserve_x -= out_x
            s.reserve_y -= out_y
            s.total_shares -= shares
            if held == shares:
                del s.shares[caller]
            else:
                s.shares[caller] = held - shares

            self._pay(tx, self.ledger_x, recipient, out_x)
            self._pay(tx, self.ledger_y, recipient, out_y)

            tx.events.append(WithdrawalEvent(
                sequence=self._next_sequence(),
                recipient=recipient,
                out_x=out_x,
                out_y=out_y,
            ))

        logger.info(
            "withdraw %s: caller=%s shares=%d out=(%d, %d) status=%s",
            self.pair.label, caller, shares, out_x, out_y, self.status.value,
        )
        return WithdrawResult(out_x, out_y)

    def swap(
        self,
        caller: str,
        amount_in: int,
        min_amount_out: int,
        path: Sequence[str],
        recipient: str,
    ) -> SwapResult:
        """Своп точного amount_in актива X на актив Y.

        amount_out = quote(amount_in, reserve_x, reserve_y); без комиссии.

        Raises:
            InvalidArgumentError: некорректный path, amount_in <= 0
            InsufficientOutputAmount: выход округлился до нуля
            InvalidStateError: пул пуст
            SlippageViolation: amount_out < min_amount_out
            AssetTransferRejected: ledger отклонил перевод
        """
        route = SwapPath.parse(path, self.pair)
        validate_identity(caller, "caller")
        validate_identity(recipient, "recipient")
        validate_positive_amount(amount_in, "amount_in")
        validate_amount(min_amount_out, "min_amount_out")

        with self._transaction("swap") as tx:
            self._require_funded("swap")
            amount_out = constant_product.quote(amount_in, self._state.reserve_x, self._state.reserve_y)
            if amount_out < min_amount_out:
                raise SlippageViolation("min_amount_out", min_amount_out, amount_out)
            self._execute_swap(tx, route, caller, amount_in, amount_out, recipient)

        return SwapResult(amount_in, amount_out)

    def swap_for_exact_output(
        self,
        caller: str,
        amount_out: int,
        max_amount_in: int,
        path: Sequence[str],
        recipient: str,
    ) -> SwapResult:
        """Своп актива X на точный amount_out актива Y.

        Требуемый вход: quote_in (ceil); вход сверх max_amount_in отклоняется.

        Raises:
            InvalidArgumentError: некорректный path, amount_out <= 0 или >= reserve_y
            InvalidStateError: пул пуст
            SlippageViolation: требуемый amount_in > max_amount_in
            AssetTransferRejected: ledger отклонил перевод
        """
        route = SwapPath.parse(path, self.pair)
        validate_identity(caller, "caller")
        validate_identity(recipient, "recipient")
        validate_positive_amount(amount_out, "amount_out")
        validate_positive_amount(max_amount_in, "max_amount_in")

        with self._transaction("swap_for_exact_output") as tx:
            self._require_funded("swap_for_exact_output")
            amount_in = constant_product.quote_in(amount_out, self._state.reserve_x, self._state.reserve_y)
            if amount_in > max_amount_in:
                raise SlippageViolation(
                    "max_amount_in", max_amount_in, amount_in,
                    f"required amount_in {amount_in} exceeds max_amount_in {max_amount_in}",
                )
            self._execute_swap(tx, route, caller, amount_in, amount_out, recipient)

        return SwapResult(amount_in, amount_out)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _execute_swap(
        self,
        tx: _Transaction,
        route: SwapPath,
        caller: str,
        amount_in: int,
        amount_out: int,
        recipient: str,
    ) -> None:
        s = self._state
        k_before = s.reserve_x * s.reserve_y

        self._pull(tx, self._ledgers[route.token_in], caller, amount_in)
        s.reserve_x += amount_in
        s.reserve_y -= amount_out
        if s.reserve_x * s.reserve_y < k_before:
            raise InvalidStateError(
                f"swap would decrease k: {k_before} -> {s.reserve_x * s.reserve_y}"
            )
        self._pay(tx, self._ledgers[route.token_out], recipient, amount_out)

        tx.events.append(SwapEvent(
            sequence=self._next_sequence(),
            caller=caller,
            amount_in=amount_in,
            amount_out=amount_out,
        ))
        logger.info(
            "swap %s: caller=%s in=%d %s out=%d %s reserves=(%d, %d)",
            self.pair.label, caller,
            amount_in, self.pair.asset_for(route.token_in),
            amount_out, self.pair.asset_for(route.token_out),
            s.reserve_x, s.reserve_y,
        )

    def _require_funded(self, operation: str) -> None:
        if self._state.total_shares == 0 or self._state.reserve_x == 0 or self._state.reserve_y == 0:
            raise InvalidStateError(f"{operation} requires a funded pool")

    def _next_sequence(self) -> int:
        self._state.sequence += 1
        return self._state.sequence

    def _pull(self, tx: _Transaction, ledger: FungibleAsset, owner: str, amount: int) -> None:
        """Перевод amount с owner в custody пула по allowance."""
        if amount == 0:
            return
        self._call_ledger(
            ledger, "transfer_from", amount,
            lambda: ledger.transfer_from(self.address, owner, self.address, amount),
        )
        tx.transfers.append(_Transfer(ledger, INBOUND, owner, amount))

    def _pay(self, tx: _Transaction, ledger: FungibleAsset, to: str, amount: int) -> None:
        """Выплата amount из custody пула получателю."""
        if amount == 0:
            return
        self._call_ledger(
            ledger, "transfer", amount,
            lambda: ledger.transfer(self.address, to, amount),
        )
        tx.transfers.append(_Transfer(ledger, OUTBOUND, to, amount))

    @staticmethod
    def _call_ledger(ledger: FungibleAsset, operation: str, amount: int, call) -> None:
        try:
            ok = call()
        except PoolError:
            raise
        except Exception as e:
            raise AssetTransferRejected(ledger.asset_id, operation, amount, f"failed: {e}") from e
        if not ok:
            raise AssetTransferRejected(ledger.asset_id, operation, amount)

    def _compensate(self, tx: _Transaction) -> List[_Transfer]:
        """Обратные переводы для журнала tx в обратном порядке.

        Returns:
            Переводы, которые ledger не позволил вернуть
        """
        unreversed: List[_Transfer] = []
        for t in reversed(tx.transfers):
            try:
                if t.direction == INBOUND:
                    ok = t.ledger.transfer(self.address, t.party, t.amount)
                else:
                    ok = t.ledger.transfer_from(self.address, t.party, self.address, t.amount)
            except Exception:
                logger.exception(
                    "%s on %s: reversal of %s %d %s failed",
                    tx.operation, self.pair.label, t.direction, t.amount, t.ledger.asset_id,
                )
                ok = False
            if not ok:
                unreversed.append(t)
        return unreversed

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[_Transaction]:
        with self._lock:
            if self._busy:
                raise InvalidStateError(f"reentrant call to {operation}")
            self._busy = True
            try:
                saved = self._state.copy()
                tx = _Transaction(operation)
                try:
                    yield tx
                    if self.config.validate_contracts:
                        for event in tx.events:
                            validate_pool_event(event)
                except Exception as e:
                    self._state = saved
                    unreversed = self._compensate(tx)
                    if unreversed:
                        logger.error(
                            "%s on %s rolled back with %d unreversed transfers: %s",
                            operation, self.pair.label, len(unreversed), e,
                        )
                        raise RollbackIncomplete(operation, [
                            (t.ledger.asset_id, t.direction, t.party, t.amount) for t in unreversed
                        ]) from e
                    logger.warning("%s on %s rolled back: %s", operation, self.pair.label, e)
                    raise
            finally:
                self._busy = False

            for event in tx.events:
                self.event_log.publish(event)

    def __repr__(self) -> str:
        s = self._state
        return (
            f"LiquidityPool({self.pair.label}, status={self.status.value}, "
            f"reserves=({s.reserve_x}, {s.reserve_y}), total_shares={s.total_shares})"
        )
