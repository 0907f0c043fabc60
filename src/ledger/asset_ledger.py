"""
AssetLedger — In-memory fungible asset

Минимальный ledger взаимозаменяемого актива:
- balance_of / total_supply
- transfer (из собственных средств отправителя)
- approve / allowance / transfer_from (по предварительному разрешению)
- mint on demand, доступный только владельцу выпуска (owner-gated)

Ошибки перевода не бросают исключений: transfer / transfer_from
возвращают False. Ошибки администрирования (mint не владельцем,
невалидные аргументы) бросают LedgerError.
"""

import logging
import threading
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Ошибка ledger актива (невалидный аргумент или нарушение прав)."""


class AssetLedger:
    """
    Ledger одного fungible актива.

    Изменения баланса и allowance сериализуются RLock: один ledger
    разделяется несколькими пулами, работающими параллельно.
    """

    def __init__(self, asset_id: str, owner: str):
        if not asset_id:
            raise LedgerError("asset_id must be non-empty")
        if not owner:
            raise LedgerError("owner must be non-empty")

        self.asset_id = asset_id
        self.owner = owner
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Read-only
    # -------------------------------------------------------------------------

    def balance_of(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    # -------------------------------------------------------------------------
    # Issuance control
    # -------------------------------------------------------------------------

    def mint(self, caller: str, to: str, amount: int) -> None:
        """
        Выпуск новых единиц актива.

        Raises:
            LedgerError: caller не владелец, пустой получатель, amount <= 0
        """
        if caller != self.owner:
            raise LedgerError(f"only owner may mint {self.asset_id}, caller={caller!r}")
        self._check_amount(amount, allow_zero=False)
        if not to:
            raise LedgerError("mint recipient must be non-empty")

        with self._lock:
            self._balances[to] = self.balance_of(to) + amount
            self._total_supply += amount
        logger.debug("mint %s: %d -> %s", self.asset_id, amount, to)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if caller != self.owner:
            raise LedgerError(f"only owner may transfer ownership of {self.asset_id}")
        if not new_owner:
            raise LedgerError("new owner must be non-empty")
        self.owner = new_owner

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Разрешение spender списывать до amount единиц с owner."""
        self._check_amount(amount, allow_zero=True)
        if not owner or not spender:
            return False
        with self._lock:
            self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._check_amount(amount, allow_zero=True)
        with self._lock:
            if not to or self.balance_of(sender) < amount:
                logger.debug(
                    "transfer %s rejected: %s -> %s amount=%d balance=%d",
                    self.asset_id, sender, to, amount, self.balance_of(sender),
                )
                return False
            self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        self._check_amount(amount, allow_zero=True)
        with self._lock:
            allowed = self.allowance(owner, spender)
            if not to or allowed < amount or self.balance_of(owner) < amount:
                logger.debug(
                    "transfer_from %s rejected: %s -> %s amount=%d allowance=%d balance=%d",
                    self.asset_id, owner, to, amount, allowed, self.balance_of(owner),
                )
                return False
            self._allowances[(owner, spender)] = allowed - amount
            self._move(owner, to, amount)
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount == 0:
            return
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[to] = self.balance_of(to) + amount

    @staticmethod
    def _check_amount(amount: int, allow_zero: bool) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise LedgerError(f"amount must be an integer, got {amount!r}")
        if amount < 0 or (amount == 0 and not allow_zero):
            raise LedgerError(f"invalid amount {amount}")

    def __repr__(self) -> str:
        return f"AssetLedger({self.asset_id!r}, holders={len(self._balances)}, supply={self._total_supply})"
