"""Контракт коллаборатора пула: fungible asset ledger."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class FungibleAsset(Protocol):
    """
    Минимальная возможность перевода стоимости, потребляемая пулом.

    transfer / transfer_from возвращают признак успеха; falsy результат
    и исключение трактуются пулом одинаково (полный откат операции).
    Откат выполняется компенсирующими переводами через этот же интерфейс,
    поэтому другие методы от ledger не требуются.
    """

    asset_id: str

    def balance_of(self, identity: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...
