"""
Pool Errors — Таксономия ошибок пула ликвидности

Все ошибки детектируются синхронно до или во время операции и приводят
к полному откату операции. Локального восстановления нет: ошибка
передаётся вызывающему с человекочитаемой причиной.

Категории:
- InvalidArgumentError: невалидная идентичность, неположительные суммы,
  некорректный path, несовпадающая пара активов
- SlippageViolation: вычисленная сумма вне границы, заданной вызывающим
- InsufficientBalanceError: недостаточно shares или ledger отклонил transfer
- InvalidStateError: операция невозможна в текущем состоянии пула
- ConfigurationError: фатальная ошибка конфигурации при создании пула
- RollbackIncomplete: ledger отклонил компенсирующий перевод при откате
"""

from typing import List, Optional, Tuple


class PoolError(Exception):
    """Базовое исключение пула ликвидности."""


class ConfigurationError(PoolError):
    """
    Фатальная ошибка конфигурации.

    Возникает при создании пула с пустыми или совпадающими идентификаторами
    активов, либо при невалидном PoolConfig.
    """


class InvalidArgumentError(PoolError, ValueError):
    """Невалидный аргумент операции."""


class InsufficientOutputAmount(InvalidArgumentError):
    """
    Выход constant-product формулы округлился до нуля.

    Сделка с исчезающе малым amount_in против глубоких резервов отклоняется,
    а не принимается как бесплатная no-op операция.
    """


class SlippageViolation(PoolError):
    """
    Нарушение slippage bound, заданного вызывающим.

    Attributes:
        side: Какая граница нарушена (например, "min_x", "min_amount_out")
        bound: Значение границы
        actual: Фактически вычисленное значение
    """

    def __init__(self, side: str, bound: int, actual: int, message: Optional[str] = None):
        self.side = side
        self.bound = bound
        self.actual = actual
        super().__init__(
            message or f"slippage bound violated: {side} bound={bound}, actual={actual}"
        )


class InsufficientBalanceError(PoolError):
    """Недостаточно shares у вызывающего или недостаточно средств в ledger."""


class AssetTransferRejected(InsufficientBalanceError):
    """
    Ledger актива отклонил transfer / transfer_from.

    Falsy результат и исключение ledger трактуются одинаково.
    Исходное исключение (если было) доступно через __cause__.
    """

    def __init__(self, asset_id: str, operation: str, amount: int, reason: str = "rejected"):
        self.asset_id = asset_id
        self.operation = operation
        self.amount = amount
        super().__init__(f"{operation} of {amount} {asset_id} {reason}")


class InvalidStateError(PoolError):
    """Операция невозможна в текущем состоянии пула (пустой пул, нулевой резерв, reentrancy)."""


class RollbackIncomplete(InvalidStateError):
    """
    Откат операции не смог вернуть часть уже выполненных переводов.

    Состояние пула восстановлено, но ledger отклонил компенсирующий перевод:
    custody пула расходится с резервами на перечисленные суммы.

    Attributes:
        operation: Имя отменённой операции
        transfers: Не возвращённые переводы (asset_id, direction, party, amount)
    """

    def __init__(self, operation: str, transfers: List[Tuple[str, str, str, int]]):
        self.operation = operation
        self.transfers = transfers
        details = ", ".join(
            f"{direction} {amount} {asset_id} ({party})"
            for asset_id, direction, party, amount in transfers
        )
        super().__init__(f"{operation} rollback incomplete, unreversed transfers: {details}")
