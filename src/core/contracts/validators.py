"""
Pool Contracts — JSON Schema контракты снапшотов и событий пула

Контракты описывают внешнее (JSON) представление пула: то, что
получает подписчик событий или потребитель снапшота. Pydantic модели
проверяют инварианты внутри процесса, схемы фиксируют формат на границе.

Схемы (Draft 2020-12, поставляются с пакетом в schema/):
- pool_snapshot.json
- pool_event.json (deposit / withdrawal / swap, дискриминатор kind)
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Union

import jsonschema
from jsonschema import Draft202012Validator
from pydantic import BaseModel

SCHEMA_DIR = Path(__file__).parent / "schema"

ContractPayload = Union[BaseModel, Dict[str, Any]]


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> Dict[str, Any]:
    """
    Загрузка и meta-validation схемы контракта.

    Raises:
        FileNotFoundError: схема не поставляется с пакетом
        ValueError: схема не проходит meta-validation
    """
    schema_path = SCHEMA_DIR / f"{schema_name}.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")

    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)

    try:
        Draft202012Validator.check_schema(schema)
    except jsonschema.SchemaError as e:
        raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e
    return schema


def _as_json(payload: ContractPayload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return payload


class PoolContract:
    """Контракт одного вида payload пула (снапшот или событие)."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self._validator = Draft202012Validator(load_schema(schema_name))

    def validate(self, payload: ContractPayload) -> None:
        """
        Raises:
            jsonschema.ValidationError: payload не соответствует контракту
        """
        self._validator.validate(_as_json(payload))

    def is_valid(self, payload: ContractPayload) -> bool:
        return self._validator.is_valid(_as_json(payload))

    def violations(self, payload: ContractPayload) -> List[str]:
        """Все нарушения контракта в виде "path: message", упорядоченные по пути."""
        errors = sorted(self._validator.iter_errors(_as_json(payload)), key=lambda e: list(e.path))
        return [f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errors]


SNAPSHOT_CONTRACT = PoolContract("pool_snapshot")
EVENT_CONTRACT = PoolContract("pool_event")


def validate_pool_snapshot(payload: ContractPayload) -> None:
    SNAPSHOT_CONTRACT.validate(payload)


def validate_pool_event(payload: ContractPayload) -> None:
    EVENT_CONTRACT.validate(payload)
