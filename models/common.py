"""Shared pydantic base class and enumerations for the wire models."""
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

Kind = Literal['expense', 'income']
PaymentType = Literal['cash', 'card', 'bill', 'transfer', 'other']
Scope = Literal['user', 'family']

# Fixed chart order for the monthly report
PAYMENT_TYPES = ('cash', 'card', 'bill', 'transfer', 'other')

# Values sent by the Portuguese-language client
KIND_ALIASES: Dict[str, str] = {
    'despesa': 'expense',
    'receita': 'income',
}
PAYMENT_TYPE_ALIASES: Dict[str, str] = {
    'dinheiro': 'cash',
    'cartão': 'card',
    'cartao': 'card',
    'boleto': 'bill',
    'transferência': 'transfer',
    'transferencia': 'transfer',
    'outro': 'other',
}


def normalize_kind(value: Any) -> Any:
    if isinstance(value, str):
        key = value.strip().lower()
        return KIND_ALIASES.get(key, key)
    return value


def normalize_payment_type(value: Any) -> Any:
    if isinstance(value, str):
        key = value.strip().lower()
        return PAYMENT_TYPE_ALIASES.get(key, key)
    return value


def client_id_to_str(value: Any) -> Any:
    """Offline clients may number their records (e.g. with a millisecond clock)."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class ApiModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire and in MongoDB."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class CredentialPayload(ApiModel):
    """Body fields every authenticated mutation carries."""
    user_id: str = Field(..., min_length=1)
    device_token: str = Field(..., min_length=1)
