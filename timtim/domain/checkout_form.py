"""
Pydantic model for the checkout form.

Every field is validated by a single validator so that an invalid field
yields exactly one message, shown next to that field. Messages are in
Portuguese because they go straight to the shopper.
"""
from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from timtim.domain.order import CustomerInfo, ShippingAddress

LETTERS_RE = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\(\d{2}\)\s\d{4,5}-\d{4}$")
CEP_RE = re.compile(r"^\d{5}-\d{3}$")
HOUSE_NUMBER_RE = re.compile(r"^[0-9a-zA-Z\s]+$")
STATE_RE = re.compile(r"^[A-Z]{2}$")


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError("checkout_field", message)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value)


class CheckoutForm(BaseModel):
    """Customer contact and delivery address entered at checkout."""

    model_config = ConfigDict(validate_default=True, extra="ignore")

    name: str = ""
    email: Optional[str] = None
    phone: str = ""
    cep: str = ""
    address: str = ""
    number: str = ""
    complement: Optional[str] = None
    neighborhood: str = ""
    city: str = ""
    state: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("Nome completo é obrigatório")
        if len(value) < 3:
            raise _invalid("Nome deve ter pelo menos 3 caracteres")
        if len(value) > 100:
            raise _invalid("Nome muito longo")
        if not LETTERS_RE.match(value):
            raise _invalid("Nome deve conter apenas letras")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> Optional[str]:
        value = _text(v)
        if not value:
            return None
        if not EMAIL_RE.match(value):
            raise _invalid("Email inválido")
        return value

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("Telefone é obrigatório")
        if not PHONE_RE.match(value):
            raise _invalid("Telefone inválido. Use o formato (00) 00000-0000 ou (00) 0000-0000")
        if len(_digits(value)) not in (10, 11):
            raise _invalid("Telefone deve ter 10 ou 11 dígitos")
        return value

    @field_validator("cep", mode="before")
    @classmethod
    def validate_cep(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("CEP é obrigatório")
        if not CEP_RE.match(value):
            raise _invalid("CEP inválido. Use o formato 00000-000")
        if len(_digits(value)) != 8:
            raise _invalid("CEP deve ter 8 dígitos")
        return value

    @field_validator("address", mode="before")
    @classmethod
    def validate_address(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("Endereço é obrigatório")
        if len(value) < 5:
            raise _invalid("Endereço deve ter pelo menos 5 caracteres")
        if len(value) > 200:
            raise _invalid("Endereço muito longo")
        return value

    @field_validator("number", mode="before")
    @classmethod
    def validate_number(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("Número é obrigatório")
        if len(value) > 10:
            raise _invalid("Número muito longo")
        if not HOUSE_NUMBER_RE.match(value):
            raise _invalid("Número inválido")
        return value

    @field_validator("complement", mode="before")
    @classmethod
    def validate_complement(cls, v: Any) -> Optional[str]:
        value = _text(v)
        if not value:
            return None
        if len(value) > 100:
            raise _invalid("Complemento muito longo")
        return value

    @field_validator("neighborhood", mode="before")
    @classmethod
    def validate_neighborhood(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("Bairro é obrigatório")
        if len(value) < 3:
            raise _invalid("Bairro deve ter pelo menos 3 caracteres")
        if len(value) > 100:
            raise _invalid("Bairro muito longo")
        return value

    @field_validator("city", mode="before")
    @classmethod
    def validate_city(cls, v: Any) -> str:
        value = _text(v)
        if not value:
            raise _invalid("Cidade é obrigatória")
        if len(value) < 3:
            raise _invalid("Cidade deve ter pelo menos 3 caracteres")
        if len(value) > 100:
            raise _invalid("Cidade muito longa")
        if not LETTERS_RE.match(value):
            raise _invalid("Cidade deve conter apenas letras")
        return value

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v: Any) -> str:
        value = _text(v).upper()
        if not value:
            raise _invalid("Estado é obrigatório")
        if len(value) != 2:
            raise _invalid("Estado deve ter exatamente 2 caracteres")
        if not STATE_RE.match(value):
            raise _invalid("Estado deve conter apenas letras maiúsculas")
        return value

    def customer_info(self) -> CustomerInfo:
        return CustomerInfo(name=self.name, phone=self.phone, email=self.email)

    def shipping_address(self) -> ShippingAddress:
        return ShippingAddress(
            postal_code=self.cep,
            street=self.address,
            number=self.number,
            complement=self.complement,
            neighborhood=self.neighborhood,
            city=self.city,
            state=self.state,
        )


def validate_checkout_form(data: Mapping[str, Any]) -> tuple[CheckoutForm | None, dict[str, str]]:
    """Validate raw form input; returns the form or one message per invalid field."""
    try:
        return CheckoutForm.model_validate(dict(data)), {}
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors():
            field_name = str(error["loc"][0]) if error["loc"] else "__all__"
            errors.setdefault(field_name, error["msg"])
        return None, errors
