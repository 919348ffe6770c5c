from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CartLineDTO, CreateOrderDTO, CustomerDTO, PaymentResultDTO

pytestmark = pytest.mark.unit


@pytest.fixture()
def customer_dto(customer_payload) -> CustomerDTO:
    return CustomerDTO(**customer_payload)


class TestCustomerDTO:
    def test_normalises_email_and_country(self, customer_payload):
        dto = CustomerDTO(**{**customer_payload, "email": " Jane@Example.COM ", "country_code": "gb "})
        assert dto.email == "jane@example.com"
        assert dto.country_code == "GB"

    @pytest.mark.parametrize(
        "email",
        ["jane", "jane@localhost", "@example.com", "jane@.com", "ja ne@example.com", "jane@example."],
    )
    def test_rejects_invalid_email(self, customer_payload, email):
        with pytest.raises(ValidationError):
            CustomerDTO(**{**customer_payload, "email": email})

    @pytest.mark.parametrize("field", ["first_name", "last_name", "address", "city"])
    def test_rejects_blank_required_text(self, customer_payload, field):
        with pytest.raises(ValidationError):
            CustomerDTO(**{**customer_payload, field: "   "})

    def test_is_frozen(self, customer_dto):
        with pytest.raises(ValidationError):
            customer_dto.city = "Elsewhere"


class TestCartLineDTO:
    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError):
            CartLineDTO(product_id=uuid4(), quantity=quantity)


class TestCreateOrderDTO:
    def test_requires_items(self, customer_dto):
        with pytest.raises(ValidationError):
            CreateOrderDTO(customer=customer_dto, items=[], payment_method=PaymentMethod.CARD)

    def test_rejects_unknown_payment_method(self, customer_dto):
        with pytest.raises(ValidationError):
            CreateOrderDTO(
                customer=customer_dto,
                items=[CartLineDTO(product_id=uuid4(), quantity=1)],
                payment_method="bitcoin",
            )

    def test_merged_items_folds_repeated_products(self, customer_dto):
        shirt, scarf = uuid4(), uuid4()
        dto = CreateOrderDTO(
            customer=customer_dto,
            items=[
                CartLineDTO(product_id=shirt, quantity=1),
                CartLineDTO(product_id=scarf, quantity=2),
                CartLineDTO(product_id=shirt, quantity=3),
            ],
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
        )

        merged = dto.merged_items()

        assert [(line.product_id, line.quantity) for line in merged] == [
            (shirt, 4),
            (scarf, 2),
        ]


class TestPaymentResultDTO:
    def test_strips_status(self):
        assert PaymentResultDTO(provider_status=" Authorised ").provider_status == "Authorised"

    def test_status_required(self):
        with pytest.raises(ValidationError):
            PaymentResultDTO(provider_status="  ")

    def test_amount_defaults_to_unknown(self):
        dto = PaymentResultDTO(provider_status="succeeded")
        assert dto.amount_minor is None
        assert dto.payment_details == {}
