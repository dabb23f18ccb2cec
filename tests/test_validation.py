import pytest
from fastapi import HTTPException

from schemas import OrderIn, PaymentIn, ProductIn, ProductUpdate, UserIn, UserUpdate
from validation import (
    DECODE_ERROR, ORDER_MESSAGES, PAYMENT_MESSAGES, PRODUCT_MESSAGES, USER_MESSAGES, validate,
)


def validation_error(model, data, messages):
    with pytest.raises(HTTPException) as exc_info:
        validate(model, data, messages)
    assert exc_info.value.status_code == 400
    return exc_info.value.detail


def test_valid_user_passes():
    user = validate(UserIn, {"name": "John Doe", "email": "john@example.com", "role": "client"}, USER_MESSAGES)
    assert user.name == "John Doe"
    assert user.address is None


def test_missing_fields_are_reported_in_declaration_order():
    detail = validation_error(UserIn, {"name": "John Doe"}, USER_MESSAGES)
    assert detail == "email is required; role is required"


def test_user_message_table():
    assert validation_error(
        UserIn, {"name": "John", "email": "not-an-email", "role": "client"}, USER_MESSAGES
    ) == "email is not valid"
    assert validation_error(
        UserIn, {"name": "John", "email": "john@example.com", "role": "guest"}, USER_MESSAGES
    ) == "role must be either 'admin' or 'client'"


def test_null_and_empty_count_as_missing():
    detail = validation_error(UserIn, {"name": "", "email": None, "role": "admin"}, USER_MESSAGES)
    assert detail == "name is required; email is required"


def test_product_message_table():
    payload = {"name": "Lamp", "description": "Desk lamp", "price": 0, "category": "home", "quantity": -1}
    detail = validation_error(ProductIn, payload, PRODUCT_MESSAGES)
    assert detail == "price must be greater than 0; quantity must be greater than or equal to 0"


def test_zero_quantity_is_allowed():
    payload = {"name": "Lamp", "description": "Desk lamp", "price": 49.5, "category": "home", "quantity": 0}
    assert validate(ProductIn, payload, PRODUCT_MESSAGES).quantity == 0


def test_order_rules():
    detail = validation_error(OrderIn, {"user_id": 0, "product_ids": [], "total_price": 10, "status": "new"}, ORDER_MESSAGES)
    assert detail == "user_id must be greater than 0; product_ids is required"


def test_payment_rules():
    detail = validation_error(PaymentIn, {"user_id": 1, "order_id": 1, "amount": -5}, PAYMENT_MESSAGES)
    assert detail == "amount must be greater than 0"


def test_wrong_json_type_is_a_decode_error():
    payload = {"user_id": "abc", "product_ids": [1], "total_price": 10, "status": "new"}
    assert validation_error(OrderIn, payload, ORDER_MESSAGES) == DECODE_ERROR

    payload = {"user_id": 1, "product_ids": ["x"], "total_price": 10, "status": "new"}
    assert validation_error(OrderIn, payload, ORDER_MESSAGES) == DECODE_ERROR


def test_update_models_only_check_present_fields():
    assert validate(UserUpdate, {"name": "Jane Doe"}, USER_MESSAGES).email is None
    assert validate(ProductUpdate, {}, PRODUCT_MESSAGES).price is None
    assert validation_error(ProductUpdate, {"price": 0}, PRODUCT_MESSAGES) == "price must be greater than 0"
    assert validation_error(UserUpdate, {"role": "root"}, USER_MESSAGES) == "role must be either 'admin' or 'client'"


def test_quantity_beyond_column_range():
    payload = {"name": "Lamp", "description": "Desk lamp", "price": 49.5, "category": "home", "quantity": 2**40}
    assert validation_error(ProductIn, payload, PRODUCT_MESSAGES) == "quantity is out of range"
