import logging
from typing import Any, Dict, Type, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ValidationError

log = logging.getLogger(__name__)

DECODE_ERROR = "Error decoding request body"

M = TypeVar("M", bound=BaseModel)

# pydantic error type -> constraint kind
CONSTRAINT_KINDS = {
    "missing": "required",
    "string_too_short": "required",
    "too_short": "required",
    "greater_than": "gt",
    "greater_than_equal": "gte",
    "less_than_equal": "lte",
    "literal_error": "oneof",
    "value_error": "email",
}

USER_MESSAGES = {
    "required": "is required",
    "email": "is not valid",
    "oneof": "must be either 'admin' or 'client'",
}

PRODUCT_MESSAGES = {
    "required": "is required",
    "gt": "must be greater than 0",
    "gte": "must be greater than or equal to 0",
    "lte": "is out of range",
}

ORDER_MESSAGES = {
    "required": "is required",
    "gt": "must be greater than 0",
    "lte": "is out of range",
}

PAYMENT_MESSAGES = {
    "required": "is required",
    "gt": "must be greater than 0",
    "lte": "is out of range",
}


def error_messages(exc: ValidationError, messages: Dict[str, str]):
    """
    Turn a pydantic ValidationError into "<field> <message>" strings.

    Returns None when any error is not a constraint failure (a value of the
    wrong JSON type, for instance): the body could not be decoded at all.
    """
    out = []
    for err in exc.errors():
        kind = CONSTRAINT_KINDS.get(err["type"])
        if kind is None:
            return None
        field = ".".join(str(part) for part in err["loc"])
        out.append(f"{field} {messages.get(kind, 'is invalid')}")
    return out


def validate(model: Type[M], data: Dict[str, Any], messages: Dict[str, str]) -> M:
    """Build `model` from a decoded JSON body or raise a 400 HTTPException.

    Null values count as absent, so a null required field reports "is required"
    and a null optional field is left unset.
    """
    data = {k: v for k, v in data.items() if v is not None}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = error_messages(e, messages)
        if errors is None:
            log.debug("Undecodable %s payload: %s", model.__name__, e)
            raise HTTPException(status_code=400, detail=DECODE_ERROR)
        raise HTTPException(status_code=400, detail="; ".join(errors))
