"""
Общие помощники прикладного слоя.
"""

from typing import Any, Dict, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .domain import DomainValidationException

R = TypeVar("R", bound=BaseModel)


def parse_request(model_class: Type[R], payload: Union[R, Dict[str, Any]]) -> R:
    """Превращает входные данные в запрос, ошибки pydantic - в ValidationError домена."""
    if isinstance(payload, model_class):
        return payload
    try:
        return model_class.model_validate(payload)
    except ValidationError as e:
        raise DomainValidationException(
            f"Некорректный запрос {model_class.__name__}",
            details={
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]
            },
        ) from e
