"""
Helpers shared by the workflow services.
"""

from datetime import datetime
from typing import Any, Callable, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError

Clock = Callable[[], datetime]

M = TypeVar("M", bound=BaseModel)


def parse_input(model_cls: Type[M], operation: str, entity_id: Any = None, **data: Any) -> M:
    """
    Validate raw input against a Pydantic model.

    Raises:
        ValidationError: With every field problem joined into one message
    """
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(problems, operation=operation, entity_id=entity_id) from e
