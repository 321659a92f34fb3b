from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    # Wire format is camelCase (sourceAmount, targetCurrency, ...); Python side stays snake_case.
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


def _upper(v):  # noqa: ANN001
    return v.strip().upper() if isinstance(v, str) else v


# Shape only; ISO 4217 membership is checked by the converter so it can raise its own error kind.
CurrencyCode = Annotated[str, BeforeValidator(_upper), StringConstraints(min_length=3, max_length=3)]
