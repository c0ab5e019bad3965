"""Pagination dependencies.

Table-backed listings use fastapi-pagination pages. The queue is ranked in
memory, so it takes plain limit/offset parameters instead.
"""

from typing import Annotated

from fastapi import Depends
from fastapi_pagination import Params
from pydantic import BaseModel, Field

from tenure.core.config import settings


class DefaultParams(Params):
    page: int = Field(default=1, ge=1)
    size: int = Field(
        default=settings.pagination_page_size,
        ge=1,
        le=settings.pagination_page_size_max,
    )


ParamsDep = Annotated[DefaultParams, Depends()]


class LimitOffsetParams(BaseModel):
    limit: int = Field(
        default=settings.pagination_page_size,
        ge=1,
        le=settings.pagination_page_size_max,
    )
    offset: int = Field(default=0, ge=0)


LimitOffsetDep = Annotated[LimitOffsetParams, Depends()]
