from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr  # constr pour valider name (string non vide)


class ProductCreate(BaseModel):
    id: Optional[int] = Field(default=None, ge=0)  # Absent: next free id
    name: constr(min_length=1)
    price: float = Field(ge=0, allow_inf_nan=False)


class ProductUpdate(BaseModel):
    id: Optional[int] = None  # Ignored, the path id wins
    name: constr(min_length=1)
    price: float = Field(ge=0, allow_inf_nan=False)


class ProductResponse(BaseModel):
    id: int
    name: str
    price: float

    model_config = ConfigDict(from_attributes=True)


class DeleteResponse(BaseModel):
    result: str = "success"
