from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, constr


class CityCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    state: constr(strip_whitespace=True, min_length=1, max_length=120)
    country: constr(strip_whitespace=True, min_length=1, max_length=120) = "India"
    is_active: bool = True


class CityUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    state: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    country: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    is_active: Optional[bool] = None


class CityOut(BaseModel):
    id: int
    name: str
    state: str
    country: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


__all__ = ["CityCreate", "CityUpdate", "CityOut"]
