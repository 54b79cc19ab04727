# routes/city.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_admin
from model.city import City
from model.profiles.admin import Admin
from schema.city import CityCreate, CityUpdate, CityOut
from src.route_helpers import get_or_404, commit_or_409, apply_updates

router = APIRouter(prefix="/v1/cities", tags=["Cities"])

CITY_EXISTS = "City already exists"


def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(City.id).filter(City.name.ilike(name))
    if exclude_id is not None:
        q = q.filter(City.id != exclude_id)
    return q.first() is not None


@router.get("/", response_model=List[CityOut], openapi_extra={"security": []})
def list_cities(include_inactive: bool = False, db: Session = Depends(get_db)):
    q = db.query(City)
    if not include_inactive:
        q = q.filter(City.is_active.is_(True))
    return q.order_by(City.name.asc()).all()


@router.get("/search", response_model=List[CityOut], openapi_extra={"security": []})
def search_cities(q: str = Query(..., min_length=1), limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return (
        db.query(City)
        .filter(City.is_active.is_(True), City.name.ilike(f"%{q}%"))
        .order_by(City.name.asc())
        .limit(limit)
        .all()
    )


@router.post("/", response_model=CityOut, status_code=status.HTTP_201_CREATED, responses={409: {"description": CITY_EXISTS}})
def create_city(body: CityCreate, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    if _name_taken(db, body.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CITY_EXISTS)
    city = City(**body.model_dump())
    db.add(city)
    commit_or_409(db, CITY_EXISTS)
    db.refresh(city)
    return city


@router.get("/{city_id}", response_model=CityOut, openapi_extra={"security": []})
def get_city(city_id: int, db: Session = Depends(get_db)):
    return get_or_404(db, City, city_id, "City not found")


@router.put("/{city_id}", response_model=CityOut)
@router.patch("/{city_id}", response_model=CityOut)
def update_city(city_id: int, body: CityUpdate, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    city = get_or_404(db, City, city_id, "City not found")
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in data and _name_taken(db, data["name"], exclude_id=city.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CITY_EXISTS)
    apply_updates(city, data)
    commit_or_409(db, CITY_EXISTS)
    db.refresh(city)
    return city


@router.delete("/{city_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_city(city_id: int, db: Session = Depends(get_db), _: Admin = Depends(require_admin)):
    city = get_or_404(db, City, city_id, "City not found")
    db.delete(city)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
