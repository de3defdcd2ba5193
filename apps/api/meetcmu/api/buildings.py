from fastapi import APIRouter

from meetcmu.core.campus import suggest_buildings

router = APIRouter(prefix="/buildings", tags=["buildings"])


@router.get("")
def list_buildings(q: str = ""):
    return {"buildings": suggest_buildings(q)}
