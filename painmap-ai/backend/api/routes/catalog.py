from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from schemas.catalog import MovementTest, MuscleUnionResponse, RegionListResponse, RegionResponse
from services.movement_tests import get_test_by_id, get_tests_for_regions, list_tests
from services.muscle_map import get_all_muscles_for_regions, get_muscles_for_region, list_regions

router = APIRouter()

RegionsQuery = Annotated[list[str] | None, Query()]


@router.get("/regions", response_model=RegionListResponse)
def regions():
    return RegionListResponse(regions=list_regions())


@router.get("/regions/muscles", response_model=MuscleUnionResponse)
def muscles_for_regions(regions: RegionsQuery = None):
    region_ids = regions or []
    return MuscleUnionResponse(regions=region_ids, muscles=sorted(get_all_muscles_for_regions(region_ids)))


@router.get("/regions/{region_id}", response_model=RegionResponse)
def region(region_id: str):
    mapping = get_muscles_for_region(region_id)
    if not mapping:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Region not found.")
    return RegionResponse(id=region_id, muscles=mapping)


@router.get("/movement-tests", response_model=list[MovementTest])
def movement_tests(regions: RegionsQuery = None):
    # No filter -> whole catalog; an explicit region filter uses overlap matching.
    if regions is None:
        return list_tests()
    return get_tests_for_regions(regions)


@router.get("/movement-tests/{test_id}", response_model=MovementTest)
def movement_test(test_id: str):
    test = get_test_by_id(test_id)
    if not test:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movement test not found.")
    return test
