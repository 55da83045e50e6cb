from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from schemas.common import CamelModel


class MuscleMapping(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    primary: tuple[str, ...]
    secondary: tuple[str, ...]
    nerves: tuple[str, ...]


class ExpectedFindings(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    positive: str
    negative: str


class MovementTest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    target_area: tuple[str, ...]
    target_muscles: tuple[str, ...]
    instructions: tuple[str, ...]
    demonstration_url: str | None = None
    duration: int  # seconds
    repetitions: int | None = None
    expected_findings: ExpectedFindings


class RegionResponse(CamelModel):
    id: str
    muscles: MuscleMapping


class RegionListResponse(CamelModel):
    regions: list[str]


class MuscleUnionResponse(CamelModel):
    regions: list[str]
    muscles: list[str]
