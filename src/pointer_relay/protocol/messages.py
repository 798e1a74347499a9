from __future__ import annotations

import time
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pointer_relay.errors import ParseFailure


def now_ms() -> int:
    return int(time.time() * 1000)


class PositionSample(BaseModel):
    """
    One accepted pointer position.

    - **x, y**: pointer position in screen pixels, origin bottom-left
    - **screen_width, screen_height**: the screen the position was captured on
    - **timestamp**: producer-local ms clock; informational, never used for ordering
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore", allow_inf_nan=False)

    x: float
    y: float
    screen_width: Annotated[int, Field(alias="screenWidth", gt=0)]
    screen_height: Annotated[int, Field(alias="screenHeight", gt=0)]
    timestamp: int

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_wire(cls, raw: str | bytes) -> "PositionSample":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ParseFailure(f"not a position sample: {e.error_count()} error(s)") from e
