from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


SCORABLE_VALUES = frozenset(list(range(0, 21)) + [25, 50])


class GameMode(str, Enum):
    X301 = "301"
    X501 = "501"
    CRICKET = "cricket"
    PRACTICE = "practice"

    @property
    def starting_score(self) -> Optional[int]:
        if self in (GameMode.X301, GameMode.X501):
            return int(self.value)
        return None


class CalibrationModel(BaseModel):
    """Outer double-ring ellipse of the board in image pixels."""

    model_config = ConfigDict(frozen=True)

    center_x: float
    center_y: float
    radius_x: float = Field(gt=0)
    radius_y: float = Field(gt=0)
    # radians, clockwise in image coordinates (y grows downward)
    rotation: float = 0.0


class ImagePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class CanonicalPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class ScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: int
    multiplier: int = Field(default=1, ge=1, le=3)

    @model_validator(mode="after")
    def _check_value(self) -> "ScoreResult":
        if self.value not in SCORABLE_VALUES:
            raise ValueError(f"{self.value} is not a dartboard value")
        if self.value == 0 and self.multiplier != 1:
            raise ValueError("a miss always has multiplier 1")
        return self

    @property
    def total(self) -> int:
        return self.value * self.multiplier

    @property
    def label(self) -> str:
        if self.value == 0:
            return "MISS"
        prefix = {2: "D", 3: "T"}.get(self.multiplier, "")
        return f"{prefix}{self.value}"


class Throw(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    score: int
    multiplier: int
    timestamp: int
    position: Optional[ImagePoint] = None

    @property
    def total(self) -> int:
        return self.score * self.multiplier

    @property
    def label(self) -> str:
        return ScoreResult(value=self.score, multiplier=self.multiplier).label


class Player(BaseModel):
    id: str
    name: str = Field(min_length=1)
    score: int = 0
    throws: list[Throw] = Field(default_factory=list)


class PlayerStanding(BaseModel):
    index: int
    player_id: str
    name: str
    score: int
    is_current: bool
    last_throws: list[str]
    total_darts: int
    checkouts: list[list[str]] = Field(default_factory=list)


class Detection(BaseModel):
    # x, y, width, height in pixels
    bbox: tuple[float, float, float, float]
    label: str
    score: float = Field(ge=0.0, le=1.0)


class AutoCalibrationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: CalibrationModel
    score: float
    confidence: float
    is_fallback: bool = False
