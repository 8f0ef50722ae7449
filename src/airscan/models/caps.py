"""Scanner capability records, as negotiated from ScannerCapabilities."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ColorMode(str, Enum):
    COLOR = "Color"
    GRAYSCALE = "Gray"
    LINEART = "Lineart"


class ScanSource(str, Enum):
    """Scan input, declared in the order of preference for the default."""

    PLATEN = "Flatbed"
    ADF_SIMPLEX = "ADF"
    ADF_DUPLEX = "ADF Duplex"


class Range(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    min: float
    max: float
    quant: float = 0

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def fit(self, value: float) -> float:
        """Clamp value into the range and align it to the step."""
        value = min(max(value, self.min), self.max)
        if self.quant > 0:
            steps = round((value - self.min) / self.quant)
            value = self.min + steps * self.quant
            if value > self.max:
                value -= self.quant
        return value


class SourceCaps(BaseModel):
    """Parameters supported by a single scan source."""

    model_config = {"extra": "forbid"}

    colormodes: list[ColorMode]
    resolutions: list[int] = Field(default_factory=list)
    res_range: Range | None = None
    tl_x_range: Range
    tl_y_range: Range
    br_x_range: Range
    br_y_range: Range

    @property
    def discrete_resolutions(self) -> bool:
        return bool(self.resolutions)

    def supports_resolution(self, value: int) -> bool:
        if self.discrete_resolutions:
            return value in self.resolutions
        return self.res_range is not None and self.res_range.contains(value)

    def choose_colormode(self, wanted: ColorMode | None = None) -> ColorMode:
        if wanted is not None and wanted in self.colormodes:
            return wanted
        for mode in ColorMode:
            if mode in self.colormodes:
                return mode
        raise ValueError("source has no color modes")

    def choose_resolution(self, wanted: int) -> int:
        if self.discrete_resolutions:
            return min(self.resolutions, key=lambda res: (abs(res - wanted), res))
        if self.res_range is None:
            raise ValueError("source has no resolutions")
        return int(round(self.res_range.fit(wanted)))


class DeviceCaps(BaseModel):
    model_config = {"extra": "forbid"}

    vendor: str = ""
    model: str = ""
    sources: dict[ScanSource, SourceCaps] = Field(default_factory=dict)

    def first_source(self) -> ScanSource | None:
        for source in ScanSource:
            if source in self.sources:
                return source
        return None

    def source_names(self) -> list[str]:
        return [source.value for source in ScanSource if source in self.sources]
