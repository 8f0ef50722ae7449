"""User-selectable scan options derived from negotiated capabilities."""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from pydantic import BaseModel

from airscan.errors import InvalidArgumentError, OutOfRangeError
from airscan.models import ColorMode, DeviceCaps, Range, ScanSource, SourceCaps

DEFAULT_RESOLUTION = 300


class OptionId(IntEnum):
    NUM_OPTIONS = 0
    GROUP_STANDARD = 1
    SCAN_RESOLUTION = 2
    SCAN_COLORMODE = 3
    SCAN_SOURCE = 4
    GROUP_GEOMETRY = 5
    SCAN_TL_X = 6
    SCAN_TL_Y = 7
    SCAN_BR_X = 8
    SCAN_BR_Y = 9


NUM_OPTIONS = len(OptionId)

GROUP_OPTIONS = frozenset({OptionId.GROUP_STANDARD, OptionId.GROUP_GEOMETRY})

GEOMETRY_OPTIONS = {
    OptionId.SCAN_TL_X: ("tl_x", "tl_x_range"),
    OptionId.SCAN_TL_Y: ("tl_y", "tl_y_range"),
    OptionId.SCAN_BR_X: ("br_x", "br_x_range"),
    OptionId.SCAN_BR_Y: ("br_y", "br_y_range"),
}

# name, title, unit
_OPTION_INFO: dict[OptionId, tuple[str, str, str | None]] = {
    OptionId.NUM_OPTIONS: ("", "Number of options", None),
    OptionId.GROUP_STANDARD: ("standard", "Standard", None),
    OptionId.SCAN_RESOLUTION: ("resolution", "Scan resolution", "dpi"),
    OptionId.SCAN_COLORMODE: ("mode", "Scan mode", None),
    OptionId.SCAN_SOURCE: ("source", "Scan source", None),
    OptionId.GROUP_GEOMETRY: ("geometry", "Geometry", None),
    OptionId.SCAN_TL_X: ("tl-x", "Top-left x", "mm"),
    OptionId.SCAN_TL_Y: ("tl-y", "Top-left y", "mm"),
    OptionId.SCAN_BR_X: ("br-x", "Bottom-right x", "mm"),
    OptionId.SCAN_BR_Y: ("br-y", "Bottom-right y", "mm"),
}


class OptionDescriptor(BaseModel):
    model_config = {"frozen": True}

    id: OptionId
    name: str
    title: str
    unit: str | None = None
    settable: bool = False
    constraint: Range | list[int] | list[str] | None = None


def option_id(value: int) -> OptionId:
    try:
        return OptionId(value)
    except ValueError as exc:
        raise InvalidArgumentError(f"unknown option {value}") from exc


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class DeviceOptions:
    """Current option values of a device.

    Selecting a source resets color mode, resolution and scan area to
    defaults valid for that source.
    """

    def __init__(self, caps: DeviceCaps, source: ScanSource) -> None:
        self._caps = caps
        self.source = source
        self.colormode = ColorMode.COLOR
        self.resolution = DEFAULT_RESOLUTION
        self.tl_x = 0.0
        self.tl_y = 0.0
        self.br_x = 0.0
        self.br_y = 0.0
        self.set_source(source)

    @property
    def caps(self) -> DeviceCaps:
        return self._caps

    @property
    def source_caps(self) -> SourceCaps:
        return self._caps.sources[self.source]

    def set_source(self, source: ScanSource) -> None:
        src = self._caps.sources[source]
        self.source = source
        self.colormode = src.choose_colormode()
        self.resolution = src.choose_resolution(DEFAULT_RESOLUTION)
        self.tl_x = 0.0
        self.tl_y = 0.0
        self.br_x = src.br_x_range.max
        self.br_y = src.br_y_range.max

    def get(self, option: int) -> int | float | str:
        opt = option_id(option)
        if opt is OptionId.NUM_OPTIONS:
            return NUM_OPTIONS
        if opt is OptionId.SCAN_RESOLUTION:
            return self.resolution
        if opt is OptionId.SCAN_COLORMODE:
            return self.colormode.value
        if opt is OptionId.SCAN_SOURCE:
            return self.source.value
        if opt in GEOMETRY_OPTIONS:
            attr, _ = GEOMETRY_OPTIONS[opt]
            return getattr(self, attr)
        raise InvalidArgumentError(f"option {opt.name} has no value")

    def set(self, option: int, value: Any) -> None:
        opt = option_id(option)
        src = self.source_caps

        if opt is OptionId.SCAN_RESOLUTION:
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidArgumentError(
                    f"resolution must be an integer: {value!r}"
                )
            if not src.supports_resolution(value):
                raise OutOfRangeError(
                    f"resolution {value} not supported by {self.source.value}"
                )
            self.resolution = value

        elif opt is OptionId.SCAN_COLORMODE:
            try:
                mode = ColorMode(value)
            except ValueError as exc:
                raise OutOfRangeError(f"unknown color mode {value!r}") from exc
            if mode not in src.colormodes:
                raise OutOfRangeError(
                    f"color mode {value!r} not supported by {self.source.value}"
                )
            self.colormode = mode

        elif opt is OptionId.SCAN_SOURCE:
            try:
                source = ScanSource(value)
            except ValueError as exc:
                raise OutOfRangeError(f"unknown source {value!r}") from exc
            if source not in self._caps.sources:
                raise OutOfRangeError(f"source {value!r} not supported by device")
            self.set_source(source)

        elif opt in GEOMETRY_OPTIONS:
            if not _is_number(value):
                raise InvalidArgumentError(f"{opt.name} must be a number: {value!r}")
            attr, range_attr = GEOMETRY_OPTIONS[opt]
            limits: Range = getattr(src, range_attr)
            if not limits.contains(value):
                raise OutOfRangeError(
                    f"{opt.name} {value} outside [{limits.min}, {limits.max}]"
                )
            setattr(self, attr, float(value))

        else:
            raise InvalidArgumentError(f"option {opt.name} is read-only")

    def describe(self, option: int) -> OptionDescriptor:
        opt = option_id(option)
        name, title, unit = _OPTION_INFO[opt]
        src = self.source_caps

        constraint: Range | list[int] | list[str] | None = None
        if opt is OptionId.SCAN_RESOLUTION:
            constraint = (
                list(src.resolutions) if src.discrete_resolutions else src.res_range
            )
        elif opt is OptionId.SCAN_COLORMODE:
            constraint = [mode.value for mode in src.colormodes]
        elif opt is OptionId.SCAN_SOURCE:
            constraint = self._caps.source_names()
        elif opt in GEOMETRY_OPTIONS:
            _, range_attr = GEOMETRY_OPTIONS[opt]
            constraint = getattr(src, range_attr)

        return OptionDescriptor(
            id=opt,
            name=name,
            title=title,
            unit=unit,
            settable=opt not in GROUP_OPTIONS | {OptionId.NUM_OPTIONS},
            constraint=constraint,
        )
