"""Parser for the eSCL ScannerCapabilities document."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from airscan.errors import CapabilitiesError
from airscan.models import ColorMode, DeviceCaps, Range, ScanSource, SourceCaps

logger = logging.getLogger(__name__)

NAMESPACES = {
    "scan": "http://schemas.hp.com/imaging/escl/2011/05/03",
    "pwg": "http://www.pwg.org/schemas/2010/12/sm",
}

# Geometry is advertised in 1/300 inch
ESCL_UNITS_PER_INCH = 300
MM_PER_INCH = 25.4

COLORMODES = {
    "RGB24": ColorMode.COLOR,
    "RGB48": ColorMode.COLOR,
    "Grayscale8": ColorMode.GRAYSCALE,
    "Grayscale16": ColorMode.GRAYSCALE,
    "BlackAndWhite1": ColorMode.LINEART,
}

SOURCE_PATHS = {
    ScanSource.PLATEN: "scan:Platen/scan:PlatenInputCaps",
    ScanSource.ADF_SIMPLEX: "scan:Adf/scan:AdfSimplexInputCaps",
    ScanSource.ADF_DUPLEX: "scan:Adf/scan:AdfDuplexInputCaps",
}


def _to_mm(value: int) -> float:
    return round(value * MM_PER_INCH / ESCL_UNITS_PER_INCH, 2)


def _text(element: ET.Element, path: str) -> str | None:
    found = element.find(path, NAMESPACES)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def _int(element: ET.Element, path: str, default: int | None = None) -> int:
    text = _text(element, path)
    if text is None:
        if default is None:
            raise CapabilitiesError(f"missing {path.split(':')[-1]}")
        return default
    try:
        return int(text)
    except ValueError as exc:
        raise CapabilitiesError(f"invalid {path.split(':')[-1]}: {text!r}") from exc


def _parse_colormodes(caps: ET.Element) -> list[ColorMode]:
    modes: list[ColorMode] = []
    for element in caps.iterfind(
        "scan:SettingProfiles/scan:SettingProfile/scan:ColorModes/scan:ColorMode",
        NAMESPACES,
    ):
        mode = COLORMODES.get((element.text or "").strip())
        if mode is not None and mode not in modes:
            modes.append(mode)
    return [mode for mode in ColorMode if mode in modes]


def _parse_resolutions(caps: ET.Element) -> tuple[list[int], Range | None]:
    resolutions: set[int] = set()
    res_range: Range | None = None

    for profile in caps.iterfind(
        "scan:SettingProfiles/scan:SettingProfile/scan:SupportedResolutions",
        NAMESPACES,
    ):
        for discrete in profile.iterfind(
            "scan:DiscreteResolutions/scan:DiscreteResolution", NAMESPACES
        ):
            x_res = _int(discrete, "scan:XResolution")
            y_res = _int(discrete, "scan:YResolution")
            if x_res == y_res:
                resolutions.add(x_res)

        x_range = profile.find("scan:ResolutionRange/scan:XResolutionRange", NAMESPACES)
        if x_range is not None and res_range is None:
            res_range = Range(
                min=_int(x_range, "scan:Min"),
                max=_int(x_range, "scan:Max"),
                quant=_int(x_range, "scan:Step", default=1),
            )

    if resolutions:
        return sorted(resolutions), None
    return [], res_range


def _parse_source(caps: ET.Element) -> SourceCaps:
    min_width = _int(caps, "scan:MinWidth", default=0)
    max_width = _int(caps, "scan:MaxWidth")
    min_height = _int(caps, "scan:MinHeight", default=0)
    max_height = _int(caps, "scan:MaxHeight")
    if max_width < min_width or max_height < min_height:
        raise CapabilitiesError("invalid scan area")

    colormodes = _parse_colormodes(caps)
    if not colormodes:
        raise CapabilitiesError("no supported color modes")

    resolutions, res_range = _parse_resolutions(caps)
    if not resolutions and res_range is None:
        raise CapabilitiesError("no supported resolutions")

    return SourceCaps(
        colormodes=colormodes,
        resolutions=resolutions,
        res_range=res_range,
        tl_x_range=Range(min=0, max=_to_mm(max_width - min_width)),
        tl_y_range=Range(min=0, max=_to_mm(max_height - min_height)),
        br_x_range=Range(min=_to_mm(min_width), max=_to_mm(max_width)),
        br_y_range=Range(min=_to_mm(min_height), max=_to_mm(max_height)),
    )


def _split_make_and_model(root: ET.Element) -> tuple[str, str]:
    make_and_model = _text(root, "pwg:MakeAndModel") or ""
    vendor = _text(root, "scan:Manufacturer") or ""

    if not vendor:
        vendor, _, model = make_and_model.partition(" ")
        return vendor, model or make_and_model

    model = make_and_model
    if model.lower().startswith(vendor.lower() + " "):
        model = model[len(vendor) + 1 :]
    return vendor, model or make_and_model


def parse_capabilities(data: bytes) -> DeviceCaps:
    """Parse a ScannerCapabilities document.

    Raises:
        CapabilitiesError: the document is malformed or a source advertises
            nothing usable.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise CapabilitiesError(f"XML parse error: {exc}") from exc

    if root.tag != f"{{{NAMESPACES['scan']}}}ScannerCapabilities":
        raise CapabilitiesError(f"unexpected root element {root.tag}")

    vendor, model = _split_make_and_model(root)

    sources: dict[ScanSource, SourceCaps] = {}
    for source, path in SOURCE_PATHS.items():
        element = root.find(path, NAMESPACES)
        if element is None:
            continue
        try:
            sources[source] = _parse_source(element)
        except CapabilitiesError as exc:
            raise CapabilitiesError(f"{source.value}: {exc}") from exc

    caps = DeviceCaps(vendor=vendor, model=model, sources=sources)
    logger.debug(
        "Parsed capabilities: vendor=%r model=%r sources=%s",
        caps.vendor,
        caps.model,
        caps.source_names(),
    )
    return caps
