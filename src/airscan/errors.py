from __future__ import annotations


class AirscanError(Exception):
    """Base class for airscan errors."""


class CapabilitiesError(AirscanError):
    """ScannerCapabilities document could not be loaded or understood."""


class OptionError(AirscanError):
    pass


class InvalidArgumentError(OptionError):
    """Unknown option, read-only option, or device not usable."""


class OutOfRangeError(OptionError):
    """Value outside the constraint of the active source."""
