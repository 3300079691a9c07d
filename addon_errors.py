"""
Addon Errors
Exception types raised by the add-on components
"""


class AddonError(Exception):
    """Base class for every failure the managers report as fatal."""


class GameNotFoundError(AddonError):
    """The game installation directory does not exist."""


class FetchError(AddonError):
    """A network request failed or returned an unusable response."""


class ReleaseError(AddonError):
    """The release feed holds no usable release for the requested channel."""


class ArtifactNotFoundError(AddonError):
    """The payload library is missing from a downloaded archive."""


class IntegrityError(AddonError):
    """A downloaded file does not match its published digest."""


class PlanError(AddonError):
    """A reconciliation plan cannot be applied to the current filesystem."""
