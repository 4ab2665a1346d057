class AssetLoadError(Exception):
    """An image asset could not be read or decoded; the receipt is drawn without it."""


class RenderError(Exception):
    """The receipt document could not be built."""
