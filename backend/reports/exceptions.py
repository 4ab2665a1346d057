class UpstreamFetchError(Exception):
    """The project store could not be read; the report is not computed."""
