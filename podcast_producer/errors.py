"""Exception types raised by the production pipeline."""


class PodcastError(Exception):
    """Base class for all pipeline failures."""


class ConfigurationFailure(PodcastError):
    """Credentials or settings are missing. Raised before any network call."""


class GenerationFailure(PodcastError):
    """A script chunk failed or came back unparsable. The whole run is void."""


class SynthesisFailure(PodcastError):
    """The speech service produced no audio for one segment."""


class DownloadAssemblyFailure(PodcastError):
    """Assembling the downloadable audio file broke midway."""
