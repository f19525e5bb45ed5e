class StoryTimeError(Exception):
    """Base class for all StoryTime failures."""


class CredentialMissingError(StoryTimeError):
    """No usable API key is selected."""


class CredentialSelectionError(StoryTimeError):
    """The selected key was rejected, expired or could not be found."""

    def __init__(self, message: str = "Requested entity was not found."):
        super().__init__(message)


class GenerationError(StoryTimeError):
    """A generation call returned nothing usable."""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind  # story | image | speech | chat


class PlaybackError(StoryTimeError):
    """Audio could not be decoded or played."""
