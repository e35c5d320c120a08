"""Exceptions raised by the generation pipeline."""


class CypressGenError(Exception):
    """Base class for every failure that aborts a run."""


class ConfigError(CypressGenError):
    pass


class FeatureNotFoundError(CypressGenError):
    def __init__(self, path):
        super().__init__(f"Feature file not found: {path}")
        self.path = path


class PageLoadError(CypressGenError):
    def __init__(self, url, reason):
        super().__init__(f"Could not load {url}: {reason}")
        self.url = url
        self.reason = reason


class ModelGatewayError(CypressGenError):
    """The chat backend failed or could not be reached."""


class InvalidArtifactError(CypressGenError):
    """Generated code still fails its validity heuristic after retry and repair."""

    def __init__(self, kind: str, preview: str):
        super().__init__(f"Model did not return valid {kind} code.")
        self.kind = kind
        self.preview = preview
