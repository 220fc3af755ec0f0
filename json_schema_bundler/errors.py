class BundleError(RuntimeError):
    """A schema could not be read or its references could not be resolved."""


class SchemaLoadError(BundleError):
    """A document could not be fetched or parsed."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Cannot load {location}: {reason}")
        self.location = location
        self.reason = reason
