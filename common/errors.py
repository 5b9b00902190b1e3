class ConfigurationError(ValueError):
    """Raised when deployment inputs are missing or malformed.

    Always fatal: the deployment must stop before any resource is declared.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")
