"""Exception types raised by SpamScanner."""


class SpamScannerError(Exception):
    """Base exception for scanner errors."""

    pass


class UnsupportedLocaleError(SpamScannerError):
    """Stemming was requested in strict mode for a locale without an algorithm."""

    def __init__(self, locale: str, message: str = "No stemming algorithm available"):
        self.locale = locale
        self.message = message
        super().__init__(f"{message} for locale '{locale}'")


class MalformedInputError(SpamScannerError, TypeError):
    """Scan input is neither text, bytes, nor a readable file path."""

    def __init__(self, value: object):
        self.value_type = type(value).__name__
        super().__init__(
            f"Cannot scan input of type {self.value_type}: expected str, bytes, or a file path"
        )


class ClassifierLoadError(SpamScannerError):
    """Classifier model could not be read or failed schema validation."""

    pass


class VirusScanError(SpamScannerError):
    """clamd was unreachable or answered with an error."""

    pass
