"""SpamScanner - spam, phishing and malware detection for email messages."""

__version__ = "0.1.0"

from .config import ScannerConfig, load_config
from .scanner import SpamScanner
from .verdict import ScanVerdict

__all__ = ["ScanVerdict", "ScannerConfig", "SpamScanner", "load_config", "__version__"]
