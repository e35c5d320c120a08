"""Generate Cypress selectors and step definitions from Gherkin features with a language model."""
from .config import Settings, load_settings
from .orchestrator import Orchestrator, RunResult

__version__ = "0.1.0"

__all__ = ["Orchestrator", "RunResult", "Settings", "load_settings"]
