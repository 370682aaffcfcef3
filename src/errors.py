"""Exception hierarchy for the warehouse wizard.

Every failure here is session-local and recoverable by retrying the
action that triggered it; none should take the process down.
"""


class WizardError(Exception):
    """Base class for all wizard errors."""


class DialogueServiceError(WizardError):
    """The language model call failed, timed out, or returned nothing usable."""


class PersistenceError(WizardError):
    """Reading or writing the stored configuration failed."""


class ExportError(WizardError):
    """Rendering a spreadsheet export failed."""


class ExportNotFoundError(ExportError):
    """No export exists for the requested handle."""


class SessionCompletedError(WizardError):
    """A user turn was submitted after the session reached completion."""
