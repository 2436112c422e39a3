"""Exception types shared across the application."""


class ConceptRefresherError(Exception):
    pass


class InvalidInputError(ConceptRefresherError, ValueError):
    """Rejected caller input: bad option index, malformed catalog record."""


class SessionStateError(ConceptRefresherError, RuntimeError):
    """Quiz session operation called in the wrong phase."""


class GeneratorUnavailableError(ConceptRefresherError):
    """The text-generation backend is absent, failed or timed out."""
