from typing import List, Optional


class TheoryTrainerError(Exception):
	"""Base class for errors raised by the theory and quiz engines."""


class ParseError(TheoryTrainerError, ValueError):
	"""A note name could not be parsed, or a registry key is unknown."""


class ConfigurationError(TheoryTrainerError, ValueError):
	"""A quiz template is unusable and generation must not start."""

	def __init__(self, message: str, problems: Optional[List[str]] = None) -> None:
		super().__init__(message)
		self.problems = list(problems or [])


class SessionStateError(TheoryTrainerError, RuntimeError):
	"""An event was applied to a session in a state that does not accept it."""


class InsufficientCandidatesWarning(UserWarning):
	"""The question pool could not satisfy a requested count or concept."""
