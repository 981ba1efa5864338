"""Domain-level exceptions for compatibility matching and discovery."""

from __future__ import annotations


class MatchingError(Exception):
	"""Base class for matching feature errors."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class ProfileNotFound(MatchingError):
	reason = "profile_not_found"

	def __init__(self, user_id: str) -> None:
		super().__init__()
		self.user_id = user_id


class MissingRelationshipGoal(MatchingError):
	reason = "relationship_goal_required"


class EmptyCandidatePool(MatchingError):
	reason = "no_candidates"


class InvalidSwipe(MatchingError):
	reason = "invalid_swipe"
