"""Errors raised by the generation cache and admission guard."""

from meal_planner.domain.budget import BudgetScope


class GenerationCacheError(Exception):
    """Base class for per-request generation outcomes."""


class ProfileNotFound(GenerationCacheError):
    """No stored profile exists for the user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No profile stored for user {user_id}")
        self.user_id = user_id


class BudgetExceeded(GenerationCacheError):
    """A budget ceiling rejected the generation call."""

    def __init__(self, scope: BudgetScope, retry_after_seconds: float) -> None:
        super().__init__(f"Generation budget exceeded ({scope.value})")
        self.scope = scope
        self.retry_after_seconds = retry_after_seconds


class DuplicateSignature(GenerationCacheError):
    """An entry already exists for the signature and meal type."""

    def __init__(self, signature: str, meal_type: str) -> None:
        super().__init__(f"Cache entry exists for {signature[:16]}/{meal_type}")
        self.signature = signature
        self.meal_type = meal_type


class GenerationFailed(GenerationCacheError):
    """The meal generator failed or timed out."""


class InvalidRequestParams(GenerationCacheError):
    """Request parameters cannot be turned into a signature."""
