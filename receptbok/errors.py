from __future__ import annotations

from fastapi import status


class MealPlanGenerationError(Exception):
    """Failure of a credit-gated generation job, carrying a stable error code."""

    code = "unexpected_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Meal plan generation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"detail": self.message, "code": self.code}


class AdmissionDenied(MealPlanGenerationError):
    code = "insufficient_credits"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "No AI credits left. Buy more to generate a meal plan."


class NoResponseError(MealPlanGenerationError):
    code = "no_response"
    status_code = 422
    default_message = "The meal plan model returned no response"


class InvalidResponseError(MealPlanGenerationError):
    code = "invalid_response"
    status_code = 422
    default_message = "The meal plan model returned an invalid response"


class PersistenceFailure(MealPlanGenerationError):
    code = "persistence_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "The meal plan could not be saved"


class UnexpectedGenerationError(MealPlanGenerationError):
    code = "unexpected_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
