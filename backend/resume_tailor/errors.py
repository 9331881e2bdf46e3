"""
Error taxonomy for resume generation.

Domain code raises these; the handler registered in main.py renders them as
``{"error": ..., "details": ...}`` with the matching status code.
"""
from typing import Optional


class ResumeServiceError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(ResumeServiceError):
    status_code = 401
    message = "Unauthorized"


class NotFound(ResumeServiceError):
    status_code = 404
    message = "Profile not found. Please complete your profile first."


class BadRequest(ResumeServiceError):
    status_code = 400
    message = "Job description is required"


class MissingConfiguration(ResumeServiceError):
    status_code = 400
    message = "No API key configured. Please add your OpenAI or Anthropic API key in settings."


class InvalidApiKey(ResumeServiceError):
    status_code = 401
    message = "Invalid API key. Please check your API key configuration in settings."


class QuotaExceeded(ResumeServiceError):
    status_code = 429
    message = "API quota exceeded or rate limit reached. Please try again later."


class NetworkError(ResumeServiceError):
    status_code = 503
    message = "Network error occurred while connecting to AI service. Please try again."


class ProviderTimeout(ResumeServiceError):
    status_code = 504
    message = "The AI service did not respond in time. Please try again."


class InvalidProviderResponse(ResumeServiceError):
    status_code = 502
    message = "Invalid response from AI service - unable to parse JSON"


class InternalError(ResumeServiceError):
    status_code = 500
    message = "Internal server error"
