"""Error types surfaced to API callers as `{"error": message}` envelopes.

Every error is terminal for the request that raised it; nothing here is retried.
"""


class StudyAIError(Exception):
    status_code = 500
    message = "Unknown error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthorized(StudyAIError):
    status_code = 401
    message = "Unauthorized"


class InvalidToken(StudyAIError):
    status_code = 401
    message = "Invalid token"


class BadInput(StudyAIError):
    status_code = 400
    message = "Invalid request body"


class NoDocuments(StudyAIError):
    status_code = 400
    message = "No documents found. Please upload your study materials first."


class RateLimited(StudyAIError):
    status_code = 429
    message = "Rate limit exceeded. Please try again later."


class CreditsExhausted(StudyAIError):
    status_code = 402
    message = "AI credits exhausted. Please add credits to continue."


class UpstreamServiceError(StudyAIError):
    message = "AI service error"


class GenerationFailed(StudyAIError):
    message = "Failed to generate analysis"


class ConfigurationError(StudyAIError):
    message = "AI_GATEWAY_API_KEY is not configured"


class DocumentStoreError(StudyAIError):
    message = "Failed to fetch documents"


class IdentityServiceUnavailable(StudyAIError):
    message = "Authentication service is not configured"
