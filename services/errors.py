# services/errors.py
"""
Exceptions raised by the mapping pipeline.
Scoring gaps are never errors: an unresolved slot is just absent from the mapping.
"""
from typing import List


class SceneFormatError(ValueError):
    """Scene description could not be parsed."""


class SkeletonNotFoundError(ValueError):
    """Scene contains no usable skeleton."""


class LlmResolverError(RuntimeError):
    """External resolver call failed."""


class LlmRequestError(LlmResolverError):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"LLM request failed: {status_code} {body}")


class LlmResponseError(LlmResolverError):
    """Response arrived but had no usable content."""


class LlmValidationError(LlmResolverError):
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid LLM response: {'; '.join(self.errors)}")


class MissingRequiredBonesError(RuntimeError):
    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required humanoid bones: {', '.join(self.missing)}.")


class LlmTransportError(LlmResolverError):
    """Resolver endpoint could not be reached (connect error, timeout, DNS)."""
