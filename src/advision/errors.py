"""Typed errors raised by the adapters and the wizard."""

from __future__ import annotations


class AdGenError(Exception):
    """Base class for every error the wizard knows how to report."""

    # Safe to show to the user; never carries provider internals.
    user_message = "Ad generation failed."

    def __str__(self) -> str:
        return self.args[0] if self.args else self.user_message


class SchemaValidationError(AdGenError):
    """A payload did not match its declared contract."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Invalid value for {self.field}: {self.message}"


class WizardValidationError(AdGenError):
    """Session fields required for generation are missing or out of range."""

    def __init__(self, step: int, message: str):
        self.step = step
        self.message = message
        super().__init__(message)

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return self.message


class AnalysisFailed(AdGenError):
    user_message = "Could not analyze the reference image."

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Image analysis failed: {reason}")


class CopyGenerationFailed(AdGenError):
    user_message = "Failed to generate ad copy."


class InvalidCopyResponse(CopyGenerationFailed):
    user_message = "The copy model returned an invalid response."


class EmptyCopyBatch(CopyGenerationFailed):
    user_message = "The copy model returned no variations."


class CopyRefinementFailed(AdGenError):
    user_message = "Failed to refine the ad copy."


class PromptGenerationFailed(AdGenError):
    user_message = "Failed to build the image prompt."


class MissingCredential(AdGenError):
    user_message = "An image generation API key is required."


class VisualGenerationFailed(AdGenError):
    def __init__(self, index: int, cause: str):
        self.index = index
        self.cause = cause
        super().__init__(f"Failed to generate image variation {index + 1}: {cause}")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Failed to generate image variation {self.index + 1}."


class NoImagesGenerated(AdGenError):
    user_message = "No images were generated."


class InvalidImagePayload(AdGenError):
    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Image variation {index + 1} returned an invalid payload")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Image variation {self.index + 1} could not be used."
