"""
Wizard session state and the commands that change it.

`reduce(state, command)` is the only writer: it is pure and returns a new
`SessionState`. Step transitions are checked against a guard table so each
guard can be tested on its own.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Union

from advision.config import settings
from advision.schemas import MAX_VARIATIONS, MIN_VARIATIONS, AdCopy, AnalysisResult, GeneratedVariation


class Step(IntEnum):
    UPLOAD_ANALYZE = 1
    BRAND_INFO = 2
    FORMAT = 3
    GENERATE = 4
    PREVIEW = 5


class AnalysisStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionState:
    current_step: Step = Step.UPLOAD_ANALYZE
    reference_image: str | None = None  # data URI
    reference_text: str = ""
    primary_color: str | None = None
    secondary_color: str | None = None
    brand_style_words: tuple[str, ...] = ()
    target_audience: str = ""
    output_format: str = field(default_factory=lambda: settings.default_output_format)
    number_of_variations: int = 1
    prompt_tweaks: str = ""
    analysis_status: AnalysisStatus = AnalysisStatus.NONE
    analysis_result: AnalysisResult | None = None
    ad_copies: tuple[AdCopy, ...] = ()
    generated_variations: tuple[GeneratedVariation, ...] = ()
    is_loading: bool = False
    error: str | None = None

    @property
    def brand_colors(self) -> list[str]:
        return [c for c in (self.primary_color, self.secondary_color) if c]

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_step": int(self.current_step),
            "has_reference_image": self.reference_image is not None,
            "reference_text": self.reference_text,
            "primary_color": self.primary_color,
            "secondary_color": self.secondary_color,
            "brand_style_words": list(self.brand_style_words),
            "target_audience": self.target_audience,
            "output_format": self.output_format,
            "number_of_variations": self.number_of_variations,
            "prompt_tweaks": self.prompt_tweaks,
            "analysis_status": self.analysis_status.value,
            "analysis_result": self.analysis_result.model_dump() if self.analysis_result else None,
            "generated_variations": [v.to_dict() for v in self.generated_variations],
            "is_loading": self.is_loading,
            "error": self.error,
        }


# --- Commands ---


@dataclass(frozen=True)
class SetReferenceImage:
    image: str | None


@dataclass(frozen=True)
class SetReferenceText:
    text: str


@dataclass(frozen=True)
class SetBrandColors:
    primary: str | None
    secondary: str | None


@dataclass(frozen=True)
class AddStyleWord:
    word: str


@dataclass(frozen=True)
class RemoveStyleWord:
    word: str


@dataclass(frozen=True)
class SetTargetAudience:
    text: str


@dataclass(frozen=True)
class SetOutputFormat:
    output_format: str


@dataclass(frozen=True)
class SetNumberOfVariations:
    count: int


@dataclass(frozen=True)
class SetPromptTweaks:
    text: str


@dataclass(frozen=True)
class AnalysisStarted:
    pass


@dataclass(frozen=True)
class AnalysisCompleted:
    result: AnalysisResult


@dataclass(frozen=True)
class AnalysisErrored:
    reason: str


@dataclass(frozen=True)
class GenerationRejected:
    step: Step
    message: str


@dataclass(frozen=True)
class GenerationStarted:
    pass


@dataclass(frozen=True)
class CopyGenerated:
    copies: tuple[AdCopy, ...]


@dataclass(frozen=True)
class GenerationSucceeded:
    variations: tuple[GeneratedVariation, ...]


@dataclass(frozen=True)
class GenerationFailed:
    message: str


@dataclass(frozen=True)
class GoToStep:
    step: int


@dataclass(frozen=True)
class NextStep:
    pass


@dataclass(frozen=True)
class PreviousStep:
    pass


Command = Union[
    SetReferenceImage,
    SetReferenceText,
    SetBrandColors,
    AddStyleWord,
    RemoveStyleWord,
    SetTargetAudience,
    SetOutputFormat,
    SetNumberOfVariations,
    SetPromptTweaks,
    AnalysisStarted,
    AnalysisCompleted,
    AnalysisErrored,
    GenerationRejected,
    GenerationStarted,
    CopyGenerated,
    GenerationSucceeded,
    GenerationFailed,
    GoToStep,
    NextStep,
    PreviousStep,
]


# --- Guards ---

# A guard returns the reason a transition is blocked, or None when it may proceed.
Guard = Callable[[SessionState], Union[str, None]]


def has_reference_image(state: SessionState) -> str | None:
    return None if state.reference_image else "Please upload a reference ad image."


def analysis_not_in_flight(state: SessionState) -> str | None:
    return "Image analysis is still running." if state.analysis_status is AnalysisStatus.PENDING else None


def analysis_settled(state: SessionState) -> str | None:
    if state.reference_image and state.analysis_status not in (AnalysisStatus.DONE, AnalysisStatus.FAILED):
        return "Wait for the image analysis to finish."
    return None


def brand_info_complete(state: SessionState) -> str | None:
    if (
        not state.primary_color
        or not state.secondary_color
        or not state.brand_style_words
        or not state.target_audience.strip()
    ):
        return "Please provide primary/secondary colors, style words, and target audience."
    return None


def variation_count_in_range(state: SessionState) -> str | None:
    if not MIN_VARIATIONS <= state.number_of_variations <= MAX_VARIATIONS:
        return f"Please enter a number between {MIN_VARIATIONS} and {MAX_VARIATIONS}."
    return None


def preview_available(state: SessionState) -> str | None:
    if state.generated_variations or state.is_loading or state.error:
        return None
    return "No variations generated yet."


EXIT_GUARDS: dict[Step, tuple[Guard, ...]] = {
    Step.UPLOAD_ANALYZE: (analysis_not_in_flight, analysis_settled, has_reference_image),
    Step.BRAND_INFO: (brand_info_complete,),
    Step.GENERATE: (variation_count_in_range,),
}

ENTRY_GUARDS: dict[Step, tuple[Guard, ...]] = {
    Step.PREVIEW: (preview_available,),
}


def transition_blocker(state: SessionState, target: int) -> str | None:
    """
    Why moving from the current step to `target` is not allowed, or None.
    Moving forward runs the exit guards of every step being left; entering a
    step runs its entry guards. Moving back is always allowed.
    """
    if not Step.UPLOAD_ANALYZE <= target <= Step.PREVIEW:
        return f"Step must be between {Step.UPLOAD_ANALYZE} and {Step.PREVIEW}."
    target = Step(target)
    if target > state.current_step:
        for step in range(state.current_step, target):
            for guard in EXIT_GUARDS.get(Step(step), ()):
                reason = guard(state)
                if reason:
                    return reason
    for guard in ENTRY_GUARDS.get(target, ()):
        reason = guard(state)
        if reason:
            return reason
    return None


def navigation_blocker(state: SessionState, command: Command) -> str | None:
    if isinstance(command, NextStep):
        if state.is_loading:
            return "Generation is in progress."
        return transition_blocker(state, state.current_step + 1)
    if isinstance(command, PreviousStep):
        if state.is_loading:
            return "Generation is in progress."
        if state.current_step == Step.UPLOAD_ANALYZE:
            return "Already at the first step."
        return transition_blocker(state, state.current_step - 1)
    if isinstance(command, GoToStep):
        # The preview stays reachable while loading so it can show progress.
        if state.is_loading and command.step != Step.PREVIEW:
            return "Generation is in progress."
        return transition_blocker(state, command.step)
    return None


# --- Reducer ---


def _unique(words: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    out: list[str] = []
    for w in words:
        w = w.strip()
        if w and w not in out:
            out.append(w)
    return tuple(out)


def _prefill_from_analysis(state: SessionState, result: AnalysisResult) -> SessionState:
    palette = list(result.palette)
    analyzed_primary = result.primary_color or (palette[0] if palette else None)
    primary = state.primary_color or analyzed_primary
    secondary = state.secondary_color or result.secondary_color
    if not secondary:
        # Never repeat the image's own primary as its secondary.
        secondary = next((c for c in palette if c != analyzed_primary), None)
    words = state.brand_style_words or _unique(result.style_keywords)
    return replace(state, primary_color=primary, secondary_color=secondary, brand_style_words=words)


def reduce(state: SessionState, command: Command) -> SessionState:
    if isinstance(command, SetReferenceImage):
        # A new or removed image invalidates any previous analysis.
        return replace(
            state,
            reference_image=command.image,
            analysis_result=None,
            analysis_status=AnalysisStatus.NONE,
            error=None,
        )
    if isinstance(command, SetReferenceText):
        return replace(state, reference_text=command.text)
    if isinstance(command, SetBrandColors):
        return replace(state, primary_color=command.primary, secondary_color=command.secondary)
    if isinstance(command, AddStyleWord):
        return replace(state, brand_style_words=_unique((*state.brand_style_words, command.word)))
    if isinstance(command, RemoveStyleWord):
        return replace(state, brand_style_words=tuple(w for w in state.brand_style_words if w != command.word))
    if isinstance(command, SetTargetAudience):
        return replace(state, target_audience=command.text)
    if isinstance(command, SetOutputFormat):
        return replace(state, output_format=command.output_format)
    if isinstance(command, SetNumberOfVariations):
        return replace(state, number_of_variations=command.count)
    if isinstance(command, SetPromptTweaks):
        return replace(state, prompt_tweaks=command.text)
    if isinstance(command, AnalysisStarted):
        return replace(state, analysis_status=AnalysisStatus.PENDING, analysis_result=None)
    if isinstance(command, AnalysisCompleted):
        done = replace(state, analysis_status=AnalysisStatus.DONE, analysis_result=command.result)
        return _prefill_from_analysis(done, command.result)
    if isinstance(command, AnalysisErrored):
        return replace(state, analysis_status=AnalysisStatus.FAILED, analysis_result=None)
    if isinstance(command, GenerationRejected):
        return replace(state, current_step=command.step, error=command.message)
    if isinstance(command, GenerationStarted):
        return replace(state, is_loading=True, error=None, ad_copies=(), generated_variations=())
    if isinstance(command, CopyGenerated):
        return replace(state, ad_copies=command.copies)
    if isinstance(command, GenerationSucceeded):
        return replace(
            state,
            is_loading=False,
            generated_variations=command.variations,
            current_step=Step.PREVIEW,
        )
    if isinstance(command, GenerationFailed):
        return replace(state, is_loading=False, error=command.message)
    if isinstance(command, (NextStep, PreviousStep, GoToStep)):
        if navigation_blocker(state, command):
            return state
        if isinstance(command, NextStep):
            return replace(state, current_step=Step(state.current_step + 1))
        if isinstance(command, PreviousStep):
            return replace(state, current_step=Step(state.current_step - 1))
        return replace(state, current_step=Step(command.step))
    raise TypeError(f"unknown command: {command!r}")
