"""The wizard controller: owns one session's state and drives the adapters."""

from __future__ import annotations

import logging

from advision.errors import (
    AdGenError,
    AnalysisFailed,
    CopyRefinementFailed,
    SchemaValidationError,
    WizardValidationError,
)
from advision.formats import AVAILABLE_FORMATS, ad_size_for_format
from advision.schemas import (
    MAX_VARIATIONS,
    AdCopy,
    AnalysisResult,
    CopyRequest,
    GeneratedVariation,
    VisualAdRequest,
    normalize_hex,
)
from advision.services.analysis import ImageAnalysisService
from advision.services.copywriting import CopyGenerationService, CopyRefinementService
from advision.services.visuals import VisualGenerationService
from advision.session import (
    AddStyleWord,
    AnalysisCompleted,
    AnalysisErrored,
    AnalysisStarted,
    Command,
    CopyGenerated,
    GenerationFailed,
    GenerationRejected,
    GenerationStarted,
    GenerationSucceeded,
    GoToStep,
    NextStep,
    PreviousStep,
    RemoveStyleWord,
    SessionState,
    SetBrandColors,
    SetNumberOfVariations,
    SetOutputFormat,
    SetPromptTweaks,
    SetReferenceImage,
    SetReferenceText,
    SetTargetAudience,
    Step,
    brand_info_complete,
    has_reference_image,
    navigation_blocker,
    reduce,
    variation_count_in_range,
)

logger = logging.getLogger(__name__)


class AdWizard:
    """
    One user's five-step ad generation session.

    All state changes go through `dispatch`, so the session state is only ever
    replaced by the reducer. Adapters are injected, which keeps the controller
    testable with fakes.
    """

    def __init__(
        self,
        analysis: ImageAnalysisService,
        copywriter: CopyGenerationService,
        visuals: VisualGenerationService,
        refiner: CopyRefinementService | None = None,
        state: SessionState | None = None,
    ):
        self.analysis = analysis
        self.copywriter = copywriter
        self.visuals = visuals
        self.refiner = refiner
        self.state = state or SessionState()

    def dispatch(self, command: Command) -> SessionState:
        self.state = reduce(self.state, command)
        return self.state

    # --- Navigation ---

    def _navigate(self, command: Command) -> bool:
        reason = navigation_blocker(self.state, command)
        if reason:
            logger.info("Rejected %s at step %d: %s", type(command).__name__, self.state.current_step, reason)
            return False
        self.dispatch(command)
        return True

    def next_step(self) -> bool:
        return self._navigate(NextStep())

    def previous_step(self) -> bool:
        return self._navigate(PreviousStep())

    def go_to(self, step: int) -> bool:
        return self._navigate(GoToStep(step))

    def start_over(self) -> bool:
        return self.go_to(Step.UPLOAD_ANALYZE)

    # --- Inputs ---

    async def upload_image(self, data_uri: str | None) -> AnalysisResult | None:
        """
        Store the reference image and analyze it. Analysis failure is soft: the
        session keeps the image, records the failure and the user fills in brand
        fields by hand.
        """
        self.dispatch(SetReferenceImage(data_uri))
        if data_uri is None:
            return None

        self.dispatch(AnalysisStarted())
        try:
            result = await self.analysis.analyze(data_uri)
        except Exception as exc:
            if self.state.reference_image != data_uri:
                logger.info("Discarding analysis failure for a replaced image")
                return None
            if isinstance(exc, AnalysisFailed):
                reason = exc.reason
                logger.warning("Image analysis failed, continuing without it: %s", reason)
            else:
                reason = "unexpected analysis error"
                logger.exception("Unexpected error during image analysis")
            self.dispatch(AnalysisErrored(reason))
            return None

        if self.state.reference_image != data_uri:
            logger.info("Discarding analysis result for a replaced image")
            return None
        self.dispatch(AnalysisCompleted(result))
        return result

    def set_reference_text(self, text: str) -> None:
        self.dispatch(SetReferenceText(text.strip()))

    def set_brand_colors(self, primary: str, secondary: str) -> None:
        colors = {}
        for name, value in (("primary_color", primary), ("secondary_color", secondary)):
            normalized = normalize_hex(value)
            if normalized is None:
                raise SchemaValidationError(name, "must be a hex code like #RRGGBB")
            colors[name] = normalized
        self.dispatch(SetBrandColors(colors["primary_color"], colors["secondary_color"]))

    def add_style_word(self, word: str) -> None:
        self.dispatch(AddStyleWord(word))

    def remove_style_word(self, word: str) -> None:
        self.dispatch(RemoveStyleWord(word))

    def set_target_audience(self, text: str) -> None:
        self.dispatch(SetTargetAudience(text.strip()))

    def set_output_format(self, output_format: str) -> None:
        if output_format not in AVAILABLE_FORMATS:
            raise SchemaValidationError("output_format", f"unknown format '{output_format}'")
        self.dispatch(SetOutputFormat(output_format))

    def set_number_of_variations(self, count: int) -> None:
        self.dispatch(SetNumberOfVariations(count))

    def set_prompt_tweaks(self, text: str) -> None:
        self.dispatch(SetPromptTweaks(text.strip()))

    # --- Generation ---

    def validate_for_generation(self) -> None:
        checks = (
            (Step.UPLOAD_ANALYZE, has_reference_image),
            (Step.BRAND_INFO, brand_info_complete),
            (Step.GENERATE, variation_count_in_range),
        )
        for step, guard in checks:
            reason = guard(self.state)
            if reason:
                raise WizardValidationError(step, reason)

    async def generate(self, credential: str | None = None) -> list[GeneratedVariation] | None:
        """
        Copy, then visuals, then pairing. Returns the variations, or None when the
        run was ignored, rejected or failed (the reason is in `state.error`).
        """
        if self.state.is_loading:
            logger.warning("Generation already in progress; ignoring request")
            return None
        if self.state.current_step != Step.GENERATE:
            logger.info("Generation can only start from step %d", Step.GENERATE)
            return None

        try:
            self.validate_for_generation()
        except WizardValidationError as exc:
            logger.info("Generation rejected: %s", exc.message)
            self.dispatch(GenerationRejected(Step(exc.step), exc.user_message))
            return None

        self.dispatch(GenerationStarted())
        state = self.state
        try:
            requested = state.number_of_variations
            copies = await self.copywriter.generate(
                CopyRequest(
                    brand_style=", ".join(state.brand_style_words),
                    colors=state.brand_colors,
                    target_audience=state.target_audience,
                    format=state.output_format,
                    reference_text=state.reference_text or None,
                    number_of_variations=requested,
                )
            )
            if len(copies) != requested:
                logger.warning(
                    "Requested %d copy variations, received %d; using received count", requested, len(copies)
                )
                self.dispatch(SetNumberOfVariations(min(len(copies), MAX_VARIATIONS)))
            self.dispatch(CopyGenerated(tuple(copies)))

            size = ad_size_for_format(state.output_format)
            images = await self.visuals.generate(
                VisualAdRequest(
                    brand_colors=state.brand_colors,
                    brand_style_words=list(state.brand_style_words),
                    target_audience=state.target_audience,
                    output_format=state.output_format,
                    prompt_tweaks=state.prompt_tweaks or None,
                    analyzed_data=state.analysis_result,
                    copy_elements=copies[0],
                    width=size.width,
                    height=size.height,
                    number_of_variations=min(self.state.number_of_variations, MAX_VARIATIONS),
                    credential=credential,
                )
            )
        except AdGenError as exc:
            logger.error("Ad generation failed: %s", exc)
            self.dispatch(GenerationFailed(exc.user_message))
            return None
        except Exception:
            logger.exception("Unexpected error during ad generation")
            self.dispatch(GenerationFailed(AdGenError.user_message))
            return None

        # Images are authoritative for the final pairing.
        if len(images) != len(copies):
            logger.warning(
                "Visual variations (%d) differ from copy variations (%d); trimming", len(images), len(copies)
            )
            copies = copies[: len(images)]
            self.dispatch(SetNumberOfVariations(len(images)))
            self.dispatch(CopyGenerated(tuple(copies)))

        variations = [GeneratedVariation(image=image, copy=copy) for image, copy in zip(images, copies)]
        self.dispatch(GenerationSucceeded(tuple(variations)))
        logger.info("Generated %d ad variations", len(variations))
        return variations

    async def refine_copy(self, index: int, instructions: str) -> str:
        """Refined text for one generated variation's copy. The session is not changed."""
        if self.refiner is None:
            raise CopyRefinementFailed("copy refinement is not configured")
        if not 0 <= index < len(self.state.generated_variations):
            raise SchemaValidationError("index", f"no generated variation at position {index}")
        copy: AdCopy = self.state.generated_variations[index].copy
        return await self.refiner.refine(copy.as_text(), instructions)

