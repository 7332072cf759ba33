"""Model instructions, kept as Jinja2 templates so each adapter only marshals inputs."""

from __future__ import annotations

from jinja2 import Environment, StrictUndefined

_env = Environment(undefined=StrictUndefined, trim_blocks=True, lstrip_blocks=True, autoescape=False)
_env.filters["quoted_list"] = lambda items: ", ".join(f'"{i}"' for i in items)


ANALYZE_IMAGE = _env.from_string(
    """Analyze this advertisement image meticulously. Extract the following details and return STRICT JSON only (no markdown):

1. colors: {"primary": hex, "secondary": hex, "background": hex, "palette": [up to {{ max_palette }} dominant hex codes]}
2. fontStyle: the general style of the fonts used (e.g. 'Clean sans-serif', 'Bold serif', 'Handwritten script').
3. layoutStyle: the overall layout structure (e.g. 'Centered composition with prominent image', 'Split layout').
4. textElements: {"headline", "subheadline", "cta"} as printed in the ad. Omit any element that is not clearly identifiable.
5. styleKeywords: 3-5 keywords describing the overall visual style (e.g. 'modern', 'minimalist', 'bold', 'playful').

Every hex code must start with '#'."""
)


GENERATE_AD_COPY = _env.from_string(
    """You are a copywriter specializing in ad copy for various brands and formats.
Generate exactly {{ number_of_variations }} ad copy variations (each with a headline, subheadline and CTA) based on the following brand guidelines and format:

Brand Style: {{ brand_style }}
Colors: {{ colors | join(", ") }}
Target Audience: {{ target_audience }}
Format: {{ format }}
{% if reference_text %}
Reference Text: {{ reference_text }}
{% endif %}

Each variation should be distinct and appeal to the target audience while keeping the brand's style and color palette.
Make the copy appropriate for the specified format.

Return STRICT JSON only: an object with a single key "variations", an array of exactly {{ number_of_variations }} objects,
each with non-empty string fields "headline", "subheadline" and "cta". No markdown, no commentary."""
)


SYNTHESIZE_VISUAL_PROMPT = _env.from_string(
    """You write highly effective prompts for an image-generation model producing advertising visuals.
Create a single, detailed prompt from the information below.

Instructions:
1. Combine brand colors, style words, target audience, output format, layout/typography guidance and tweaks into one coherent visual description.
2. Describe visual elements, mood, composition and key objects or scenes in the brand style ({{ brand_style_words | quoted_list }}) and colors ({{ brand_colors | join(", ") }}).
3. Tailor the composition to the "{{ output_format }}" format (e.g. vertical for a Story, wide for a Banner).
4. Request sharp, legible typography and state the exact text to render, verbatim.
5. Be specific; mention element placement where the layout suggests it.

Brand & Ad Information:
- Brand Colors: {{ brand_colors | join(", ") }}
- Brand Style Words: {{ brand_style_words | join(", ") }}
- Target Audience: {{ target_audience }}
- Output Format: {{ output_format }}
- Layout Guidance: {{ layout_guidance }}
- Typography Guidance: {{ font_guidance }}
{% if prompt_tweaks %}
- User Tweaks: {{ prompt_tweaks }}
{% endif %}

Text to render (use exactly):
- Headline: "{{ headline }}"
- Subheadline: "{{ subheadline }}"
- CTA: "{{ cta }}"

Return STRICT JSON only: {"dallePrompt": "<the prompt>"}. The prompt must explicitly include the headline "{{ headline }}", subheadline "{{ subheadline }}" and CTA "{{ cta }}"."""
)


REFINE_AD_COPY = _env.from_string(
    """You are an expert advertising copywriter. Refine the following ad copy based on the user's instructions.
Keep the same structure and return only the refined copy, no commentary.

Original Ad Copy:
{{ original_ad_copy }}

Instructions: {{ instructions }}

Refined Ad Copy:"""
)
