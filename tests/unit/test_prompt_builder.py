"""
Unit tests for studio directive templates.
"""

from services.prompt_builder import (
    GENERIC_PROMPT,
    NEGATIVE_PROMPT,
    QUALITY_QUALIFIERS,
    build_directive,
)


class TestPortraitTemplate:
    """Tests for the portrait studio."""

    def test_constraints_and_gender_mode_embedded(self):
        directive = build_directive(
            "portrait",
            constraints={"outfitType": "blazer", "outfitColor": "grey"},
            gender_mode="Ladies",
        )

        assert "grey blazer" in directive.prompt
        assert "Ladies" in directive.prompt
        assert "woman" in directive.prompt

    def test_defaults(self):
        directive = build_directive("portrait")

        assert "navy business suit" in directive.prompt
        assert QUALITY_QUALIFIERS in directive.prompt
        assert "preserve face identity" in directive.prompt
        assert directive.negative_prompt == NEGATIVE_PROMPT

    def test_optional_details(self):
        directive = build_directive(
            "portrait",
            constraints={"shirtStyle": "mandarin collar", "grooming": "clean shaven"},
            gender_mode="Gentlemen",
        )

        assert "mandarin collar shirt" in directive.prompt
        assert "clean shaven grooming" in directive.prompt
        assert "Gentlemen" in directive.prompt

    def test_unknown_gender_mode_passed_through(self):
        directive = build_directive("portrait", gender_mode="Unisex")

        assert "Unisex" in directive.prompt

    def test_blank_constraint_falls_back_to_default(self):
        directive = build_directive("portrait", constraints={"outfitColor": "  "})

        assert "navy business suit" in directive.prompt


class TestOtherStudios:
    """Tests for hair, accessories and background."""

    def test_hair(self):
        directive = build_directive(
            "hair", constraints={"hairStyle": "bob", "hairColor": "auburn"}
        )

        assert "auburn bob hairstyle" in directive.prompt
        assert "modify only the hair" in directive.prompt
        assert QUALITY_QUALIFIERS in directive.prompt

    def test_hair_defaults(self):
        assert "natural professional hairstyle" in build_directive("hair").prompt

    def test_accessories(self):
        directive = build_directive("accessories", constraints={"accessories": "silver watch"})

        assert "wearing silver watch" in directive.prompt

    def test_background_default(self):
        directive = build_directive("background")

        assert "modern office blur background" in directive.prompt
        assert directive.negative_prompt == NEGATIVE_PROMPT


class TestFreeformFallback:
    """Tests for magic and unrecognised style kinds."""

    def test_unknown_kind_embeds_instructions_verbatim(self):
        directive = build_directive("sparkle", instructions="add a watch")

        assert "add a watch" in directive.prompt
        assert directive.prompt == "professional headshot, add a watch, studio lighting"

    def test_magic_embeds_instructions_and_keeps_its_goal(self):
        directive = build_directive("magic", instructions="Wear a red tie")

        assert directive.prompt == (
            "professional headshot, Wear a red tie, studio lighting, "
            "maintaining professional quality and identity preservation"
        )

    def test_no_instructions_uses_generic_template(self):
        assert build_directive("sparkle").prompt == GENERIC_PROMPT
        assert build_directive("magic", instructions="   ").prompt == GENERIC_PROMPT

    def test_deterministic(self):
        args = ("portrait", {"outfitType": "tuxedo"}, None, "Gentlemen")

        assert build_directive(*args) == build_directive(*args)
