"""
Generation-related Pydantic schemas.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class GenerateRequest(BaseModel):
    """
    Request body for POST /api/generate.

    Exactly one of ``image`` (base64 or data URL) and ``imageUrl`` must be
    set. Unknown fields, including any client-supplied user id, are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Studio style kind (portrait, hair, accessories, background, magic)",
    )
    image: str | None = Field(default=None, description="Base64 image or data: URL")
    image_url: str | None = Field(
        default=None, alias="imageUrl", description="URL of a pre-uploaded image"
    )
    constraints: dict[str, str] = Field(
        default_factory=dict, description="Studio options, e.g. outfitType, outfitColor"
    )
    prompt: str | None = Field(
        default=None, max_length=2000, description="Freeform instructions (magic studio)"
    )
    gender_mode: str | None = Field(
        default=None, alias="genderMode", description="Gentlemen or Ladies"
    )

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("type cannot be empty")
        return v

    @field_validator("constraints", mode="before")
    @classmethod
    def stringify_constraints(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items() if val is not None}
        return v

    @model_validator(mode="after")
    def exactly_one_image(self) -> "GenerateRequest":
        if bool(self.image) == bool(self.image_url):
            raise ValueError("Provide exactly one of image or imageUrl")
        return self


class QualityReport(BaseModel):
    """Diagnostics returned with a successful generation."""

    style_kind: str
    tier: str
    provider: str
    provider_status: str
    job_id: str
    polls: int
    elapsed_seconds: float
    duplicate: bool = False
    remaining_credits: int
    free_weekly_remaining: int


class GenerateResponse(BaseModel):
    """Response body for a successful generation."""

    success: bool = True
    id: str = Field(..., description="Generation record id")
    result: str = Field(..., description="Output image reference")
    description: str = Field(..., description="Directive the image was generated from")
    message: str
    quality_report: QualityReport
