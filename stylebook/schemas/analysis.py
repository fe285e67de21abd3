from pydantic import BaseModel, Field


class WardrobeAnalysis(BaseModel):
    total_items: int = 0
    category_counts: dict[str, int] = Field(default_factory=dict)
    color_distribution: dict[str, int] = Field(default_factory=dict)
    style_distribution: dict[str, int] = Field(default_factory=dict)
    missing_categories: list[str] = Field(default_factory=list)
    seasonal_gaps: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class WardrobeAnalysisResponse(WardrobeAnalysis):
    current_season: str
