"""
Analysis-related data models for content enrichment.
"""

from pydantic import BaseModel, Field


class ContentAnalysis(BaseModel):
    """
    Result of analyzing one piece of content (tags + summary).

    Used as Structured Output for LLM response.
    """

    tags: list[str] = Field(
        default_factory=list,
        description="3-6 short lowercase topic tags describing the content "
        "(e.g. 'python', 'machine-learning', 'news').",
    )
    summary: str = Field(
        default="",
        description="1-2 sentence summary of what the content is about",
    )


class ExtractedUrls(BaseModel):
    """
    URLs worth bookmarking that were found inside a page.

    Used as Structured Output for LLM response.
    """

    urls: list[str] = Field(
        default_factory=list,
        description="Absolute http(s) URLs of articles, repositories or resources "
        "referenced by the main content, most relevant first. Exclude navigation, "
        "share, login, advertising and tracking links.",
    )
