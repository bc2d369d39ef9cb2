"""Social post writer agent: short promotional copy for a finished article."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from longform.agents.base_agent import BaseAgent, clamp_text
from longform.config import settings

X_POST_MAX_CHARS = 140


class SocialPostInput(BaseModel):
    title: str
    final_markdown: str


class SocialPostResult(BaseModel):
    """An X post, a LinkedIn-style post and a call-to-action paragraph."""

    x_post: str = Field(min_length=1)
    linkedin_post: str = Field(min_length=1)
    cta: str = Field(min_length=1)

    @field_validator("x_post", mode="before")
    @classmethod
    def _fit_x_post(cls, value: Any) -> Any:
        if isinstance(value, str):
            return clamp_text(value.strip(), X_POST_MAX_CHARS)
        return value

    @field_validator("linkedin_post", "cta", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class SocialPostWriterAgent(BaseAgent[SocialPostInput, SocialPostResult]):
    """Writes the SNS summary and CTA that accompany a published article."""

    model_tier = "fast"
    temperature = 0.7

    @property
    def system_prompt(self) -> str:
        return f"""You write social copy that promotes a long-form article.

Produce:
1. x_post: an X post of at most {X_POST_MAX_CHARS} characters
2. linkedin_post: a LinkedIn style post of about 400 characters
3. cta: a call-to-action paragraph of 80-140 characters

Stay faithful to the article. Avoid clickbait and exaggerated claims."""

    @property
    def output_type(self) -> type[SocialPostResult]:
        return SocialPostResult

    def _build_prompt(self, input_data: SocialPostInput) -> str:
        return "\n".join(
            [
                f"Title: {input_data.title}",
                "",
                "Article:",
                clamp_text(input_data.final_markdown, settings.prompt_social_max_chars),
            ]
        )


def render_social_posts(result: SocialPostResult) -> str:
    return "\n\n".join(
        [
            f"X:\n{result.x_post}",
            f"LinkedIn:\n{result.linkedin_post}",
            f"CTA:\n{result.cta}",
        ]
    )
