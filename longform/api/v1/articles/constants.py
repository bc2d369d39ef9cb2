"""Constants for article routes."""

DEFAULT_ARTICLE_LIMIT = 50
MAX_ARTICLE_LIMIT = 200

ARTICLE_NOT_FOUND_DETAIL = "Article not found"
SECTION_NOT_FOUND_DETAIL = "Section not found"
ACTIVE_JOB_EXISTS_DETAIL = "Article already has an active job"
ARTICLE_NOT_AUDITABLE_DETAIL = "Article has no final output to audit"
ARTICLE_NOT_FINISHED_DETAIL = "Article has no final output yet"
ARTICLE_HAS_NO_JOB_DETAIL = "Article has no job with references to summarize"
GENERATION_FAILED_DETAIL = "Generation backend failed; nothing was stored"
