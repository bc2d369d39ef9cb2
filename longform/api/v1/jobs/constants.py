"""Constants for job routes."""

JOB_NOT_FOUND_DETAIL = "Job not found"
ACTIVE_JOB_EXISTS_DETAIL = "Article already has an active job"
INVALID_TRANSITION_DETAIL_TEMPLATE = "Cannot {action} job in status '{status}'"
NOT_RESETTABLE_DETAIL_TEMPLATE = "Job is not resettable in status '{status}'"
