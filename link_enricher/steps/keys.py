"""
Metadata keys shared between steps.
"""

# str: user the run acts for (written by ReadStep)
USER_ID = "user_id"

# dict[str, str]: url -> pending content record id (written by ReadStep)
PENDING_CONTENT_IDS = "pending_content_ids"

# dict[str, str]: url -> source-side id used for de-duplication (written by ReadStep)
EXTERNAL_IDS = "external_ids"

# tuple[QueuedItem, ...]: rate-limited items awaiting RetryStep
RETRY_QUEUE = "retry_queue"

# dict[str, Any]: RetryStep outcome counts
RETRY_SUMMARY = "retry_summary"

# dict[str, int]: BookmarkEnrichmentStep outcome counts
ENRICHMENT_SUMMARY = "enrichment_summary"

# str: where ExportStep wrote its output
EXPORT_PATH = "export_path"
