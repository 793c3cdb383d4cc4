"""Turn pipeline: retrieval, context assembly and orchestration."""
