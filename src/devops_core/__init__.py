"""Query normalization and response shaping for Azure DevOps work items.

Modules:
- wiql: WIQL field-name normalization and query cleanup
- compaction: compact mode for identity fields
- grouping: grouping work items by a field
- summary: grouped plain-text summaries
- aggregation: contributor and per-field statistics
- pagination: paging WIQL result IDs
- response_shaping: choosing the response shape by size
- config: settings and connection configuration
"""

__version__ = "1.0.0"
