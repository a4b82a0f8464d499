"""
Utility functions module.

Date semantics:
- A tracked flight's date is the LOCAL scheduled departure date at the
  origin airport, formatted YYYY-MM-DD
- Upstream local times look like "2025-10-05 06:38-07:00"; the date is the
  part before the first space
- Wall-clock UTC time is only used for bookkeeping timestamps
"""
