"""Application services coordinating per-guild state."""
