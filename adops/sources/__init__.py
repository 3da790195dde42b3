"""Data sources: the synthetic GAM provider and the HTTP client."""
