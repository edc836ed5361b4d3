"""
Submission sanitization and trust-scoring service.

Components:
- pipeline/: secret detection, redaction, sanitization gateway, scoring policy,
  aggregation and badge classification
- ai_service/: external LLM reviewer client
- routers/: HTTP surface
"""

__version__ = "0.1.0"
